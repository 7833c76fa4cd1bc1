"""Exceptions for the portal store.

Infrastructure failures (SQLite errors, missing connection) and domain
failures (missing rows, invalid values) share the ``StoreError`` base.
"""


class StoreError(Exception):
    """Base exception for all portal store errors."""


class StoreConnectionError(StoreError):
    """Raised when the database is not connected or cannot be reached."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class EntryNotFoundError(StoreError):
    """Raised when a directory entry id does not exist."""

    def __init__(self, entry_id: int) -> None:
        """Initialize the error with the missing entry id.

        Args:
            entry_id: The id that was not found.
        """
        self.entry_id = entry_id
        super().__init__(f"Directory entry not found: {entry_id}")


class NewsNotFoundError(StoreError):
    """Raised when a news id does not exist."""

    def __init__(self, news_id: int) -> None:
        self.news_id = news_id
        super().__init__(f"News not found: {news_id}")


class InvalidValueError(StoreError, ValueError):
    """Raised when a write is rejected before reaching the database."""


class MigrationError(StoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")
