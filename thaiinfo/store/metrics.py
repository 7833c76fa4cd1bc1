"""Metrics collection for the portal store."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class StoreMetrics:
    """Metrics for store operations.

    Attributes:
        entries_added_total: Directory entries inserted.
        exposures_recorded_total: Exposure counter increments.
        views_recorded_total: View increments written (summed amounts).
        news_saved_total: News documents inserted.
        db_tx_duration_ms: Cumulative transaction duration in milliseconds.
        db_tx_count: Number of committed transactions.
        db_tx_failures: Number of rolled back transactions.
    """

    entries_added_total: int = 0
    exposures_recorded_total: int = 0
    views_recorded_total: int = 0
    news_saved_total: int = 0
    db_tx_duration_ms: float = 0.0
    db_tx_count: int = 0
    db_tx_failures: int = 0

    _instance: ClassVar["StoreMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "StoreMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_entry_added(self) -> None:
        """Record a new directory entry."""
        self.entries_added_total += 1

    def record_exposure(self) -> None:
        """Record one exposure increment."""
        self.exposures_recorded_total += 1

    def record_views(self, amount: int) -> None:
        """Record view increments.

        Args:
            amount: Number of views written.
        """
        self.views_recorded_total += amount

    def record_news_saved(self) -> None:
        """Record a stored news document."""
        self.news_saved_total += 1

    def record_tx_duration(self, duration_ms: float) -> None:
        """Record a committed transaction's duration.

        Args:
            duration_ms: Duration in milliseconds.
        """
        self.db_tx_duration_ms += duration_ms
        self.db_tx_count += 1

    def record_tx_failure(self) -> None:
        """Record a rolled back transaction."""
        self.db_tx_failures += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "entries_added_total": self.entries_added_total,
            "exposures_recorded_total": self.exposures_recorded_total,
            "views_recorded_total": self.views_recorded_total,
            "news_saved_total": self.news_saved_total,
            "db_tx_duration_ms": self.db_tx_duration_ms,
            "db_tx_count": self.db_tx_count,
            "db_tx_failures": self.db_tx_failures,
        }


@dataclass
class TransactionContext:
    """Context for a single transaction with timing.

    Attributes:
        tx_id: Short transaction identifier.
        start_time_ns: Start time in nanoseconds.
        operation: The operation being performed.
    """

    tx_id: str
    start_time_ns: int
    operation: str
    affected_rows: int = field(default=0)

    def add_affected_rows(self, rows: int) -> None:
        """Add to the affected row count."""
        self.affected_rows += rows
