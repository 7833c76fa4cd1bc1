"""SQLite store for directory entries, news, categories, and tags."""

import json
import sqlite3
import threading
import time
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from pathlib import Path

import structlog

from thaiinfo.directory.constants import (
    DEFAULT_PREMIUM_DAYS,
    MAX_EXPOSURE_WEIGHT,
    MIN_EXPOSURE_WEIGHT,
)
from thaiinfo.directory.models import DirectoryEntry, DirectoryEntryInput
from thaiinfo.ingest.models import NewsCategory, NewsDocument, NormalizedRecord
from thaiinfo.store.errors import (
    EntryNotFoundError,
    InvalidValueError,
    NewsNotFoundError,
    StoreConnectionError,
    StoreError,
)
from thaiinfo.store.metrics import StoreMetrics, TransactionContext
from thaiinfo.store.migrations import CURRENT_VERSION, MigrationManager


logger = structlog.get_logger()

_NAME_TABLES = frozenset({"categories", "tags"})


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class PortalStore:
    """SQLite store backing the directory and the news section.

    Uses WAL mode and applies schema migrations on connect. Every write
    runs in its own short transaction; SQLite failures surface as
    ``StoreError``.
    """

    def __init__(
        self,
        db_path: Path | str,
        metrics: StoreMetrics | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file, or ``:memory:``.
            metrics: Optional metrics instance.
        """
        self._db_path = Path(db_path) if isinstance(db_path, str) else db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._metrics = metrics or StoreMetrics.get_instance()
        self._log = logger.bind(component="store", db_path=str(self._db_path))

    @property
    def db_path(self) -> Path:
        """Get the database path."""
        return self._db_path

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open the connection and apply pending migrations.

        Creates parent directories of the database file if needed.

        Raises:
            StoreConnectionError: If SQLite cannot open the file.
        """
        if self._conn is not None:
            return

        in_memory = str(self._db_path) == ":memory:"
        if not in_memory:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._log.info("connecting_to_database")
        try:
            # The view-count buffer flushes from its timer thread.
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        except sqlite3.Error as e:
            raise StoreConnectionError(f"Cannot open database: {e}") from e
        self._conn.row_factory = sqlite3.Row

        if not in_memory:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        migration_mgr = MigrationManager(self._conn)
        old_version = migration_mgr.get_current_version()
        applied = migration_mgr.apply_migrations()

        self._log.info(
            "database_connected",
            old_version=old_version,
            new_version=CURRENT_VERSION,
            migrations_applied=applied,
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.info("database_closed")

    def __enter__(self) -> "PortalStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[TransactionContext]:
        """Run a block in a transaction with timing and logging.

        SQLite errors are rolled back and re-raised as ``StoreError``.
        Other exceptions are rolled back and propagate unchanged.

        Args:
            operation: Name of the operation for logging.

        Yields:
            Transaction context with timing information.
        """
        conn = self._ensure_connected()
        tx_id = str(uuid.uuid4())[:8]
        start_ns = time.perf_counter_ns()
        ctx = TransactionContext(tx_id=tx_id, start_time_ns=start_ns, operation=operation)

        with self._lock:
            try:
                yield ctx
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                self._metrics.record_tx_failure()
                self._log.error(
                    "transaction_failed", tx_id=tx_id, op=operation, error=str(e)
                )
                raise StoreError(f"{operation} failed: {e}") from e
            except Exception:
                conn.rollback()
                self._metrics.record_tx_failure()
                self._log.error("transaction_failed", tx_id=tx_id, op=operation)
                raise

        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        self._metrics.record_tx_duration(duration_ms)
        self._log.debug(
            "transaction_complete",
            tx_id=tx_id,
            op=operation,
            affected_rows=ctx.affected_rows,
            duration_ms=round(duration_ms, 2),
        )

    def _query(self, sql: str, params: tuple[object, ...] = ()) -> list[sqlite3.Row]:
        conn = self._ensure_connected()
        with self._lock:
            try:
                return conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StoreError(f"query failed: {e}") from e

    # ===== Directory Entries =====

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> DirectoryEntry:
        return DirectoryEntry(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            category=row["category"],
            location=row["location"],
            phone=row["phone"],
            website=row["website"],
            tags=json.loads(row["tags_json"]),
            is_premium=bool(row["is_premium"]),
            premium_expires_at=_parse_dt(row["premium_expires_at"]),
            view_count=row["view_count"],
            exposure_count=row["exposure_count"],
            last_exposed_at=_parse_dt(row["last_exposed_at"]),
            exposure_weight=row["exposure_weight"],
        )

    def add_entry(self, entry: DirectoryEntryInput) -> DirectoryEntry:
        """Insert a directory entry with zeroed counters.

        Args:
            entry: Validated entry fields.

        Returns:
            The stored entry.
        """
        with self._transaction("add_entry") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                """
                INSERT INTO directory_entries (
                    title, description, category, location, phone, website,
                    tags_json, is_premium, premium_expires_at,
                    exposure_weight, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.title,
                    entry.description,
                    entry.category,
                    entry.location,
                    entry.phone,
                    entry.website,
                    json.dumps(entry.tags, ensure_ascii=False),
                    1 if entry.is_premium else 0,
                    _iso(entry.premium_expires_at),
                    entry.exposure_weight,
                    datetime.now(UTC).isoformat(),
                ),
            )
            ctx.add_affected_rows(cursor.rowcount)
            entry_id = cursor.lastrowid

        self._metrics.record_entry_added()
        if entry_id is None:
            raise StoreError("add_entry failed: no row id returned")
        return self.require_entry(entry_id)

    def get_entry(self, entry_id: int) -> DirectoryEntry | None:
        """Get an entry by id, or None if it does not exist."""
        rows = self._query("SELECT * FROM directory_entries WHERE id = ?", (entry_id,))
        return self._row_to_entry(rows[0]) if rows else None

    def require_entry(self, entry_id: int) -> DirectoryEntry:
        """Get an entry by id.

        Raises:
            EntryNotFoundError: If the entry does not exist.
        """
        entry = self.get_entry(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    def list_entries(self, category: str | None = None) -> list[DirectoryEntry]:
        """List entries in insertion order, optionally for one category.

        The order is the ranking input order, so ties in score keep it.
        """
        if category is None:
            rows = self._query("SELECT * FROM directory_entries ORDER BY id")
        else:
            rows = self._query(
                "SELECT * FROM directory_entries WHERE category = ? ORDER BY id",
                (category,),
            )
        return [self._row_to_entry(row) for row in rows]

    def _update_entry(
        self,
        operation: str,
        entry_id: int,
        sql: str,
        params: tuple[object, ...],
    ) -> None:
        with self._transaction(operation) as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(sql, (*params, entry_id))
            if cursor.rowcount == 0:
                raise EntryNotFoundError(entry_id)
            ctx.add_affected_rows(cursor.rowcount)

    def record_exposure(self, entry_id: int, exposed_at: datetime) -> None:
        """Increment an entry's exposure counter and stamp the time.

        Raises:
            EntryNotFoundError: If the entry does not exist.
        """
        self._update_entry(
            "record_exposure",
            entry_id,
            """
            UPDATE directory_entries
            SET exposure_count = exposure_count + 1, last_exposed_at = ?
            WHERE id = ?
            """,
            (exposed_at.astimezone(UTC).isoformat(),),
        )
        self._metrics.record_exposure()

    def increment_view_count(self, entry_id: int, amount: int = 1) -> None:
        """Add ``amount`` to an entry's view counter.

        Raises:
            InvalidValueError: If ``amount`` is not positive.
            EntryNotFoundError: If the entry does not exist.
        """
        if amount < 1:
            raise InvalidValueError(f"view increment must be positive: {amount}")
        self._update_entry(
            "increment_view_count",
            entry_id,
            "UPDATE directory_entries SET view_count = view_count + ? WHERE id = ?",
            (amount,),
        )
        self._metrics.record_views(amount)

    def reset_counters(self, entry_id: int) -> DirectoryEntry:
        """Zero an entry's view and exposure counters.

        This is the only operation that decreases a counter.

        Raises:
            EntryNotFoundError: If the entry does not exist.
        """
        self._update_entry(
            "reset_counters",
            entry_id,
            """
            UPDATE directory_entries
            SET view_count = 0, exposure_count = 0, last_exposed_at = NULL
            WHERE id = ?
            """,
            (),
        )
        self._log.info("counters_reset", entry_id=entry_id)
        return self.require_entry(entry_id)

    def grant_premium(
        self,
        entry_id: int,
        days: int = DEFAULT_PREMIUM_DAYS,
        now: datetime | None = None,
    ) -> DirectoryEntry:
        """Mark an entry premium until ``now + days``.

        Raises:
            InvalidValueError: If ``days`` is not positive.
            EntryNotFoundError: If the entry does not exist.
        """
        if days < 1:
            raise InvalidValueError(f"premium duration must be positive: {days}")
        expires_at = (now or datetime.now(UTC)) + timedelta(days=days)
        self._update_entry(
            "grant_premium",
            entry_id,
            """
            UPDATE directory_entries
            SET is_premium = 1, premium_expires_at = ?
            WHERE id = ?
            """,
            (expires_at.astimezone(UTC).isoformat(),),
        )
        self._log.info("premium_granted", entry_id=entry_id, days=days)
        return self.require_entry(entry_id)

    def revoke_premium(self, entry_id: int) -> DirectoryEntry:
        """Return an entry to the regular tier and clear its expiry.

        Raises:
            EntryNotFoundError: If the entry does not exist.
        """
        self._update_entry(
            "revoke_premium",
            entry_id,
            """
            UPDATE directory_entries
            SET is_premium = 0, premium_expires_at = NULL
            WHERE id = ?
            """,
            (),
        )
        self._log.info("premium_revoked", entry_id=entry_id)
        return self.require_entry(entry_id)

    def set_exposure_weight(self, entry_id: int, weight: float) -> DirectoryEntry:
        """Set an entry's exposure weight.

        Raises:
            InvalidValueError: If ``weight`` is outside [0.1, 10.0].
            EntryNotFoundError: If the entry does not exist.
        """
        if not MIN_EXPOSURE_WEIGHT <= weight <= MAX_EXPOSURE_WEIGHT:
            raise InvalidValueError(
                f"exposure weight must be between {MIN_EXPOSURE_WEIGHT} "
                f"and {MAX_EXPOSURE_WEIGHT}: {weight}"
            )
        self._update_entry(
            "set_exposure_weight",
            entry_id,
            "UPDATE directory_entries SET exposure_weight = ? WHERE id = ?",
            (weight,),
        )
        return self.require_entry(entry_id)

    # ===== Categories and Tags =====

    @staticmethod
    def _upsert_name(conn: sqlite3.Connection, table: str, name: str) -> int:
        """Create-or-get a row by unique name and return its id."""
        if table not in _NAME_TABLES:
            raise InvalidValueError(f"unknown name table: {table}")
        if not name or not name.strip():
            raise InvalidValueError(f"{table} name must not be blank")
        conn.execute(
            f"INSERT INTO {table} (name, created_at) VALUES (?, ?) "  # noqa: S608
            "ON CONFLICT(name) DO NOTHING",
            (name, datetime.now(UTC).isoformat()),
        )
        row = conn.execute(
            f"SELECT id FROM {table} WHERE name = ?",  # noqa: S608
            (name,),
        ).fetchone()
        return int(row["id"])

    def upsert_category(self, name: str) -> int:
        """Get or create a category by exact name.

        Returns:
            The category id. Repeated calls return the same id.
        """
        with self._transaction("upsert_category"):
            return self._upsert_name(self._ensure_connected(), "categories", name)

    def upsert_tag(self, name: str) -> int:
        """Get or create a tag by exact name.

        Returns:
            The tag id. Repeated calls return the same id.
        """
        with self._transaction("upsert_tag"):
            return self._upsert_name(self._ensure_connected(), "tags", name)

    # ===== News =====

    def save_news(self, record: NormalizedRecord) -> NewsDocument:
        """Store a normalized record with its category and tags.

        The category, the tags, the news row, and the tag links are
        written in one transaction.

        Returns:
            The stored document.
        """
        created_at = datetime.now(UTC)
        with self._transaction("save_news") as ctx:
            conn = self._ensure_connected()
            category_id = self._upsert_name(conn, "categories", record.category.value)
            cursor = conn.execute(
                """
                INSERT INTO news (
                    title, summary, content, language, is_translated,
                    category_id, author, source, original_url, image_url,
                    read_time, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.title,
                    record.summary,
                    record.content,
                    record.language,
                    1 if record.is_translated else 0,
                    category_id,
                    record.author,
                    record.source,
                    record.original_url,
                    record.image_url,
                    record.read_time,
                    created_at.isoformat(),
                ),
            )
            news_id = cursor.lastrowid
            ctx.add_affected_rows(cursor.rowcount)

            for position, tag in enumerate(record.tags):
                tag_id = self._upsert_name(conn, "tags", tag)
                conn.execute(
                    """
                    INSERT INTO news_tags (news_id, tag_id, position)
                    VALUES (?, ?, ?)
                    ON CONFLICT(news_id, tag_id) DO NOTHING
                    """,
                    (news_id, tag_id, position),
                )

        self._metrics.record_news_saved()
        if news_id is None:
            raise StoreError("save_news failed: no row id returned")
        return self.require_news(news_id)

    def _news_tags(self, news_id: int) -> list[str]:
        rows = self._query(
            """
            SELECT t.name FROM news_tags nt
            JOIN tags t ON t.id = nt.tag_id
            WHERE nt.news_id = ?
            ORDER BY nt.position
            """,
            (news_id,),
        )
        return [row["name"] for row in rows]

    def _row_to_news(self, row: sqlite3.Row) -> NewsDocument:
        return NewsDocument(
            id=row["id"],
            title=row["title"],
            summary=row["summary"],
            content=row["content"],
            language=row["language"],
            is_translated=bool(row["is_translated"]),
            category=NewsCategory.coerce(row["category"]),
            tags=self._news_tags(row["id"]),
            author=row["author"],
            source=row["source"],
            original_url=row["original_url"],
            image_url=row["image_url"],
            read_time=row["read_time"],
            view_count=row["view_count"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    _NEWS_SELECT = """
        SELECT n.*, c.name AS category FROM news n
        JOIN categories c ON c.id = n.category_id
    """

    def get_news(self, news_id: int) -> NewsDocument | None:
        """Get a news document by id, or None if it does not exist."""
        rows = self._query(self._NEWS_SELECT + " WHERE n.id = ?", (news_id,))
        return self._row_to_news(rows[0]) if rows else None

    def require_news(self, news_id: int) -> NewsDocument:
        """Get a news document by id.

        Raises:
            NewsNotFoundError: If the document does not exist.
        """
        document = self.get_news(news_id)
        if document is None:
            raise NewsNotFoundError(news_id)
        return document

    def list_news(
        self,
        category: NewsCategory | None = None,
        limit: int = 20,
    ) -> list[NewsDocument]:
        """List news newest first.

        Args:
            category: Optional category filter.
            limit: Maximum number of documents.
        """
        if category is None:
            rows = self._query(
                self._NEWS_SELECT + " ORDER BY n.created_at DESC, n.id DESC LIMIT ?",
                (limit,),
            )
        else:
            rows = self._query(
                self._NEWS_SELECT
                + " WHERE c.name = ? ORDER BY n.created_at DESC, n.id DESC LIMIT ?",
                (category.value, limit),
            )
        return [self._row_to_news(row) for row in rows]

    def increment_news_view_count(self, news_id: int, amount: int = 1) -> None:
        """Add ``amount`` to a news document's view counter.

        Raises:
            InvalidValueError: If ``amount`` is not positive.
            NewsNotFoundError: If the document does not exist.
        """
        if amount < 1:
            raise InvalidValueError(f"view increment must be positive: {amount}")
        with self._transaction("increment_news_view_count") as ctx:
            conn = self._ensure_connected()
            cursor = conn.execute(
                "UPDATE news SET view_count = view_count + ? WHERE id = ?",
                (amount, news_id),
            )
            if cursor.rowcount == 0:
                raise NewsNotFoundError(news_id)
            ctx.add_affected_rows(cursor.rowcount)
        self._metrics.record_views(amount)
