"""Versioned SQLite schema for the portal store.

The schema only moves forward. Each migration commits together with its
``schema_version`` row, so a failed step leaves the previous version in
place.
"""

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog

from thaiinfo.store.errors import MigrationError


logger = structlog.get_logger()


@dataclass(frozen=True)
class Migration:
    """One forward schema step."""

    version: int
    description: str
    up_sql: str


@dataclass(frozen=True)
class AppliedMigration:
    """A row of the ``schema_version`` table."""

    version: int
    description: str
    applied_at: datetime


MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        version=1,
        description="Directory entries with exposure counters",
        up_sql="""
CREATE TABLE IF NOT EXISTS directory_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    category TEXT NOT NULL DEFAULT '',
    location TEXT,
    phone TEXT,
    website TEXT,
    tags_json TEXT NOT NULL DEFAULT '[]',
    is_premium INTEGER NOT NULL DEFAULT 0,
    premium_expires_at TEXT,
    view_count INTEGER NOT NULL DEFAULT 0 CHECK (view_count >= 0),
    exposure_count INTEGER NOT NULL DEFAULT 0 CHECK (exposure_count >= 0),
    last_exposed_at TEXT,
    exposure_weight REAL NOT NULL DEFAULT 1.0
        CHECK (exposure_weight BETWEEN 0.1 AND 10.0),
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_entries_category ON directory_entries(category);
CREATE INDEX IF NOT EXISTS idx_entries_premium ON directory_entries(is_premium);
""",
    ),
    Migration(
        version=2,
        description="News documents with shared categories and tags",
        up_sql="""
CREATE TABLE IF NOT EXISTS categories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS news (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    summary TEXT NOT NULL DEFAULT '',
    content TEXT NOT NULL DEFAULT '',
    language TEXT NOT NULL,
    is_translated INTEGER NOT NULL DEFAULT 0,
    category_id INTEGER NOT NULL REFERENCES categories(id),
    author TEXT,
    source TEXT,
    original_url TEXT,
    image_url TEXT,
    read_time INTEGER NOT NULL DEFAULT 1 CHECK (read_time >= 1),
    view_count INTEGER NOT NULL DEFAULT 0 CHECK (view_count >= 0),
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_news_created_at ON news(created_at);
CREATE INDEX IF NOT EXISTS idx_news_category ON news(category_id);

CREATE TABLE IF NOT EXISTS news_tags (
    news_id INTEGER NOT NULL REFERENCES news(id) ON DELETE CASCADE,
    tag_id INTEGER NOT NULL REFERENCES tags(id),
    position INTEGER NOT NULL,
    PRIMARY KEY (news_id, tag_id)
);
""",
    ),
)

CURRENT_VERSION = MIGRATIONS[-1].version


def pending_migrations(current_version: int) -> list[Migration]:
    """Migrations after ``current_version``, oldest first.

    Raises:
        MigrationError: If the database was written by a newer build.
    """
    if current_version > CURRENT_VERSION:
        raise MigrationError(
            current_version,
            f"database schema is newer than this build (supports {CURRENT_VERSION})",
        )
    return [m for m in MIGRATIONS if m.version > current_version]


class MigrationManager:
    """Brings a connection's schema up to ``CURRENT_VERSION``."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection
        self._log = logger.bind(component="store", subcomponent="migrations")

    def ensure_version_table(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                description TEXT NOT NULL,
                applied_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def get_current_version(self) -> int:
        """Highest applied version, 0 for a fresh database."""
        self.ensure_version_table()
        (version,) = self._conn.execute(
            "SELECT COALESCE(MAX(version), 0) FROM schema_version"
        ).fetchone()
        return int(version)

    def apply_migrations(self) -> list[int]:
        """Apply pending migrations, each in its own transaction.

        Returns:
            Versions applied by this call.

        Raises:
            MigrationError: If a step fails or the database is newer than
                this build.
        """
        applied: list[int] = []
        for migration in pending_migrations(self.get_current_version()):
            self._apply(migration)
            applied.append(migration.version)
        if applied:
            self._log.info("schema_migrated", versions=applied)
        return applied

    def _apply(self, migration: Migration) -> None:
        log = self._log.bind(version=migration.version)
        log.info("applying_migration", description=migration.description)
        try:
            # executescript commits on its own unless a transaction is open.
            self._conn.executescript("BEGIN;\n" + migration.up_sql)
            self._conn.execute(
                "INSERT INTO schema_version (version, description, applied_at) "
                "VALUES (?, ?, ?)",
                (
                    migration.version,
                    migration.description,
                    datetime.now(UTC).isoformat(),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            log.error("migration_failed", error=str(e))
            raise MigrationError(migration.version, str(e)) from e

    def get_applied_migrations(self) -> list[AppliedMigration]:
        """Applied steps, oldest first."""
        self.ensure_version_table()
        rows = self._conn.execute(
            "SELECT version, description, applied_at FROM schema_version "
            "ORDER BY version"
        ).fetchall()
        return [
            AppliedMigration(
                version=version,
                description=description,
                applied_at=datetime.fromisoformat(applied_at),
            )
            for version, description, applied_at in rows
        ]
