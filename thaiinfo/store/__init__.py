"""SQLite persistence for the portal.

Stores directory entries with their exposure counters, news documents,
and the shared category and tag tables, plus the debounced view-count
buffer that writes into it.
"""

from thaiinfo.store.buffer import ViewCountBuffer, ViewCountSink
from thaiinfo.store.errors import (
    EntryNotFoundError,
    InvalidValueError,
    MigrationError,
    NewsNotFoundError,
    StoreConnectionError,
    StoreError,
)
from thaiinfo.store.metrics import StoreMetrics
from thaiinfo.store.migrations import CURRENT_VERSION, MigrationManager
from thaiinfo.store.store import PortalStore


__all__ = [
    "CURRENT_VERSION",
    "EntryNotFoundError",
    "InvalidValueError",
    "MigrationError",
    "MigrationManager",
    "NewsNotFoundError",
    "PortalStore",
    "StoreConnectionError",
    "StoreError",
    "StoreMetrics",
    "ViewCountBuffer",
    "ViewCountSink",
]
