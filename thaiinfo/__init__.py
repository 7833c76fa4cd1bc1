"""Directory ranking and news ingestion core for the Thailand portal."""

__version__ = "0.1.0"
