"""Metrics collection for news ingestion."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class IngestMetrics:
    """Counters for ingestion outcomes.

    Attributes:
        ingests_by_kind: Completed ingests per source kind.
        fallbacks_total: Records built by the fallback path.
        fetch_failures: URL ingests aborted by a fetch failure.
        service_failures: Ingests aborted by a text-service failure.
        languages: Detected source languages.
        entries_parsed: Directory entries drafted from free text.
    """

    ingests_by_kind: dict[str, int] = field(default_factory=dict)
    fallbacks_total: int = 0
    fetch_failures: int = 0
    service_failures: int = 0
    languages: dict[str, int] = field(default_factory=dict)
    entries_parsed: int = 0

    _instance: ClassVar["IngestMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "IngestMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_ingest(self, kind: str, language: str, used_fallback: bool) -> None:
        """Record a completed ingest."""
        self.ingests_by_kind[kind] = self.ingests_by_kind.get(kind, 0) + 1
        self.languages[language] = self.languages.get(language, 0) + 1
        if used_fallback:
            self.fallbacks_total += 1

    def record_entry_parse(self, used_fallback: bool) -> None:
        """Record a drafted directory entry."""
        self.entries_parsed += 1
        if used_fallback:
            self.fallbacks_total += 1

    def record_fetch_failure(self) -> None:
        """Record a fetch failure."""
        self.fetch_failures += 1

    def record_service_failure(self) -> None:
        """Record a text-service failure."""
        self.service_failures += 1
