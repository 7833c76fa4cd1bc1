"""Metrics for article page fetches."""

from dataclasses import dataclass, field
from typing import ClassVar

from thaiinfo.fetch.models import FetchErrorClass


@dataclass
class FetchMetrics:
    """Per-site fetch counters.

    Attributes:
        responses_by_domain: Fetches that got an HTTP response, per host.
        failures_by_class: Failed fetches per error class.
        bytes_total: Body bytes read.
        durations_ms: Fetch durations.
    """

    responses_by_domain: dict[str, int] = field(default_factory=dict)
    failures_by_class: dict[str, int] = field(default_factory=dict)
    bytes_total: int = 0
    durations_ms: list[float] = field(default_factory=list)

    _instance: ClassVar["FetchMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "FetchMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_response(self, domain: str, body_size: int) -> None:
        self.responses_by_domain[domain] = self.responses_by_domain.get(domain, 0) + 1
        self.bytes_total += body_size

    def record_failure(self, error_class: FetchErrorClass) -> None:
        key = error_class.value
        self.failures_by_class[key] = self.failures_by_class.get(key, 0) + 1

    def record_duration(self, duration_ms: float) -> None:
        self.durations_ms.append(duration_ms)

    def to_dict(self) -> dict[str, object]:
        """Serializable snapshot."""
        durations = sorted(self.durations_ms)
        return {
            "responses_by_domain": dict(self.responses_by_domain),
            "failures_by_class": dict(self.failures_by_class),
            "bytes_total": self.bytes_total,
            "median_duration_ms": durations[len(durations) // 2] if durations else 0.0,
        }
