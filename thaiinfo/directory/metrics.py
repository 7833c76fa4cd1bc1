"""Metrics collection for exposure ranking."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class RankerMetrics:
    """Metrics for ranking passes and exposure updates.

    Attributes:
        passes_total: Ranking passes executed.
        entries_ranked_total: Entries ordered across all passes.
        last_premium_count: Premium entries in the most recent pass.
        last_regular_count: Regular entries in the most recent pass.
        ranking_duration_ms: Duration of each pass.
        exposures_recorded: Exposure increments persisted.
        exposure_failures: Exposure increments that failed.
    """

    passes_total: int = 0
    entries_ranked_total: int = 0
    last_premium_count: int = 0
    last_regular_count: int = 0
    ranking_duration_ms: list[float] = field(default_factory=list)
    exposures_recorded: int = 0
    exposure_failures: int = 0

    _instance: ClassVar["RankerMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "RankerMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_pass(self, premium: int, regular: int, duration_ms: float) -> None:
        """Record one ranking pass.

        Args:
            premium: Premium entries in the input.
            regular: Regular entries in the input.
            duration_ms: Pass duration in milliseconds.
        """
        self.passes_total += 1
        self.entries_ranked_total += premium + regular
        self.last_premium_count = premium
        self.last_regular_count = regular
        self.ranking_duration_ms.append(duration_ms)

    def record_exposure(self) -> None:
        """Record a persisted exposure increment."""
        self.exposures_recorded += 1

    def record_exposure_failure(self) -> None:
        """Record a failed exposure increment."""
        self.exposure_failures += 1
