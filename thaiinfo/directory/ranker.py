"""Exposure ranking: fairness ordering with a premium/regular interleave."""

import time
from datetime import datetime

import structlog

from thaiinfo.directory.constants import PREMIUM_RUN_LENGTH, REGULAR_RUN_LENGTH
from thaiinfo.directory.metrics import RankerMetrics
from thaiinfo.directory.models import (
    DirectoryEntry,
    EntryTier,
    RankingResult,
    ScoredEntry,
)
from thaiinfo.directory.scorer import FairnessScorer


logger = structlog.get_logger()


class ExposureRanker:
    """Orders directory entries for a single rendering pass.

    Flow:
        partition by tier -> score -> sort each tier -> interleave

    The output holds exactly the input entries. Within a tier, entries
    with equal scores keep their input order. Premium and regular entries
    alternate in runs of ``premium_run`` and ``regular_run``; once one
    tier runs out the other is drained in score order.
    """

    def __init__(
        self,
        now: datetime | None = None,
        premium_run: int = PREMIUM_RUN_LENGTH,
        regular_run: int = REGULAR_RUN_LENGTH,
        metrics: RankerMetrics | None = None,
    ) -> None:
        """Initialize the ranker.

        Args:
            now: Reference time for the rest bonus.
            premium_run: Premium entries emitted per cycle.
            regular_run: Regular entries emitted per cycle.
            metrics: Optional metrics instance.
        """
        if premium_run < 1 or regular_run < 1:
            msg = "Interleave run lengths must be at least 1"
            raise ValueError(msg)
        self._scorer = FairnessScorer(now=now)
        self._premium_run = premium_run
        self._regular_run = regular_run
        self._metrics = metrics or RankerMetrics.get_instance()
        self._log = logger.bind(component="directory", subcomponent="ranker")

    def rank(self, entries: list[DirectoryEntry]) -> RankingResult:
        """Rank entries into display order.

        Args:
            entries: Entries to order.

        Returns:
            RankingResult with the ordered entries and score breakdowns.
        """
        start = time.perf_counter()

        scored = self._scorer.score_entries(entries)
        premium = self._sort_tier(
            [s for s in scored if s.entry.tier is EntryTier.PREMIUM]
        )
        regular = self._sort_tier(
            [s for s in scored if s.entry.tier is EntryTier.REGULAR]
        )
        ordered = self._interleave(premium, regular)

        duration_ms = (time.perf_counter() - start) * 1000
        self._metrics.record_pass(len(premium), len(regular), duration_ms)

        self._log.info(
            "ranking_complete",
            entries_in=len(entries),
            premium=len(premium),
            regular=len(regular),
            duration_ms=round(duration_ms, 2),
        )

        return RankingResult(
            entries=[s.entry for s in ordered],
            scores={s.entry.id: s.components for s in scored},
            premium_count=len(premium),
            regular_count=len(regular),
        )

    @staticmethod
    def _sort_tier(scored: list[ScoredEntry]) -> list[ScoredEntry]:
        """Sort one tier by descending score, ties by input position."""
        return sorted(scored, key=lambda s: (-s.score, s.input_index))

    def _interleave(
        self, premium: list[ScoredEntry], regular: list[ScoredEntry]
    ) -> list[ScoredEntry]:
        """Merge the tiers in fixed-size runs until both are drained."""
        ordered: list[ScoredEntry] = []
        p = r = 0
        while p < len(premium) or r < len(regular):
            take = premium[p : p + self._premium_run]
            ordered.extend(take)
            p += len(take)

            take = regular[r : r + self._regular_run]
            ordered.extend(take)
            r += len(take)
        return ordered


def rank_entries_pure(
    entries: list[DirectoryEntry],
    now: datetime | None = None,
) -> list[DirectoryEntry]:
    """Pure function API for exposure ranking.

    Args:
        entries: Entries to rank.
        now: Reference time for the rest bonus.

    Returns:
        Entries in display order.
    """
    return ExposureRanker(now=now).rank(entries).entries
