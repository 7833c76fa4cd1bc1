"""Fairness scoring for directory entries."""

from __future__ import annotations

from datetime import UTC, datetime

import structlog

from thaiinfo.directory.constants import (
    EXPOSURE_DECAY,
    FAIRNESS_BASE,
    MAX_TIME_BONUS_HOURS,
    TIME_BONUS_PER_HOUR,
)
from thaiinfo.directory.models import DirectoryEntry, FairnessComponents, ScoredEntry


logger = structlog.get_logger()

_SECONDS_PER_HOUR = 3600.0


class FairnessScorer:
    """Computes fairness scores for directory entries.

    Scoring formula:
        score = (BASE - exposure_count * DECAY + time_bonus) * exposure_weight

    Where ``time_bonus`` grows with hours since ``last_exposed_at`` and is
    capped at ``MAX_TIME_BONUS_HOURS``. An entry that was never exposed
    counts as exposed "now" and gets no rest bonus.
    """

    def __init__(
        self,
        now: datetime | None = None,
        base: float = FAIRNESS_BASE,
        decay: float = EXPOSURE_DECAY,
        max_bonus_hours: float = MAX_TIME_BONUS_HOURS,
    ) -> None:
        """Initialize the scorer.

        Args:
            now: Reference time; read once so a pass is deterministic.
            base: Constant starting score.
            decay: Penalty per recorded exposure.
            max_bonus_hours: Cap on the rest bonus window.
        """
        self._now = now or datetime.now(UTC)
        self._base = base
        self._decay = decay
        self._max_bonus_hours = max_bonus_hours

    @property
    def now(self) -> datetime:
        """Reference time used for the rest bonus."""
        return self._now

    def hours_since_exposure(self, entry: DirectoryEntry) -> float:
        """Hours between ``last_exposed_at`` and now, never negative."""
        if entry.last_exposed_at is None:
            return 0.0
        elapsed = (self._now - entry.last_exposed_at).total_seconds()
        return max(0.0, elapsed / _SECONDS_PER_HOUR)

    def time_bonus(self, entry: DirectoryEntry) -> float:
        """Rest bonus for an entry, capped at the bonus window."""
        hours = min(self.hours_since_exposure(entry), self._max_bonus_hours)
        return hours * TIME_BONUS_PER_HOUR

    def score_entry(self, entry: DirectoryEntry, input_index: int = 0) -> ScoredEntry:
        """Compute the fairness score for a single entry.

        Args:
            entry: Entry to score.
            input_index: Position of the entry in the ranking input.

        Returns:
            ScoredEntry with the score breakdown.
        """
        exposure_penalty = entry.exposure_count * self._decay
        time_bonus = self.time_bonus(entry)
        weight = entry.exposure_weight
        total = (self._base - exposure_penalty + time_bonus) * weight

        components = FairnessComponents(
            base=self._base,
            exposure_penalty=exposure_penalty,
            time_bonus=time_bonus,
            weight=weight,
            total=total,
        )
        return ScoredEntry(entry=entry, components=components, input_index=input_index)

    def score_entries(self, entries: list[DirectoryEntry]) -> list[ScoredEntry]:
        """Score entries, preserving input order.

        Args:
            entries: Entries to score.

        Returns:
            Scored entries in input order.
        """
        scored = [self.score_entry(entry, i) for i, entry in enumerate(entries)]

        logger.debug(
            "scoring_complete",
            component="directory",
            subcomponent="scorer",
            entries_scored=len(scored),
            min_score=min((s.score for s in scored), default=0.0),
            max_score=max((s.score for s in scored), default=0.0),
        )
        return scored
