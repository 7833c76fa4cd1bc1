"""Directory exposure ranking.

Orders business cards by a fairness score that favors rarely shown and
long-rested entries, interleaves premium and regular tiers two-to-one,
and records exposures once a batch has been displayed.
"""

from thaiinfo.directory.exposure import ExposureRecorder, ExposureSink
from thaiinfo.directory.metrics import RankerMetrics
from thaiinfo.directory.models import (
    DirectoryEntry,
    DirectoryEntryInput,
    EntryTier,
    ExposureStats,
    ExposureUpdateResult,
    FairnessComponents,
    RankingResult,
    ScoredEntry,
)
from thaiinfo.directory.ranker import ExposureRanker, rank_entries_pure
from thaiinfo.directory.scorer import FairnessScorer
from thaiinfo.directory.stats import (
    compute_exposure_stats,
    is_premium_active,
    premium_days_remaining,
)


__all__ = [
    "DirectoryEntry",
    "DirectoryEntryInput",
    "EntryTier",
    "ExposureRanker",
    "ExposureRecorder",
    "ExposureSink",
    "ExposureStats",
    "ExposureUpdateResult",
    "FairnessComponents",
    "FairnessScorer",
    "RankerMetrics",
    "RankingResult",
    "ScoredEntry",
    "compute_exposure_stats",
    "is_premium_active",
    "premium_days_remaining",
    "rank_entries_pure",
]
