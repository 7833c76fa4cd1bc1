"""Data models for directory entries and exposure ranking."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from thaiinfo.directory.constants import (
    DEFAULT_EXPOSURE_WEIGHT,
    MAX_EXPOSURE_WEIGHT,
    MIN_EXPOSURE_WEIGHT,
)


ExposureWeight = Annotated[
    float,
    Field(
        ge=MIN_EXPOSURE_WEIGHT,
        le=MAX_EXPOSURE_WEIGHT,
        description="Admin-tunable multiplier on the fairness score",
    ),
]


class EntryTier(str, Enum):
    """Display tier of a directory entry.

    - premium: paid placement, shown two-to-one against regular entries
    - regular: everything else
    """

    PREMIUM = "premium"
    REGULAR = "regular"


def _ensure_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class DirectoryEntryInput(BaseModel):
    """Fields an administrator supplies when creating an entry.

    Also the schema for YAML entry imports.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    title: Annotated[str, Field(min_length=1, description="Business name")]
    description: str = ""
    category: str = ""
    location: str | None = None
    phone: str | None = None
    website: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_premium: bool = False
    premium_expires_at: datetime | None = None
    exposure_weight: ExposureWeight = DEFAULT_EXPOSURE_WEIGHT

    @field_validator("premium_expires_at")
    @classmethod
    def normalize_expiry(cls, v: datetime | None) -> datetime | None:
        """Store expiry timestamps in UTC."""
        return _ensure_utc(v)


class DirectoryEntry(BaseModel):
    """A business card in the directory.

    Counters only grow, except through the administrative reset on the
    store. Premium expiry is advisory; ranking reads ``is_premium`` only.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Annotated[int, Field(ge=0, description="Entry identifier")]
    title: Annotated[str, Field(min_length=1, description="Business name")]
    description: str = ""
    category: str = ""
    location: str | None = None
    phone: str | None = None
    website: str | None = None
    tags: list[str] = Field(default_factory=list)
    is_premium: bool = False
    premium_expires_at: datetime | None = None
    view_count: Annotated[int, Field(ge=0)] = 0
    exposure_count: Annotated[int, Field(ge=0)] = 0
    last_exposed_at: datetime | None = None
    exposure_weight: ExposureWeight = DEFAULT_EXPOSURE_WEIGHT

    @field_validator("premium_expires_at", "last_exposed_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime | None) -> datetime | None:
        """Store timestamps in UTC."""
        return _ensure_utc(v)

    @property
    def tier(self) -> EntryTier:
        """Tier derived from the premium flag."""
        return EntryTier.PREMIUM if self.is_premium else EntryTier.REGULAR


@dataclass(frozen=True)
class FairnessComponents:
    """Breakdown of an entry's fairness score.

    Attributes:
        base: Constant starting score.
        exposure_penalty: ``exposure_count * DECAY``.
        time_bonus: Rest bonus for hours since last exposure (capped).
        weight: Exposure weight multiplier.
        total: ``(base - exposure_penalty + time_bonus) * weight``.
    """

    base: float
    exposure_penalty: float
    time_bonus: float
    weight: float
    total: float

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary for serialization."""
        return {
            "base": self.base,
            "exposure_penalty": self.exposure_penalty,
            "time_bonus": self.time_bonus,
            "weight": self.weight,
            "total": self.total,
        }


@dataclass(frozen=True)
class ScoredEntry:
    """A directory entry with its fairness score.

    Attributes:
        entry: The scored entry.
        components: Score breakdown.
        input_index: Position in the ranking input, used as the tie-breaker.
    """

    entry: DirectoryEntry
    components: FairnessComponents
    input_index: int

    @property
    def score(self) -> float:
        """Total fairness score."""
        return self.components.total


@dataclass
class RankingResult:
    """Outcome of one ranking pass.

    Attributes:
        entries: Entries in display order.
        scores: Entry id to score breakdown.
        premium_count: Number of premium entries in the input.
        regular_count: Number of regular entries in the input.
    """

    entries: list[DirectoryEntry] = field(default_factory=list)
    scores: dict[int, FairnessComponents] = field(default_factory=dict)
    premium_count: int = 0
    regular_count: int = 0

    @property
    def entry_ids(self) -> list[int]:
        """Entry ids in display order."""
        return [e.id for e in self.entries]


@dataclass
class ExposureUpdateResult:
    """Outcome of recording exposures for a displayed batch.

    Attributes:
        updated: Entry ids whose counters were incremented.
        failed: Entry id to error message for entries that failed.
    """

    updated: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)


@dataclass
class ExposureStats:
    """Exposure balance report for the admin console.

    Attributes:
        total_entries: Number of entries considered.
        total_exposures: Sum of exposure counters.
        average_exposures: Mean exposure count (0.0 when empty).
        premium_entries: Entries with an active premium placement.
        under_exposed: Ids below ``UNDER_EXPOSED_RATIO`` of the average.
        over_exposed: Ids above ``OVER_EXPOSED_RATIO`` of the average.
    """

    total_entries: int = 0
    total_exposures: int = 0
    average_exposures: float = 0.0
    premium_entries: int = 0
    under_exposed: list[int] = field(default_factory=list)
    over_exposed: list[int] = field(default_factory=list)
