"""Premium expiry helpers and the exposure balance report.

Expiry is advisory: nothing here changes an entry's tier. The admin
console uses these helpers to label cards and to spot entries that the
rotation is starving or over-serving.
"""

import math
from datetime import UTC, datetime

from thaiinfo.directory.constants import OVER_EXPOSED_RATIO, UNDER_EXPOSED_RATIO
from thaiinfo.directory.models import DirectoryEntry, ExposureStats


_SECONDS_PER_DAY = 86400


def is_premium_active(entry: DirectoryEntry, now: datetime | None = None) -> bool:
    """Whether an entry's premium placement is still running.

    A premium entry without an expiry date is open-ended and counts as
    active.
    """
    if not entry.is_premium:
        return False
    if entry.premium_expires_at is None:
        return True
    return entry.premium_expires_at >= (now or datetime.now(UTC))


def premium_days_remaining(
    entry: DirectoryEntry, now: datetime | None = None
) -> int | None:
    """Whole days left on a premium placement, rounded up.

    Returns:
        None for open-ended or non-premium entries, otherwise days
        remaining (0 once expired).
    """
    if not entry.is_premium or entry.premium_expires_at is None:
        return None
    remaining = (entry.premium_expires_at - (now or datetime.now(UTC))).total_seconds()
    return max(0, math.ceil(remaining / _SECONDS_PER_DAY))


def compute_exposure_stats(
    entries: list[DirectoryEntry], now: datetime | None = None
) -> ExposureStats:
    """Summarize exposure balance across entries.

    Args:
        entries: Entries to summarize.
        now: Reference time for premium expiry.

    Returns:
        ExposureStats with totals and the under/over-exposed entry ids.
    """
    if not entries:
        return ExposureStats()

    now = now or datetime.now(UTC)
    total = sum(e.exposure_count for e in entries)
    average = total / len(entries)

    return ExposureStats(
        total_entries=len(entries),
        total_exposures=total,
        average_exposures=round(average, 2),
        premium_entries=sum(1 for e in entries if is_premium_active(e, now)),
        under_exposed=[
            e.id for e in entries if e.exposure_count < average * UNDER_EXPOSED_RATIO
        ],
        over_exposed=[
            e.id for e in entries if e.exposure_count > average * OVER_EXPOSED_RATIO
        ],
    )
