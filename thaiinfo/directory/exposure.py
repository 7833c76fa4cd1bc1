"""Exposure counter updates after a batch of cards is displayed."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Protocol

import structlog

from thaiinfo.directory.metrics import RankerMetrics
from thaiinfo.directory.models import ExposureUpdateResult


logger = structlog.get_logger()


class ExposureSink(Protocol):
    """Persistence target for exposure updates."""

    def record_exposure(self, entry_id: int, exposed_at: datetime) -> None:
        """Increment one entry's exposure counter and stamp the time."""
        ...


class ExposureRecorder:
    """Records exposures for displayed entries, one entry at a time.

    There is no transaction across the batch. A failure on one entry is
    logged and counted, and the remaining entries are still updated.
    """

    def __init__(
        self,
        sink: ExposureSink,
        metrics: RankerMetrics | None = None,
    ) -> None:
        """Initialize the recorder.

        Args:
            sink: Store that persists each exposure.
            metrics: Optional metrics instance.
        """
        self._sink = sink
        self._metrics = metrics or RankerMetrics.get_instance()
        self._log = logger.bind(component="directory", subcomponent="exposure")

    def record_exposures(
        self,
        entry_ids: Iterable[int],
        now: datetime | None = None,
    ) -> ExposureUpdateResult:
        """Increment exposure counters for every displayed entry.

        Args:
            entry_ids: Ids of the entries that were shown.
            now: Exposure timestamp (defaults to the current time).

        Returns:
            ExposureUpdateResult listing updated and failed ids.
        """
        exposed_at = now or datetime.now(UTC)
        result = ExposureUpdateResult()

        for entry_id in entry_ids:
            try:
                self._sink.record_exposure(entry_id, exposed_at)
            except Exception as exc:  # noqa: BLE001
                self._metrics.record_exposure_failure()
                result.failed[entry_id] = str(exc)
                self._log.warning(
                    "exposure_update_failed",
                    entry_id=entry_id,
                    error=str(exc),
                )
                continue
            self._metrics.record_exposure()
            result.updated.append(entry_id)

        self._log.info(
            "exposures_recorded",
            updated=len(result.updated),
            failed=len(result.failed),
        )
        return result
