"""Unit tests for exposure recording."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from tests.helpers.time import FIXED_NOW
from thaiinfo.directory.exposure import ExposureRecorder
from thaiinfo.directory.metrics import RankerMetrics


class _RecordingSink:
    """Sink that records calls and fails for chosen ids."""

    def __init__(self, failing: set[int] | None = None) -> None:
        self.calls: list[tuple[int, datetime]] = []
        self._failing = failing or set()

    def record_exposure(self, entry_id: int, exposed_at: datetime) -> None:
        if entry_id in self._failing:
            msg = f"row {entry_id} locked"
            raise RuntimeError(msg)
        self.calls.append((entry_id, exposed_at))


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    """Start each test with fresh ranker metrics."""
    RankerMetrics.reset()


class TestExposureRecorder:
    """Tests for ExposureRecorder.record_exposures."""

    def test_records_every_entry(self) -> None:
        """Each displayed id is written once with the same timestamp."""
        sink = _RecordingSink()

        result = ExposureRecorder(sink).record_exposures([3, 1, 2], now=FIXED_NOW)

        assert result.updated == [3, 1, 2]
        assert result.failed == {}
        assert sink.calls == [(3, FIXED_NOW), (1, FIXED_NOW), (2, FIXED_NOW)]

    def test_failure_does_not_stop_others(self) -> None:
        """A failing entry is reported while the rest are still updated."""
        sink = _RecordingSink(failing={2})

        result = ExposureRecorder(sink).record_exposures([1, 2, 3], now=FIXED_NOW)

        assert result.updated == [1, 3]
        assert list(result.failed) == [2]
        assert "locked" in result.failed[2]

    def test_metrics_count_successes_and_failures(self) -> None:
        """Metrics reflect both outcomes."""
        metrics = RankerMetrics.get_instance()

        ExposureRecorder(_RecordingSink(failing={1})).record_exposures(
            [1, 2, 3], now=FIXED_NOW
        )

        assert metrics.exposures_recorded == 2
        assert metrics.exposure_failures == 1

    def test_defaults_to_current_time(self) -> None:
        """Without ``now`` a timezone-aware timestamp is used."""
        sink = MagicMock()

        ExposureRecorder(sink).record_exposures([7])

        entry_id, exposed_at = sink.record_exposure.call_args[0]
        assert entry_id == 7
        assert exposed_at.tzinfo is not None
