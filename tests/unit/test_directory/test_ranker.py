"""Unit tests for exposure ranking."""

from datetime import timedelta

import pytest

from tests.helpers.entries import make_entry
from tests.helpers.time import FIXED_NOW
from thaiinfo.directory.metrics import RankerMetrics
from thaiinfo.directory.models import DirectoryEntry, EntryTier
from thaiinfo.directory.ranker import ExposureRanker, rank_entries_pure
from thaiinfo.directory.scorer import FairnessScorer


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    """Start each test with fresh ranker metrics."""
    RankerMetrics.reset()


def _tiers(entries: list[DirectoryEntry]) -> str:
    return "".join("P" if e.tier is EntryTier.PREMIUM else "R" for e in entries)


def _sorted_by_score(entries: list[DirectoryEntry]) -> list[int]:
    scorer = FairnessScorer(now=FIXED_NOW)
    scored = scorer.score_entries(entries)
    return [s.entry.id for s in sorted(scored, key=lambda s: (-s.score, s.input_index))]


class TestExposureRankerOrdering:
    """Tests for tier ordering and the premium/regular interleave."""

    def test_example_scenario(self) -> None:
        """Premium A and B come before regular C, A ahead of the busier B."""
        a = make_entry(entry_id=1, title="A", is_premium=True, exposure_count=0)
        b = make_entry(entry_id=2, title="B", is_premium=True, exposure_count=100)
        c = make_entry(entry_id=3, title="C", exposure_count=0)

        result = ExposureRanker(now=FIXED_NOW).rank([b, c, a])

        assert [e.title for e in result.entries] == ["A", "B", "C"]

    def test_regular_only_sorted_by_score(self) -> None:
        """Without premium entries the output is the regular tier by score."""
        entries = [
            make_entry(entry_id=1, exposure_count=30),
            make_entry(entry_id=2, exposure_count=5),
            make_entry(
                entry_id=3,
                exposure_count=30,
                last_exposed_at=FIXED_NOW - timedelta(hours=10),
            ),
            make_entry(entry_id=4, exposure_count=0, exposure_weight=0.5),
        ]

        ordered = rank_entries_pure(entries, now=FIXED_NOW)

        assert [e.id for e in ordered] == _sorted_by_score(entries)
        assert [e.id for e in ordered] == [3, 2, 1, 4]

    def test_premium_only_sorted_by_score(self) -> None:
        """Without regular entries the output is the premium tier by score."""
        entries = [
            make_entry(entry_id=1, is_premium=True, exposure_count=50),
            make_entry(entry_id=2, is_premium=True, exposure_count=10),
            make_entry(entry_id=3, is_premium=True, exposure_weight=2.0),
        ]

        ordered = rank_entries_pure(entries, now=FIXED_NOW)

        assert [e.id for e in ordered] == [3, 2, 1]

    def test_interleave_two_premium_one_regular(self) -> None:
        """Tiers alternate two premium then one regular."""
        entries = [make_entry(entry_id=i, is_premium=True) for i in range(1, 5)]
        entries += [make_entry(entry_id=i) for i in range(5, 9)]

        result = ExposureRanker(now=FIXED_NOW).rank(entries)

        assert _tiers(result.entries) == "PPRPPRRR"

    def test_every_window_of_three_respects_ratio(self) -> None:
        """While both tiers remain, any 3 consecutive slots hold 2 premium, 1 regular."""
        entries = [
            make_entry(entry_id=i, is_premium=True, exposure_count=i) for i in range(6)
        ]
        entries += [make_entry(entry_id=i, exposure_count=i) for i in range(6, 12)]

        tiers = _tiers(ExposureRanker(now=FIXED_NOW).rank(entries).entries)
        # 6 premium entries are used up after 3 full cycles (9 slots).
        both_remaining = tiers[:9]

        for start in range(len(both_remaining) - 2):
            window = both_remaining[start : start + 3]
            assert window.count("P") <= 2
            assert window.count("R") <= 1

    def test_remaining_premium_drained_in_order(self) -> None:
        """Premium entries left after regulars run out keep score order."""
        entries = [
            make_entry(entry_id=i, is_premium=True, exposure_count=i * 10)
            for i in range(1, 6)
        ]
        entries.append(make_entry(entry_id=9))

        ordered = rank_entries_pure(entries, now=FIXED_NOW)

        assert [e.id for e in ordered] == [1, 2, 9, 3, 4, 5]

    def test_ties_keep_input_order(self) -> None:
        """Equal scores within a tier keep their input positions."""
        entries = [make_entry(entry_id=i) for i in (5, 2, 8, 1)]

        ordered = rank_entries_pure(entries, now=FIXED_NOW)

        assert [e.id for e in ordered] == [5, 2, 8, 1]

    def test_expired_premium_still_ranked_as_premium(self) -> None:
        """Expiry does not demote an entry; only the flag matters."""
        expired = make_entry(
            entry_id=1,
            is_premium=True,
            exposure_count=500,
            premium_expires_at=FIXED_NOW - timedelta(days=3),
        )
        regular = make_entry(entry_id=2)

        result = ExposureRanker(now=FIXED_NOW).rank([regular, expired])

        assert result.entry_ids == [1, 2]
        assert result.premium_count == 1


class TestExposureRankerProperties:
    """Structural properties of a ranking pass."""

    def test_output_is_permutation_of_input(self) -> None:
        """Nothing is dropped or duplicated."""
        entries = [make_entry(entry_id=i, is_premium=i % 3 == 0) for i in range(20)]

        result = ExposureRanker(now=FIXED_NOW).rank(entries)

        assert sorted(result.entry_ids) == list(range(20))

    def test_ranking_is_idempotent(self) -> None:
        """Re-ranking the output with unchanged counters gives the same order."""
        entries = [
            make_entry(
                entry_id=i,
                is_premium=i % 2 == 0,
                exposure_count=(i * 7) % 13,
                last_exposed_at=FIXED_NOW - timedelta(hours=i),
            )
            for i in range(1, 11)
        ]

        first = rank_entries_pure(entries, now=FIXED_NOW)
        second = rank_entries_pure(first, now=FIXED_NOW)

        assert [e.id for e in second] == [e.id for e in first]

    def test_empty_input(self) -> None:
        """An empty list ranks to an empty list."""
        result = ExposureRanker(now=FIXED_NOW).rank([])

        assert result.entries == []
        assert result.scores == {}

    def test_scores_reported_for_every_entry(self) -> None:
        """The result carries a breakdown per entry id."""
        entries = [make_entry(entry_id=1), make_entry(entry_id=2, is_premium=True)]

        result = ExposureRanker(now=FIXED_NOW).rank(entries)

        assert set(result.scores) == {1, 2}
        assert result.scores[1].total == pytest.approx(100.0)

    def test_invalid_run_length_rejected(self) -> None:
        """Run lengths below one are rejected."""
        with pytest.raises(ValueError, match="at least 1"):
            ExposureRanker(premium_run=0)

    def test_metrics_recorded(self) -> None:
        """A pass updates the ranker metrics."""
        metrics = RankerMetrics.get_instance()
        entries = [make_entry(entry_id=1, is_premium=True), make_entry(entry_id=2)]

        ExposureRanker(now=FIXED_NOW).rank(entries)

        assert metrics.passes_total == 1
        assert metrics.entries_ranked_total == 2
        assert metrics.last_premium_count == 1
        assert metrics.last_regular_count == 1
