"""Tests for the Lifetime Aggregator."""

from __future__ import annotations

from datetime import timedelta

import pytest

from gpu_lifetimes.core.aggregator import aggregate_lifetimes, aggregate_unit, dominant_slot
from gpu_lifetimes.domain.enums import CensorReason, EventKind, InstallBatch

from tests.factories import S1, S2, S3, U1, U2, U3, classified, days, iv, marker, ts

_CUTOFF = ts(2014, 1, 1)


class TestDominantSlot:
    def test_longest_cumulative_duration_wins(self) -> None:
        intervals = [
            iv(ts(2013, 1, 1), ts(2013, 1, 11), slot_id=S1),
            iv(ts(2013, 2, 1), ts(2013, 2, 8), slot_id=S2),
            iv(ts(2013, 3, 1), ts(2013, 3, 8), slot_id=S2),
        ]
        assert dominant_slot(intervals) == (S2, days(14))

    def test_tie_goes_to_first_in_chronological_order(self) -> None:
        intervals = [
            iv(ts(2013, 5, 1), ts(2013, 5, 11), slot_id=S1),
            iv(ts(2013, 1, 1), ts(2013, 1, 11), slot_id=S2),
        ]
        assert dominant_slot(intervals) == (S2, days(10))


class TestAggregateUnit:
    def test_basic_lifetime(self) -> None:
        intervals = [
            classified(ts(2013, 6, 1), ts(2013, 7, 1), CensorReason.RELOCATED, slot_id=S1),
            classified(ts(2013, 7, 1), ts(2014, 7, 1), CensorReason.IN_SERVICE, slot_id=S2),
        ]
        lifetime = aggregate_unit(U1, intervals, _CUTOFF)
        assert lifetime.total_duration == days(30) + days(365)
        assert lifetime.interval_count == 2
        assert lifetime.distinct_slot_count == 2
        assert lifetime.dominant_slot == S2
        assert lifetime.dominant_slot_fraction == pytest.approx(365 / 395)
        assert lifetime.first_seen == ts(2013, 6, 1)
        assert lifetime.last_seen == ts(2014, 7, 1)
        assert lifetime.still_in_service is True
        assert lifetime.censored is True
        assert lifetime.final_status == CensorReason.IN_SERVICE
        assert lifetime.install_batch == InstallBatch.EARLY

    def test_failure_counts_overall_and_at_dominant_slot(self) -> None:
        intervals = [
            classified(ts(2014, 2, 1), ts(2014, 2, 5), CensorReason.FAILURE, slot_id=S1),
            classified(ts(2014, 3, 1), ts(2014, 9, 1), CensorReason.FAILURE, slot_id=S2),
            classified(ts(2014, 9, 2), ts(2014, 9, 3), CensorReason.REMOVED, slot_id=S3),
        ]
        lifetime = aggregate_unit(U1, intervals, _CUTOFF)
        assert lifetime.failure_count == 2
        assert lifetime.removed_count == 1
        assert lifetime.dominant_slot == S2
        assert lifetime.dominant_slot_failure_count == 1
        assert lifetime.dominant_slot_removed_count == 0
        assert lifetime.still_in_service is False
        assert lifetime.final_status == CensorReason.REMOVED
        assert lifetime.install_batch == InstallBatch.LATE

    def test_zero_total_duration_gives_undefined_fraction(self) -> None:
        intervals = [classified(ts(2014, 2, 1), ts(2014, 2, 1), CensorReason.IN_SERVICE)]
        lifetime = aggregate_unit(U1, intervals, _CUTOFF)
        assert lifetime.total_duration == timedelta(0)
        assert lifetime.dominant_slot_fraction is None

    def test_unclassified_intervals_rejected(self) -> None:
        with pytest.raises(ValueError):
            aggregate_unit(U1, [iv(ts(2014, 1), ts(2014, 2))], _CUTOFF)

    def test_missing_durations_ignored(self) -> None:
        intervals = [
            classified(ts(2014, 2, 1), ts(2014, 2, 11), CensorReason.RELOCATED, slot_id=S1),
            classified(ts(2014, 3, 1), ts(2014, 3, 6), CensorReason.IN_SERVICE, slot_id=S2)
            .model_copy(update={"duration": None}),
        ]
        lifetime = aggregate_unit(U1, intervals, _CUTOFF)
        assert lifetime.total_duration == days(10)
        assert lifetime.dominant_slot == S1
        assert lifetime.dominant_slot_fraction == pytest.approx(1.0)


class TestAggregateLifetimes:
    def test_one_lifetime_per_unit_sorted(self) -> None:
        intervals = [
            classified(ts(2014, 2, 1), ts(2014, 3, 1), CensorReason.IN_SERVICE, unit_id=U2),
            classified(ts(2014, 2, 1), ts(2014, 3, 1), CensorReason.IN_SERVICE, unit_id=U1),
        ]
        lifetimes = aggregate_lifetimes(intervals, _CUTOFF)
        assert [lt.unit_id for lt in lifetimes] == [U1, U2]

    def test_duration_conservation(self) -> None:
        intervals = [
            classified(ts(2013, 1, 1), ts(2013, 4, 1), CensorReason.RELOCATED, slot_id=S1),
            classified(ts(2013, 4, 1), ts(2013, 9, 1), CensorReason.RELOCATED, slot_id=S2),
            classified(ts(2013, 9, 1), ts(2015, 1, 1), CensorReason.LAST_SEEN, slot_id=S1),
        ]
        (lifetime,) = aggregate_lifetimes(intervals, _CUTOFF)
        assert lifetime.total_duration == sum((i.duration for i in intervals), timedelta(0))
        assert 0.0 <= lifetime.dominant_slot_fraction <= 1.0


class TestTerminalMarkers:
    def test_marker_after_last_interval_counts_as_failure(self) -> None:
        intervals = [classified(ts(2014, 1, 1), ts(2014, 2, 15), CensorReason.LAST_SEEN)]
        lifetime = aggregate_unit(U1, intervals, _CUTOFF, [marker(ts(2014, 3, 1), EventKind.FAILURE)])
        assert lifetime.failure_count == 1
        assert lifetime.dominant_slot_failure_count == 1
        assert lifetime.still_in_service is False
        assert lifetime.censored is False
        assert lifetime.final_status == CensorReason.FAILURE

    def test_marker_closing_interval_counted_once(self) -> None:
        intervals = [classified(ts(2014, 1, 1), ts(2014, 2, 1), CensorReason.REMOVED)]
        lifetime = aggregate_unit(U1, intervals, _CUTOFF, [marker(ts(2014, 2, 1), EventKind.REMOVED)])
        assert lifetime.removed_count == 1

    def test_marker_at_other_slot_not_counted_at_dominant_slot(self) -> None:
        intervals = [
            classified(ts(2014, 1, 1), ts(2014, 6, 1), CensorReason.RELOCATED, slot_id=S1),
            classified(ts(2014, 6, 1), ts(2014, 7, 1), CensorReason.IN_SERVICE, slot_id=S2),
        ]
        markers = [marker(ts(2014, 3, 1), EventKind.REMOVED, slot_id=S2)]
        lifetime = aggregate_unit(U1, intervals, _CUTOFF, markers)
        assert lifetime.dominant_slot == S1
        assert lifetime.removed_count == 1
        assert lifetime.dominant_slot_removed_count == 0
        assert lifetime.still_in_service is False
        # The unit was seen again afterwards, so the last interval still decides.
        assert lifetime.final_status == CensorReason.IN_SERVICE

    def test_markers_routed_to_their_unit(self) -> None:
        intervals = [
            classified(ts(2014, 1, 1), ts(2014, 2, 1), CensorReason.LAST_SEEN, unit_id=U1),
            classified(ts(2014, 1, 1), ts(2014, 3, 1), CensorReason.IN_SERVICE, unit_id=U2),
        ]
        markers = [
            marker(ts(2014, 2, 10), EventKind.FAILURE, unit_id=U1),
            marker(ts(2014, 2, 10), EventKind.FAILURE, unit_id=U3),
        ]
        lifetimes = {lt.unit_id: lt for lt in aggregate_lifetimes(intervals, _CUTOFF, markers)}
        assert set(lifetimes) == {U1, U2}
        assert lifetimes[U1].failure_count == 1
        assert lifetimes[U2].failure_count == 0
        assert lifetimes[U2].still_in_service is True
