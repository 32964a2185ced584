"""Tests for the Interval Builder."""

from __future__ import annotations

from gpu_lifetimes.core.interval_builder import build_intervals
from gpu_lifetimes.core.normalizer import normalize
from gpu_lifetimes.domain.enums import EventKind

from tests.factories import CONFIG, S1, S2, U1, U2, days, numbered, raw, ts


def _build(records):
    return build_intervals(normalize(numbered(records), CONFIG).observations)


class TestBuildIntervals:
    def test_life_observation_becomes_interval(self) -> None:
        intervals, markers = _build([raw()])
        assert len(intervals) == 1
        assert markers == []
        interval = intervals[0]
        assert (interval.start, interval.end) == (ts(2014, 1, 1), ts(2014, 2, 1))
        assert interval.duration == days(31)
        assert not interval.overlap_flag
        assert interval.terminal_event is None

    def test_zero_life_is_a_marker_not_an_interval(self) -> None:
        intervals, markers = _build([raw(insert="2014-01-01T00:00", remove="2014-01-01T00:00")])
        assert intervals == []
        assert [m.kind for m in markers] == [EventKind.ZERO_LIFE]

    def test_event_markers_keyed_by_unit_time_slot(self) -> None:
        _, markers = _build([
            raw(U1, S1, insert="DBE", remove="2014-02-01T00:00"),
            raw(U2, S2, insert="2014-03-01T00:00", remove="OTB"),
        ])
        assert [m.key for m in markers] == [
            (U1, ts(2014, 2, 1), S1),
            (U2, ts(2014, 3, 1), S2),
        ]
        assert [m.kind for m in markers] == [EventKind.FAILURE, EventKind.REMOVED]

    def test_first_and_last_seen_only_records_produce_no_interval(self) -> None:
        intervals, markers = _build([
            raw(insert="2014-01-01T00:00", remove=None),
            raw(insert=None, remove="2014-06-01T00:00"),
        ])
        assert intervals == []
        assert {m.kind for m in markers} == {EventKind.UNPAIRED}

    def test_intervals_ordered_by_unit_then_start(self) -> None:
        intervals, _ = _build([
            raw(U2, S1, insert="2014-01-01T00:00", remove="2014-02-01T00:00"),
            raw(U1, S2, insert="2014-05-01T00:00", remove="2014-06-01T00:00"),
            raw(U1, S1, insert="2014-01-01T00:00", remove="2014-02-01T00:00"),
        ])
        assert [(i.unit_id, i.start.month) for i in intervals] == [(U1, 1), (U1, 5), (U2, 1)]

    def test_duplicate_markers_collapsed(self) -> None:
        _, markers = _build([
            raw(insert="DBE", remove="2014-02-01T00:00"),
            raw(insert="double bit error", remove="2014-02-01T00:00"),
        ])
        assert len(markers) == 1
