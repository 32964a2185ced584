"""Interval Builder: pairs LIFE observations into candidate life intervals.

Every other kind becomes an EventMarker keyed by (unit_id, timestamp,
slot_id): FAILURE and REMOVED markers may later terminate an interval,
ZERO_LIFE and UNPAIRED markers are kept as censoring signals only.
"""

from __future__ import annotations

import logging
from typing import Sequence

from gpu_lifetimes.domain.enums import EventKind
from gpu_lifetimes.domain.interval import EventMarker, Interval
from gpu_lifetimes.domain.observation import Observation

logger = logging.getLogger(__name__)


def _marker(obs: Observation) -> EventMarker:
    timestamp = obs.event_time
    if timestamp is None:
        raise ValueError(f"line {obs.line}: {obs.kind.value} observation has no timestamp")
    return EventMarker(unit_id=obs.unit_id, slot_id=obs.slot_id, timestamp=timestamp, kind=obs.kind)


def build_intervals(
    observations: Sequence[Observation],
) -> tuple[list[Interval], list[EventMarker]]:
    """Split *observations* into intervals and event markers.

    Intervals are returned ordered by (unit_id, start, end, slot_id);
    markers by (unit_id, timestamp, slot_id) with exact duplicates removed.
    """
    intervals: list[Interval] = []
    markers: dict[tuple, EventMarker] = {}

    for obs in observations:
        kind = obs.kind
        if kind is EventKind.LIFE:
            intervals.append(
                Interval(
                    unit_id=obs.unit_id,
                    slot_id=obs.slot_id,
                    start=obs.timestamp_insert,
                    end=obs.timestamp_remove,
                )
            )
        elif kind in (EventKind.FAILURE, EventKind.REMOVED, EventKind.ZERO_LIFE, EventKind.UNPAIRED):
            marker = _marker(obs)
            markers.setdefault((*marker.key, marker.kind), marker)
        else:
            raise ValueError(f"unhandled event kind: {kind!r}")

    intervals.sort(key=lambda iv: (iv.unit_id, iv.start, iv.end, iv.slot_id))
    ordered_markers = sorted(markers.values(), key=lambda m: (m.unit_id, m.timestamp, m.slot_id, m.kind.value))

    logger.info("Built %d interval(s) and %d event marker(s)", len(intervals), len(ordered_markers))
    return intervals, ordered_markers
