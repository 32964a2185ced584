"""Lifetime Aggregator: folds each unit's classified intervals into one Lifetime."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable, Sequence

from gpu_lifetimes.core.censoring import terminal_index, terminal_reason
from gpu_lifetimes.domain.enums import CensorReason, EventKind, InstallBatch
from gpu_lifetimes.domain.interval import EventMarker, Interval
from gpu_lifetimes.domain.lifetime import Lifetime

logger = logging.getLogger(__name__)


def install_batch(first_start: datetime, cutoff: datetime) -> InstallBatch:
    return InstallBatch.EARLY if first_start < cutoff else InstallBatch.LATE


def dominant_slot(intervals: Sequence[Interval]) -> tuple[str, timedelta]:
    """Slot with the longest cumulative duration.

    Ties go to the slot encountered first in chronological order.
    Intervals with a missing duration count as zero.
    """
    per_slot: dict[str, timedelta] = {}
    for iv in sorted(intervals, key=Interval.sort_key):
        per_slot[iv.slot_id] = per_slot.get(iv.slot_id, timedelta(0)) + (iv.duration or timedelta(0))

    best_slot, best = None, None
    for slot, total in per_slot.items():
        if best is None or total > best:
            best_slot, best = slot, total
    if best_slot is None:
        raise ValueError("cannot pick a dominant slot from no intervals")
    return best_slot, best


def terminal_events(
    intervals: Iterable[Interval],
    markers: Iterable[EventMarker] = (),
) -> dict[tuple[str, datetime], EventKind]:
    """One unit's FAILURE / REMOVED events keyed by (slot_id, timestamp).

    Events attached to an interval end and free-standing markers are
    merged, so a marker that closed an interval is counted once.
    FAILURE outranks REMOVED at one key.
    """
    events: dict[tuple[str, datetime], EventKind] = {}

    def record(key: tuple[str, datetime], kind: EventKind) -> None:
        if kind is EventKind.FAILURE or key not in events:
            events[key] = kind

    for iv in intervals:
        if iv.terminal_event is not None:
            record((iv.slot_id, iv.end), iv.terminal_event)
    for (_, slot_id, timestamp), kind in terminal_index(markers).items():
        record((slot_id, timestamp), kind)
    return events


def _count(events: dict[tuple[str, datetime], EventKind], kind: EventKind, slot: str | None = None) -> int:
    return sum(
        1 for (slot_id, _), event in events.items()
        if event is kind and (slot is None or slot_id == slot)
    )


def _final_status(last: Interval, last_seen: datetime, events: dict) -> CensorReason:
    """The last interval's reason, unless a terminal event follows it."""
    if last.is_terminal:
        return last.censor_reason
    later = [(when, kind is EventKind.FAILURE, kind) for (_, when), kind in events.items() if when >= last_seen]
    if not later:
        return last.censor_reason
    return terminal_reason(max(later)[2])


def aggregate_unit(
    unit_id: str,
    intervals: Sequence[Interval],
    cutoff: datetime,
    markers: Sequence[EventMarker] = (),
) -> Lifetime:
    """Build the Lifetime for one unit from its classified intervals.

    *markers* are the unit's event markers; FAILURE / REMOVED markers
    count toward the Lifetime whether or not they closed an interval.
    """
    members = sorted(intervals, key=Interval.sort_key)
    if not members:
        raise ValueError(f"unit {unit_id} has no intervals")

    total = sum((iv.duration for iv in members if iv.duration is not None), timedelta(0))
    dom_slot, dom_duration = dominant_slot(members)
    fraction = dom_duration / total if total > timedelta(0) else None

    last = members[-1]
    if last.censor_reason is None:
        raise ValueError(f"unit {unit_id}: intervals must be classified before aggregation")

    events = terminal_events(members, markers)
    failures = _count(events, EventKind.FAILURE)
    removals = _count(events, EventKind.REMOVED)
    last_seen = max(iv.end for iv in members)

    return Lifetime(
        unit_id=unit_id,
        total_duration=total,
        interval_count=len(members),
        distinct_slot_count=len({iv.slot_id for iv in members}),
        dominant_slot=dom_slot,
        dominant_slot_fraction=fraction,
        first_seen=members[0].start,
        last_seen=last_seen,
        failure_count=failures,
        removed_count=removals,
        dominant_slot_failure_count=_count(events, EventKind.FAILURE, dom_slot),
        dominant_slot_removed_count=_count(events, EventKind.REMOVED, dom_slot),
        still_in_service=failures == 0 and removals == 0,
        final_status=_final_status(last, last_seen, events),
        install_batch=install_batch(members[0].start, cutoff),
    )


def aggregate_lifetimes(
    intervals: Iterable[Interval],
    cutoff: datetime,
    markers: Iterable[EventMarker] = (),
) -> list[Lifetime]:
    """One Lifetime per unit, ordered by unit_id.

    Markers of units with no surviving interval produce no Lifetime.
    """
    by_unit: dict[str, list[Interval]] = defaultdict(list)
    for iv in intervals:
        by_unit[iv.unit_id].append(iv)
    markers_by_unit: dict[str, list[EventMarker]] = defaultdict(list)
    for marker in markers:
        markers_by_unit[marker.unit_id].append(marker)

    lifetimes = [
        aggregate_unit(unit_id, by_unit[unit_id], cutoff, markers_by_unit.get(unit_id, []))
        for unit_id in sorted(by_unit)
    ]
    logger.info("Aggregated %d unit lifetime(s)", len(lifetimes))
    return lifetimes
