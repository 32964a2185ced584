"""Censoring Classifier: decides how each surviving interval ended.

Per interval, first matching rule wins:
    1. A FAILURE or REMOVED marker at (unit_id, slot_id, end):
       terminal_event set, censored = False.  FAILURE outranks REMOVED.
    2. The unit's chronologically last interval, ending before
       last_inventory: censored, no terminal event (LAST_SEEN).
    3. The unit's last interval, ending at last_inventory: censored,
       still in service (IN_SERVICE).
    4. Any earlier interval without a marker: the unit moved on
       (RELOCATED), censored for this slot.

A terminal event on an interval the unit later outlived is preserved as
recorded and only counted.  Downstream consumers decide whether it is
noise.

FAILURE / REMOVED markers that close no surviving interval are counted
here and still reach the unit's Lifetime through the aggregator.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Sequence

from gpu_lifetimes.domain.enums import CensorReason, EventKind
from gpu_lifetimes.domain.interval import EventMarker, Interval

logger = logging.getLogger(__name__)


def last_inventory(intervals: Iterable[Interval]) -> datetime | None:
    """Close of the collection window: the latest end among *intervals*."""
    return max((iv.end for iv in intervals), default=None)


def terminal_index(markers: Iterable[EventMarker]) -> dict[tuple[str, str, datetime], EventKind]:
    """Index FAILURE / REMOVED markers by (unit_id, slot_id, timestamp)."""
    index: dict[tuple[str, str, datetime], EventKind] = {}
    for marker in markers:
        kind = marker.kind
        if kind is EventKind.FAILURE:
            index[(marker.unit_id, marker.slot_id, marker.timestamp)] = EventKind.FAILURE
        elif kind is EventKind.REMOVED:
            index.setdefault((marker.unit_id, marker.slot_id, marker.timestamp), EventKind.REMOVED)
        elif kind in (EventKind.LIFE, EventKind.ZERO_LIFE, EventKind.UNPAIRED):
            continue
        else:
            raise ValueError(f"unhandled event kind: {kind!r}")
    return index


def terminal_reason(kind: EventKind) -> CensorReason:
    if kind is EventKind.FAILURE:
        return CensorReason.FAILURE
    if kind is EventKind.REMOVED:
        return CensorReason.REMOVED
    raise ValueError(f"not a terminal event kind: {kind!r}")


@dataclass
class CensoringResult:
    intervals: list[Interval] = field(default_factory=list)
    last_inventory: datetime | None = None
    ambiguous_count: int = 0
    terminal_before_last_count: int = 0
    unmatched_terminal_count: int = 0


def classify_intervals(
    intervals: Sequence[Interval],
    markers: Sequence[EventMarker],
    window_end: datetime | None = None,
) -> CensoringResult:
    """Classify the terminal event / censoring status of every interval.

    Args:
        intervals: Surviving intervals after both overlap passes.
        markers: Event markers from the interval builder.
        window_end: Collection window close; defaults to last_inventory().
    """
    window_end = window_end if window_end is not None else last_inventory(intervals)
    index = terminal_index(markers)

    by_unit: dict[str, list[Interval]] = defaultdict(list)
    for iv in intervals:
        by_unit[iv.unit_id].append(iv)

    classified: list[Interval] = []
    ambiguous = 0
    terminal_early = 0
    matched: set[tuple[str, str, datetime]] = set()

    for unit_id in sorted(by_unit):
        members = sorted(by_unit[unit_id], key=Interval.sort_key)
        last_pos = len(members) - 1
        for pos, iv in enumerate(members):
            is_last = pos == last_pos
            key = (iv.unit_id, iv.slot_id, iv.end)
            event = index.get(key)
            if event is not None:
                matched.add(key)
                update = {
                    "terminal_event": event,
                    "censored": False,
                    "censor_reason": terminal_reason(event),
                }
                if not is_last:
                    terminal_early += 1
            elif is_last and iv.end != window_end:
                update = {"terminal_event": None, "censored": True, "censor_reason": CensorReason.LAST_SEEN}
                ambiguous += 1
            elif is_last:
                update = {"terminal_event": None, "censored": True, "censor_reason": CensorReason.IN_SERVICE}
            else:
                update = {"terminal_event": None, "censored": True, "censor_reason": CensorReason.RELOCATED}
            classified.append(iv.model_copy(update=update))

    if ambiguous:
        logger.info("%d unit(s) last seen before the collection window closed", ambiguous)
    if terminal_early:
        logger.warning("%d terminal event(s) recorded on intervals the unit later outlived", terminal_early)

    unmatched = len(index) - len(matched)
    if unmatched:
        logger.warning("%d terminal marker(s) do not close any surviving interval", unmatched)

    return CensoringResult(
        intervals=classified,
        last_inventory=window_end,
        ambiguous_count=ambiguous,
        terminal_before_last_count=terminal_early,
        unmatched_terminal_count=unmatched,
    )
