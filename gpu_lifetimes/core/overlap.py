"""Overlap Resolver: enforces non-overlapping intervals per grouping key.

One algorithm, two policies:

    resolve_overlaps(intervals, GroupingKey.UNIT, ResolutionPolicy.DROP_WHOLE_GROUP)
    resolve_overlaps(intervals, GroupingKey.SLOT, ResolutionPolicy.DROP_FLAGGED_ONLY)

Detection:
    Within each key group, intervals are sorted by (start, end) and swept
    while tracking the running maximum end.  An interval whose start is
    earlier than the running end joins the current run.  Every member of
    a run with two or more intervals touches at least one pairwise
    overlap, so the whole run is flagged.

Policies:
    DROP_WHOLE_GROUP:   a key group with any flagged interval loses all of
                        its intervals (full-record removal).
    DROP_FLAGGED_ONLY:  only the flagged intervals are removed.

Overlaps are an expected data condition, not an error.  They are
reported through ResolutionReport and never raised.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from gpu_lifetimes.domain.diagnostics import ResolutionReport
from gpu_lifetimes.domain.enums import GroupingKey, ResolutionPolicy
from gpu_lifetimes.domain.interval import Interval

logger = logging.getLogger(__name__)


def key_of(interval: Interval, key: GroupingKey) -> str:
    if key is GroupingKey.UNIT:
        return interval.unit_id
    if key is GroupingKey.SLOT:
        return interval.slot_id
    raise ValueError(f"unhandled grouping key: {key!r}")


def group_by_key(intervals: Iterable[Interval], key: GroupingKey) -> dict[str, list[Interval]]:
    """Group intervals by *key*, each group sorted by (start, end)."""
    groups: dict[str, list[Interval]] = defaultdict(list)
    for iv in intervals:
        groups[key_of(iv, key)].append(iv)
    for members in groups.values():
        members.sort(key=Interval.sort_key)
    return dict(groups)


def overlap_runs(members: Sequence[Interval]) -> list[list[int]]:
    """Indices of connected overlap runs in *members* (sorted by start).

    Only runs of two or more intervals are returned.
    """
    runs: list[list[int]] = []
    current: list[int] = []
    running_end = None
    for idx, iv in enumerate(members):
        if running_end is not None and iv.start < running_end:
            current.append(idx)
            running_end = max(running_end, iv.end)
            continue
        if len(current) > 1:
            runs.append(current)
        current = [idx]
        running_end = iv.end
    if len(current) > 1:
        runs.append(current)
    return runs


def find_overlaps(intervals: Iterable[Interval], key: GroupingKey) -> list[tuple[Interval, Interval]]:
    """Every pair (A, B) in one key group with A.start <= B.start and B.start < A.end."""
    pairs: list[tuple[Interval, Interval]] = []
    for members in group_by_key(intervals, key).values():
        for i, a in enumerate(members):
            for b in members[i + 1:]:
                if b.start >= a.end:
                    continue
                pairs.append((a, b))
    return pairs


@dataclass
class ResolutionResult:
    kept: list[Interval] = field(default_factory=list)
    dropped: list[Interval] = field(default_factory=list)
    report: ResolutionReport | None = None


def resolve_overlaps(
    intervals: Sequence[Interval],
    key: GroupingKey,
    policy: ResolutionPolicy,
) -> ResolutionResult:
    """Flag overlapping intervals per *key* and drop them according to *policy*.

    The input is not mutated.  Dropped intervals are returned with
    overlap_flag set; kept intervals are ordered by (unit_id, start, end,
    slot_id).
    """
    kept: list[Interval] = []
    dropped: list[Interval] = []
    flagged_total = 0
    affected: list[str] = []

    for group, members in group_by_key(intervals, key).items():
        flagged_idx = {idx for run in overlap_runs(members) for idx in run}
        if not flagged_idx:
            kept.extend(members)
            continue

        flagged_total += len(flagged_idx)
        affected.append(group)

        for idx, iv in enumerate(members):
            is_flagged = idx in flagged_idx
            if policy is ResolutionPolicy.DROP_WHOLE_GROUP:
                drop = True
            elif policy is ResolutionPolicy.DROP_FLAGGED_ONLY:
                drop = is_flagged
            else:
                raise ValueError(f"unhandled resolution policy: {policy!r}")

            if drop:
                dropped.append(iv.model_copy(update={"overlap_flag": is_flagged}))
            else:
                kept.append(iv)

    kept.sort(key=lambda iv: (iv.unit_id, iv.start, iv.end, iv.slot_id))
    dropped.sort(key=lambda iv: (iv.unit_id, iv.start, iv.end, iv.slot_id))
    affected.sort()

    report = ResolutionReport(
        key=key,
        policy=policy,
        before=len(intervals),
        after=len(kept),
        flagged=flagged_total,
        dropped=len(dropped),
        groups_affected=affected,
    )
    logger.info(
        "Overlap pass by %s (%s): %d → %d interval(s), %d flagged across %d group(s)",
        key.value,
        policy.value,
        report.before,
        report.after,
        report.flagged,
        len(affected),
    )
    return ResolutionResult(kept=kept, dropped=dropped, report=report)
