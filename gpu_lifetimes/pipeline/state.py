"""ReconciliationState: the sole state object that pipeline nodes read and write.

Every node receives the full state and returns a partial update.  No
node may reach outside this state: no settings, no globals, no I/O.
"""

from __future__ import annotations

from datetime import datetime
from typing import TypedDict

from gpu_lifetimes.config import PipelineConfig
from gpu_lifetimes.core.overlap import ResolutionResult
from gpu_lifetimes.domain.diagnostics import ReconciliationDiagnostics, RejectedRecord
from gpu_lifetimes.domain.interval import EventMarker, Interval
from gpu_lifetimes.domain.lifetime import Lifetime
from gpu_lifetimes.domain.observation import Observation, RawRecord


class ReconciliationState(TypedDict, total=False):
    """LangGraph state for one reconciliation run.

    Fields:
        pipeline_config: Frozen pipeline parameters for this run.
        records: Raw history records in log order.
        service_slots: Reference set of non-GPU slot addresses.
        upstream_rejects: Rows rejected before normalization (no column mapping).
        input_count: Number of raw rows the caller supplied.

        observations: Normalized observations (after the service filter).
        rejects: All rejected records so far.
        duplicate_count: Exact duplicate scans collapsed.
        service_filtered_count: Observations dropped at service slots.
        unobserved_service_slots: Reference slots never seen (drift).
        normalized_count: Observations before the service filter.

        intervals: Candidate life intervals.
        markers: Non-life event markers.
        unit_resolution: Result of the unit-keyed overlap pass.
        slot_resolution: Result of the slot-keyed overlap pass.

        classified: Intervals with terminal event / censoring set.
        last_inventory: Close of the collection window.
        ambiguous_count: Intervals censored as LAST_SEEN.
        terminal_before_last_count: Terminal events the unit outlived.
        unmatched_terminal_count: FAILURE / REMOVED markers closing no interval.

        lifetimes: One Lifetime per unit.
        diagnostics: Run summary.
    """

    pipeline_config: PipelineConfig
    records: list[RawRecord]
    service_slots: frozenset[str]
    upstream_rejects: list[RejectedRecord]
    input_count: int

    observations: list[Observation]
    rejects: list[RejectedRecord]
    duplicate_count: int
    service_filtered_count: int
    unobserved_service_slots: list[str]
    normalized_count: int

    intervals: list[Interval]
    markers: list[EventMarker]
    unit_resolution: ResolutionResult
    slot_resolution: ResolutionResult

    classified: list[Interval]
    last_inventory: datetime | None
    ambiguous_count: int
    terminal_before_last_count: int
    unmatched_terminal_count: int

    lifetimes: list[Lifetime]
    diagnostics: ReconciliationDiagnostics
