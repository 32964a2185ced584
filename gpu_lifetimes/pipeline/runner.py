"""Pipeline runner: clean interface for a reconciliation run.

Usage:
    from gpu_lifetimes.pipeline.runner import reconcile

    result = reconcile(records, service_slots={"c0-0c0s0n0"})
    result.lifetimes      # one Lifetime per unit
    result.intervals      # classified, non-overlapping intervals
    result.diagnostics    # rejects, overlap counts, drift

The runner seeds the initial state, invokes the compiled graph and
unpacks the final state.  It is deterministic: the same input always
produces the same tables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterable, Sequence

from gpu_lifetimes.adapters.registry import AdapterRegistry, default_registry
from gpu_lifetimes.config import PipelineConfig
from gpu_lifetimes.domain.diagnostics import ReconciliationDiagnostics, RejectedRecord
from gpu_lifetimes.domain.errors import EmptyInputError
from gpu_lifetimes.domain.interval import EventMarker, Interval
from gpu_lifetimes.domain.lifetime import Lifetime
from gpu_lifetimes.domain.observation import RawRecord
from gpu_lifetimes.pipeline.builder import build_reconciliation_graph
from gpu_lifetimes.pipeline.state import ReconciliationState

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _compiled_graph():
    return build_reconciliation_graph()


@dataclass
class ReconciliationResult:
    intervals: list[Interval] = field(default_factory=list)
    lifetimes: list[Lifetime] = field(default_factory=list)
    dropped: list[Interval] = field(default_factory=list)
    markers: list[EventMarker] = field(default_factory=list)
    diagnostics: ReconciliationDiagnostics | None = None


def reconcile(
    records: Sequence[RawRecord],
    service_slots: Iterable[str] = (),
    config: PipelineConfig | None = None,
    *,
    upstream_rejects: Sequence[RejectedRecord] = (),
    input_count: int | None = None,
) -> ReconciliationResult:
    """Run the full reconciliation pipeline over *records*.

    Args:
        records: Raw history records in log order.
        service_slots: Known non-GPU slot addresses to exclude.
        config: Pipeline parameters; defaults to the environment settings.
        upstream_rejects: Rows the caller already rejected (kept in diagnostics).
        input_count: Raw row count when it differs from len(records).

    Raises:
        EmptyInputError: If there is nothing to reconcile.
    """
    if not records:
        raise EmptyInputError("no history records to reconcile")

    config = config or PipelineConfig.from_settings()
    initial_state: ReconciliationState = {
        "pipeline_config": config,
        "records": list(records),
        "service_slots": frozenset(service_slots),
        "upstream_rejects": list(upstream_rejects),
        "input_count": input_count if input_count is not None else len(records),
    }

    logger.info(
        "Reconciling %d record(s) against %d service slot(s)",
        len(records),
        len(initial_state["service_slots"]),
    )
    final_state = _compiled_graph().invoke(initial_state)

    diagnostics: ReconciliationDiagnostics = final_state["diagnostics"]
    logger.info(
        "Reconciliation complete: lifetimes=%d intervals=%d rejected=%d",
        diagnostics.lifetime_count,
        len(final_state["classified"]),
        diagnostics.rejected_count,
    )

    return ReconciliationResult(
        intervals=final_state["classified"],
        lifetimes=final_state["lifetimes"],
        dropped=final_state["unit_resolution"].dropped + final_state["slot_resolution"].dropped,
        markers=final_state["markers"],
        diagnostics=diagnostics,
    )


def reconcile_rows(
    rows: Iterable[dict[str, Any]],
    service_slots: Iterable[str] = (),
    config: PipelineConfig | None = None,
    registry: AdapterRegistry | None = None,
) -> ReconciliationResult:
    """Map raw row dicts through the adapter registry, then reconcile.

    Rows no adapter can map are counted as rejects, not raised.
    """
    rows = list(rows)
    if not rows:
        raise EmptyInputError("no history rows to reconcile")
    records, rejects = (registry or default_registry()).adapt_rows(rows)
    if not records:
        raise EmptyInputError(f"none of {len(rows)} history row(s) matched a known column mapping")
    return reconcile(
        records,
        service_slots,
        config,
        upstream_rejects=rejects,
        input_count=len(rows),
    )
