"""Pipeline nodes: pure functions that transform ReconciliationState.

Each node:
    - Receives the full ReconciliationState
    - Returns a partial dict update
    - Never mutates anything it reads
    - Never touches settings, files or the network

The two overlap nodes run strictly in sequence: the slot-keyed pass
works on what the unit-keyed pass kept.
"""

from __future__ import annotations

import logging

from gpu_lifetimes.core.aggregator import aggregate_lifetimes
from gpu_lifetimes.core.censoring import classify_intervals
from gpu_lifetimes.core.interval_builder import build_intervals
from gpu_lifetimes.core.normalizer import normalize
from gpu_lifetimes.core.overlap import resolve_overlaps
from gpu_lifetimes.core.service_filter import filter_service_slots
from gpu_lifetimes.domain.diagnostics import ReconciliationDiagnostics
from gpu_lifetimes.domain.enums import GroupingKey, ResolutionPolicy
from gpu_lifetimes.pipeline.state import ReconciliationState

logger = logging.getLogger(__name__)


# ── 1. normalize_records ────────────────────────────────────────────────────

def normalize_records(state: ReconciliationState) -> dict:
    """Parse, forward-fill, validate and classify raw records."""
    result = normalize(state["records"], state["pipeline_config"])
    return {
        "observations": result.observations,
        "rejects": list(state.get("upstream_rejects", [])) + result.rejects,
        "duplicate_count": result.duplicate_count,
        "normalized_count": len(result.observations),
    }


# ── 2. filter_service ───────────────────────────────────────────────────────

def filter_service(state: ReconciliationState) -> dict:
    """Drop observations at service slots (after forward-fill)."""
    result = filter_service_slots(state["observations"], state.get("service_slots", frozenset()))
    return {
        "observations": result.observations,
        "service_filtered_count": result.removed_count,
        "unobserved_service_slots": result.unobserved_service_slots,
    }


# ── 3. build_candidate_intervals ────────────────────────────────────────────

def build_candidate_intervals(state: ReconciliationState) -> dict:
    intervals, markers = build_intervals(state["observations"])
    return {"intervals": intervals, "markers": markers}


# ── 4/5. overlap passes ─────────────────────────────────────────────────────

def resolve_by_unit(state: ReconciliationState) -> dict:
    """Unit-keyed pass: a unit seen in two places at once loses its record."""
    result = resolve_overlaps(state["intervals"], GroupingKey.UNIT, ResolutionPolicy.DROP_WHOLE_GROUP)
    return {"unit_resolution": result}


def resolve_by_slot(state: ReconciliationState) -> dict:
    """Slot-keyed pass over the unit pass survivors: drop flagged intervals only."""
    survivors = state["unit_resolution"].kept
    result = resolve_overlaps(survivors, GroupingKey.SLOT, ResolutionPolicy.DROP_FLAGGED_ONLY)
    return {"slot_resolution": result}


# ── 6. classify_censoring ───────────────────────────────────────────────────

def classify_censoring(state: ReconciliationState) -> dict:
    result = classify_intervals(state["slot_resolution"].kept, state["markers"])
    return {
        "classified": result.intervals,
        "last_inventory": result.last_inventory,
        "ambiguous_count": result.ambiguous_count,
        "terminal_before_last_count": result.terminal_before_last_count,
        "unmatched_terminal_count": result.unmatched_terminal_count,
    }


# ── 7. aggregate ────────────────────────────────────────────────────────────

def aggregate(state: ReconciliationState) -> dict:
    cutoff = state["pipeline_config"].install_cutoff
    return {"lifetimes": aggregate_lifetimes(state["classified"], cutoff, state.get("markers", []))}


# ── 8. summarize ────────────────────────────────────────────────────────────

def summarize(state: ReconciliationState) -> dict:
    """Collect per-stage counts into ReconciliationDiagnostics."""
    diagnostics = ReconciliationDiagnostics(
        input_count=state.get("input_count", len(state["records"])),
        observation_count=state.get("normalized_count", 0),
        rejects=state.get("rejects", []),
        duplicate_count=state.get("duplicate_count", 0),
        service_filtered_count=state.get("service_filtered_count", 0),
        unobserved_service_slots=state.get("unobserved_service_slots", []),
        interval_count=len(state.get("intervals", [])),
        marker_count=len(state.get("markers", [])),
        unit_resolution=state["unit_resolution"].report,
        slot_resolution=state["slot_resolution"].report,
        last_inventory=state.get("last_inventory"),
        ambiguous_censoring_count=state.get("ambiguous_count", 0),
        terminal_before_last_count=state.get("terminal_before_last_count", 0),
        unmatched_terminal_marker_count=state.get("unmatched_terminal_count", 0),
        lifetime_count=len(state.get("lifetimes", [])),
    )
    logger.debug("Reconciliation summary: %s", diagnostics.summary())
    return {"diagnostics": diagnostics}
