"""Graph builder: constructs the LangGraph reconciliation topology.

Topology:

    START → normalize → filter_service → build_intervals
          → resolve_by_unit → resolve_by_slot → classify_censoring
          → aggregate_lifetimes → summarize → END

The graph is compiled once and can be invoked many times.
"""

from __future__ import annotations

from langgraph.graph import END, START, StateGraph

from gpu_lifetimes.pipeline.nodes import (
    aggregate,
    build_candidate_intervals,
    classify_censoring,
    filter_service,
    normalize_records,
    resolve_by_slot,
    resolve_by_unit,
    summarize,
)
from gpu_lifetimes.pipeline.state import ReconciliationState

STAGES = (
    ("normalize", normalize_records),
    ("filter_service", filter_service),
    ("build_intervals", build_candidate_intervals),
    ("resolve_by_unit", resolve_by_unit),
    ("resolve_by_slot", resolve_by_slot),
    ("classify_censoring", classify_censoring),
    ("aggregate_lifetimes", aggregate),
    ("summarize", summarize),
)


def build_reconciliation_graph():
    """Construct and compile the reconciliation graph."""
    graph = StateGraph(ReconciliationState)

    # ── Register nodes ───────────────────────────────────────────────────
    for name, node in STAGES:
        graph.add_node(name, node)

    # ── Edges ────────────────────────────────────────────────────────────
    graph.add_edge(START, STAGES[0][0])
    for (upstream, _), (downstream, _) in zip(STAGES, STAGES[1:]):
        graph.add_edge(upstream, downstream)
    graph.add_edge(STAGES[-1][0], END)

    return graph.compile()
