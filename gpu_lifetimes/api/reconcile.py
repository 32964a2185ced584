"""REST endpoint for batch reconciliation.

Path: POST /api/reconcile

This wires together:
1. AdapterRegistry (column mapping of the submitted rows)
2. reconcile() (the LangGraph pipeline)
3. Table row rendering with an explicit null marker

The pipeline is CPU-bound, so the handler is a plain def and FastAPI
runs it in its worker thread pool.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from gpu_lifetimes.adapters.registry import AdapterRegistry
from gpu_lifetimes.config import PipelineConfig
from gpu_lifetimes.domain.errors import ReconciliationError
from gpu_lifetimes.models.request import ReconcileRequest
from gpu_lifetimes.models.response import ReconcileResponse
from gpu_lifetimes.pipeline.runner import reconcile_rows
from gpu_lifetimes.store.tables import interval_rows, lifetime_rows

logger = logging.getLogger(__name__)


def create_reconcile_router(
    registry: AdapterRegistry,
    config: PipelineConfig,
    null_marker: str = "NA",
    include_intervals: bool = False,
) -> APIRouter:
    """Factory that wires the reconcile endpoint to the registry + config."""

    router = APIRouter(prefix="/api", tags=["reconciliation"])

    @router.post("/reconcile", response_model=ReconcileResponse)
    def reconcile_history(request: ReconcileRequest) -> ReconcileResponse:
        try:
            result = reconcile_rows(
                request.records,
                service_slots=request.service_slots,
                config=config,
                registry=registry,
            )
        except ReconciliationError as exc:
            logger.warning("Reconciliation request rejected: %s", exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc

        want_intervals = include_intervals if request.include_intervals is None else request.include_intervals
        return ReconcileResponse(
            lifetimes=lifetime_rows(result.lifetimes, null_marker),
            intervals=interval_rows(result.intervals, null_marker) if want_intervals else None,
            diagnostics=result.diagnostics.summary(),
        )

    return router
