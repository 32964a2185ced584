"""gpu-lifetimes: inventory-to-lifetime reconciliation service.

This is the HTTP entry point.  It wires the AdapterRegistry, the
pipeline configuration and the reconcile endpoint together.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from gpu_lifetimes.adapters.registry import default_registry
from gpu_lifetimes.api.reconcile import create_reconcile_router
from gpu_lifetimes.config import PipelineConfig, settings

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

# ── Pipeline ─────────────────────────────────────────────────────────────────

pipeline_config = PipelineConfig.from_settings(settings)
registry = default_registry()

# ── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    description="GPU inventory history to per-unit lifetime reconciliation",
    version="0.1.0",
)

# ── Routes ───────────────────────────────────────────────────────────────────

app.include_router(create_reconcile_router(
    registry,
    pipeline_config,
    null_marker=settings.null_marker,
    include_intervals=settings.include_intervals_in_response,
))


# ── Health ───────────────────────────────────────────────────────────────────

@app.get("/health")
async def health() -> dict:
    return {
        "status": "ok",
        "serial_length": pipeline_config.serial_length,
        "install_cutoff": pipeline_config.install_cutoff.isoformat(),
        "adapters": registry.stats,
        "total_adapted": registry.total_accepted,
        "total_rejected": registry.total_rejected,
    }
