"""Pydantic model for reconciliation requests received over HTTP."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ReconcileRequest(BaseModel):
    """History rows plus the service-slot reference set for one batch run."""

    records: list[dict[str, Any]] = Field(
        ...,
        description="History rows in log order (canonical or inventory-export columns)",
    )
    service_slots: list[str] = Field(default_factory=list, description="Known non-GPU slot addresses")
    include_intervals: bool | None = Field(
        None, description="Return the per-interval table too (defaults to server setting)"
    )
