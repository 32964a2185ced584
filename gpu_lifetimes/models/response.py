"""Pydantic model for reconciliation results returned over HTTP."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ReconcileResponse(BaseModel):
    """Reconciled tables serialized as text rows, plus the run summary."""

    lifetimes: list[dict[str, str]] = Field(default_factory=list)
    intervals: list[dict[str, str]] | None = None
    diagnostics: dict[str, Any] = Field(default_factory=dict)
