"""Diagnostic observations produced alongside the reconciled tables.

Nothing here controls the pipeline.  These objects report what each
stage saw, rejected, flagged or dropped so the caller can audit a run.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from gpu_lifetimes.domain.enums import (
    ErrorCategory,
    GroupingKey,
    RejectReason,
    ResolutionPolicy,
)


class RejectedRecord(BaseModel):
    """A raw record excluded from processing, with the reason."""

    line: int
    reason: RejectReason
    detail: str = ""
    unit_id: Optional[str] = None
    slot_id: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def category(self) -> ErrorCategory:
        return self.reason.category


class ResolutionReport(BaseModel):
    """Before/after counts for one overlap-resolution pass."""

    key: GroupingKey
    policy: ResolutionPolicy
    before: int
    after: int
    flagged: int = Field(..., description="Intervals touching at least one overlap")
    dropped: int
    groups_affected: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class ReconciliationDiagnostics(BaseModel):
    input_count: int
    observation_count: int
    rejects: list[RejectedRecord] = Field(default_factory=list)
    duplicate_count: int = 0
    service_filtered_count: int = 0
    unobserved_service_slots: list[str] = Field(default_factory=list)
    interval_count: int = 0
    marker_count: int = 0
    unit_resolution: Optional[ResolutionReport] = None
    slot_resolution: Optional[ResolutionReport] = None
    last_inventory: Optional[datetime] = None
    ambiguous_censoring_count: int = 0
    terminal_before_last_count: int = Field(
        0, description="Terminal events on intervals the unit later outlived"
    )
    unmatched_terminal_marker_count: int = Field(
        0, description="FAILURE / REMOVED markers that close no surviving interval"
    )
    lifetime_count: int = 0

    @property
    def rejected_count(self) -> int:
        return len(self.rejects)

    def reject_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for reject in self.rejects:
            counts[reject.reason.value] = counts.get(reject.reason.value, 0) + 1
        return counts

    def summary(self) -> dict:
        """Lightweight summary suitable for logging and CLI output."""
        return {
            "input_count": self.input_count,
            "observation_count": self.observation_count,
            "rejected_count": self.rejected_count,
            "rejects_by_reason": self.reject_counts(),
            "duplicate_count": self.duplicate_count,
            "service_filtered_count": self.service_filtered_count,
            "unobserved_service_slots": len(self.unobserved_service_slots),
            "interval_count": self.interval_count,
            "marker_count": self.marker_count,
            "unit_pass": self.unit_resolution.model_dump(mode="json", exclude={"groups_affected"})
            if self.unit_resolution else None,
            "slot_pass": self.slot_resolution.model_dump(mode="json", exclude={"groups_affected"})
            if self.slot_resolution else None,
            "last_inventory": self.last_inventory.isoformat() if self.last_inventory else None,
            "ambiguous_censoring_count": self.ambiguous_censoring_count,
            "terminal_before_last_count": self.terminal_before_last_count,
            "unmatched_terminal_marker_count": self.unmatched_terminal_marker_count,
            "lifetime_count": self.lifetime_count,
        }
