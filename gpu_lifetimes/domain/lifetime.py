"""Lifetime: the reconciled per-unit record handed to survival analysis.

Created once every interval for a unit is known.  Immutable thereafter;
the only way to change a Lifetime is to re-run the pipeline.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field

from gpu_lifetimes.domain.enums import CensorReason, InstallBatch


class Lifetime(BaseModel):
    unit_id: str
    total_duration: timedelta = Field(..., description="Sum of surviving interval durations")
    interval_count: int = Field(..., ge=0)
    distinct_slot_count: int = Field(..., ge=0)
    dominant_slot: str = Field(..., description="Slot with the longest cumulative occupancy")
    dominant_slot_fraction: Optional[float] = Field(
        None,
        ge=0.0,
        le=1.0,
        description="Share of total_duration spent at dominant_slot (None when total is zero)",
    )
    first_seen: datetime
    last_seen: datetime
    failure_count: int = Field(0, ge=0)
    removed_count: int = Field(0, ge=0)
    dominant_slot_failure_count: int = Field(0, ge=0)
    dominant_slot_removed_count: int = Field(0, ge=0)
    still_in_service: bool
    final_status: CensorReason = Field(..., description="How the chronologically last interval ended")
    install_batch: InstallBatch

    model_config = {"frozen": True}

    @property
    def censored(self) -> bool:
        """Right-censored: no terminal event was ever recorded."""
        return self.still_in_service
