"""Life intervals and the event markers that may terminate them.

An Interval is one contiguous occupancy of a unit at a slot.  It is a
pure data structure: stages that flag or classify it produce a new copy
via model_copy() rather than mutating it.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from gpu_lifetimes.domain.enums import CensorReason, EventKind


class Interval(BaseModel):
    """One contiguous occupancy of *unit_id* at *slot_id*."""

    unit_id: str
    slot_id: str
    start: datetime
    end: datetime
    duration: Optional[timedelta] = Field(None, description="end - start; filled on construction")
    overlap_flag: bool = False
    terminal_event: Optional[EventKind] = None
    censored: bool = False
    censor_reason: Optional[CensorReason] = None

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def derive_duration(cls, data):
        if isinstance(data, dict) and data.get("duration") is None:
            start, end = data.get("start"), data.get("end")
            if isinstance(start, datetime) and isinstance(end, datetime):
                data = {**data, "duration": end - start}
        return data

    @model_validator(mode="after")
    def end_not_before_start(self) -> "Interval":
        if self.end < self.start:
            raise ValueError(f"interval ends before it starts: {self.start} > {self.end}")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.terminal_event is not None

    def sort_key(self) -> tuple:
        return (self.start, self.end, self.slot_id, self.unit_id)


class EventMarker(BaseModel):
    """A non-life observation kept for association with an interval end."""

    unit_id: str
    slot_id: str
    timestamp: datetime
    kind: EventKind

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[str, datetime, str]:
        return (self.unit_id, self.timestamp, self.slot_id)
