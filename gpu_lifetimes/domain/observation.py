"""Raw and normalized inventory observations.

A RawRecord is one line of the inventory log exactly as the scan wrote
it: every field is an optional string.  An Observation is what survives
normalization: identifiers are filled and well-formed, timestamps are
parsed, and the record carries exactly one EventKind.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, Field

from gpu_lifetimes.domain.enums import EventKind
from gpu_lifetimes.foundation.identifiers import SLOT_ADDRESS_PATTERN


# ── Raw Record ───────────────────────────────────────────────────────────────

class RawRecord(BaseModel):
    """One raw history line: (serial, location, insert, remove) as text."""

    unit_id: Optional[str] = None
    slot_id: Optional[str] = None
    insert: Optional[str] = None
    remove: Optional[str] = None
    line: int = Field(0, ge=0, description="0-based position in log order")

    model_config = {"frozen": True}


# ── Slot Address ─────────────────────────────────────────────────────────────

class SlotAddress(BaseModel):
    """Decoded column-row-cage-slot-node install location."""

    column: int
    row: int
    cage: int = Field(..., ge=0, le=2)
    slot: int = Field(..., ge=0, le=7)
    node: int = Field(..., ge=0, le=3)

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, text: str) -> "SlotAddress":
        match = SLOT_ADDRESS_PATTERN.match(text)
        if match is None:
            raise ValueError(f"not a slot address: {text!r}")
        return cls(**{k: int(v) for k, v in match.groupdict().items()})

    def __str__(self) -> str:
        return f"c{self.column}-{self.row}c{self.cage}s{self.slot}n{self.node}"


# ── Observation ──────────────────────────────────────────────────────────────

class Observation(BaseModel):
    """A normalized scan record.  Immutable after creation."""

    unit_id: str = Field(..., min_length=1)
    slot_id: str = Field(..., min_length=1)
    timestamp_insert: Optional[datetime] = None
    timestamp_remove: Optional[datetime] = None
    raw_tag: Optional[str] = Field(None, description="Field text that was not a timestamp")
    kind: EventKind
    line: int = 0

    model_config = {"frozen": True}

    @property
    def event_time(self) -> datetime | None:
        """The instant a non-life observation refers to (remove preferred)."""
        return self.timestamp_remove or self.timestamp_insert

    @property
    def duration(self) -> timedelta | None:
        if self.timestamp_insert is None or self.timestamp_remove is None:
            return None
        return self.timestamp_remove - self.timestamp_insert

    def dedup_key(self) -> tuple:
        return (
            self.unit_id,
            self.slot_id,
            self.timestamp_insert,
            self.timestamp_remove,
            self.kind,
        )
