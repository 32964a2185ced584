"""Timestamp parsing for inventory scan fields.

All timestamps in gpu-lifetimes MUST be UTC-aware.  Naive values read
from the inventory log are taken to be UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(text: str, formats: Iterable[str] = ()) -> datetime | None:
    """Parse *text* as a timestamp, or return None if it is not one.

    ISO 8601 is tried first (a trailing ``Z`` is accepted), then each
    strptime pattern in *formats* in order.
    """
    candidate = text.strip()
    if not candidate:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(candidate.replace("Z", "+00:00")))
    except ValueError:
        pass
    for fmt in formats:
        try:
            return ensure_utc(datetime.strptime(candidate, fmt))
        except ValueError:
            continue
    return None


def format_timestamp(value: datetime) -> str:
    """Render a timestamp for output tables (ISO 8601, UTC, trailing Z).

    Whole seconds are written without a fraction; anything finer keeps
    its microseconds so a written table parses back to the same instant.
    """
    value = ensure_utc(value)
    if value.microsecond:
        return value.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")
