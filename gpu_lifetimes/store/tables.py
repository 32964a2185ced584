"""Table I/O for reconciled output and its raw inputs.

Every output field is text.  Missing values are written as an explicit
null marker (default "NA"), never as an empty string, so downstream
statistical tools cannot confuse "absent" with "blank".
"""

from __future__ import annotations

import csv
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Iterable, Sequence

from gpu_lifetimes.core.censoring import terminal_index
from gpu_lifetimes.domain.enums import EventKind
from gpu_lifetimes.domain.errors import HistoryReadError, ReferenceDataError
from gpu_lifetimes.domain.interval import EventMarker, Interval
from gpu_lifetimes.domain.lifetime import Lifetime
from gpu_lifetimes.domain.observation import RawRecord
from gpu_lifetimes.foundation.timestamps import format_timestamp

logger = logging.getLogger(__name__)

INTERVAL_COLUMNS = (
    "unit_id",
    "slot_id",
    "insert",
    "remove",
    "duration",
    "terminal_event",
    "censored",
    "censor_reason",
)

LIFETIME_COLUMNS = (
    "unit_id",
    "total_duration",
    "interval_count",
    "distinct_slot_count",
    "dominant_slot",
    "dominant_slot_fraction",
    "failure_count",
    "removed_count",
    "dominant_slot_failure_count",
    "dominant_slot_removed_count",
    "censored",
    "final_status",
    "install_batch",
    "first_seen",
    "last_seen",
)

# Tag written back for a terminal event when rebuilding raw inputs
_EVENT_TAGS: dict[EventKind, str] = {
    EventKind.FAILURE: "DBE",
    EventKind.REMOVED: "OTB",
}


# ── Cell formatting ──────────────────────────────────────────────────────────

def _days(value: timedelta | None, null_marker: str) -> str:
    if value is None:
        return null_marker
    return f"{value.total_seconds() / 86400.0:.6f}"


def _cell(value: Any, null_marker: str) -> str:
    if value is None:
        return null_marker
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return f"{value:.6f}"
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def interval_rows(intervals: Iterable[Interval], null_marker: str = "NA") -> list[dict[str, str]]:
    return [
        {
            "unit_id": iv.unit_id,
            "slot_id": iv.slot_id,
            "insert": format_timestamp(iv.start),
            "remove": format_timestamp(iv.end),
            "duration": _days(iv.duration, null_marker),
            "terminal_event": _cell(iv.terminal_event, null_marker),
            "censored": _cell(iv.censored, null_marker),
            "censor_reason": _cell(iv.censor_reason, null_marker),
        }
        for iv in intervals
    ]


def lifetime_rows(lifetimes: Iterable[Lifetime], null_marker: str = "NA") -> list[dict[str, str]]:
    return [
        {
            "unit_id": lt.unit_id,
            "total_duration": _days(lt.total_duration, null_marker),
            "interval_count": _cell(lt.interval_count, null_marker),
            "distinct_slot_count": _cell(lt.distinct_slot_count, null_marker),
            "dominant_slot": lt.dominant_slot,
            "dominant_slot_fraction": _cell(lt.dominant_slot_fraction, null_marker),
            "failure_count": _cell(lt.failure_count, null_marker),
            "removed_count": _cell(lt.removed_count, null_marker),
            "dominant_slot_failure_count": _cell(lt.dominant_slot_failure_count, null_marker),
            "dominant_slot_removed_count": _cell(lt.dominant_slot_removed_count, null_marker),
            "censored": _cell(lt.censored, null_marker),
            "final_status": _cell(lt.final_status, null_marker),
            "install_batch": _cell(lt.install_batch, null_marker),
            "first_seen": format_timestamp(lt.first_seen),
            "last_seen": format_timestamp(lt.last_seen),
        }
        for lt in lifetimes
    ]


# ── Files ────────────────────────────────────────────────────────────────────

def write_table(path: str | Path, rows: Sequence[dict[str, str]], columns: Sequence[str]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=list(columns))
        writer.writeheader()
        writer.writerows(rows)
    logger.info("Wrote %d row(s) to %s", len(rows), path)


def write_interval_table(path: str | Path, intervals: Iterable[Interval], null_marker: str = "NA") -> None:
    write_table(path, interval_rows(intervals, null_marker), INTERVAL_COLUMNS)


def write_lifetime_table(path: str | Path, lifetimes: Iterable[Lifetime], null_marker: str = "NA") -> None:
    write_table(path, lifetime_rows(lifetimes, null_marker), LIFETIME_COLUMNS)


def read_history_csv(path: str | Path) -> list[dict[str, str]]:
    """Read raw history rows in file order.  Column mapping is the adapters' job.

    Undecodable bytes become U+FFFD, so the affected field fails identifier
    or timestamp validation and only that record is rejected.

    Raises:
        OSError: If the file cannot be opened.
        HistoryReadError: If the CSV structure itself is broken.
    """
    with open(path, newline="", encoding="utf-8", errors="replace") as fh:
        try:
            return list(csv.DictReader(fh))
        except csv.Error as exc:
            raise HistoryReadError(str(path), str(exc)) from exc


def read_service_slots_csv(path: str | Path) -> frozenset[str]:
    """Read the service-slot reference table.

    Uses the ``slot_id`` column when present, otherwise the first column.

    Raises:
        ReferenceDataError: If the file is missing, unreadable or has no header.
    """
    try:
        with open(path, newline="", encoding="utf-8") as fh:
            reader = csv.DictReader(fh)
            if not reader.fieldnames:
                raise ReferenceDataError(str(path), "no header row")
            column = "slot_id" if "slot_id" in reader.fieldnames else reader.fieldnames[0]
            slots = frozenset(
                row[column].strip() for row in reader if row.get(column) and row[column].strip()
            )
    except (OSError, UnicodeDecodeError, csv.Error) as exc:
        raise ReferenceDataError(str(path), str(exc)) from exc
    logger.info("Loaded %d service slot(s) from %s", len(slots), path)
    return slots


# ── Round trip ───────────────────────────────────────────────────────────────

def records_from_intervals(
    intervals: Iterable[Interval],
    markers: Iterable[EventMarker] = (),
) -> list[RawRecord]:
    """Rebuild raw history records from a reconciled interval table.

    Each interval becomes one life record.  Each terminal event, whether
    it closed an interval or stands alone in *markers*, becomes one tag
    record.  Markers of units without an interval are left out.  Re-running
    the pipeline on the result reproduces the same lifetimes.
    """
    intervals = list(intervals)
    units = {iv.unit_id for iv in intervals}

    events: dict[tuple[str, datetime, str], EventKind] = {}
    for iv in intervals:
        if iv.terminal_event is not None:
            events[(iv.unit_id, iv.end, iv.slot_id)] = iv.terminal_event
    for (unit_id, slot_id, timestamp), kind in terminal_index(markers).items():
        key = (unit_id, timestamp, slot_id)
        if unit_id in units and (kind is EventKind.FAILURE or key not in events):
            events[key] = kind

    records = [
        RawRecord(
            unit_id=iv.unit_id,
            slot_id=iv.slot_id,
            insert=format_timestamp(iv.start),
            remove=format_timestamp(iv.end),
            line=line,
        )
        for line, iv in enumerate(intervals)
    ]
    for (unit_id, timestamp, slot_id), kind in sorted(events.items()):
        records.append(
            RawRecord(
                unit_id=unit_id,
                slot_id=slot_id,
                insert=_EVENT_TAGS[kind],
                remove=format_timestamp(timestamp),
                line=len(records),
            )
        )
    return records
