"""Column mappings for inventory history exports.

Canonical rows already use the RawRecord field names:
{
    "unit_id": "0323712011450",
    "slot_id": "c12-3c1s5n2",
    "insert": "2014-01-01 00:00:00",
    "remove": "2014-02-01 00:00:00"
}

Inventory exports name the serial and location columns differently:
{
    "SN": "0323712011450",
    "location": "c12-3c1s5n2",
    "insert": "1/1/2014 0:00",
    "remove": "DBE"
}
"""

from __future__ import annotations

from typing import Any

from gpu_lifetimes.adapters.base import RecordAdapter
from gpu_lifetimes.domain.observation import RawRecord

_SERIAL_COLUMNS = ("SN", "sn", "serial", "serial_number")
_LOCATION_COLUMNS = ("location", "Location", "loc", "node")
_INSERT_COLUMNS = ("insert", "Insert", "inserted")
_REMOVE_COLUMNS = ("remove", "Remove", "removed")


def _text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _first_present(row: dict[str, Any], columns: tuple[str, ...]) -> str | None:
    for column in columns:
        if column in row:
            return _text(row[column])
    return None


def _names_export_identifier(row: dict[str, Any]) -> bool:
    return any(c in row for c in _SERIAL_COLUMNS + _LOCATION_COLUMNS)


class CanonicalHistoryAdapter(RecordAdapter):
    """Rows already keyed by unit_id / slot_id / insert / remove.

    Either identifier key may be left out of a row; it maps to None and
    is forward-filled downstream.  A row carrying only timing columns is
    canonical unless it names an export identifier column.
    """

    @property
    def source_name(self) -> str:
        return "canonical"

    def can_handle(self, row: dict[str, Any]) -> bool:
        if "unit_id" in row or "slot_id" in row:
            return True
        return ("insert" in row or "remove" in row) and not _names_export_identifier(row)

    def adapt(self, row: dict[str, Any], line: int) -> RawRecord:
        return RawRecord(
            unit_id=_text(row.get("unit_id")),
            slot_id=_text(row.get("slot_id")),
            insert=_text(row.get("insert")),
            remove=_text(row.get("remove")),
            line=line,
        )


class InventoryExportAdapter(RecordAdapter):
    """Rows from the periodic inventory export (serial + location columns)."""

    @property
    def source_name(self) -> str:
        return "inventory_export"

    def can_handle(self, row: dict[str, Any]) -> bool:
        return _names_export_identifier(row)

    def adapt(self, row: dict[str, Any], line: int) -> RawRecord:
        if not any(c in row for c in _INSERT_COLUMNS + _REMOVE_COLUMNS):
            raise ValueError("row has neither an insert nor a remove column")
        return RawRecord(
            unit_id=_first_present(row, _SERIAL_COLUMNS),
            slot_id=_first_present(row, _LOCATION_COLUMNS),
            insert=_first_present(row, _INSERT_COLUMNS),
            remove=_first_present(row, _REMOVE_COLUMNS),
            line=line,
        )
