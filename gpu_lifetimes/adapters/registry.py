"""Adapter Registry: selects the column mapping for each history row.

Adapters are tried in registration order; the first whose can_handle()
accepts the row maps it.  A row nobody recognizes is a reject, never a
guess.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Iterable

from gpu_lifetimes.adapters.base import RecordAdapter
from gpu_lifetimes.adapters.history import CanonicalHistoryAdapter, InventoryExportAdapter
from gpu_lifetimes.domain.diagnostics import RejectedRecord
from gpu_lifetimes.domain.enums import RejectReason
from gpu_lifetimes.domain.observation import RawRecord

logger = logging.getLogger(__name__)


class UnmappedRowError(Exception):
    """No registered adapter recognizes the row's columns."""


class RowMappingError(Exception):
    """The adapter that claimed a row could not map it."""

    def __init__(self, adapter_name: str, reason: str) -> None:
        self.adapter_name = adapter_name
        self.reason = reason
        super().__init__(f"{adapter_name}: {reason}")


class AdapterRegistry:
    """Ordered record adapters plus per-adapter mapped / failed counts.

    Usage:
        registry = AdapterRegistry()
        registry.register(CanonicalHistoryAdapter())
        registry.register(InventoryExportAdapter())

        records, rejects = registry.adapt_rows(rows)
    """

    def __init__(self) -> None:
        self._adapters: list[RecordAdapter] = []
        self._mapped: Counter[str] = Counter()
        self._failed: Counter[str] = Counter()

    def register(self, adapter: RecordAdapter) -> None:
        self._adapters.append(adapter)
        logger.debug("Registered adapter: %s", adapter.source_name)

    def adapt(self, row: dict[str, Any], line: int = 0) -> RawRecord:
        """Map *row* with the first adapter that claims it.

        Raises:
            UnmappedRowError: If no adapter claims the row.
            RowMappingError: If the claiming adapter cannot map it.
        """
        adapter = next((a for a in self._adapters if a.can_handle(row)), None)
        if adapter is None:
            raise UnmappedRowError(f"unrecognized columns: {sorted(row)}")

        name = adapter.source_name
        try:
            record = adapter.adapt(row, line)
        except ValueError as exc:
            self._failed[name] += 1
            raise RowMappingError(name, str(exc)) from exc
        self._mapped[name] += 1
        return record

    def adapt_rows(
        self, rows: Iterable[dict[str, Any]]
    ) -> tuple[list[RawRecord], list[RejectedRecord]]:
        """Adapt every row, collecting unmappable rows as rejects.

        Line numbers follow input order, including rejected rows.
        """
        records: list[RawRecord] = []
        rejects: list[RejectedRecord] = []
        for line, row in enumerate(rows):
            try:
                records.append(self.adapt(row, line))
            except (UnmappedRowError, RowMappingError) as exc:
                rejects.append(RejectedRecord(line=line, reason=RejectReason.NO_ADAPTER, detail=str(exc)))
        if rejects:
            logger.warning("%d history row(s) matched no column mapping", len(rejects))
        return records, rejects

    @property
    def adapter_names(self) -> list[str]:
        return [a.source_name for a in self._adapters]

    @property
    def stats(self) -> dict[str, dict[str, int]]:
        """Mapped / failed row counts keyed by adapter name."""
        return {
            name: {"mapped": self._mapped[name], "failed": self._failed[name]}
            for name in self.adapter_names
        }

    @property
    def total_accepted(self) -> int:
        return sum(self._mapped.values())

    @property
    def total_rejected(self) -> int:
        return sum(self._failed.values())


def default_registry() -> AdapterRegistry:
    """Registry with the canonical and inventory-export mappings."""
    registry = AdapterRegistry()
    registry.register(CanonicalHistoryAdapter())
    registry.register(InventoryExportAdapter())
    return registry
