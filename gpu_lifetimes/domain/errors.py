"""Unrecoverable run errors.

Expected data-quality conditions (malformed records, overlaps, ambiguous
censoring) never raise; they are reported in ReconciliationDiagnostics.
Only conditions that make the whole run meaningless abort it.
"""

from __future__ import annotations


class ReconciliationError(Exception):
    """Base class for errors that abort a reconciliation run."""


class EmptyInputError(ReconciliationError):
    """Raised when there are no history records to reconcile."""


class ReferenceDataError(ReconciliationError):
    """Raised when the service-slot reference data cannot be read."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Reference data '{source}' unreadable: {reason}")


class HistoryReadError(ReconciliationError):
    """Raised when a history file is not parseable as CSV at all."""

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"History '{source}' unreadable: {reason}")
