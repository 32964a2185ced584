"""Abstract base for history-row adapters.

Record adapters map raw rows from heterogeneous inventory exports onto
the canonical RawRecord.

Architectural rules:
    1. Adapters must NOT mutate the incoming row dict.
    2. adapt() must return a RawRecord or raise ValueError.
    3. No parsing or validation lives inside an adapter, only field mapping.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from gpu_lifetimes.domain.observation import RawRecord


class RecordAdapter(ABC):
    """Base class for converting raw history rows into RawRecords."""

    @abstractmethod
    def can_handle(self, row: dict[str, Any]) -> bool:
        """Return True if this adapter knows how to translate *row*.

        Must be a fast, non-destructive check (e.g. key presence).
        """
        ...

    @abstractmethod
    def adapt(self, row: dict[str, Any], line: int) -> RawRecord:
        """Translate a raw row dict into a RawRecord at log position *line*.

        The input dict must NOT be mutated.

        Raises:
            ValueError: If the row cannot be mapped.
        """
        ...

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Human-readable name of the export format this adapter handles."""
        ...
