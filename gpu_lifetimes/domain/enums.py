"""Controlled enumerations for the gpu-lifetimes domain.

Every categorical field in the domain MUST reference an enum defined here.
Free-form strings are not acceptable for classification fields.
"""

from __future__ import annotations

from enum import Enum


class EventKind(str, Enum):
    """What a single normalized inventory observation records.

    Classification is total and mutually exclusive: every observation
    carries exactly one kind.
    """

    LIFE = "life"
    ZERO_LIFE = "zero_life"
    FAILURE = "failure"
    REMOVED = "removed"
    UNPAIRED = "unpaired"


class CensorReason(str, Enum):
    """How an interval ended."""

    FAILURE = "failure"
    REMOVED = "removed"
    RELOCATED = "relocated"
    LAST_SEEN = "last_seen"
    IN_SERVICE = "in_service"


class InstallBatch(str, Enum):
    EARLY = "early"
    LATE = "late"


class GroupingKey(str, Enum):
    """Field an overlap check is keyed on."""

    UNIT = "unit_id"
    SLOT = "slot_id"


class ResolutionPolicy(str, Enum):
    """What the overlap resolver drops once overlaps are flagged."""

    DROP_WHOLE_GROUP = "drop_whole_group"
    DROP_FLAGGED_ONLY = "drop_flagged_only"


class ErrorCategory(str, Enum):
    MALFORMED_RECORD = "malformed_record"
    UNRESOLVED_IDENTIFIER = "unresolved_identifier"


class RejectReason(str, Enum):
    """Why a raw record was excluded during normalization."""

    NO_ADAPTER = "no_adapter"
    UNRESOLVED_UNIT_ID = "unresolved_unit_id"
    UNRESOLVED_SLOT_ID = "unresolved_slot_id"
    MALFORMED_UNIT_ID = "malformed_unit_id"
    MALFORMED_SLOT_ID = "malformed_slot_id"
    NO_TIMESTAMP = "no_timestamp"
    NEGATIVE_DURATION = "negative_duration"

    @property
    def category(self) -> ErrorCategory:
        if self in (RejectReason.UNRESOLVED_UNIT_ID, RejectReason.UNRESOLVED_SLOT_ID):
            return ErrorCategory.UNRESOLVED_IDENTIFIER
        return ErrorCategory.MALFORMED_RECORD
