"""Record Normalizer: raw scan lines to typed, classified Observations.

Stages, in order:
    1. parse():            each insert/remove field is a timestamp or a tag.
    2. fill_identifiers(): forward-fill unit_id / slot_id in log order.
    3. check_identifiers(): format validation after the fill.
    4. classify():         exactly one EventKind per surviving record.
    5. deduplicate():      collapse exact duplicate scans.

A single bad record never raises out of normalize(); it lands in the
rejects list with a reason and the caller sees the count.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Iterable, Sequence

from gpu_lifetimes.config import PipelineConfig
from gpu_lifetimes.domain.diagnostics import RejectedRecord
from gpu_lifetimes.domain.enums import EventKind, RejectReason
from gpu_lifetimes.domain.observation import Observation, RawRecord
from gpu_lifetimes.foundation.identifiers import is_valid_serial, is_valid_slot
from gpu_lifetimes.foundation.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

# Tag text (case-folded, whitespace collapsed) → canonical event kind
TAG_SYNONYMS: dict[str, EventKind] = {
    "dbe": EventKind.FAILURE,
    "double bit error": EventKind.FAILURE,
    "double-bit error": EventKind.FAILURE,
    "double bit ecc error": EventKind.FAILURE,
    "otb": EventKind.REMOVED,
    "off the bus": EventKind.REMOVED,
    "off-the-bus": EventKind.REMOVED,
    "off bus": EventKind.REMOVED,
    "off-bus": EventKind.REMOVED,
    "offbus": EventKind.REMOVED,
    "fell off the bus": EventKind.REMOVED,
}

_WHITESPACE = re.compile(r"\s+")


def canonical_tag(text: str) -> EventKind | None:
    """Map free tag text to FAILURE / REMOVED, or None if unrecognized."""
    key = _WHITESPACE.sub(" ", text.strip().casefold()).strip(" .")
    return TAG_SYNONYMS.get(key)


# ── Parsing ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ParsedRecord:
    """A raw record with timestamps and tags interpreted, identifiers not yet filled."""

    line: int
    unit_id: str | None
    slot_id: str | None
    timestamp_insert: datetime | None = None
    timestamp_remove: datetime | None = None
    raw_tag: str | None = None
    tag_kind: EventKind | None = None


def _clean(value: str | None, null_tokens: frozenset[str]) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if value in null_tokens:
        return None
    return value


def parse(raw: RawRecord, config: PipelineConfig) -> ParsedRecord:
    """Interpret the insert/remove fields of one raw record.

    A field that does not parse as a timestamp is read as an event tag.
    FAILURE outranks REMOVED when both fields carry tags.
    """
    insert_text = _clean(raw.insert, config.null_tokens)
    remove_text = _clean(raw.remove, config.null_tokens)

    stamps: list[datetime | None] = []
    tags: list[str] = []
    for text in (insert_text, remove_text):
        stamp = parse_timestamp(text, config.timestamp_formats) if text is not None else None
        stamps.append(stamp)
        if text is not None and stamp is None:
            tags.append(text)

    kinds = {canonical_tag(t) for t in tags} - {None}
    tag_kind = None
    if EventKind.FAILURE in kinds:
        tag_kind = EventKind.FAILURE
    elif EventKind.REMOVED in kinds:
        tag_kind = EventKind.REMOVED

    return ParsedRecord(
        line=raw.line,
        unit_id=_clean(raw.unit_id, config.null_tokens),
        slot_id=_clean(raw.slot_id, config.null_tokens),
        timestamp_insert=stamps[0],
        timestamp_remove=stamps[1],
        raw_tag="|".join(tags) if tags else None,
        tag_kind=tag_kind,
    )


# ── Identifier forward-fill ─────────────────────────────────────────────────

@dataclass(frozen=True)
class CarryState:
    """Last known identifiers seen so far in log order."""

    unit_id: str | None = None
    slot_id: str | None = None


def fill_step(state: CarryState, record: ParsedRecord) -> tuple[CarryState, ParsedRecord]:
    """One fold step: fill *record* from *state*, return the advanced state.

    unit_id and slot_id carry independently.  A record with no value and
    nothing to carry keeps None and is rejected downstream.
    """
    unit_id = record.unit_id if record.unit_id is not None else state.unit_id
    slot_id = record.slot_id if record.slot_id is not None else state.slot_id
    return CarryState(unit_id, slot_id), replace(record, unit_id=unit_id, slot_id=slot_id)


def fill_identifiers(
    records: Iterable[ParsedRecord],
    initial: CarryState | None = None,
) -> list[ParsedRecord]:
    """Forward-fill missing identifiers by folding fill_step over *records*."""
    state = initial or CarryState()
    filled: list[ParsedRecord] = []
    for record in records:
        state, out = fill_step(state, record)
        filled.append(out)
    return filled


# ── Validation ───────────────────────────────────────────────────────────────

def check_identifiers(record: ParsedRecord, serial_length: int) -> RejectReason | None:
    """Return why *record*'s identifiers are unusable, or None if they are fine."""
    if record.unit_id is None:
        return RejectReason.UNRESOLVED_UNIT_ID
    if record.slot_id is None:
        return RejectReason.UNRESOLVED_SLOT_ID
    if not is_valid_serial(record.unit_id, serial_length):
        return RejectReason.MALFORMED_UNIT_ID
    if not is_valid_slot(record.slot_id):
        return RejectReason.MALFORMED_SLOT_ID
    return None


def validate_format(observation: Observation | ParsedRecord, serial_length: int = 13) -> bool:
    """True if unit_id and slot_id are present and well-formed."""
    return check_identifiers(observation, serial_length) is None


def check_timing(record: ParsedRecord) -> RejectReason | None:
    """Return why *record*'s timestamps are unusable, or None."""
    ins, rem = record.timestamp_insert, record.timestamp_remove
    if ins is None and rem is None:
        return RejectReason.NO_TIMESTAMP
    if ins is not None and rem is not None and rem < ins:
        return RejectReason.NEGATIVE_DURATION
    return None


# ── Classification ──────────────────────────────────────────────────────────

def classify(record: ParsedRecord) -> EventKind:
    """Assign exactly one EventKind.  Callers screen with check_timing() first.

    A recognized tag wins; otherwise the timestamps decide.
    """
    if record.tag_kind is not None:
        return record.tag_kind
    ins, rem = record.timestamp_insert, record.timestamp_remove
    if ins is not None and rem is not None:
        return EventKind.ZERO_LIFE if ins == rem else EventKind.LIFE
    if ins is not None or rem is not None:
        return EventKind.UNPAIRED
    raise ValueError(f"line {record.line}: record has neither a tag nor a timestamp")


def deduplicate(observations: Sequence[Observation]) -> tuple[list[Observation], int]:
    """Drop exact duplicate scans, keeping the first occurrence in log order."""
    seen: set[tuple] = set()
    kept: list[Observation] = []
    for obs in observations:
        key = obs.dedup_key()
        if key in seen:
            continue
        seen.add(key)
        kept.append(obs)
    return kept, len(observations) - len(kept)


# ── Entry point ──────────────────────────────────────────────────────────────

@dataclass
class NormalizationResult:
    observations: list[Observation] = field(default_factory=list)
    rejects: list[RejectedRecord] = field(default_factory=list)
    duplicate_count: int = 0


def normalize(records: Sequence[RawRecord], config: PipelineConfig) -> NormalizationResult:
    """Parse, fill, validate, classify and deduplicate *records* in log order."""
    parsed = [parse(raw, config) for raw in records]
    filled = fill_identifiers(parsed)

    observations: list[Observation] = []
    rejects: list[RejectedRecord] = []
    for record in filled:
        reason = check_identifiers(record, config.serial_length) or check_timing(record)
        if reason is not None:
            rejects.append(
                RejectedRecord(
                    line=record.line,
                    reason=reason,
                    unit_id=record.unit_id,
                    slot_id=record.slot_id,
                    detail=record.raw_tag or "",
                )
            )
            continue
        observations.append(
            Observation(
                unit_id=record.unit_id,
                slot_id=record.slot_id,
                timestamp_insert=record.timestamp_insert,
                timestamp_remove=record.timestamp_remove,
                raw_tag=record.raw_tag,
                kind=classify(record),
                line=record.line,
            )
        )

    observations, duplicates = deduplicate(observations)

    if rejects:
        logger.warning("Rejected %d of %d record(s) during normalization", len(rejects), len(records))
    if duplicates:
        logger.info("Collapsed %d duplicate scan record(s)", duplicates)

    return NormalizationResult(observations=observations, rejects=rejects, duplicate_count=duplicates)
