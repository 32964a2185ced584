"""Identifier grammars for GPU serial numbers and slot addresses."""

from __future__ import annotations

import re

# c<column>-<row>c<cage>s<slot>n<node>, e.g. c12-3c1s5n2
SLOT_ADDRESS_PATTERN = re.compile(
    r"^c(?P<column>\d{1,2})-(?P<row>\d{1,2})"
    r"c(?P<cage>[0-2])s(?P<slot>[0-7])n(?P<node>[0-3])$"
)


def is_valid_serial(value: str, length: int) -> bool:
    """True if *value* is exactly *length* decimal digits."""
    return len(value) == length and value.isascii() and value.isdigit()


def is_valid_slot(value: str) -> bool:
    """True if *value* matches the column-row-cage-slot-node grammar."""
    return SLOT_ADDRESS_PATTERN.match(value) is not None
