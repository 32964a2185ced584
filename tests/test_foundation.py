"""Tests for identifier grammars, slot addresses and timestamp parsing."""

from datetime import datetime, timedelta, timezone

import pytest

from gpu_lifetimes.domain.observation import SlotAddress
from gpu_lifetimes.foundation.identifiers import is_valid_serial, is_valid_slot
from gpu_lifetimes.foundation.timestamps import ensure_utc, format_timestamp, parse_timestamp


class TestSerialGrammar:
    def test_thirteen_digits_accepted(self) -> None:
        assert is_valid_serial("0323712011450", 13)

    def test_wrong_length_rejected(self) -> None:
        assert not is_valid_serial("032371201145", 13)
        assert not is_valid_serial("03237120114501", 13)

    def test_non_digits_rejected(self) -> None:
        assert not is_valid_serial("03237120114X0", 13)

    def test_unicode_digits_rejected(self) -> None:
        assert not is_valid_serial("٠٣٢٣٧١٢٠١١٤٥٠", 13)


class TestSlotGrammar:
    @pytest.mark.parametrize("slot", ["c0-0c0s0n0", "c24-7c2s7n3", "c12-3c1s5n2"])
    def test_valid_addresses(self, slot: str) -> None:
        assert is_valid_slot(slot)

    @pytest.mark.parametrize(
        "slot",
        ["", "c0-0c3s0n0", "c0-0c0s8n0", "c0-0c0s0n4", "c0c0s0n0", "C0-0c0s0n0", "c0-0c0s0n0 "],
    )
    def test_invalid_addresses(self, slot: str) -> None:
        assert not is_valid_slot(slot)

    def test_slot_address_round_trip(self) -> None:
        address = SlotAddress.parse("c12-3c1s5n2")
        assert (address.column, address.row, address.cage, address.slot, address.node) == (12, 3, 1, 5, 2)
        assert str(address) == "c12-3c1s5n2"

    def test_slot_address_parse_rejects_garbage(self) -> None:
        with pytest.raises(ValueError):
            SlotAddress.parse("service-node-1")


class TestTimestamps:
    def test_iso_minutes(self) -> None:
        assert parse_timestamp("2014-01-01T00:00") == datetime(2014, 1, 1, tzinfo=timezone.utc)

    def test_iso_with_zulu(self) -> None:
        assert parse_timestamp("2014-01-01T06:30:00Z") == datetime(2014, 1, 1, 6, 30, tzinfo=timezone.utc)

    def test_offset_converted_to_utc(self) -> None:
        parsed = parse_timestamp("2014-01-01T01:00:00+01:00")
        assert parsed == datetime(2014, 1, 1, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_fallback_format(self) -> None:
        parsed = parse_timestamp("3/15/2015 13:45", ["%m/%d/%Y %H:%M"])
        assert parsed == datetime(2015, 3, 15, 13, 45, tzinfo=timezone.utc)

    def test_tag_is_not_a_timestamp(self) -> None:
        assert parse_timestamp("DBE", ["%m/%d/%Y %H:%M"]) is None

    def test_blank_is_not_a_timestamp(self) -> None:
        assert parse_timestamp("   ") is None

    def test_ensure_utc_attaches_to_naive(self) -> None:
        assert ensure_utc(datetime(2014, 1, 1)).tzinfo is timezone.utc

    def test_format_timestamp(self) -> None:
        assert format_timestamp(datetime(2014, 1, 1, 6, 30, tzinfo=timezone.utc)) == "2014-01-01T06:30:00Z"

    def test_format_keeps_sub_second_precision(self) -> None:
        value = datetime(2014, 1, 1, 0, 0, 0, 600000, tzinfo=timezone.utc)
        text = format_timestamp(value)
        assert text == "2014-01-01T00:00:00.600000Z"
        assert parse_timestamp(text) == value
