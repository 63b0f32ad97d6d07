"""Tests for order number generation."""

import re
from types import SimpleNamespace

from services import order_numbers
from services.order_numbers import format_order_number, generate_order_number, next_timestamp_millis


def test_format_pads_sequence():
    assert format_order_number(1700000000000, 7) == "AKLAT-1700000000000-0007"
    assert format_order_number(1700000000000, 12345) == "AKLAT-1700000000000-12345"


def test_format_custom_prefix():
    assert format_order_number(1, 1, prefix="TEST") == "TEST-1-0001"


def test_timestamp_never_goes_backwards(monkeypatch):
    ticks = iter([5_000_000_000_000_000, 4_000_000_000_000_000, 6_000_000_000_000_000])
    monkeypatch.setattr(order_numbers, "_last_millis", 0)
    monkeypatch.setattr(order_numbers, "time", SimpleNamespace(time_ns=lambda: next(ticks)))

    first = next_timestamp_millis()
    second = next_timestamp_millis()
    third = next_timestamp_millis()

    assert first == 5_000_000_000
    assert second == first
    assert third == 6_000_000_000


def test_sequence_follows_order_count(db):
    number = generate_order_number(db)

    assert re.fullmatch(r"AKLAT-\d+-0001", number)


def test_retry_attempt_shifts_sequence(db):
    assert generate_order_number(db, attempt=2).endswith("-0003")
