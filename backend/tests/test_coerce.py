from __future__ import annotations

from decimal import Decimal

import pytest

from ingestion.coerce import (
    clamp_percentage,
    mean,
    parse_number,
    percentage_of,
    safe_ratio,
    to_count,
    to_flag,
    to_int,
    to_number,
    to_text,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("69.5", 69.5),
        (" 1,165 ", 1165.0),
        ("47.84%", 47.84),
        (12, 12.0),
        (Decimal("0.25"), 0.25),
        ("", None),
        ("n/a", None),
        (None, None),
        (True, None),
        (float("nan"), None),
        ("inf", None),
        ([1], None),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_numeric_coercions_fall_back_to_defaults():
    assert to_number(None) == 0.0
    assert to_number("x", default=1.5) == 1.5
    assert to_int("804.6") == 805
    assert to_count("-4") == 0
    assert to_count(None, default=3) == 3


def test_to_text_handles_containers_and_integral_floats():
    assert to_text(None) == ""
    assert to_text({"a": 1}, default="n/a") == "n/a"
    assert to_text(12.0) == "12"
    assert to_text("  Behat ") == "Behat"
    assert to_text("   ", default="unknown") == "unknown"


def test_to_flag():
    assert to_flag("Yes") is True
    assert to_flag("0") is False
    assert to_flag(2) is True
    assert to_flag("maybe", default=True) is True


def test_percentage_helpers_are_bounded_and_zero_safe():
    assert clamp_percentage("140") == 100.0
    assert clamp_percentage(-2) == 0.0
    assert clamp_percentage("33.333") == 33.33
    assert safe_ratio(5, 0) == 0.0
    assert percentage_of(1, 3) == 33.33
    assert percentage_of(10, 0) == 0.0
    assert mean([]) == 0.0
    assert mean([69.01, 88.95]) == 78.98
