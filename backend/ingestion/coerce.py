"""Total coercion helpers for loosely typed upstream values.

None of these functions raise: anything that is not a usable number or string
collapses to the supplied default.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from decimal import Decimal
from typing import Any


def parse_number(value: Any) -> float | None:
    """Return ``value`` as a finite float, or ``None`` when it is not numeric."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        if text.endswith("%"):
            text = text[:-1].rstrip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_number(value: Any, default: float = 0.0) -> float:
    number = parse_number(value)
    return default if number is None else number


def to_int(value: Any, default: int = 0) -> int:
    number = parse_number(value)
    return default if number is None else int(round(number))


def to_count(value: Any, default: int = 0) -> int:
    """Non-negative integer count."""

    return max(0, to_int(value, default))


def to_text(value: Any, default: str = "") -> str:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return default
        if value.is_integer():
            return str(int(value))
    text = str(value).strip()
    return text or default


def to_flag(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "y", "1"}:
            return True
        if lowered in {"false", "no", "n", "0"}:
            return False
        return default
    number = parse_number(value)
    return default if number is None else number != 0


def clamp_percentage(value: Any, default: float = 0.0) -> float:
    number = to_number(value, default)
    return round(min(100.0, max(0.0, number)), 2)


def safe_ratio(numerator: float, denominator: float) -> float:
    """Division guarded against zero denominators (result is 0)."""

    if not denominator:
        return 0.0
    return numerator / denominator


def percentage_of(part: float, whole: float) -> float:
    return round(safe_ratio(part, whole) * 100, 2)


def mean(values: Iterable[float]) -> float:
    items = list(values)
    return round(safe_ratio(sum(items), len(items)), 2)


__all__ = [
    "clamp_percentage",
    "mean",
    "parse_number",
    "percentage_of",
    "safe_ratio",
    "to_count",
    "to_flag",
    "to_int",
    "to_number",
    "to_text",
]
