"""Search, filtering and pagination over normalized in-memory collections."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from booth_insights.domain import (
    Booth,
    BoothRecommendation,
    Constituency,
    ElectionResult,
    HistoricalMLA,
    Region,
)

ALL = "all"
DEFAULT_PAGE_SIZE = 10


class UnknownFilterError(ValueError):
    """Raised for a filter key or bucket label that does not apply to the records."""


SEARCH_FIELDS: dict[type, tuple[str, ...]] = {
    Booth: ("name", "number", "winning_party"),
    Constituency: ("name", "district", "parliament_seat"),
    Region: ("name", "capital"),
    ElectionResult: ("candidate_name", "party_name"),
    BoothRecommendation: ("booth_name", "booth_number", "winning_party"),
    HistoricalMLA: ("name", "party_name"),
}

TURNOUT_BUCKETS: dict[str, Callable[[float], bool]] = {
    "high": lambda value: value >= 70,
    "medium": lambda value: 50 <= value < 70,
    "low": lambda value: value < 50,
}

SIZE_BUCKETS: dict[str, Callable[[float], bool]] = {
    "large": lambda value: value > 900,
    "medium": lambda value: 500 <= value <= 900,
    "small": lambda value: value < 500,
}

# filter key -> (record attribute, bucket predicates)
BUCKET_FILTERS: dict[str, tuple[str, dict[str, Callable[[float], bool]]]] = {
    "turnout": ("turnout_percentage", TURNOUT_BUCKETS),
    "size": ("elector_count", SIZE_BUCKETS),
}

FILTER_ALIASES = {"party": "winning_party"}


@dataclass(slots=True)
class RecordQuery:
    text: str | None = None
    filters: Mapping[str, str | None] = field(default_factory=dict)
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be at least 1")


@dataclass(slots=True)
class QueryPage:
    items: list[Any]
    total_pages: int
    page: int
    total: int


def _comparable(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    return "" if value is None else str(value)


def _matches_text(record: Any, needle: str) -> bool:
    for name in SEARCH_FIELDS.get(type(record), ("name",)):
        value = getattr(record, name, None)
        if value is not None and needle in _comparable(value).casefold():
            return True
    return False


def _bucket_predicate(key: str, label: str) -> Callable[[Any], bool]:
    attribute, buckets = BUCKET_FILTERS[key]
    try:
        test = buckets[label.lower()]
    except KeyError as exc:
        raise UnknownFilterError(
            f"Unknown {key} bucket '{label}'; expected one of {', '.join(buckets)}"
        ) from exc

    def predicate(record: Any) -> bool:
        if not hasattr(record, attribute):
            raise UnknownFilterError(f"{type(record).__name__} has no {key} to filter on")
        return test(getattr(record, attribute))

    return predicate


def _exact_predicate(key: str, expected: str) -> Callable[[Any], bool]:
    attribute = FILTER_ALIASES.get(key, key)

    def predicate(record: Any) -> bool:
        if not hasattr(record, attribute):
            raise UnknownFilterError(f"{type(record).__name__} cannot be filtered by '{key}'")
        return _comparable(getattr(record, attribute)) == expected

    return predicate


def _predicates(filters: Mapping[str, Any]) -> list[Callable[[Any], bool]]:
    predicates = []
    for key, raw in filters.items():
        value = _comparable(raw).strip()
        if not value or value.lower() == ALL:
            continue
        if key in BUCKET_FILTERS:
            predicates.append(_bucket_predicate(key, value))
        else:
            predicates.append(_exact_predicate(key, value))
    return predicates


def query(collection: Sequence[Any], request: RecordQuery | None = None) -> QueryPage:
    """Filter then page ``collection`` without mutating it.

    Every active predicate must hold (logical AND). The requested page is
    clamped into ``[1, total_pages]``; an empty result has zero pages and is
    reported as page 1.
    """

    request = request or RecordQuery()
    needle = (request.text or "").strip().casefold()
    predicates = _predicates(request.filters)

    matched = [
        record
        for record in collection
        if (not needle or _matches_text(record, needle))
        and all(predicate(record) for predicate in predicates)
    ]

    total = len(matched)
    total_pages = math.ceil(total / request.page_size)
    page = min(max(1, request.page), max(1, total_pages))
    start = (page - 1) * request.page_size
    return QueryPage(
        items=matched[start : start + request.page_size],
        total_pages=total_pages,
        page=page,
        total=total,
    )


__all__ = [
    "BUCKET_FILTERS",
    "QueryPage",
    "RecordQuery",
    "SEARCH_FIELDS",
    "SIZE_BUCKETS",
    "TURNOUT_BUCKETS",
    "UnknownFilterError",
    "query",
]
