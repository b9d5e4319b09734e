"""Settled results returned by the upstream election API client."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from booth_insights.schemas import EnvelopeMeta


class FailureReason(str, Enum):
    NETWORK = "network"
    HTTP_ERROR = "http_error"
    SHAPE_ERROR = "shape_error"


@dataclass(slots=True, frozen=True)
class SourceOk:
    """Envelope ``data`` of a successful upstream call."""

    payload: Any
    meta: EnvelopeMeta | None = None
    status_code: int = 200


@dataclass(slots=True, frozen=True)
class SourceError:
    """Typed failure of a single upstream call."""

    reason: FailureReason
    detail: str = ""
    status_code: int | None = None
    body: str | None = None


SourceOutcome = Union[SourceOk, SourceError]


__all__ = ["FailureReason", "SourceError", "SourceOk", "SourceOutcome"]
