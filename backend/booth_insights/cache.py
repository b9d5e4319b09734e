"""In-memory expiring cache for normalized view fragments.

Entries carry an absolute expiry instant and are evicted lazily when a read
finds them stale; there is no background sweep and no size bound. The cache
is session scoped: nothing is persisted across process restarts.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from loguru import logger

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass(slots=True)
class CacheEntry:
    value: Any
    expires_at: float


def _serialize_param(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return ",".join(_serialize_param(item) for item in value)
    return str(value)


def request_key(endpoint: str, params: Mapping[str, Any] | None = None) -> str:
    """Key identifying one upstream call: endpoint plus sorted parameters."""

    pairs = sorted(
        (str(key), _serialize_param(value))
        for key, value in (params or {}).items()
        if value is not None
    )
    query = urlencode(pairs)
    return f"{endpoint}?{query}" if query else endpoint


def fingerprint(entity_type: Any, endpoint: str, params: Mapping[str, Any] | None = None) -> str:
    """Build the deterministic cache key for one sub-fetch."""

    entity = getattr(entity_type, "value", entity_type)
    return f"{entity}:{request_key(endpoint, params)}"


class ExpiringCache:
    """Key/value store with per-entry time-to-live."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""

        lifetime = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + lifetime)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key``, or ``default`` when absent or expired.

        Stored values may be ``None``; pass a sentinel ``default`` to tell
        such an entry apart from a miss.
        """

        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache miss for {}", key)
            return default
        if self._clock() > entry.expires_at:
            del self._entries[key]
            logger.debug("Cache entry expired for {}", key)
            return default
        logger.debug("Cache hit for {}", key)
        return entry.value

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        removed = len(self._entries)
        self._entries.clear()
        return removed

    def keys(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, key: object) -> bool:
        entry = self._entries.get(key)  # type: ignore[arg-type]
        return entry is not None and self._clock() <= entry.expires_at

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["CacheEntry", "DEFAULT_TTL_SECONDS", "ExpiringCache", "fingerprint", "request_key"]
