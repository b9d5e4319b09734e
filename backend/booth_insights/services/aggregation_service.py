"""Concurrent assembly of view data from independently failing upstream calls."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from loguru import logger

from booth_insights.cache import ExpiringCache, fingerprint, request_key
from booth_insights.core.config import settings
from ingestion.entities import EntityType, resolve_entity_type
from ingestion.normalize import Normalization, normalize_outcome
from ingestion.outcomes import SourceOutcome


class SourceClient(Protocol):
    async def fetch(
        self, endpoint: str, params: Mapping[str, Any] | None = None
    ) -> SourceOutcome: ...


class FragmentOrigin(str, Enum):
    CACHE = "cache"
    SOURCE = "source"
    EMBEDDED = "embedded"


@dataclass(slots=True, frozen=True)
class SubFetch:
    """One named unit of data a view needs.

    ``params`` address the upstream endpoint; ``context`` adds values the
    normalizer needs that are not sent upstream (e.g. the results year).
    A sub-fetch with ``embedded_from`` is first looked for inside the named
    sibling fragment through ``extract`` and only fetched on its own when
    that sibling is synthetic or yields an empty collection.
    """

    name: str
    entity_type: EntityType
    endpoint: str
    params: Mapping[str, Any] = field(default_factory=dict)
    context: Mapping[str, Any] = field(default_factory=dict)
    embedded_from: str | None = None
    extract: Callable[[Any], Any] | None = None

    @property
    def cache_key(self) -> str:
        return fingerprint(self.entity_type, self.endpoint, self.params)

    @property
    def request_key(self) -> str:
        return request_key(self.endpoint, self.params)

    @property
    def normalization_context(self) -> dict[str, Any]:
        return {**self.params, **self.context}


@dataclass(slots=True, frozen=True)
class ViewSpec:
    name: str
    sub_fetches: tuple[SubFetch, ...]
    primary: str | None = None

    def __post_init__(self) -> None:
        if not self.sub_fetches:
            raise ValueError(f"View '{self.name}' declares no sub-fetches")
        names = [sub.name for sub in self.sub_fetches]
        if len(set(names)) != len(names):
            raise ValueError(f"View '{self.name}' declares duplicate sub-fetch names")
        direct = {sub.name for sub in self.sub_fetches if sub.embedded_from is None}
        for sub in self.sub_fetches:
            resolve_entity_type(sub.entity_type)
            if sub.embedded_from is None:
                continue
            if sub.embedded_from not in direct:
                raise ValueError(
                    f"Sub-fetch '{sub.name}' embeds from '{sub.embedded_from}', "
                    "which is not a directly fetched sibling"
                )
            if sub.extract is None:
                raise ValueError(f"Sub-fetch '{sub.name}' needs an extract function")
        if self.primary is not None and self.primary not in names:
            raise ValueError(f"Primary fragment '{self.primary}' is not declared")

    @property
    def primary_name(self) -> str:
        return self.primary or self.sub_fetches[0].name


@dataclass(slots=True)
class CompositeResult:
    """Named fragments of one view plus where each came from.

    ``degraded`` maps a fragment name to the failure reason that caused it to
    be synthesized; fragments absent from it hold upstream data.
    """

    view: str
    fragments: dict[str, Any]
    origins: dict[str, FragmentOrigin] = field(default_factory=dict)
    degraded: dict[str, str] = field(default_factory=dict)
    primary: str | None = None

    def __getitem__(self, name: str) -> Any:
        return self.fragments[name]

    def __contains__(self, name: object) -> bool:
        return name in self.fragments

    def is_degraded(self, name: str) -> bool:
        return name in self.degraded


class AggregationService:
    """Load view specs through the cache, the source client and the normalizer."""

    def __init__(
        self,
        client: SourceClient,
        cache: ExpiringCache,
        *,
        dedupe_inflight: bool | None = None,
        cache_fallbacks: bool | None = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self.dedupe_inflight = (
            settings.dedupe_inflight_requests if dedupe_inflight is None else dedupe_inflight
        )
        self.cache_fallbacks = (
            settings.cache_fallback_fragments if cache_fallbacks is None else cache_fallbacks
        )
        self._inflight: dict[str, asyncio.Future[SourceOutcome]] = {}

    @property
    def cache(self) -> ExpiringCache:
        return self._cache

    async def load(self, view: ViewSpec) -> CompositeResult:
        direct = [sub for sub in view.sub_fetches if sub.embedded_from is None]
        embedded = [sub for sub in view.sub_fetches if sub.embedded_from is not None]

        resolved = await self._resolve_batch(direct)

        separate: list[SubFetch] = []
        for sub in embedded:
            parent, _ = resolved[sub.embedded_from]
            if not parent.synthetic:
                extracted = sub.extract(parent.value)
                if extracted:
                    logger.debug("Using {} embedded in {}", sub.name, sub.embedded_from)
                    resolved[sub.name] = (Normalization(extracted), FragmentOrigin.EMBEDDED)
                    continue
            separate.append(sub)
        if separate:
            resolved.update(await self._resolve_batch(separate))

        result = CompositeResult(view=view.name, fragments={}, primary=view.primary_name)
        for sub in view.sub_fetches:
            normalization, origin = resolved[sub.name]
            result.fragments[sub.name] = normalization.value
            result.origins[sub.name] = origin
            if normalization.synthetic:
                result.degraded[sub.name] = normalization.reason or "unknown"

        logger.info(
            "Assembled view {} ({} fragments, {} degraded)",
            view.name,
            len(result.fragments),
            len(result.degraded),
        )
        return result

    async def _resolve_batch(
        self, sub_fetches: Sequence[SubFetch]
    ) -> dict[str, tuple[Normalization, FragmentOrigin]]:
        """Serve sub-fetches from cache, fetching every miss concurrently.

        Misses that share endpoint and parameters share one upstream call.
        All calls settle before any outcome is normalized.
        """

        resolved: dict[str, tuple[Normalization, FragmentOrigin]] = {}
        pending: dict[str, list[SubFetch]] = {}
        for sub in sub_fetches:
            cached = self._cache.get(sub.cache_key)
            if isinstance(cached, Normalization):
                resolved[sub.name] = (cached, FragmentOrigin.CACHE)
            else:
                pending.setdefault(sub.request_key, []).append(sub)

        if not pending:
            return resolved

        groups = list(pending.values())
        outcomes = await asyncio.gather(
            *(self._fetch(group[0]) for group in groups), return_exceptions=True
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        for group, outcome in zip(groups, outcomes):
            for sub in group:
                normalization = normalize_outcome(
                    sub.entity_type, outcome, sub.normalization_context
                )
                if normalization.synthetic:
                    logger.warning(
                        "Sub-fetch {} ({}) degraded to fallback: {}",
                        sub.name,
                        sub.endpoint,
                        normalization.reason,
                    )
                if not normalization.synthetic or self.cache_fallbacks:
                    self._cache.set(sub.cache_key, normalization)
                resolved[sub.name] = (normalization, FragmentOrigin.SOURCE)
        return resolved

    async def _fetch(self, sub: SubFetch) -> SourceOutcome:
        if not self.dedupe_inflight:
            return await self._client.fetch(sub.endpoint, sub.params)

        key = sub.request_key
        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._client.fetch(sub.endpoint, sub.params))
            self._inflight[key] = future
            future.add_done_callback(lambda _done, key=key: self._inflight.pop(key, None))
        else:
            logger.debug("Joining in-flight request {}", key)
        return await asyncio.shield(future)

    def clear_cache(self, key: str | None = None) -> int:
        """Drop one fingerprint, or everything when ``key`` is None."""

        if key is None:
            removed = self._cache.clear()
        else:
            removed = int(self._cache.delete(key))
        logger.info("Cleared {} cache entr{} (key={})", removed, "y" if removed == 1 else "ies", key)
        return removed


__all__ = [
    "AggregationService",
    "CompositeResult",
    "FragmentOrigin",
    "SourceClient",
    "SubFetch",
    "ViewSpec",
]
