from __future__ import annotations

import string
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from booth_insights.core.config import settings
from booth_insights.schemas import UpstreamEnvelope

from .outcomes import FailureReason, SourceError, SourceOk, SourceOutcome

_BODY_PREVIEW_CHARS = 500


class UnknownEndpointError(LookupError):
    """Raised when a caller names an endpoint that is not registered."""


@dataclass(slots=True, frozen=True)
class EndpointSpec:
    path: str
    method: str = "GET"

    @property
    def path_params(self) -> tuple[str, ...]:
        return tuple(
            field_name
            for _, field_name, _, _ in string.Formatter().parse(self.path)
            if field_name
        )


ENDPOINTS: dict[str, EndpointSpec] = {
    "states": EndpointSpec("/api/states"),
    "state": EndpointSpec("/api/states/{state_id}"),
    "state_assemblies": EndpointSpec("/api/states/{state_id}/assemblies"),
    "constituency": EndpointSpec("/api/constituencies/{constituency_id}"),
    "constituency_stats": EndpointSpec("/api/constituencies/{constituency_id}/stats"),
    "constituency_demographics": EndpointSpec(
        "/api/constituencies/{constituency_id}/demographics"
    ),
    "constituency_results": EndpointSpec("/api/constituencies/{constituency_id}/results"),
    "historical_mlas": EndpointSpec("/api/constituencies/{constituency_id}/historical-mlas"),
    "constituency_booths": EndpointSpec("/api/constituencies/{constituency_id}/booths"),
    "booth_analysis": EndpointSpec("/api/constituencies/{constituency_id}/booth-analysis"),
    "booth_clusters": EndpointSpec("/api/booth-analysis/clusters/{constituency_id}"),
    "booth_demographics": EndpointSpec("/api/booth-analysis/demographics/{constituency_id}"),
    "booth": EndpointSpec("/api/booths/{booth_id}"),
    "booth_results": EndpointSpec("/api/booths/{booth_id}/results"),
    "compare_booths": EndpointSpec("/api/booth-analysis/compare", method="POST"),
    "turnout_trend": EndpointSpec("/api/elections/turnout-trend"),
    "vote_share_trend": EndpointSpec("/api/elections/vote-share-trend"),
}


def _serialize_param(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        parts = [part for part in (_serialize_param(item) for item in value) if part is not None]
        return ",".join(parts) if parts else None
    return str(value)


class ElectionApiClient:
    """Single-attempt async wrapper around the upstream election API.

    :meth:`fetch` always settles into a :class:`SourceOk` or
    :class:`SourceError`; transport and envelope problems never escape as
    exceptions, so sibling calls gathered with it are never aborted.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or str(settings.api_base_url)
        self.timeout = timeout or settings.request_timeout_seconds
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
            headers={"Accept": "application/json", "User-Agent": settings.user_agent},
        )

    def _build_request(
        self, endpoint: str, params: Mapping[str, Any] | None
    ) -> tuple[EndpointSpec, str, dict[str, Any]]:
        try:
            spec = ENDPOINTS[endpoint]
        except KeyError as exc:
            raise UnknownEndpointError(f"Endpoint '{endpoint}' is not registered") from exc

        params = dict(params or {})
        missing = [name for name in spec.path_params if params.get(name) is None]
        if missing:
            raise UnknownEndpointError(
                f"Endpoint '{endpoint}' requires path parameters: {', '.join(missing)}"
            )
        path = spec.path.format(**{name: params.pop(name) for name in spec.path_params})
        return spec, path, params

    async def fetch(
        self, endpoint: str, params: Mapping[str, Any] | None = None
    ) -> SourceOutcome:
        spec, path, remaining = self._build_request(endpoint, params)
        logger.info("Upstream {} {} params={}", spec.method, path, remaining)
        try:
            if spec.method == "POST":
                response = await self.client.post(path, json=remaining)
            else:
                query: dict[str, str] = {}
                for key, value in remaining.items():
                    serialized = _serialize_param(value)
                    if serialized is not None:
                        query[key] = serialized
                response = await self.client.request(spec.method, path, params=query)
        except httpx.TimeoutException as exc:
            logger.warning("Upstream {} timed out: {}", path, exc)
            return SourceError(FailureReason.NETWORK, detail=f"timeout: {exc}")
        except httpx.RequestError as exc:
            logger.warning("Upstream {} unreachable: {}", path, exc)
            return SourceError(FailureReason.NETWORK, detail=str(exc) or type(exc).__name__)

        return self._settle(path, response)

    @staticmethod
    def _settle(path: str, response: httpx.Response) -> SourceOutcome:
        if not response.is_success:
            body = response.text[:_BODY_PREVIEW_CHARS]
            logger.warning("Upstream {} returned HTTP {}", path, response.status_code)
            return SourceError(
                FailureReason.HTTP_ERROR,
                detail=f"HTTP {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        try:
            raw = response.json()
        except (ValueError, RecursionError):
            logger.warning("Upstream {} returned a non-JSON body", path)
            return SourceError(
                FailureReason.SHAPE_ERROR,
                detail="response body is not JSON",
                status_code=response.status_code,
                body=response.text[:_BODY_PREVIEW_CHARS],
            )

        try:
            envelope = UpstreamEnvelope.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Upstream {} envelope rejected: {}", path, exc.error_count())
            return SourceError(
                FailureReason.SHAPE_ERROR,
                detail="envelope missing 'success' or 'data'",
                status_code=response.status_code,
            )

        if not envelope.success:
            detail = envelope.error or envelope.message or "upstream reported failure"
            logger.warning("Upstream {} reported failure: {}", path, detail)
            return SourceError(
                FailureReason.SHAPE_ERROR,
                detail=detail,
                status_code=response.status_code,
            )

        return SourceOk(
            payload=envelope.data,
            meta=envelope.meta,
            status_code=response.status_code,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "ElectionApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
