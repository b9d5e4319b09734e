from __future__ import annotations

from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from loguru import logger

from ingestion.client import ElectionApiClient

from . import schemas
from .cache import ExpiringCache
from .core.config import settings
from .services.aggregation_service import AggregationService, CompositeResult
from .services.query_service import RecordQuery, UnknownFilterError, query
from .services.views import (
    booth_analysis_view,
    booth_comparison_view,
    booth_details_view,
    booth_list_view,
    constituency_view,
    regions_view,
    state_view,
)

app = FastAPI(title="Booth Insights API", version="0.1.0", debug=settings.debug)


@app.on_event("startup")
async def on_startup() -> None:
    """Build the shared cache, upstream client and aggregation service."""

    cache = ExpiringCache(settings.cache_ttl_seconds)
    client = ElectionApiClient()
    app.state.cache = cache
    app.state.client = client
    app.state.aggregation_service = AggregationService(client, cache)
    logger.info("Aggregation service ready (upstream={})", client.base_url)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    client = getattr(app.state, "client", None)
    if client is not None:
        await client.aclose()


def _aggregation_service(request: Request) -> AggregationService:
    """Provide the process-wide aggregation service created at startup."""

    return request.app.state.aggregation_service


def _render(result: CompositeResult) -> schemas.CompositeView:
    return schemas.CompositeView(
        view=result.view,
        primary=result.primary,
        fragments=jsonable_encoder(result.fragments),
        origins={name: origin.value for name, origin in result.origins.items()},
        degraded=dict(result.degraded),
    )


def _parse_booth_ids(raw: str) -> list[int]:
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError as exc:
        raise HTTPException(status_code=422, detail="booths must be comma separated integers") from exc


@app.get("/healthz", response_model=schemas.HealthStatus, tags=["system"])
def healthcheck(service: AggregationService = Depends(_aggregation_service)):
    """Basic readiness probe consumed by infrastructure monitors."""

    return schemas.HealthStatus(status="ok", cached_entries=len(service.cache))


@app.get("/views/regions", response_model=schemas.CompositeView, tags=["views"])
async def get_regions_view(service: AggregationService = Depends(_aggregation_service)):
    return _render(await service.load(regions_view()))


@app.get("/views/states/{state_id}", response_model=schemas.CompositeView, tags=["views"])
async def get_state_view(
    state_id: int, service: AggregationService = Depends(_aggregation_service)
):
    """State record plus its assembly constituencies."""

    return _render(await service.load(state_view(state_id)))


@app.get(
    "/views/constituencies/{constituency_id}",
    response_model=schemas.CompositeView,
    tags=["views"],
)
async def get_constituency_view(
    constituency_id: int,
    year: Annotated[int | None, Query(description="Election year for results and stats")] = None,
    service: AggregationService = Depends(_aggregation_service),
):
    return _render(await service.load(constituency_view(constituency_id, year)))


@app.get(
    "/views/constituencies/{constituency_id}/booth-analysis",
    response_model=schemas.CompositeView,
    tags=["views"],
)
async def get_booth_analysis_view(
    constituency_id: int, service: AggregationService = Depends(_aggregation_service)
):
    return _render(await service.load(booth_analysis_view(constituency_id)))


@app.get("/views/booths/{booth_id}", response_model=schemas.CompositeView, tags=["views"])
async def get_booth_details_view(
    booth_id: int, service: AggregationService = Depends(_aggregation_service)
):
    return _render(await service.load(booth_details_view(booth_id)))


@app.get("/views/booth-comparison", response_model=schemas.CompositeView, tags=["views"])
async def get_booth_comparison_view(
    booths: Annotated[str, Query(description="Comma separated booth ids", example="12,7")],
    service: AggregationService = Depends(_aggregation_service),
):
    """Compare two or more booths, keeping the requested order."""

    try:
        view = booth_comparison_view(_parse_booth_ids(booths))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _render(await service.load(view))


@app.get(
    "/constituencies/{constituency_id}/booths",
    response_model=schemas.RecordPage,
    tags=["booths"],
)
async def list_constituency_booths(
    constituency_id: int,
    q: Annotated[str | None, Query(description="Search booth name, number or party")] = None,
    turnout: Annotated[str | None, Query(description="high|medium|low|all")] = None,
    size: Annotated[str | None, Query(description="large|medium|small|all")] = None,
    party: Annotated[str | None, Query(description="Winning party filter")] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(ge=1, le=200)] = None,
    service: AggregationService = Depends(_aggregation_service),
):
    """Search, filter and page the booths of one constituency."""

    result = await service.load(booth_list_view(constituency_id))
    request = RecordQuery(
        text=q,
        filters={"turnout": turnout, "size": size, "party": party},
        page=page,
        page_size=page_size or settings.query_page_size,
    )
    try:
        selected = query(result["booth_list"], request)
    except UnknownFilterError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return schemas.RecordPage(
        items=jsonable_encoder(selected.items),
        total=selected.total,
        total_pages=selected.total_pages,
        page=selected.page,
        page_size=request.page_size,
        degraded=result.is_degraded("booth_list"),
    )


@app.post("/cache/clear", response_model=schemas.CacheClearResult, tags=["system"])
def clear_cache(
    key: Annotated[str | None, Query(description="Single fingerprint to drop")] = None,
    service: AggregationService = Depends(_aggregation_service),
):
    """Drop one cached fragment, or the whole cache when no key is given."""

    removed = service.clear_cache(key)
    return schemas.CacheClearResult(
        scope=key or "all", removed=removed, remaining=len(service.cache)
    )
