import argparse
import asyncio
import sys
from collections.abc import Callable, Sequence

from fastapi.encoders import jsonable_encoder
from loguru import logger

from booth_insights.cache import ExpiringCache
from booth_insights.core.config import get_settings
from booth_insights.schemas import CompositeView
from booth_insights.services.aggregation_service import AggregationService, ViewSpec
from booth_insights.services.query_service import RecordQuery, UnknownFilterError, query
from booth_insights.services.views import (
    booth_analysis_view,
    booth_comparison_view,
    booth_details_view,
    booth_list_view,
    constituency_view,
    regions_view,
    state_view,
)
from ingestion.client import ElectionApiClient

BOOTH_FRAGMENT = "booth_list"

# view name -> (builder, number of ids; None accepts any number)
VIEWS: dict[str, tuple[Callable[..., ViewSpec], int | None]] = {
    "regions": (regions_view, 0),
    "state": (state_view, 1),
    "constituency": (constituency_view, 1),
    "booth-analysis": (booth_analysis_view, 1),
    "booths": (booth_list_view, 1),
    "booth": (booth_details_view, 1),
    "compare": (lambda *ids: booth_comparison_view(ids), None),
}


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Assemble one election view and print it as JSON")
    parser.add_argument("view", choices=sorted(VIEWS), help="View to load")
    parser.add_argument("ids", nargs="*", type=int, help="State, constituency or booth ids")
    parser.add_argument("--search", default=None, help="Free-text search over the booth list")
    parser.add_argument("--turnout", default=None, help="Turnout bucket (high|medium|low|all)")
    parser.add_argument("--size", default=None, help="Booth size bucket (large|medium|small|all)")
    parser.add_argument("--party", default=None, help="Winning party filter")
    parser.add_argument("--page", type=int, default=1, help="Page of the filtered booth list")
    parser.add_argument("--page-size", type=int, default=None, help="Override query page size")
    return parser.parse_args(argv)


def build_view(args: argparse.Namespace) -> ViewSpec:
    builder, arity = VIEWS[args.view]
    if arity is not None and len(args.ids) != arity:
        raise ValueError(f"View '{args.view}' takes {arity} id(s), got {len(args.ids)}")
    return builder(*args.ids)


def _wants_query(args: argparse.Namespace) -> bool:
    return any(
        value is not None for value in (args.search, args.turnout, args.size, args.party)
    ) or args.page != 1 or args.page_size is not None


async def load_view(args: argparse.Namespace, view: ViewSpec) -> CompositeView:
    settings = get_settings()
    cache = ExpiringCache(settings.cache_ttl_seconds)
    async with ElectionApiClient() as client:
        service = AggregationService(client, cache)
        result = await service.load(view)

    fragments = dict(result.fragments)
    if BOOTH_FRAGMENT in fragments and _wants_query(args):
        selected = query(
            fragments[BOOTH_FRAGMENT],
            RecordQuery(
                text=args.search,
                filters={"turnout": args.turnout, "size": args.size, "party": args.party},
                page=args.page,
                page_size=args.page_size or settings.query_page_size,
            ),
        )
        fragments[BOOTH_FRAGMENT] = {
            "items": selected.items,
            "total": selected.total,
            "total_pages": selected.total_pages,
            "page": selected.page,
        }

    return CompositeView(
        view=result.view,
        primary=result.primary,
        fragments=jsonable_encoder(fragments),
        origins={name: origin.value for name, origin in result.origins.items()},
        degraded=dict(result.degraded),
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        view = build_view(args)
    except ValueError as exc:
        logger.error("{}", exc)
        return 2

    try:
        rendered = asyncio.run(load_view(args, view))
    except UnknownFilterError as exc:
        logger.error("Invalid filter: {}", exc)
        return 2

    if rendered.degraded:
        logger.warning("Degraded fragments: {}", ", ".join(sorted(rendered.degraded)))
    print(rendered.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
