"""
PlaceScout CLI entrypoint.

This CLI is intended for quick local demos and debugging without the API server.
It runs the discovery orchestrator against the offline catalog (or the HTTP place-search
service when `place_search.base_url` is configured).

Exit codes: 0 on success (including LIMIT_REACHED), 1 when discovery ends in ERROR,
2 on invalid input.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from placescout.catalog.loader import catalog_report, load_advertised, load_places
from placescout.config.settings import Settings, get_settings
from placescout.core.errors import InvalidOrigin
from placescout.core.logging import configure_logging
from placescout.discovery.factory import build_orchestrator
from placescout.domain.models import DiscoveryResult, LoadingState
from placescout.scoring.explain import one_line_summary


def _raw_filters(args: argparse.Namespace) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "origin": {"lat": args.lat, "lng": args.lng},
        "category": args.category,
        "mood": args.mood,
        "distanceRange": args.distance,
    }
    if args.social:
        raw["socialContext"] = args.social
    if args.budget:
        raw["budget"] = args.budget
    if args.time:
        raw["timeOfDay"] = args.time
    return raw


def _print_result(title: str, result: DiscoveryResult) -> None:
    exp = result.expansion
    relaxed = ", ".join(exp.relaxed_filters) or "none"
    print(
        f"{title}: state={result.loading_state.value} radius={exp.radius_m:.0f}m "
        f"expansions={exp.expansion_count} relaxed={relaxed} remaining={result.pool.remaining}"
    )
    if result.error:
        print(f"  error: {result.error}")
    for i, place in enumerate(result.places, start=1):
        tag = " [ad]" if place.is_advertised else ""
        print(f"{i:>2}. {place.name}{tag}  {one_line_summary(place)}")


async def _discover(args: argparse.Namespace, settings: Settings) -> list[DiscoveryResult]:
    orchestrator = build_orchestrator(settings, ads=not args.no_ads)
    raw = _raw_filters(args)
    results = [await orchestrator.discover(raw)]
    for _ in range(max(0, int(args.more))):
        if results[-1].loading_state is LoadingState.ERROR:
            break
        results.append(await orchestrator.get_next_batch(raw))
    return results


def _cmd_discover(args: argparse.Namespace) -> int:
    """Handle the `discover` subcommand."""
    settings = get_settings()
    try:
        results = asyncio.run(_discover(args, settings))
    except InvalidOrigin as e:
        print(f"invalid origin: {e}")
        return 2

    if args.json:
        print(json.dumps([r.model_dump(mode="json") for r in results], ensure_ascii=False, indent=2))
    else:
        for warning in results[0].warnings:
            print(f"warning: {warning.message}")
        for i, result in enumerate(results):
            _print_result("discover" if i == 0 else f"more #{i}", result)

    return 1 if any(r.loading_state is LoadingState.ERROR for r in results) else 0


def _cmd_check_catalog(_: argparse.Namespace) -> int:
    settings = get_settings()
    places = load_places(settings.catalog.places_path)
    advertised = load_advertised(settings.catalog.advertised_path)
    report = catalog_report(places, advertised)
    print(json.dumps(report, ensure_ascii=False, indent=2))
    problems = report["duplicate_place_ids"] or report["advertised_ids_in_catalog"]
    return 1 if problems else 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the PlaceScout CLI."""
    parser = argparse.ArgumentParser(prog="placescout")
    parser.add_argument("--log-level", default=None, help="Override app.log_level (e.g. DEBUG)")
    sub = parser.add_subparsers(dest="command", required=True)

    disc = sub.add_parser("discover", help="Discover places around an origin for soft preferences.")
    disc.add_argument("--lat", required=True, type=float)
    disc.add_argument("--lng", "--lon", dest="lng", required=True, type=float)
    disc.add_argument("--category", default="something-new", help="food | activity | something-new")
    disc.add_argument("--mood", type=float, default=50, help="0..100 (chill -> hype)")
    disc.add_argument("--social", default=None, help="solo | paired | group")
    disc.add_argument("--budget", default=None, help="low | mid | high (or P / PP / PPP)")
    disc.add_argument("--time", default=None, help="morning | afternoon | night | any")
    disc.add_argument("--distance", type=float, default=50, help="0..100 distance tolerance")
    disc.add_argument("--more", type=int, default=0, help="Also fetch N follow-up batches")
    disc.add_argument("--no-ads", action="store_true", help="Skip advertised insertions")
    disc.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    disc.set_defaults(func=_cmd_discover)

    chk = sub.add_parser("check-catalog", help="Validate the offline place + advertised catalogs.")
    chk.set_defaults(func=_cmd_check_catalog)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m placescout.cli`."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
