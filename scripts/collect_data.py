# ruff: noqa: E402

"""Collect immobiliare.it listings for catalog zones into the file store."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from ipg.config import get_settings
from ipg.config.settings import VALID_SCRAPERS
from ipg.crawlers import MobileApiCrawler, get_crawler
from ipg.db import LocalStore, ZoneRegistry, load_zone_registry
from ipg.services import (
    CollectEstimate,
    CollectService,
    CollectSummary,
    ZoneCollectResult,
    format_duration,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CliArgs:
    zones: tuple[str, ...] = ()
    area: str | None = None
    all_zones: bool = False
    limit: int | None = None
    max_pages: int | None = None
    scraper: str = "mobile"
    dry_run: bool = False
    sleep_between_listings_ms: int | None = None
    sleep_between_zones_s: float = 0.0
    data_dir: Path | None = None


def _parse_args(argv: list[str] | None = None) -> CliArgs:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Il Prezzo Giusto data collection.",
        epilog=(
            "Scrapers: mobile is free and uses the immobiliare.it mobile API; "
            "apify is paid and requires APIFY_TOKEN."
        ),
    )
    parser.add_argument("--zones", default="", help="Comma-separated zone slugs.")
    parser.add_argument("--area", default=None, help="Collect all zones of an area.")
    parser.add_argument(
        "--all", dest="all_zones", action="store_true", help="Collect all zones."
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Max listings per zone (default: 1000 for apify, 10000 for mobile).",
    )
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Max pages to scrape (apify only, default: 20).",
    )
    parser.add_argument(
        "--scraper",
        choices=VALID_SCRAPERS,
        default=settings.collect_scraper,
        help="Scraper to use (default: %(default)s).",
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Don't actually scrape."
    )
    parser.add_argument(
        "--sleep-between-listings-ms",
        type=int,
        default=None,
        help="Milliseconds between page fetches (default: 50).",
    )
    parser.add_argument(
        "--sleep-between-zones-s",
        type=float,
        default=settings.collect_sleep_between_zones_seconds,
        help="Seconds between zones (default: %(default)s).",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help=f"Data directory (default: {settings.data_dir}).",
    )

    parsed = parser.parse_args(argv)
    return CliArgs(
        zones=tuple(
            slug.strip().lower() for slug in str(parsed.zones).split(",") if slug.strip()
        ),
        area=parsed.area,
        all_zones=bool(parsed.all_zones),
        limit=parsed.limit,
        max_pages=parsed.max_pages,
        scraper=str(parsed.scraper),
        dry_run=bool(parsed.dry_run),
        sleep_between_listings_ms=parsed.sleep_between_listings_ms,
        sleep_between_zones_s=float(parsed.sleep_between_zones_s),
        data_dir=parsed.data_dir,
    )


def _print_catalog(registry: ZoneRegistry) -> None:
    print("Il Prezzo Giusto - Data Collection\n")
    print("Usage: python scripts/collect_data.py --zones=axa,trastevere | --area=X | --all\n")
    areas = registry.areas()
    print(f"Areas ({len(areas)}):")
    for area in areas:
        print(f"  - {area} ({len(registry.get_by_area(area))} zones)")
    print(f"\nZones ({len(registry)}):")
    for zone in registry.zones:
        print(f"  - {zone.slug} ({zone.name}) [{zone.area}]")


def _resolve_slugs(args: CliArgs, registry: ZoneRegistry) -> list[str] | None:
    """Selected zone slugs; None when the requested area is unknown."""

    if args.area:
        area_zones = registry.get_by_area(args.area)
        if not area_zones:
            return None
        return [zone.slug for zone in area_zones]
    if args.all_zones:
        return [zone.slug for zone in registry.zones]
    return list(args.zones)


def _print_estimate(estimate: CollectEstimate) -> None:
    unknown = estimate.unknown_zones
    print("\nEstimate:")
    zones_line = f"  Zones: {len(estimate.zone_counts)}"
    if unknown:
        zones_line += f" ({unknown} with unknown counts)"
    print(zones_line)
    print(f"  Total listings: ~{estimate.total_listings:,}{'+' if unknown else ''}")
    print(f"  Pages to fetch: ~{estimate.total_pages}")
    print(
        f"  API time: ~{format_duration(estimate.api_seconds)} "
        f"({estimate.page_delay_ms}ms/page)"
    )
    if estimate.sleep_between_zones_seconds > 0:
        print(f"  Zone delays: ~{format_duration(estimate.sleep_seconds)}")
    print(f"  Total time: ~{format_duration(estimate.total_seconds)}")


def _print_zone_result(result: ZoneCollectResult) -> None:
    zone = result.zone
    print(f"\n{zone.name} ({zone.slug})")
    if result.status == "dry_run":
        print(f"  [DRY RUN] Would scrape {zone.name}")
    elif result.status == "error":
        print(f"  Error: {result.error}")
    elif result.status == "empty":
        print("  No listings found")
    elif result.added > 0 or result.updated > 0:
        print(
            f"  Found {result.found} unique listings: added {result.added} new, "
            f"updated {result.updated} changed ({result.unchanged} unchanged)"
        )
    else:
        print(f"  Found {result.found} unique listings, all unchanged")
    if result.hit_limit:
        print("  Hit the listing limit, more listings may be available")


def _print_summary(summary: CollectSummary) -> None:
    print("\nSummary:")
    print(f"  Zones ok: {summary.succeeded}")
    print(f"  Zones empty: {summary.empty}")
    print(f"  Zones failed: {summary.errors}")
    print(
        f"  Listings: {summary.added} added, {summary.updated} updated, "
        f"{summary.unchanged} unchanged"
    )


async def _run(args: CliArgs) -> int:
    store = LocalStore(args.data_dir)
    registry = await load_zone_registry(store.zones_file)

    slugs = _resolve_slugs(args, registry)
    if slugs is None:
        print(f"Unknown area: {args.area}", file=sys.stderr)
        print(f"Available areas: {', '.join(registry.areas())}")
        return 0
    if not slugs:
        _print_catalog(registry)
        return 0

    zones = registry.get_by_slugs(slugs)
    if not zones:
        print("No valid zones found", file=sys.stderr)
        return 0

    crawler = get_crawler(
        args.scraper,
        page_delay_ms=args.sleep_between_listings_ms,
        max_pages=args.max_pages,
    )
    counter = crawler if isinstance(crawler, MobileApiCrawler) else MobileApiCrawler()
    service = CollectService(store, crawler, counter=counter)

    print("Il Prezzo Giusto - Data Collection")
    print(f"Scraper: {crawler.name}")
    print(f"Zones: {len(zones)} ({', '.join(zone.slug for zone in zones)})")
    if args.limit:
        print(f"Limit: {args.limit} per zone")
    if args.max_pages and crawler.name == "apify":
        print(f"Max pages: {args.max_pages}")
    if args.sleep_between_zones_s:
        print(f"Sleep between zones: {args.sleep_between_zones_s}s")
    if args.dry_run:
        print("Mode: DRY RUN")

    if args.dry_run:
        print("\nEstimate skipped (dry run makes no network calls)")
    else:
        print("\nFetching listing counts...")
        estimate = await service.estimate(
            zones,
            page_delay_ms=args.sleep_between_listings_ms,
            sleep_between_zones_seconds=args.sleep_between_zones_s,
        )
        _print_estimate(estimate)

    summary = await service.collect_zones(
        zones,
        limit=args.limit,
        dry_run=args.dry_run,
        sleep_between_zones_seconds=args.sleep_between_zones_s,
        on_result=_print_zone_result,
    )
    _print_summary(summary)
    print("\nDone!")
    return 0


async def _async_main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return await _run(_parse_args(argv))


def main() -> None:
    raise SystemExit(asyncio.run(_async_main()))


if __name__ == "__main__":
    main()
