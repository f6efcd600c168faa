# ruff: noqa: E402

"""Rewrite stored listing files into the compact format.

Drops the fields rebuilt on read (id, url, source, location, priceFormatted,
per-listing scrapedAt) and reduces CDN image URLs to their ids.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from ipg.config import get_settings
from ipg.db.migrate import MigrationStats, migrate_listings_dir

MB = 1024 * 1024


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview changes without saving.",
    )
    parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Data directory holding listings/ (default: DATA_DIR setting).",
    )
    return parser.parse_args(argv)


def _print_report(stats: MigrationStats, *, dry_run: bool) -> None:
    for item in stats.files:
        saved_kb = (item.bytes_before - item.bytes_after) / 1024
        print(f"{item.relative_path}: {item.listing_count} listings, -{saved_kb:.1f}KB")
    for path in stats.skipped:
        print(f"  Skipped: {path}")

    print(f"\nSummary{' (DRY RUN - no files modified)' if dry_run else ''}")
    print(f"  Files processed: {stats.files_processed}")
    print(f"  Listings processed: {stats.listings_processed}")
    print(f"  Size before: {stats.bytes_before / MB:.2f} MB")
    print(f"  Size after: {stats.bytes_after / MB:.2f} MB")
    print(f"  Saved: {stats.bytes_saved / MB:.2f} MB ({stats.percent_saved:.1f}%)")
    if dry_run:
        print("\nRun without --dry-run to apply changes.")


async def _async_main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = _parse_args(argv)
    listings_dir = (args.data_dir or settings.data_dir) / "listings"

    print(f"Data Compaction Migration{' (DRY RUN)' if args.dry_run else ''}")
    print(f"Scanning {listings_dir}...\n")
    stats = await migrate_listings_dir(listings_dir, dry_run=bool(args.dry_run))
    _print_report(stats, dry_run=bool(args.dry_run))
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_async_main()))


if __name__ == "__main__":
    main()
