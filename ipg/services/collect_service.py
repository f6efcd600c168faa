"""Collection pipeline: scrape, normalize, merge and persist zone listings."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from ipg.crawlers import ListingCrawler
from ipg.crawlers.mobile_api import PAGE_SIZE
from ipg.db import LocalStore, ZoneNotFoundError
from ipg.models import Snapshot, SnapshotMetadata, Zone

logger = logging.getLogger(__name__)

ZoneStatus = Literal["ok", "empty", "error", "dry_run"]

DEFAULT_PAGE_DELAY_MS = 50


def format_duration(seconds: int) -> str:
    """Compact human duration: ``45s``, ``3m 20s``, ``2h 5m``."""

    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m"


@dataclass(slots=True)
class ZoneCollectResult:
    zone: Zone
    status: ZoneStatus
    found: int = 0
    failed: int = 0
    added: int = 0
    updated: int = 0
    unchanged: int = 0
    hit_limit: bool = False
    error: str | None = None


@dataclass(slots=True)
class CollectSummary:
    results: list[ZoneCollectResult] = field(default_factory=list)

    def _count(self, status: ZoneStatus) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def succeeded(self) -> int:
        return self._count("ok")

    @property
    def errors(self) -> int:
        return self._count("error")

    @property
    def empty(self) -> int:
        return self._count("empty")

    @property
    def added(self) -> int:
        return sum(result.added for result in self.results)

    @property
    def updated(self) -> int:
        return sum(result.updated for result in self.results)

    @property
    def unchanged(self) -> int:
        return sum(result.unchanged for result in self.results)


@dataclass(slots=True)
class ZoneCount:
    zone: Zone
    count: int | None


@dataclass(slots=True)
class CollectEstimate:
    """Rough cost of a run, derived from the per-zone listing counts."""

    zone_counts: list[ZoneCount]
    page_delay_ms: int
    sleep_between_zones_seconds: float

    @property
    def total_listings(self) -> int:
        return sum(item.count for item in self.zone_counts if item.count is not None)

    @property
    def unknown_zones(self) -> int:
        return sum(1 for item in self.zone_counts if item.count is None)

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_listings / PAGE_SIZE)

    @property
    def api_seconds(self) -> int:
        return math.ceil(self.total_pages * self.page_delay_ms / 1000)

    @property
    def sleep_seconds(self) -> int:
        pauses = max(0, len(self.zone_counts) - 1)
        return math.ceil(pauses * self.sleep_between_zones_seconds)

    @property
    def total_seconds(self) -> int:
        return self.api_seconds + self.sleep_seconds


class CollectService:
    """Runs one source adapter over zones and stores the merged snapshots."""

    def __init__(
        self,
        store: LocalStore,
        crawler: ListingCrawler,
        *,
        counter: ListingCrawler | None = None,
    ) -> None:
        self._store = store
        self._crawler = crawler
        self._counter = counter or crawler

    async def collect_zone(
        self, zone: Zone, *, limit: int | None = None, dry_run: bool = False
    ) -> ZoneCollectResult:
        """Scrape one zone and merge the result into the store.

        Source failures are logged and reported as ``error`` so a batch run
        can continue; a zone missing from the catalog is not recoverable.
        """

        if dry_run:
            logger.info(
                "[DRY RUN] Would scrape %s with %s scraper",
                zone.name,
                self._crawler.name,
            )
            return ZoneCollectResult(zone=zone, status="dry_run")

        try:
            result = await self._crawler.scrape(zone, limit=limit)
            if not result.listings:
                logger.warning("No listings found for zone=%s", zone.slug)
                return ZoneCollectResult(
                    zone=zone,
                    status="empty",
                    failed=result.failed,
                    hit_limit=result.metadata.hit_limit,
                )

            snapshot = Snapshot(
                zone_id=zone.id,
                scraped_at=result.metadata.scraped_at,
                source=self._crawler.source,
                listing_count=len(result.listings),
                listings=result.listings,
                metadata=SnapshotMetadata(
                    requested_limit=result.metadata.requested_limit,
                    returned_count=result.metadata.returned_count,
                    hit_limit=result.metadata.hit_limit,
                ),
            )
            merge = await self._store.save_snapshot_deduped(snapshot)
        except ZoneNotFoundError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Collection failed for zone=%s", zone.slug)
            return ZoneCollectResult(zone=zone, status="error", error=str(exc))

        return ZoneCollectResult(
            zone=zone,
            status="ok",
            found=len(result.listings),
            failed=result.failed,
            added=merge.added,
            updated=merge.updated,
            unchanged=merge.unchanged,
            hit_limit=result.metadata.hit_limit,
        )

    async def collect_zones(
        self,
        zones: Sequence[Zone],
        *,
        limit: int | None = None,
        dry_run: bool = False,
        sleep_between_zones_seconds: float = 0.0,
        on_result: Callable[[ZoneCollectResult], None] | None = None,
    ) -> CollectSummary:
        """Collect zones sequentially, pausing between them."""

        summary = CollectSummary()
        for index, zone in enumerate(zones):
            result = await self.collect_zone(zone, limit=limit, dry_run=dry_run)
            summary.results.append(result)
            if on_result is not None:
                on_result(result)
            if sleep_between_zones_seconds > 0 and index < len(zones) - 1:
                logger.info("Sleeping %ss before next zone", sleep_between_zones_seconds)
                await asyncio.sleep(sleep_between_zones_seconds)
        return summary

    async def estimate(
        self,
        zones: Sequence[Zone],
        *,
        page_delay_ms: int | None = None,
        sleep_between_zones_seconds: float = 0.0,
    ) -> CollectEstimate:
        zone_counts = [
            ZoneCount(zone=zone, count=await self._counter.fetch_total_count(zone))
            for zone in zones
        ]
        return CollectEstimate(
            zone_counts=zone_counts,
            page_delay_ms=(
                page_delay_ms if page_delay_ms is not None else DEFAULT_PAGE_DELAY_MS
            ),
            sleep_between_zones_seconds=sleep_between_zones_seconds,
        )
