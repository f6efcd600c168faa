"""Taskiq tasks for scheduled listing collection."""

import asyncio
import logging
from typing import Any, cast

from ipg.config import get_settings
from ipg.crawlers import get_crawler
from ipg.db import LocalStore, load_zone_registry
from ipg.models import Zone
from ipg.services import CollectService, CollectSummary
from ipg.taskiq_app.broker import broker
from ipg.taskiq_app.dedup import (
    acquire_dedup_lock,
    build_dedup_key,
    build_zone_lock_key,
    release_dedup_lock,
)

logger = logging.getLogger(__name__)
settings = get_settings()


def _build_store() -> LocalStore:
    return LocalStore(get_settings().data_dir)


async def _select_zones(store: LocalStore, zone_slugs: list[str]) -> list[Zone]:
    registry = await load_zone_registry(store.zones_file)
    if zone_slugs:
        return registry.get_by_slugs(zone_slugs)
    return list(registry.zones)


@broker.task(
    task_name="collect_listings",
    schedule=[{"cron": settings.collect_cron}],
    retry_on_error=True,
    max_retries=3,
)
async def collect_listings(
    zone_slugs: list[str] | None = None,
    limit: int | None = None,
    scraper: str | None = None,
) -> dict[str, object]:
    """Collect the configured zones, one (zone, source) lock at a time."""

    current = get_settings()
    store = _build_store()
    zones = await _select_zones(store, zone_slugs or list(current.collect_zone_slugs))
    crawler = get_crawler(scraper)
    service = CollectService(store, crawler)

    summary = CollectSummary()
    skipped: list[str] = []
    for index, zone in enumerate(zones):
        lock_key = build_zone_lock_key(
            task_name="collect_listings", zone_id=zone.id, source=crawler.source
        )
        if not await acquire_dedup_lock(lock_key, current.collect_dedup_ttl_seconds):
            logger.info("collect_listings skipped zone=%s due to dedup lock", zone.slug)
            skipped.append(zone.slug)
            continue

        try:
            summary.results.append(
                await service.collect_zone(zone, limit=limit or current.collect_limit)
            )
        finally:
            await release_dedup_lock(lock_key)

        pause = current.collect_sleep_between_zones_seconds
        if pause > 0 and index < len(zones) - 1:
            await asyncio.sleep(pause)

    return {
        "scraper": crawler.name,
        "zones": len(zones),
        "ok": summary.succeeded,
        "empty": summary.empty,
        "errors": summary.errors,
        "skipped": skipped,
        "added": summary.added,
        "updated": summary.updated,
        "unchanged": summary.unchanged,
        "status": "ok",
    }


async def enqueue_collect_listings(
    *,
    fingerprint: str = "manual",
    zone_slugs: list[str] | None = None,
) -> dict[str, object]:
    """Enqueue a collection run once per dedup window."""

    dedup_key = build_dedup_key(
        scope="enqueue", task_name="collect_listings", fingerprint=fingerprint
    )
    lock_acquired = await acquire_dedup_lock(
        dedup_key, get_settings().collect_dedup_ttl_seconds
    )
    if not lock_acquired:
        return {"enqueued": False, "reason": "duplicate_enqueue"}

    task_kicker = cast(Any, collect_listings)
    task = await task_kicker.kiq(zone_slugs=zone_slugs)
    return {"enqueued": True, "task_id": task.task_id}
