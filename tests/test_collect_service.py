from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest

from ipg.crawlers import CrawlerError, ListingCrawler, MobileApiCrawler, RawBatch
from ipg.crawlers.normalize import normalize_mobile_property
from ipg.db import LocalStore, ZoneNotFoundError
from ipg.models import Listing, Zone
from ipg.services import CollectService, ZoneCollectResult, format_duration

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"
pytestmark = pytest.mark.anyio


def _axa_crawler() -> MobileApiCrawler:
    payload = json.loads(
        (FIXTURE_DIR / "mobile_properties_axa.json").read_text(encoding="utf-8")
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    return MobileApiCrawler(
        base_url="https://mobile.test/b2c/v1",
        page_delay_ms=0,
        transport=httpx.MockTransport(handler),
    )


class FailingCrawler(ListingCrawler):
    name = "failing"

    async def fetch_raw(self, zone: Zone, *, limit: int | None = None) -> RawBatch:
        raise CrawlerError(f"boom for {zone.slug}")

    def normalize(
        self, raw: dict[str, Any], zone: Zone, scraped_at: str
    ) -> Listing | None:
        return None


class StaticCrawler(ListingCrawler):
    """Returns fixed raw records without touching the network."""

    name = "static"

    def __init__(self, records: list[dict[str, Any]], total: int | None = None) -> None:
        self._records = records
        self._total = total

    async def fetch_raw(self, zone: Zone, *, limit: int | None = None) -> RawBatch:
        return RawBatch(records=self._records, requested_limit=limit or 100, hit_limit=False)

    def normalize(
        self, raw: dict[str, Any], zone: Zone, scraped_at: str
    ) -> Listing | None:
        return normalize_mobile_property(raw, zone, scraped_at)

    async def fetch_total_count(self, zone: Zone) -> int | None:
        return self._total if zone.immobiliare_z2 else None


async def test_collect_axa_scenario(
    store: LocalStore, data_dir: Path, axa_zone: Zone
) -> None:
    service = CollectService(store, _axa_crawler())

    result = await service.collect_zone(axa_zone)

    assert result.status == "ok"
    assert (result.found, result.failed) == (1, 1)
    assert (result.added, result.updated, result.unchanged) == (1, 0, 0)
    path = data_dir / "listings/lazio/roma/litorale/axa/immobiliare.json"
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["listingCount"] == 1
    assert payload["listings"][0]["sourceId"] == "123"
    assert payload["listings"][0]["price"] == 350000
    assert payload["metadata"]["returnedCount"] == 2


async def test_collect_twice_reports_unchanged(store: LocalStore, axa_zone: Zone) -> None:
    service = CollectService(store, _axa_crawler())

    await service.collect_zone(axa_zone)
    second = await service.collect_zone(axa_zone)

    assert (second.added, second.updated, second.unchanged) == (0, 0, 1)


async def test_price_update_scenario(store: LocalStore, axa_zone: Zone) -> None:
    record: dict[str, Any] = {"id": "123", "price": {"raw": 300000}}
    await CollectService(store, StaticCrawler([record])).collect_zone(axa_zone)

    updated_record: dict[str, Any] = {"id": "123", "price": {"raw": 320000}}
    result = await CollectService(store, StaticCrawler([updated_record])).collect_zone(
        axa_zone
    )

    assert result.updated == 1
    listings = await store.get_listings(axa_zone.id)
    assert listings[0].price == 320000
    assert listings[0].previous_price == 300000


async def test_source_failure_is_reported_not_raised(
    store: LocalStore, data_dir: Path, axa_zone: Zone
) -> None:
    result = await CollectService(store, FailingCrawler()).collect_zone(axa_zone)

    assert result.status == "error"
    assert result.error == "boom for axa"
    assert not (data_dir / "listings").exists()


async def test_empty_scrape_writes_nothing(
    store: LocalStore, data_dir: Path, axa_zone: Zone
) -> None:
    result = await CollectService(store, StaticCrawler([{"price": 1}])).collect_zone(
        axa_zone
    )

    assert result.status == "empty"
    assert result.failed == 1
    assert not (data_dir / "listings").exists()


async def test_unknown_zone_is_fatal(store: LocalStore) -> None:
    ghost = Zone(
        id="roma-ghost",
        name="Ghost",
        slug="ghost",
        region="lazio",
        city="roma",
        area="nowhere",
    )
    record: dict[str, Any] = {"id": "1", "price": {"raw": 100000}}

    with pytest.raises(ZoneNotFoundError):
        await CollectService(store, StaticCrawler([record])).collect_zone(ghost)


async def test_dry_run_does_not_scrape(store: LocalStore, axa_zone: Zone) -> None:
    result = await CollectService(store, FailingCrawler()).collect_zone(
        axa_zone, dry_run=True
    )

    assert result.status == "dry_run"


async def test_collect_zones_continues_after_failures(
    store: LocalStore, axa_zone: Zone, trastevere_zone: Zone
) -> None:
    seen: list[ZoneCollectResult] = []
    service = CollectService(store, FailingCrawler())

    summary = await service.collect_zones(
        [axa_zone, trastevere_zone], on_result=seen.append
    )

    assert summary.errors == 2
    assert summary.succeeded == 0
    assert [result.zone.slug for result in seen] == ["axa", "trastevere"]


async def test_estimate(store: LocalStore, axa_zone: Zone, trastevere_zone: Zone) -> None:
    service = CollectService(store, StaticCrawler([], total=130))

    estimate = await service.estimate(
        [axa_zone, trastevere_zone],
        page_delay_ms=1000,
        sleep_between_zones_seconds=2,
    )

    assert estimate.total_listings == 130
    assert estimate.unknown_zones == 1
    assert estimate.total_pages == 7
    assert estimate.api_seconds == 7
    assert estimate.sleep_seconds == 2
    assert estimate.total_seconds == 9


async def test_format_duration() -> None:
    assert format_duration(45) == "45s"
    assert format_duration(200) == "3m 20s"
    assert format_duration(7500) == "2h 5m"
