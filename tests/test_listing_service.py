from __future__ import annotations

import pytest

from ipg.db import LocalStore
from ipg.models import Listing, ListingFeatures, ListingLocation, Snapshot, Source
from ipg.services import ListingService

pytestmark = pytest.mark.anyio

SCRAPED_AT = "2026-01-15T08:00:00.000Z"


def _listing(source_id: str, price: int, source: Source = "immobiliare") -> Listing:
    return Listing(
        source=source,
        source_id=source_id,
        title="Appartamento in Axa",
        price=price,
        price_formatted=f"€ {price:,}".replace(",", "."),
        images=["111"],
        location=ListingLocation(
            region="lazio", province="Roma", city="roma", zone="Axa", zone_id="roma-axa"
        ),
        features=ListingFeatures(rooms=3),
        url=f"https://www.immobiliare.it/annunci/{source_id}/",
        scraped_at=SCRAPED_AT,
    )


async def _seed(store: LocalStore, listings: list[Listing], source: Source) -> None:
    await store.save_snapshot(
        Snapshot(
            zone_id="roma-axa",
            scraped_at=SCRAPED_AT,
            source=source,
            listing_count=len(listings),
            listings=listings,
        )
    )


@pytest.fixture
async def service(store: LocalStore) -> ListingService:
    await _seed(
        store,
        [_listing("1", 100000), _listing("2", 0), _listing("3", 300000)],
        "immobiliare",
    )
    await _seed(store, [_listing("9", 250000, "idealista")], "idealista")
    return ListingService(store)


async def test_get_listings_unions_sources(service: ListingService) -> None:
    listings = await service.get_listings("roma-axa")

    assert sorted(listing.id for listing in listings) == [
        "idealista-9",
        "immobiliare-1",
        "immobiliare-2",
        "immobiliare-3",
    ]
    assert await service.get_listing_count("roma-axa") == 4
    assert await service.get_listing_count("roma-axa", playable_only=True) == 3
    assert await service.get_listing_count("roma-axa", source="idealista") == 1


async def test_get_random_listing_is_playable(service: ListingService) -> None:
    for _ in range(20):
        listing = await service.get_random_listing("roma-axa")
        assert listing is not None
        assert listing.price != 0


async def test_get_random_listings_has_no_repeats(service: ListingService) -> None:
    listings = await service.get_random_listings("roma-axa", 10)

    assert len(listings) == 3
    assert len({listing.id for listing in listings}) == 3
    assert all(listing.price != 0 for listing in listings)
    assert len(await service.get_random_listings("roma-axa", 2)) == 2


async def test_unknown_zone_returns_empty_results(store: LocalStore) -> None:
    service = ListingService(store)

    assert await service.get_listings("nowhere") == []
    assert await service.get_listing_count("nowhere") == 0
    assert await service.get_random_listing("nowhere") is None
    assert await service.get_random_listings("nowhere", 5) == []


async def test_zone_without_playable_listings(store: LocalStore) -> None:
    await _seed(store, [_listing("2", 0)], "immobiliare")
    service = ListingService(store)

    assert await service.get_random_listing("roma-axa") is None


async def test_get_listing_by_source_id(service: ListingService) -> None:
    listing = await service.get_listing("roma-axa", "3")
    other_source = await service.get_listing("roma-axa", "9", source="idealista")

    assert listing is not None
    assert listing.price == 300000
    assert other_source is not None
    assert await service.get_listing("roma-axa", "9") is None


async def test_get_zone_summaries(service: ListingService) -> None:
    summaries = await service.get_zone_summaries()

    counts = {zone.slug: count for zone, count in summaries}
    assert counts == {"axa": 3, "infernetto": 0, "trastevere": 0}
