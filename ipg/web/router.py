"""JSON API consumed by the game pages."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from ipg.config import get_settings
from ipg.db import LocalStore, resolve_image
from ipg.db.images import IMAGE_SIZE_DESKTOP, ImageSize
from ipg.models import Listing, Source, Zone
from ipg.services import ListingService
from ipg.taskiq_app.tasks import enqueue_collect_listings

router = APIRouter(prefix="/api", tags=["api"])


def get_store() -> LocalStore:
    return LocalStore(get_settings().data_dir)


def get_listing_service(store: LocalStore = Depends(get_store)) -> ListingService:
    return ListingService(store)


def _zone_payload(zone: Zone, listing_count: int | None = None) -> dict[str, object]:
    payload = zone.to_dict()
    if listing_count is not None:
        payload["listingCount"] = listing_count
    return payload


def _listing_payload(
    listing: Listing, image_size: ImageSize = IMAGE_SIZE_DESKTOP
) -> dict[str, object]:
    payload = listing.to_dict()
    payload["images"] = [resolve_image(image, image_size) for image in listing.images]
    return payload


async def _require_zone(store: LocalStore, slug: str) -> Zone:
    zone = await store.get_zone_by_slug(slug)
    if zone is None:
        raise HTTPException(status_code=404, detail=f"Unknown zone: {slug}")
    return zone


@router.get("/zones")
async def list_zones(
    service: ListingService = Depends(get_listing_service),
) -> dict[str, object]:
    """Catalog zones with their playable listing counts."""

    summaries = await service.get_zone_summaries()
    return {"zones": [_zone_payload(zone, count) for zone, count in summaries]}


@router.get("/zones/{slug}")
async def zone_detail(
    slug: str,
    store: LocalStore = Depends(get_store),
    service: ListingService = Depends(get_listing_service),
) -> dict[str, object]:
    zone = await _require_zone(store, slug)
    return {
        "zone": _zone_payload(zone),
        "listingCount": await service.get_listing_count(zone.id),
        "playableCount": await service.get_listing_count(zone.id, playable_only=True),
    }


@router.get("/zones/{slug}/random")
async def random_listings(
    slug: str,
    count: int = Query(1, ge=1, le=50),
    store: LocalStore = Depends(get_store),
    service: ListingService = Depends(get_listing_service),
) -> dict[str, object]:
    """Playable listings for a game round, without repeats."""

    zone = await _require_zone(store, slug)
    if count == 1:
        listing = await service.get_random_listing(zone.id)
        return {"listing": _listing_payload(listing) if listing is not None else None}

    listings = await service.get_random_listings(zone.id, count)
    return {"listings": [_listing_payload(listing) for listing in listings]}


@router.get("/zones/{slug}/listings/{source_id}")
async def listing_detail(
    slug: str,
    source_id: str,
    source: Source = "immobiliare",
    store: LocalStore = Depends(get_store),
    service: ListingService = Depends(get_listing_service),
) -> dict[str, object]:
    zone = await _require_zone(store, slug)
    listing = await service.get_listing(zone.id, source_id, source)
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Unknown listing: {source_id}")
    return {"listing": _listing_payload(listing)}


@router.post("/collect")
async def trigger_collect(
    zones: str = "",
    force: bool = False,
) -> dict[str, object]:
    """Enqueue a collection run for comma-separated zone slugs (all if empty)."""

    fingerprint = "manual"
    if force:
        fingerprint = f"force-{datetime.now(UTC).isoformat()}"

    zone_slugs = [slug.strip().lower() for slug in zones.split(",") if slug.strip()]
    return await enqueue_collect_listings(
        fingerprint=fingerprint, zone_slugs=zone_slugs or None
    )
