"""Conversion between full listings and their compact storage form.

Compaction drops everything derivable from the owning zone and the snapshot:
the composite id, source, detail URL, location, formatted price and the
per-listing scrape time. Hydration rebuilds those fields.
"""

from __future__ import annotations

from typing import Any

from ipg.crawlers.parsing import format_price
from ipg.db.images import compact_image
from ipg.models import (
    CompactListing,
    CompactSnapshot,
    Listing,
    ListingLocation,
    Snapshot,
    SnapshotMetadata,
    Source,
    Zone,
)
from ipg.models.listing import SOURCES


def listing_url(source: Source, source_id: str) -> str:
    if source == "idealista":
        return f"https://www.idealista.it/immobile/{source_id}/"
    return f"https://www.immobiliare.it/annunci/{source_id}/"


def zone_location(zone: Zone) -> ListingLocation:
    return ListingLocation(
        region=zone.region,
        province="Roma" if zone.city == "roma" else zone.city,
        city=zone.city,
        zone=zone.name,
        zone_id=zone.id,
    )


def compact_listing(listing: Listing) -> CompactListing:
    images = (
        [compact_image(image) for image in listing.images]
        if listing.source == "immobiliare"
        else list(listing.images)
    )
    return CompactListing(
        source_id=listing.source_id,
        title=listing.title,
        price=listing.price,
        images=images,
        features=listing.features,
        previous_price=listing.previous_price,
    )


def compact_snapshot(snapshot: Snapshot) -> CompactSnapshot:
    return CompactSnapshot(
        zone_id=snapshot.zone_id,
        scraped_at=snapshot.scraped_at,
        source=snapshot.source,
        listing_count=snapshot.listing_count,
        listings=[compact_listing(listing) for listing in snapshot.listings],
        metadata=snapshot.metadata,
    )


def hydrate_listing(
    compact: CompactListing, source: Source, zone: Zone, scraped_at: str
) -> Listing:
    return Listing(
        source=source,
        source_id=compact.source_id,
        title=compact.title,
        price=compact.price,
        price_formatted=format_price(compact.price),
        images=list(compact.images),
        location=zone_location(zone),
        features=compact.features,
        url=listing_url(source, compact.source_id),
        scraped_at=scraped_at,
        previous_price=compact.previous_price,
    )


def hydrate_snapshot(compact: CompactSnapshot, zone: Zone) -> Snapshot:
    return Snapshot(
        zone_id=compact.zone_id,
        scraped_at=compact.scraped_at,
        source=compact.source,
        listing_count=compact.listing_count,
        listings=[
            hydrate_listing(listing, compact.source, zone, compact.scraped_at)
            for listing in compact.listings
        ],
        metadata=compact.metadata,
    )


def is_compact_listing(item: object) -> bool:
    """Compact entries carry a sourceId but neither an id nor a url."""

    return (
        isinstance(item, dict)
        and "sourceId" in item
        and "id" not in item
        and "url" not in item
    )


def has_source_id(item: dict[str, Any]) -> bool:
    source_id = item.get("sourceId")
    return isinstance(source_id, str) and source_id != ""


def stored_entries(raw_listings: list[Any]) -> list[dict[str, Any]]:
    """Stored listing objects that carry a sourceId; anything else is skipped."""

    return [
        item for item in raw_listings if isinstance(item, dict) and has_source_id(item)
    ]


def snapshot_from_payload(payload: dict[str, Any], zone: Zone) -> Snapshot:
    """Read a stored snapshot in either the compact or the legacy full format."""

    raw_listings = payload.get("listings")
    if not isinstance(raw_listings, list):
        raise ValueError("snapshot has no listings array")

    entries = stored_entries(raw_listings)
    if not entries or is_compact_listing(entries[0]):
        compact = CompactSnapshot.from_dict({**payload, "listings": entries})
        return hydrate_snapshot(compact, zone)

    raw_source = payload.get("source")
    source: Source = raw_source if raw_source in SOURCES else "immobiliare"
    listings = [Listing.from_dict(item, default_source=source) for item in entries]
    listing_count = payload.get("listingCount")
    return Snapshot(
        zone_id=str(payload.get("zoneId") or zone.id),
        scraped_at=str(payload.get("scrapedAt") or ""),
        source=source,
        listing_count=(
            listing_count if isinstance(listing_count, int) else len(listings)
        ),
        listings=listings,
        metadata=SnapshotMetadata.from_dict(payload.get("metadata")),
    )
