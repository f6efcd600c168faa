"""Domain models for zones, listings and snapshots."""

from ipg.models.listing import (
    SOURCES,
    CompactListing,
    CompactSnapshot,
    Listing,
    ListingFeatures,
    ListingLocation,
    Snapshot,
    SnapshotMetadata,
    Source,
    listing_key,
)
from ipg.models.zone import Coordinates, Zone

__all__ = [
    "SOURCES",
    "CompactListing",
    "CompactSnapshot",
    "Coordinates",
    "Listing",
    "ListingFeatures",
    "ListingLocation",
    "Snapshot",
    "SnapshotMetadata",
    "Source",
    "Zone",
    "listing_key",
]
