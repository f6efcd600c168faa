"""Service layer."""

from ipg.services.collect_service import (
    CollectEstimate,
    CollectService,
    CollectSummary,
    ZoneCollectResult,
    format_duration,
)
from ipg.services.listing_service import ListingService

__all__ = [
    "CollectEstimate",
    "CollectService",
    "CollectSummary",
    "ListingService",
    "ZoneCollectResult",
    "format_duration",
]
