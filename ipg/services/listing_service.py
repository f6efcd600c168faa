"""Read-side queries used by the game."""

from __future__ import annotations

import asyncio
import random

from ipg.db import LocalStore
from ipg.models import Listing, Source, Zone


class ListingService:
    """Query façade over the listing store.

    Unknown zones behave like zones without data: empty lists, zero counts
    and ``None`` lookups.
    """

    def __init__(self, store: LocalStore) -> None:
        self._store = store

    async def get_listings(
        self, zone_id: str, playable_only: bool = False
    ) -> list[Listing]:
        return await self._store.get_listings(zone_id, playable_only=playable_only)

    async def get_listing_count(
        self,
        zone_id: str,
        playable_only: bool = False,
        source: Source | None = None,
    ) -> int:
        return await self._store.get_listing_count(
            zone_id, playable_only=playable_only, source=source
        )

    async def get_random_listing(self, zone_id: str) -> Listing | None:
        listings = await self.get_listings(zone_id, playable_only=True)
        if not listings:
            return None
        return random.choice(listings)

    async def get_random_listings(self, zone_id: str, count: int) -> list[Listing]:
        """Up to ``count`` distinct playable listings in random order."""

        listings = await self.get_listings(zone_id, playable_only=True)
        random.shuffle(listings)
        return listings[: max(0, count)]

    async def get_listing(
        self, zone_id: str, source_id: str, source: Source = "immobiliare"
    ) -> Listing | None:
        for listing in await self.get_listings(zone_id):
            if listing.source == source and listing.source_id == source_id:
                return listing
        return None

    async def get_zone_summaries(
        self, playable_only: bool = True
    ) -> list[tuple[Zone, int]]:
        """Every catalog zone with its listing count."""

        zones = await self._store.get_zones()
        counts = await asyncio.gather(
            *(
                self.get_listing_count(zone.id, playable_only=playable_only)
                for zone in zones
            )
        )
        return list(zip(zones, counts, strict=True))
