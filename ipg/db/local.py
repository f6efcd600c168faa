"""File-backed listing store.

Snapshots live at ``{data_dir}/listings/{region}/{city}/{area}/{slug}/{source}.json``,
one file per (zone, source), written in the compact format and fully replaced
on every save.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import replace
from pathlib import Path

import anyio

from ipg.config import get_settings
from ipg.db.compact import (
    compact_snapshot,
    is_compact_listing,
    snapshot_from_payload,
    stored_entries,
)
from ipg.db.merge import MergeResult, merge_listings
from ipg.db.zones import ZoneRegistry, load_zone_registry
from ipg.models import SOURCES, Listing, Snapshot, Source, Zone

logger = logging.getLogger(__name__)


class ZoneNotFoundError(LookupError):
    """Raised when writing a snapshot for a zone missing from the catalog."""

    def __init__(self, zone_id: str) -> None:
        super().__init__(f"Zone not found: {zone_id}")
        self.zone_id = zone_id


def _is_price_disclosed(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return int(value) != 0


class LocalStore:
    """Snapshot persistence plus zone lookups over a data directory."""

    def __init__(self, data_dir: Path | str | None = None) -> None:
        self.data_dir = (
            Path(data_dir) if data_dir is not None else get_settings().data_dir
        )

    @property
    def listings_dir(self) -> Path:
        return self.data_dir / "listings"

    @property
    def zones_file(self) -> Path:
        return self.data_dir / "zones.json"

    async def _registry(self) -> ZoneRegistry:
        return await load_zone_registry(self.zones_file)

    def get_listing_path(self, zone: Zone, source: Source) -> Path:
        return self.listings_dir.joinpath(*zone.path_parts, f"{source}.json")

    async def _read_json(self, path: Path) -> object | None:
        file = anyio.Path(path)
        if not await file.exists():
            return None
        try:
            return json.loads(await file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Skipping unreadable listing file %s: %s", path, e)
            return None

    async def save_snapshot(self, snapshot: Snapshot) -> Path:
        """Compact and write a snapshot, replacing the previous file."""

        zone = await self.get_zone(snapshot.zone_id)
        if zone is None:
            raise ZoneNotFoundError(snapshot.zone_id)

        path = self.get_listing_path(zone, snapshot.source)
        target = anyio.Path(path)
        await target.parent.mkdir(parents=True, exist_ok=True)

        content = json.dumps(
            compact_snapshot(snapshot).to_dict(), indent=2, ensure_ascii=False
        )
        temp = target.with_name(f"{target.name}.tmp")
        try:
            await temp.write_text(content, encoding="utf-8")
            await temp.replace(target)
        except OSError:
            await temp.unlink(missing_ok=True)
            raise

        logger.info(
            "Saved %s listings for zone=%s source=%s to %s",
            len(snapshot.listings),
            zone.slug,
            snapshot.source,
            path,
        )
        return path

    async def get_snapshots(self, zone_id: str) -> list[Snapshot]:
        """Stored snapshots of a zone, newest first."""

        zone = await self.get_zone(zone_id)
        if zone is None:
            return []

        snapshots: list[Snapshot] = []
        for source in SOURCES:
            path = self.get_listing_path(zone, source)
            payload = await self._read_json(path)
            if payload is None:
                continue
            if not isinstance(payload, dict):
                logger.warning("Skipping listing file %s: not a JSON object", path)
                continue
            try:
                snapshots.append(snapshot_from_payload(payload, zone))
            except ValueError as e:
                logger.warning("Skipping invalid listing file %s: %s", path, e)

        snapshots.sort(key=lambda snapshot: snapshot.scraped_at, reverse=True)
        return snapshots

    async def get_latest_snapshot(
        self, zone_id: str, source: Source | None = None
    ) -> Snapshot | None:
        for snapshot in await self.get_snapshots(zone_id):
            if source is None or snapshot.source == source:
                return snapshot
        return None

    async def get_existing_listings(
        self, zone_id: str, source: Source | None = None
    ) -> dict[str, Listing]:
        """Stored listings keyed by composite id, optionally for one source."""

        existing: dict[str, Listing] = {}
        for snapshot in await self.get_snapshots(zone_id):
            if source is not None and snapshot.source != source:
                continue
            for listing in snapshot.listings:
                existing.setdefault(listing.id, listing)
        return existing

    async def save_snapshot_deduped(self, snapshot: Snapshot) -> MergeResult:
        """Merge a snapshot with the stored one for its source, then save it."""

        existing = await self.get_existing_listings(snapshot.zone_id, snapshot.source)
        result = merge_listings(snapshot.listings, existing)
        merged = replace(
            snapshot, listings=result.listings, listing_count=len(result.listings)
        )
        await self.save_snapshot(merged)

        logger.info(
            "Merged zone=%s source=%s: %s added, %s updated, %s unchanged",
            snapshot.zone_id,
            snapshot.source,
            result.added,
            result.updated,
            result.unchanged,
        )
        return result

    async def get_listings(
        self, zone_id: str, playable_only: bool = False
    ) -> list[Listing]:
        """Union of the latest snapshot of every source, without duplicates."""

        seen: set[tuple[str, str]] = set()
        listings: list[Listing] = []
        for snapshot in await self.get_snapshots(zone_id):
            for listing in snapshot.listings:
                key = (listing.source, listing.source_id)
                if key in seen:
                    continue
                seen.add(key)
                listings.append(listing)

        if playable_only:
            return [listing for listing in listings if listing.is_playable]
        return listings

    async def get_listing_count(
        self,
        zone_id: str,
        playable_only: bool = False,
        source: Source | None = None,
    ) -> int:
        """Count listings from the raw files without hydrating them."""

        zone = await self.get_zone(zone_id)
        if zone is None:
            return 0

        seen: set[tuple[str, str]] = set()
        playable = 0
        for file_source in SOURCES:
            if source is not None and file_source != source:
                continue
            payload = await self._read_json(self.get_listing_path(zone, file_source))
            if not isinstance(payload, dict):
                continue
            raw_listings = payload.get("listings")
            if not isinstance(raw_listings, list):
                continue

            snapshot_source = payload.get("source")
            if snapshot_source not in SOURCES:
                snapshot_source = "immobiliare"
            entries = stored_entries(raw_listings)
            compact = not entries or is_compact_listing(entries[0])
            for entry in entries:
                entry_source = snapshot_source
                if not compact and entry.get("source") in SOURCES:
                    entry_source = entry["source"]
                key = (str(entry_source), entry["sourceId"])
                if key in seen:
                    continue
                seen.add(key)
                if _is_price_disclosed(entry.get("price")):
                    playable += 1

        return playable if playable_only else len(seen)

    async def get_zones(
        self,
        *,
        region: str | None = None,
        city: str | None = None,
        area: str | None = None,
    ) -> list[Zone]:
        registry = await self._registry()
        return registry.filter(region=region, city=city, area=area)

    async def get_zone(self, zone_id: str) -> Zone | None:
        registry = await self._registry()
        return registry.get(zone_id)

    async def get_zone_by_slug(self, slug: str) -> Zone | None:
        registry = await self._registry()
        return registry.get_by_slug(slug)

    async def save_zones(self, zones: Iterable[Zone]) -> None:
        """Zones are reference data edited by hand; this only logs a warning."""

        registry = await self._registry()
        registry.save_zones(zones)
