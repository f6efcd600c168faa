"""Zone catalog loaded from ``data/zones.json``.

The catalog is externally maintained reference data: it is read once per
process and never written back.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

import anyio

from ipg.models import Zone

logger = logging.getLogger(__name__)

_REGISTRY_CACHE: dict[Path, ZoneRegistry] = {}


class ZoneRegistry:
    """Immutable, indexed view over the zone catalog."""

    def __init__(
        self,
        zones: Iterable[Zone],
        *,
        version: int | None = None,
        updated_at: str | None = None,
    ) -> None:
        self._zones: tuple[Zone, ...] = tuple(zones)
        self._by_id = {zone.id: zone for zone in self._zones}
        self._by_slug = {zone.slug: zone for zone in self._zones}
        self.version = version
        self.updated_at = updated_at

    @classmethod
    def from_payload(cls, payload: object) -> ZoneRegistry:
        """Build a registry from ``{version, updatedAt, zones}`` or a bare list."""

        if isinstance(payload, list):
            raw_zones: object = payload
            version = None
            updated_at = None
        elif isinstance(payload, dict):
            raw_zones = payload.get("zones", [])
            raw_version = payload.get("version")
            version = raw_version if isinstance(raw_version, int) else None
            raw_updated_at = payload.get("updatedAt")
            updated_at = str(raw_updated_at) if raw_updated_at is not None else None
        else:
            raise ValueError("zones catalog must be an object or a list")

        if not isinstance(raw_zones, list):
            raise ValueError("zones catalog 'zones' must be a list")

        zones = [Zone.from_dict(item) for item in raw_zones if isinstance(item, dict)]
        return cls(zones, version=version, updated_at=updated_at)

    def __len__(self) -> int:
        return len(self._zones)

    @property
    def zones(self) -> tuple[Zone, ...]:
        return self._zones

    def get(self, zone_id: str) -> Zone | None:
        return self._by_id.get(zone_id)

    def get_by_slug(self, slug: str) -> Zone | None:
        return self._by_slug.get(slug)

    def get_by_slugs(self, slugs: Sequence[str]) -> list[Zone]:
        """Zones whose slug is listed, in catalog order."""

        wanted = set(slugs)
        return [zone for zone in self._zones if zone.slug in wanted]

    def get_by_area(self, area: str) -> list[Zone]:
        return [zone for zone in self._zones if zone.area == area]

    def filter(
        self,
        *,
        region: str | None = None,
        city: str | None = None,
        area: str | None = None,
    ) -> list[Zone]:
        return [
            zone
            for zone in self._zones
            if (not region or zone.region == region)
            and (not city or zone.city == city)
            and (not area or zone.area == area)
        ]

    def areas(self) -> list[str]:
        """Distinct areas in catalog order."""

        return list(dict.fromkeys(zone.area for zone in self._zones))

    def save_zones(self, zones: Iterable[Zone]) -> None:
        logger.warning(
            "save_zones is not supported, edit data/zones.json directly "
            "(%s zones ignored)",
            len(list(zones)),
        )


async def load_zone_registry(zones_file: Path) -> ZoneRegistry:
    """Load the catalog once per process and return the cached registry.

    A missing catalog yields an empty registry that is not cached, so a
    catalog created later is still picked up.
    """

    key = Path(zones_file).resolve()
    cached = _REGISTRY_CACHE.get(key)
    if cached is not None:
        return cached

    path = anyio.Path(key)
    if not await path.exists():
        logger.warning("Zone catalog not found at %s", key)
        return ZoneRegistry([])

    content = await path.read_text(encoding="utf-8")
    registry = ZoneRegistry.from_payload(json.loads(content))
    _REGISTRY_CACHE[key] = registry
    logger.info("Loaded %s zones from %s", len(registry), key)
    return registry


def reset_zone_registry() -> None:
    """Drop cached catalogs, for test isolation."""

    _REGISTRY_CACHE.clear()
