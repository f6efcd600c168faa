"""File store, zone catalog and snapshot merge utilities."""

from ipg.db.images import build_image_url, compact_image, extract_image_id, resolve_image
from ipg.db.local import LocalStore, ZoneNotFoundError
from ipg.db.merge import MergeResult, merge_listings
from ipg.db.zones import ZoneRegistry, load_zone_registry, reset_zone_registry

__all__ = [
    "LocalStore",
    "MergeResult",
    "ZoneNotFoundError",
    "ZoneRegistry",
    "build_image_url",
    "compact_image",
    "extract_image_id",
    "load_zone_registry",
    "merge_listings",
    "reset_zone_registry",
    "resolve_image",
]
