"""One-off rewrite of stored listing files into the compact format."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import anyio

from ipg.db.images import compact_image
from ipg.models import CompactListing, SnapshotMetadata

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MigratedFile:
    relative_path: str
    listing_count: int
    bytes_before: int
    bytes_after: int


@dataclass(slots=True)
class MigrationStats:
    files_processed: int = 0
    listings_processed: int = 0
    bytes_before: int = 0
    bytes_after: int = 0
    files: list[MigratedFile] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def bytes_saved(self) -> int:
        return self.bytes_before - self.bytes_after

    @property
    def percent_saved(self) -> float:
        if self.bytes_before == 0:
            return 0.0
        return self.bytes_saved / self.bytes_before * 100


def compact_entry(entry: dict[str, Any]) -> dict[str, Any]:
    """Compact one stored listing, whichever format it was written in.

    Features are copied as stored; absent keys read back as None.
    """

    listing = CompactListing.from_dict(entry)
    listing.images = [compact_image(image) for image in listing.images]
    compacted = listing.to_dict()
    features = entry.get("features")
    compacted["features"] = dict(features) if isinstance(features, dict) else {}
    return compacted


def compact_payload(payload: dict[str, Any]) -> dict[str, Any]:
    entries = [item for item in payload["listings"] if isinstance(item, dict)]
    compacted: dict[str, Any] = {
        "zoneId": payload.get("zoneId"),
        "scrapedAt": payload.get("scrapedAt"),
        "source": payload.get("source"),
        "listingCount": len(entries),
        "listings": [compact_entry(entry) for entry in entries],
    }
    metadata = SnapshotMetadata.from_dict(payload.get("metadata"))
    if metadata is not None:
        compacted["metadata"] = metadata.to_dict()
    return compacted


async def migrate_listings_dir(
    listings_dir: Path, *, dry_run: bool = False
) -> MigrationStats:
    """Compact every JSON file below ``listings_dir``.

    Files that are unreadable, not valid JSON or without a listings array are
    skipped and left untouched. With ``dry_run`` nothing is written.
    """

    stats = MigrationStats()
    root = anyio.Path(listings_dir)
    if not await root.exists():
        logger.warning("Listings directory not found: %s", listings_dir)
        return stats

    paths = sorted([path async for path in root.rglob("*.json")])
    for path in paths:
        relative_path = str(path.relative_to(root))
        try:
            raw = await path.read_bytes()
            payload = json.loads(raw.decode("utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Skipping unreadable file %s: %s", relative_path, e)
            stats.skipped.append(relative_path)
            continue

        if not isinstance(payload, dict) or not isinstance(payload.get("listings"), list):
            logger.warning("No listings array in: %s", relative_path)
            stats.skipped.append(relative_path)
            continue

        compacted = compact_payload(payload)
        new_content = json.dumps(compacted, indent=2, ensure_ascii=False)
        bytes_before = len(raw)
        bytes_after = len(new_content.encode("utf-8"))

        # Skipped files count toward neither total.
        stats.bytes_before += bytes_before
        stats.bytes_after += bytes_after
        stats.files_processed += 1
        stats.listings_processed += compacted["listingCount"]
        stats.files.append(
            MigratedFile(
                relative_path=relative_path,
                listing_count=compacted["listingCount"],
                bytes_before=bytes_before,
                bytes_after=bytes_after,
            )
        )

        if not dry_run:
            await path.write_text(new_content, encoding="utf-8")

    return stats
