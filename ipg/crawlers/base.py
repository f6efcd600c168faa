"""Base crawler definitions shared by every listing source adapter."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, ClassVar

from ipg.crawlers.dedup import dedupe_listings
from ipg.models import Listing, Source, Zone

logger = logging.getLogger(__name__)


class CrawlerError(RuntimeError):
    """Recoverable failure while scraping one zone."""


@dataclass(slots=True)
class RawBatch:
    """Raw source records fetched for one zone, before normalization."""

    records: list[dict[str, Any]]
    requested_limit: int
    hit_limit: bool
    errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ScrapeMetadata:
    requested_limit: int
    returned_count: int
    hit_limit: bool
    scraped_at: str


@dataclass(slots=True)
class ScrapeResult:
    """Normalized, de-duplicated output of one scrape."""

    listings: list[Listing]
    metadata: ScrapeMetadata
    failed: int = 0
    errors: list[str] = field(default_factory=list)


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""

    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ListingCrawler(ABC):
    """Source adapter contract: produce normalized listings for a zone."""

    name: ClassVar[str]
    source: ClassVar[Source] = "immobiliare"

    @abstractmethod
    async def fetch_raw(self, zone: Zone, *, limit: int | None = None) -> RawBatch:
        """Fetch raw records for a zone, raising CrawlerError on failure."""

    @abstractmethod
    def normalize(
        self, raw: dict[str, Any], zone: Zone, scraped_at: str
    ) -> Listing | None:
        """Normalize one raw record, returning None to skip it."""

    async def fetch_total_count(self, zone: Zone) -> int | None:
        """Number of listings the source reports for a zone, if cheaply known."""

        return None

    async def scrape(self, zone: Zone, *, limit: int | None = None) -> ScrapeResult:
        """Fetch, normalize and de-duplicate the listings of a zone."""

        scraped_at = utc_now_iso()
        batch = await self.fetch_raw(zone, limit=limit)

        listings: list[Listing] = []
        failed = 0
        for record in batch.records:
            listing = self.normalize(record, zone, scraped_at)
            if listing is None:
                failed += 1
                continue
            listings.append(listing)

        if failed > 0:
            logger.info(
                "Normalized %s valid, %s failed for zone=%s source=%s",
                len(listings),
                failed,
                zone.slug,
                self.name,
            )

        unique = dedupe_listings(listings)
        return ScrapeResult(
            listings=unique,
            metadata=ScrapeMetadata(
                requested_limit=batch.requested_limit,
                returned_count=len(batch.records),
                hit_limit=batch.hit_limit,
                scraped_at=scraped_at,
            ),
            failed=failed,
            errors=list(batch.errors),
        )
