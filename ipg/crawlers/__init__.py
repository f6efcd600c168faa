"""Listing source adapters."""

from ipg.config import get_settings
from ipg.crawlers.apify import ApifyCrawler
from ipg.crawlers.base import (
    CrawlerError,
    ListingCrawler,
    RawBatch,
    ScrapeMetadata,
    ScrapeResult,
)
from ipg.crawlers.mobile_api import MobileApiCrawler


def get_crawler(
    name: str | None = None,
    *,
    page_delay_ms: int | None = None,
    max_pages: int | None = None,
) -> ListingCrawler:
    """Build the source adapter selected by name or by configuration."""

    scraper = (name or get_settings().collect_scraper).strip().lower()
    if scraper == MobileApiCrawler.name:
        return MobileApiCrawler(page_delay_ms=page_delay_ms)
    if scraper == ApifyCrawler.name:
        return ApifyCrawler(max_pages=max_pages)
    raise ValueError(f"Unknown scraper: {scraper}. Use 'mobile' or 'apify'.")


__all__ = [
    "ApifyCrawler",
    "CrawlerError",
    "ListingCrawler",
    "MobileApiCrawler",
    "RawBatch",
    "ScrapeMetadata",
    "ScrapeResult",
    "get_crawler",
]
