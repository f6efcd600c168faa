"""immobiliare.it crawler backed by a paid Apify actor."""

import logging
from typing import Any

import httpx

from ipg.config import get_settings
from ipg.crawlers.base import CrawlerError, ListingCrawler, RawBatch
from ipg.crawlers.normalize import normalize_apify_item
from ipg.models import Listing, Zone

logger = logging.getLogger(__name__)


def build_apify_search_url(zone: Zone) -> str:
    """Search URL sorted newest first so a capped run keeps recent listings."""

    return (
        f"https://www.immobiliare.it/vendita-case/{zone.city}/{zone.slug}/"
        "?criterio=dataModifica&ordine=desc"
    )


class ApifyCrawler(ListingCrawler):
    """Runs the actor synchronously and reads its dataset items."""

    name = "apify"

    def __init__(
        self,
        *,
        token: str | None = None,
        actor_id: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        default_limit: int | None = None,
        max_pages: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._token = token if token is not None else settings.apify_token
        self._actor_id = actor_id or settings.apify_actor_id
        self._base_url = (base_url or settings.apify_base_url).rstrip("/")
        self._timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.apify_timeout_seconds
        )
        self._default_limit = default_limit or settings.apify_default_limit
        self._max_pages = max_pages or settings.apify_max_pages
        self._transport = transport

    def normalize(
        self, raw: dict[str, Any], zone: Zone, scraped_at: str
    ) -> Listing | None:
        return normalize_apify_item(raw, zone, scraped_at)

    async def fetch_raw(self, zone: Zone, *, limit: int | None = None) -> RawBatch:
        if not self._token:
            raise CrawlerError(
                "APIFY_TOKEN environment variable is required for the apify scraper"
            )

        requested_limit = limit or self._default_limit
        run_input = {
            "startUrls": [{"url": build_apify_search_url(zone)}],
            "maxItems": requested_limit,
            "maxPages": self._max_pages,
        }
        # The REST API addresses actors as "user~name".
        actor_path = self._actor_id.replace("/", "~")
        url = f"{self._base_url}/acts/{actor_path}/run-sync-get-dataset-items"

        logger.info(
            "Running Apify actor %s for zone=%s (limit=%s)",
            self._actor_id,
            zone.slug,
            requested_limit,
        )
        async with httpx.AsyncClient(
            timeout=self._timeout_seconds,
            headers={"Authorization": f"Bearer {self._token}"},
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(
                    url, params={"format": "json"}, json=run_input
                )
                _ = response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as e:
                raise CrawlerError(
                    f"Apify run failed for zone={zone.slug}: {e}"
                ) from e

        if not isinstance(payload, list):
            raise CrawlerError(
                f"Unexpected Apify dataset payload for zone={zone.slug}"
            )

        items = [
            {str(key): value for key, value in item.items()}
            for item in payload
            if isinstance(item, dict)
        ]
        hit_limit = len(items) >= requested_limit
        if hit_limit:
            logger.warning(
                "Hit limit (%s) for zone=%s, more listings may be available",
                requested_limit,
                zone.slug,
            )
        return RawBatch(
            records=items, requested_limit=requested_limit, hit_limit=hit_limit
        )
