"""immobiliare.it crawler using the public mobile app API."""

import asyncio
import logging
import random
from typing import Any, Final

import httpx

from ipg.config import get_settings
from ipg.crawlers.base import CrawlerError, ListingCrawler, RawBatch
from ipg.crawlers.normalize import normalize_mobile_property
from ipg.models import Listing, Zone

logger = logging.getLogger(__name__)

PAGE_SIZE: Final = 20
DEFAULT_BASE_DELAY_SECONDS: Final = 1.0
DEFAULT_MAX_BACKOFF_SECONDS: Final = 12.0
DEFAULT_JITTER_RATIO: Final = 0.2
RETRYABLE_HTTP_STATUS_CODES: Final = frozenset({429, 500, 502, 503, 504})
# cat=1, t=v: residential properties for sale
SALE_SEARCH_PARAMS: Final = {"cat": "1", "t": "v"}


def _to_int(value: object | None, default: int = 0) -> int:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    cleaned = str(value).replace(".", "").replace(" ", "")
    try:
        return int(cleaned)
    except ValueError:
        return default


def build_search_url(zone: Zone) -> str:
    return f"https://www.immobiliare.it/vendita-case/{zone.city}/{zone.slug}/"


def zone_search_params(zone: Zone) -> dict[str, str] | None:
    """Search params keyed on the finest immobiliare.it zone id of a zone."""

    if zone.immobiliare_z3:
        return {**SALE_SEARCH_PARAMS, "z3": str(zone.immobiliare_z3)}
    if zone.immobiliare_z2:
        return {**SALE_SEARCH_PARAMS, "z2": str(zone.immobiliare_z2)}
    return None


def _page_records(payload: dict[str, object]) -> list[dict[str, Any]]:
    items = payload.get("list")
    if not isinstance(items, list):
        return []
    return [
        {str(key): value for key, value in item.items()}
        for item in items
        if isinstance(item, dict)
    ]


class MobileApiCrawler(ListingCrawler):
    """Crawler paging through the immobiliare.it mobile properties endpoint."""

    name = "mobile"

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        page_delay_ms: int | None = None,
        default_limit: int | None = None,
        max_retries: int | None = None,
        base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS,
        max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._base_url = (base_url or settings.mobile_api_base_url).rstrip("/")
        self._timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.mobile_api_timeout_seconds
        )
        self._page_delay_ms = max(
            0,
            page_delay_ms
            if page_delay_ms is not None
            else settings.mobile_api_page_delay_ms,
        )
        self._default_limit = default_limit or settings.mobile_api_default_limit
        self._max_retries = max(
            0, max_retries if max_retries is not None else settings.mobile_api_max_retries
        )
        self._base_delay_seconds = max(0.0, base_delay_seconds)
        self._max_backoff_seconds = max(self._base_delay_seconds, max_backoff_seconds)
        self._jitter_ratio = max(0.0, DEFAULT_JITTER_RATIO)
        self._transport = transport
        self._retry_count = 0

        self._headers = {
            "User-Agent": "Mozilla/5.0",
            "Accept": "application/json",
        }
        self.last_run_metrics: dict[str, object] = {
            "total_available": 0,
            "raw_count": 0,
            "page_count": 0,
            "retry_count": 0,
        }

    @property
    def page_delay_ms(self) -> int:
        return self._page_delay_ms

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout_seconds,
            headers=self._headers,
            follow_redirects=True,
            transport=self._transport,
        )

    def normalize(
        self, raw: dict[str, Any], zone: Zone, scraped_at: str
    ) -> Listing | None:
        return normalize_mobile_property(raw, zone, scraped_at)

    async def fetch_total_count(self, zone: Zone) -> int | None:
        """Return ``totalActive`` for zones with a known zone id."""

        params = zone_search_params(zone)
        if params is None:
            return None

        async with self._client() as client:
            payload = await self._fetch_page(client, params, 0)
        if payload is None:
            return None
        return _to_int(payload.get("totalActive"), 0)

    async def fetch_raw(self, zone: Zone, *, limit: int | None = None) -> RawBatch:
        """Fetch every page of raw properties for a zone up to ``limit``."""

        requested_limit = limit or self._default_limit
        self._retry_count = 0
        errors: list[str] = []

        async with self._client() as client:
            params = await self._resolve_search_params(client, zone)
            if params is None:
                raise CrawlerError(
                    f"Could not resolve search params for zone={zone.slug}"
                )

            first_page = await self._fetch_page(client, params, 0)
            if first_page is None:
                raise CrawlerError(f"First properties page failed for zone={zone.slug}")

            total_available = _to_int(first_page.get("totalActive"), 0)
            to_fetch = min(total_available, requested_limit)
            logger.info(
                "Zone %s: %s listings available, fetching %s",
                zone.slug,
                total_available,
                to_fetch,
            )

            records = _page_records(first_page)
            page_count = 1
            offset = PAGE_SIZE
            while offset < to_fetch:
                await asyncio.sleep(self._page_delay_ms / 1000)
                page = await self._fetch_page(client, params, offset)
                page_count += 1
                if page is None:
                    errors.append(f"Properties page failed at offset={offset}")
                    break

                page_records = _page_records(page)
                if not page_records:
                    break
                records.extend(page_records)
                offset += PAGE_SIZE

        # Pages are fixed-size, so the last one can overshoot the limit.
        records = records[:requested_limit]

        logger.info(
            "Fetched %s raw results from %s pages for zone=%s",
            len(records),
            page_count,
            zone.slug,
        )
        self.last_run_metrics = {
            "total_available": total_available,
            "raw_count": len(records),
            "page_count": page_count,
            "retry_count": self._retry_count,
        }
        return RawBatch(
            records=records,
            requested_limit=requested_limit,
            hit_limit=total_available > requested_limit,
            errors=errors,
        )

    async def _resolve_search_params(
        self, client: httpx.AsyncClient, zone: Zone
    ) -> dict[str, str] | None:
        params = zone_search_params(zone)
        if params is not None:
            return params

        search_url = build_search_url(zone)
        logger.info("No zone id for zone=%s, using URL resolver", zone.slug)
        payload = await self._request_json_with_retry(
            client, f"{self._base_url}/resolver/url", params={"url": search_url}
        )
        if payload is None:
            return None

        resolved = payload.get("params")
        if payload.get("type") != "search" or not isinstance(resolved, dict):
            logger.warning(
                "Invalid resolver response type=%s for zone=%s",
                payload.get("type"),
                zone.slug,
            )
            return None

        return {str(key): str(value) for key, value in resolved.items()}

    async def _fetch_page(
        self, client: httpx.AsyncClient, params: dict[str, str], offset: int
    ) -> dict[str, object] | None:
        return await self._request_json_with_retry(
            client,
            f"{self._base_url}/properties",
            params={**params, "start": str(offset)},
        )

    async def _request_json_with_retry(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, str] | None = None,
    ) -> dict[str, object] | None:
        total_attempts = self._max_retries + 1

        for attempt in range(total_attempts):
            try:
                response = await client.get(url, params=params)
                _ = response.raise_for_status()
                payload = response.json()
                if isinstance(payload, dict):
                    return {str(key): value for key, value in payload.items()}
                logger.warning("Request returned non-dict payload for url=%s", url)
                return None

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if status_code not in RETRYABLE_HTTP_STATUS_CODES:
                    logger.warning("HTTP %s error for url=%s", status_code, url)
                    return None

                self._retry_count += 1
                if attempt >= self._max_retries:
                    logger.warning(
                        "HTTP %s retry exhausted for url=%s", status_code, url
                    )
                    return None

                backoff_seconds = min(
                    self._base_delay_seconds * (2**attempt),
                    self._max_backoff_seconds,
                )
                await asyncio.sleep(self._apply_jitter(backoff_seconds))

            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Request failed for url=%s: %s", url, e)
                return None

        return None

    def _apply_jitter(self, base_seconds: float) -> float:
        if base_seconds <= 0:
            return 0.0
        ratio = random.uniform(-self._jitter_ratio, self._jitter_ratio)
        return max(0.0, base_seconds * (1 + ratio))
