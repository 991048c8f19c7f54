"""Upstream incident feed client (sheriff public-access JSON endpoint)."""

from datetime import datetime
from typing import Any

import httpx
from cachetools import TTLCache
from loguru import logger

from incident_api.lib.incidents.normalizer import Incident, normalize_incidents

FEED_URL = "https://publicaccess.riversidesheriff.org/api/publicaccess/incidents"
DEFAULT_TIMEOUT = 15.0
DEFAULT_PAGE_SIZE = 1000
DEFAULT_CACHE_TTL = 60

_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://publicaccess.riversidesheriff.org/",
    "Origin": "https://publicaccess.riversidesheriff.org",
    "User-Agent": "Mozilla/5.0 (compatible; incident-map-api/0.1)",
}


class FeedError(Exception):
    """Raised when the upstream incident feed cannot be fetched or parsed.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code from the feed.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class IncidentFeedClient:
    """Fetches and normalizes incident pages from the upstream feed."""

    def __init__(
        self,
        url: str = FEED_URL,
        timeout: float = DEFAULT_TIMEOUT,
        page_size: int = DEFAULT_PAGE_SIZE,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._page_size = page_size
        self._transport = transport
        # Raw pages keyed by (page_number, station); 0 disables memoization
        self._pages: TTLCache[tuple[int, str], list[dict[str, Any]]] | None = (
            TTLCache(maxsize=64, ttl=cache_ttl_seconds) if cache_ttl_seconds > 0 else None
        )

    async def fetch_page(self, page_number: int = 1, station: str | None = None) -> list[dict[str, Any]]:
        """Fetch one raw page of feed records.

        Args:
            page_number: 1-based page number.
            station: Optional station code filter applied upstream.

        Returns:
            The raw ``cd_*`` records.

        Raises:
            FeedError: On transport errors, non-success status or a non-list body.
        """
        cache_key = (page_number, station or "")
        if self._pages is not None and cache_key in self._pages:
            return self._pages[cache_key]

        params = {
            "PageSize": self._page_size,
            "PageNumber": page_number,
            "Cd_Station": station or "",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(self._url, params=params, headers=_HEADERS)
                response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning("Incident feed timeout")
            raise FeedError("Incident feed request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning(f"Incident feed HTTP error {e.response.status_code}")
            raise FeedError(
                f"Incident feed returned HTTP {e.response.status_code}", status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Incident feed connection error: {type(e).__name__}")
            raise FeedError("Connection to incident feed failed") from e
        except ValueError as e:
            raise FeedError("Incident feed returned invalid JSON") from e

        if not isinstance(data, list):
            msg = f"Incident feed response is not a list (got {type(data).__name__})"
            raise FeedError(msg)

        logger.debug(f"Fetched {len(data)} feed records (page {page_number})")
        if self._pages is not None:
            self._pages[cache_key] = data
        return data

    async def fetch_incidents(
        self,
        *,
        since: datetime | None = None,
        station: str | None = None,
        max_pages: int = 1,
    ) -> list[Incident]:
        """Fetch and normalize incidents, newest first, across pages.

        Paging stops at a short page, at ``max_pages``, or once a page
        reaches incidents older than ``since``.

        Args:
            since: Optional aware cutoff; older incidents are dropped.
            station: Optional station code filter applied upstream.
            max_pages: Safety limit on pages fetched.

        Returns:
            Normalized incidents in feed order.
        """
        incidents: list[Incident] = []
        for page_number in range(1, max(1, max_pages) + 1):
            records = await self.fetch_page(page_number, station)
            page = normalize_incidents(records)
            if since is not None:
                kept = [incident for incident in page if incident.received_at >= since]
                incidents.extend(kept)
                if len(kept) < len(page):
                    break
            else:
                incidents.extend(page)
            if len(records) < self._page_size:
                break
        logger.info(f"Fetched {len(incidents)} incidents from feed")
        return incidents
