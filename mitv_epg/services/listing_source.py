"""
Listing Source

Fetches one channel's listing for one calendar day from mi.tv and turns the
HTML into raw entries. A listing that cannot be fetched is reported as
absent (None) so the normalization core can fall back instead of failing.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Protocol

import httpx
from bs4 import BeautifulSoup

from mitv_epg.services.listing_types import RawEntry
from mitv_epg.utils.file_operations import fetch_text


logger = logging.getLogger(__name__)


class ListingSource(Protocol):
    async def fetch_listing(self, channel_ref: str, day: date) -> list[RawEntry] | None:
        ...


class MiTvListingSource:
    """Raw listing source backed by mi.tv's per-day channel pages."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        *,
        max_retries: int = 3,
        backoff_factor: float = 2.0,
        listing_timeout_seconds: int | None = None,
        request_semaphore: asyncio.Semaphore | None = None,
    ) -> None:
        self._client = client
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._max_retries = max_retries
        self._backoff_factor = backoff_factor
        self._timeout = listing_timeout_seconds if listing_timeout_seconds and listing_timeout_seconds > 0 else None
        self._semaphore = request_semaphore or asyncio.Semaphore(4)

    def listing_url(self, channel_ref: str, day: date) -> str:
        return f"{self._base_url}{channel_ref}/{day.isoformat()}/0"

    async def fetch_listing(self, channel_ref: str, day: date) -> list[RawEntry] | None:
        """
        Download and parse a single channel/day listing

        Args:
            channel_ref: Site id of the channel
            day: Calendar day to fetch

        Returns:
            Raw entries in publication order, or None if the listing is absent
        """
        url = self.listing_url(channel_ref, day)
        logger.debug(f"  [{channel_ref}] Fetching listing for {day.isoformat()}: {url}")

        try:
            async with self._semaphore:
                fetch = fetch_text(
                    self._client,
                    url,
                    max_retries=self._max_retries,
                    backoff_factor=self._backoff_factor,
                )
                if self._timeout:
                    html = await asyncio.wait_for(fetch, timeout=self._timeout)
                else:
                    html = await fetch
        except asyncio.TimeoutError:
            logger.warning(
                f"  [{channel_ref}] Listing for {day.isoformat()} timed out after {self._timeout}s"
            )
            return None
        except httpx.HTTPError as exc:
            logger.warning(
                f"  [{channel_ref}] Listing for {day.isoformat()} unavailable: {type(exc).__name__}: {exc}"
            )
            return None

        entries = parse_listing_html(html, day)
        logger.info(f"  [{channel_ref}] {day.isoformat()}: {len(entries)} entries")
        return entries


def parse_listing_html(html: str, day: date) -> list[RawEntry]:
    """
    Extract raw entries from a mi.tv listing page

    Args:
        html: Page content
        day: Listing date the page was requested for

    Returns:
        List of RawEntry in document order; broadcasts without a time are skipped
    """
    soup = BeautifulSoup(html, "lxml")
    entries = []

    for broadcast in soup.select(".broadcast"):
        local_time = _get_text(broadcast, ".time")
        if not local_time:
            logger.debug("Skipping broadcast without time")
            continue

        entries.append(RawEntry(
            local_time=local_time,
            title=_get_text(broadcast, "h2"),
            source_date=day,
            description=_get_text(broadcast, ".synopsis"),
        ))

    return entries


def _get_text(element, selector: str) -> str:
    """Safely extract stripped text from the first match of a CSS selector"""
    child = element.select_one(selector)
    if child is None:
        return ""
    return child.get_text(" ", strip=True)
