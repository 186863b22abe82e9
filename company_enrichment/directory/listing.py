"""Directory listing page: discover company profile links."""

from __future__ import annotations

import logging

import httpx

from company_enrichment.cache.store import ResponseCache
from company_enrichment.config import DIRECTORY_BASE_URL, DIRECTORY_LISTING_URL
from company_enrichment.errors import FetchError, ListingError
from company_enrichment.models import DirectoryEntry
from company_enrichment.pacing import Pacer
from company_enrichment.scrape.http_client import fetch
from company_enrichment.scrape.markup import (
    LISTING_CONTAINER,
    LISTING_TITLE,
    PROFILE_PATH,
    extract_anchors,
)

logger = logging.getLogger(__name__)


class DirectoryLister:
    """Fetches the fixed listing page once and returns its profile entries."""

    def __init__(
        self,
        listing_url: str = DIRECTORY_LISTING_URL,
        base_url: str = DIRECTORY_BASE_URL,
        timeout: float = 30,
        client: httpx.AsyncClient | None = None,
        cache: ResponseCache | None = None,
        pacer: Pacer | None = None,
    ):
        self.listing_url = listing_url
        self.base_url = base_url
        self.timeout = timeout
        self.client = client
        self.cache = cache
        self.pacer = pacer

    async def list(self, limit: int) -> list[DirectoryEntry]:
        """Return up to ``limit`` entries in discovery order.

        Raises ListingError if the page cannot be fetched or answers non-2xx.
        Detail pages are not fetched here.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")

        logger.info("Fetching company list from %s", self.listing_url)
        try:
            response = await fetch(
                self.listing_url,
                timeout=self.timeout,
                client=self.client,
                cache=self.cache,
                pacer=self.pacer,
            )
        except FetchError as e:
            raise ListingError(f"Directory listing failed: {e.reason}") from e

        if not response.ok:
            raise ListingError(f"Directory listing failed: HTTP {response.status}")

        entries = extract_anchors(
            response.body,
            container_hint=LISTING_CONTAINER,
            path_fragment=PROFILE_PATH,
            title_selector=LISTING_TITLE,
            base_url=self.base_url,
        )
        logger.info("Found %d companies", len(entries))
        return entries[:limit]
