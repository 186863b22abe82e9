"""Directory profile pages: phone, country and city for one company."""

from __future__ import annotations

import logging

import httpx

from company_enrichment.cache.store import ResponseCache
from company_enrichment.errors import FetchError
from company_enrichment.models import PartialRecord
from company_enrichment.pacing import Pacer
from company_enrichment.scrape.http_client import fetch
from company_enrichment.scrape.markup import PROFILE_CONTAINER, extract_rows, rows_to_record

logger = logging.getLogger(__name__)


def extract_profile_record(html: str) -> PartialRecord:
    """Facts from a profile page.

    The profile section's table is authoritative; rows found anywhere else on
    the page only fill fields the section left empty.
    """
    section = rows_to_record(extract_rows(html, PROFILE_CONTAINER, fallback_to_document=False))
    page = rows_to_record(extract_rows(html))
    return page.merge(section)


class DetailFetcher:
    """Best-effort profile enrichment. Never raises."""

    def __init__(
        self,
        timeout: float = 30,
        client: httpx.AsyncClient | None = None,
        cache: ResponseCache | None = None,
        pacer: Pacer | None = None,
    ):
        self.timeout = timeout
        self.client = client
        self.cache = cache
        self.pacer = pacer

    async def fetch_details(self, profile_url: str) -> PartialRecord:
        """Fetch one profile page and extract its facts.

        Any failure degrades to an empty record carrying just the source URL.
        """
        empty = PartialRecord(source_urls=[profile_url])
        try:
            logger.debug("Fetching profile data from %s", profile_url)
            response = await fetch(
                profile_url,
                timeout=self.timeout,
                client=self.client,
                cache=self.cache,
                pacer=self.pacer,
            )
            if not response.ok:
                logger.warning("Profile %s answered HTTP %d", profile_url, response.status)
                return empty
            record = extract_profile_record(response.body)
        except FetchError as e:
            logger.warning("Error fetching profile attributes for %s: %s", profile_url, e.reason)
            return empty
        except Exception as e:
            logger.error("Unexpected error extracting %s: %s", profile_url, e)
            return empty

        record.source_urls = [profile_url]
        logger.debug("Extracted profile data for %s: %s", profile_url, record.model_dump(exclude_defaults=True))
        return record
