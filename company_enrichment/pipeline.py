"""Wire configuration into collaborators and a scheduler."""

from __future__ import annotations

import logging
from typing import Callable

from company_enrichment.answer.client import AnswerClient
from company_enrichment.answer.enricher import SearchEnricher
from company_enrichment.answer.mock import MockAnswerClient
from company_enrichment.cache.store import ResponseCache
from company_enrichment.config import Config
from company_enrichment.directory.details import DetailFetcher
from company_enrichment.directory.listing import DirectoryLister
from company_enrichment.models import RunSnapshot
from company_enrichment.pacing import PacerRegistry
from company_enrichment.scheduler import EnrichmentScheduler

logger = logging.getLogger(__name__)


class EnrichmentPipeline:
    """Owns the response cache, pacers and answer client for one scheduler.

    Without an API key (and outside mock mode) there is no search enricher;
    directory runs still work and search runs fail per item.
    """

    def __init__(
        self,
        config: Config,
        mock: bool = False,
        use_cache: bool = True,
        on_snapshot: Callable[[RunSnapshot], None] | None = None,
    ):
        self.config = config
        self.cache = (
            ResponseCache(config.cache_db_path, ttl_seconds=config.cache_ttl_seconds)
            if use_cache else None
        )
        self.pacers = PacerRegistry({
            "directory": config.directory_delay,
            "answer": config.answer_delay,
        })

        if mock:
            self.answer_client = MockAnswerClient()
        elif config.perplexity_api_key:
            self.answer_client = AnswerClient(
                api_key=config.perplexity_api_key,
                model=config.answer_model,
                base_url=config.answer_base_url,
                timeout=config.answer_timeout,
            )
        else:
            logger.warning("PERPLEXITY_API_KEY not set, search enrichment disabled")
            self.answer_client = None

        search_enricher = (
            SearchEnricher(self.answer_client, pacer=self.pacers.get("answer"))
            if self.answer_client is not None else None
        )
        self.scheduler = EnrichmentScheduler(
            detail_fetcher=DetailFetcher(
                timeout=config.request_timeout,
                cache=self.cache,
                pacer=self.pacers.get("directory"),
            ),
            search_enricher=search_enricher,
            directory_lister=DirectoryLister(
                listing_url=config.directory_listing_url,
                base_url=config.directory_base_url,
                timeout=config.request_timeout,
                cache=self.cache,
                pacer=self.pacers.get("directory"),
            ),
            concurrency=config.concurrency,
            on_snapshot=on_snapshot,
        )

    @property
    def has_answer_api(self) -> bool:
        return self.answer_client is not None

    async def close(self) -> None:
        if self.answer_client is not None:
            await self.answer_client.close()
        if self.cache is not None:
            self.cache.close()
