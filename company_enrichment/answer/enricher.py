"""Search enrichment: one answer-API call per company."""

from __future__ import annotations

import logging

from company_enrichment.answer.client import AnswerClient
from company_enrichment.answer.parser import parse_answer_text, record_from_executives
from company_enrichment.answer.prompts import build_contact_prompt, build_executive_prompt
from company_enrichment.errors import AnswerAPIError, EnrichmentError
from company_enrichment.models import ExecutiveInfo, LocationHint, PartialRecord
from company_enrichment.pacing import Pacer

logger = logging.getLogger(__name__)


class SearchEnricher:
    """Turns a company name into a partial record via the answer API.

    ``client`` is anything with ``complete_text`` / ``complete_structured``
    coroutines, normally an AnswerClient or a MockAnswerClient.
    """

    def __init__(self, client: AnswerClient, pacer: Pacer | None = None):
        self.client = client
        self.pacer = pacer

    async def enrich(self, company_name: str, location_hint: LocationHint | None = None) -> PartialRecord:
        """Homepage and contact page from the labelled text answer.

        The contact prompt is name-only; ``location_hint`` is accepted so both
        enrichment calls share one signature.
        """
        prompt = build_contact_prompt(company_name)
        if self.pacer is not None:
            await self.pacer.wait()
        logger.debug("Searching contact info for %s", company_name)
        try:
            answer = await self.client.complete_text(prompt)
        except AnswerAPIError as e:
            raise EnrichmentError(str(e), raw_text=e.raw_text) from e

        record = parse_answer_text(answer.text, company_name)
        record.source_urls = list(dict.fromkeys(answer.citations))
        return record

    async def enrich_executives(
        self, company_name: str, location_hint: LocationHint | None = None,
    ) -> PartialRecord:
        """CEO and co-founders from a schema-constrained answer."""
        prompt = build_executive_prompt(company_name, location_hint)
        if self.pacer is not None:
            await self.pacer.wait()
        logger.debug("Searching executives for %s", company_name)
        try:
            answer = await self.client.complete_structured(prompt, ExecutiveInfo)
        except AnswerAPIError as e:
            raise EnrichmentError(str(e), raw_text=e.raw_text) from e

        record = record_from_executives(answer.value, answer.raw_text)
        record.source_urls = list(dict.fromkeys(answer.citations))
        return record
