"""Shared fixtures: directory HTML samples, fake transports and collaborators."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from company_enrichment.answer.client import AnswerText, StructuredAnswer
from company_enrichment.config import Config
from company_enrichment.errors import AnswerAPIError, EnrichmentError
from company_enrichment.models import ExecutiveInfo, LocationHint, PartialRecord

LISTING_URL = "https://dev.swfinstitute.org/profiles/wealth-manager/europe"
BASE_URL = "https://dev.swfinstitute.org"

LISTING_HTML = """
<html><body>
<nav><a href="/profile/nav-link">Navigation profile</a></nav>
<div class="list-group list-group-wrap">
  <a class="list-group-item" href="/profile/5f1-lombard-odier">
    <strong class="list-group-item-title">Lombard Odier</strong>
    <span>Geneva, Switzerland</span>
  </a>
  <a class="list-group-item" href="https://dev.swfinstitute.org/profile/5f2-julius-baer/">
    <strong class="list-group-item-title">Julius Baer</strong>
  </a>
  <a class="list-group-item" href="/profile/5f3-pictet">Pictet Group</a>
  <a class="list-group-item" href="/profile/5f1-lombard-odier#contact">
    <strong class="list-group-item-title">Lombard Odier (duplicate)</strong>
  </a>
  <a class="list-group-item" href="/fund-manager/not-a-profile">Ignored</a>
</div>
</body></html>
"""

PROFILE_HTML = """
<html><body>
<table><tr><td>Country</td><td>Luxembourg</td></tr></table>
<section id="swfiProfileSingle">
  <div class="table-responsive">
    <table>
      <tr><td><strong>Telephone</strong>:</td><td><a href="tel:+41225551234">+41 22 555 1234</a></td></tr>
      <tr><td>Phone</td><td>+41 99 999 9999</td></tr>
      <tr><td>Country:</td><td>Switzerland</td></tr>
      <tr><td>Notes</td></tr>
    </table>
  </div>
</section>
<table><tr><td>City</td><td>Geneva</td></tr></table>
</body></html>
"""


def make_client(routes: dict[str, tuple[int, str] | Exception]) -> httpx.AsyncClient:
    """AsyncClient whose responses come from ``routes`` keyed by URL."""
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        calls.append(url)
        outcome = routes.get(url)
        if outcome is None:
            return httpx.Response(404, text="not found")
        if isinstance(outcome, Exception):
            raise outcome
        status, body = outcome
        return httpx.Response(status, text=body)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client.calls = calls
    return client


class FakeAnswerClient:
    """Scripted answer API: ``texts`` and ``structured`` map company name to a reply."""

    def __init__(self, texts=None, structured=None, citations=None):
        self.texts = texts or {}
        self.structured = structured or {}
        self.citations = citations or []
        self.prompts: list[str] = []

    def _lookup(self, table, prompt):
        self.prompts.append(prompt)
        for name, reply in table.items():
            if name in prompt:
                if isinstance(reply, Exception):
                    raise reply
                return reply
        raise AnswerAPIError("no scripted reply")

    async def complete_text(self, prompt):
        return AnswerText(text=self._lookup(self.texts, prompt), citations=list(self.citations))

    async def complete_structured(self, prompt, schema):
        raw = self._lookup(self.structured, prompt)
        return StructuredAnswer(value=schema.model_validate_json(raw), raw_text=raw, citations=list(self.citations))


class FakeEnricher:
    """SearchEnricher stand-in with per-name delays and failures."""

    def __init__(self, delays=None, failures=(), executives_failures=()):
        self.delays = delays or {}
        self.failures = set(failures)
        self.executives_failures = set(executives_failures)
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls: list[str] = []
        self.hints: dict[str, LocationHint | None] = {}

    async def _enter(self, name):
        self.calls.append(name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(name, 0))
        finally:
            self.in_flight -= 1

    async def enrich(self, company_name, location_hint=None):
        await self._enter(company_name)
        if company_name in self.failures:
            raise EnrichmentError("Answer API error: boom", raw_text="raw failure text")
        slug = company_name.lower().replace(" ", "")
        return PartialRecord(
            homepage=f"https://{slug}.com",
            contact_page=f"https://{slug}.com/contact",
            source_urls=[f"https://{slug}.com"],
        )

    async def enrich_executives(self, company_name, location_hint=None):
        self.hints[company_name] = location_hint
        await self._enter(company_name)
        if company_name in self.executives_failures:
            raise EnrichmentError("Malformed structured response")
        return PartialRecord(ceo=f"CEO of {company_name}", cofounders=["Founder A"])


class FakeFetcher:
    def __init__(self, records=None):
        self.records = records or {}
        self.calls: list[str] = []

    async def fetch_details(self, profile_url):
        self.calls.append(profile_url)
        record = self.records.get(profile_url, PartialRecord())
        return record.merge(PartialRecord(source_urls=[profile_url]))


@pytest.fixture
def config():
    return Config(
        perplexity_api_key="",
        cache_db_path=":memory:",
        directory_delay=0,
        concurrency=2,
    )


@pytest.fixture
def executive_json():
    return ExecutiveInfo(ceo="Hubert Keller", cofounders=["Jean Odier"]).model_dump_json()
