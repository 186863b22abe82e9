"""Offline stand-in for the answer API, for demos and tests without credentials."""

from __future__ import annotations

import asyncio
import json
import re

from pydantic import BaseModel, ValidationError

from company_enrichment.answer.client import AnswerText, StructuredAnswer
from company_enrichment.answer.prompts import CONTACT_PAGE_LABEL, CONTACT_SECTION, HOMEPAGE_LABEL
from company_enrichment.errors import AnswerAPIError

FAILING_NAMES = re.compile(r"fail|error|unknown", re.IGNORECASE)
PROMPT_COMPANY = re.compile(r"company: (.+?)(?: \(located in [^)]*\))?$", re.MULTILINE)


def guess_domain(company_name: str) -> str:
    """Guess a company's likely domain from its name.

    e.g. "Lombard Odier Group" -> "lombardodier.com"
         "Julius Baer (Zurich)" -> "juliusbaer.com"
    """
    cleaned = re.sub(r"\s*\([^)]*\)", "", company_name)
    cleaned = re.sub(r",?\s*L\.?L\.?C\.?$", "", cleaned, flags=re.IGNORECASE)
    cleaned = re.sub(
        r"\b(Inc|LLC|LP|Ltd|AG|SA|GmbH|plc|Corp|Group|Holdings|Partners|"
        r"Asset Management|Wealth Management|Management|Investments)\b",
        "", cleaned, flags=re.IGNORECASE,
    )
    words = re.sub(r"[^a-z0-9]+", " ", cleaned.lower()).split()[:3]
    slug = "".join(words)
    if not slug:
        slug = re.sub(r"[^a-z0-9]", "", company_name.lower())
    return f"{slug}.com" if slug else ""


class MockAnswerClient:
    """Answers in the same shapes as AnswerClient without any network calls.

    Names containing "fail", "error" or "unknown" always fail, so the error
    paths of a run can be demonstrated.
    """

    def __init__(self, latency: float = 0.0):
        self.latency = latency
        self.calls: list[str] = []

    async def complete_text(self, prompt: str) -> AnswerText:
        name = await self._answer_for(prompt)
        domain = guess_domain(name)
        text = (
            f"=== {CONTACT_SECTION} ===\n"
            f"{HOMEPAGE_LABEL}: https://www.{domain}\n"
            f"{CONTACT_PAGE_LABEL}: https://www.{domain}/contact\n"
        )
        return AnswerText(text=text, citations=[f"https://www.{domain}"])

    async def complete_structured(self, prompt: str, schema: type[BaseModel]) -> StructuredAnswer:
        name = await self._answer_for(prompt)
        raw = json.dumps({"ceo": "John Doe", "cofounders": ["Jane Doe"]})
        try:
            value = schema.model_validate_json(raw)
        except ValidationError as e:
            raise AnswerAPIError(f"Mock answer does not fit {schema.__name__}", raw_text=raw) from e
        return StructuredAnswer(value=value, raw_text=raw, citations=[f"https://www.{guess_domain(name)}"])

    async def close(self) -> None:
        pass

    async def _answer_for(self, prompt: str) -> str:
        match = PROMPT_COMPANY.search(prompt)
        name = match.group(1).strip() if match else ""
        self.calls.append(name)
        if self.latency:
            await asyncio.sleep(self.latency)
        if not name or FAILING_NAMES.search(name):
            raise AnswerAPIError("Mock: not found or blocked")
        return name
