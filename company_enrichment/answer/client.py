"""Answer API client — Perplexity through its OpenAI-compatible endpoint."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import TypeVar

from openai import APIError, AsyncOpenAI
from pydantic import BaseModel, ValidationError

from company_enrichment.config import PERPLEXITY_BASE_URL
from company_enrichment.errors import AnswerAPIError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class AnswerText:
    """Free-text answer plus the sources the collaborator cited."""
    text: str
    citations: list[str] = field(default_factory=list)


@dataclass
class StructuredAnswer:
    """Schema-validated answer plus the raw JSON it was parsed from."""
    value: BaseModel
    raw_text: str
    citations: list[str] = field(default_factory=list)


class AnswerClient:
    """One request per call, temperature 0, bounded by a timeout.

    Every failure mode (auth, transport, timeout, empty or malformed content,
    schema mismatch) surfaces as AnswerAPIError.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "sonar-pro",
        base_url: str = PERPLEXITY_BASE_URL,
        timeout: float = 120,
    ):
        self.model = model
        self.timeout = timeout
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)

    async def complete_text(self, prompt: str) -> AnswerText:
        response = await self._create(prompt)
        text = _message_text(response)
        if not text:
            raise AnswerAPIError("Answer API returned an empty response")
        return AnswerText(text=text, citations=_citations(response))

    async def complete_structured(self, prompt: str, schema: type[ModelT]) -> StructuredAnswer:
        response = await self._create(
            prompt,
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": schema.__name__,
                    "schema": schema.model_json_schema(),
                },
            },
        )
        raw = _message_text(response)
        if not raw:
            raise AnswerAPIError("Answer API returned an empty response")
        try:
            value = schema.model_validate_json(_extract_json(raw))
        except ValidationError as e:
            raise AnswerAPIError(
                f"Malformed structured response: {e.error_count()} validation error(s)",
                raw_text=raw,
            ) from e
        return StructuredAnswer(value=value, raw_text=raw, citations=_citations(response))

    async def close(self) -> None:
        await self._client.close()

    async def _create(self, prompt: str, **extra):
        try:
            return await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self.model,
                    temperature=0,
                    messages=[{"role": "user", "content": prompt}],
                    **extra,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise AnswerAPIError(f"Answer API call timed out after {self.timeout:.0f}s") from e
        except APIError as e:
            logger.warning("Answer API error: %s", e)
            raise AnswerAPIError(f"Answer API error: {e}") from e


def _message_text(response) -> str:
    try:
        return (response.choices[0].message.content or "").strip()
    except (AttributeError, IndexError):
        return ""


def _citations(response) -> list[str]:
    citations = getattr(response, "citations", None) or []
    return [str(c) for c in citations if c]


def _extract_json(text: str) -> str:
    """Extract the first JSON object from a response.

    Handles code fences, reasoning preambles and trailing prose.
    """
    cleaned = re.sub(r"<think>[\s\S]*?</think>", "", text).strip()
    cleaned = re.sub(r"^```json\s*", "", cleaned)
    cleaned = re.sub(r"^```\s*", "", cleaned)
    cleaned = re.sub(r"\s*```\s*$", "", cleaned)
    cleaned = cleaned.strip()

    try:
        json.loads(cleaned)
        return cleaned
    except json.JSONDecodeError:
        pass

    start = cleaned.find("{")
    if start == -1:
        return cleaned

    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(cleaned)):
        c = cleaned[i]
        if escape:
            escape = False
            continue
        if c == "\\":
            escape = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return cleaned[start:i + 1]

    return cleaned
