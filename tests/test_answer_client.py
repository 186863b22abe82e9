import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from company_enrichment.answer.client import AnswerClient, _extract_json
from company_enrichment.errors import AnswerAPIError
from company_enrichment.models import ExecutiveInfo


def _response(content, citations=None):
    response = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])
    if citations is not None:
        response.citations = citations
    return response


class FakeCompletions:
    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def _client(completions, timeout=5):
    client = AnswerClient(api_key="test-key", timeout=timeout)
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return client


async def test_complete_text_returns_text_and_citations():
    completions = FakeCompletions(_response("  answer text ", citations=["https://a", ""]))
    answer = await _client(completions).complete_text("prompt")
    assert answer.text == "answer text"
    assert answer.citations == ["https://a"]
    assert completions.kwargs["temperature"] == 0
    assert completions.kwargs["model"] == "sonar-pro"
    assert completions.kwargs["messages"] == [{"role": "user", "content": "prompt"}]


async def test_complete_text_rejects_empty_answer():
    with pytest.raises(AnswerAPIError, match="empty"):
        await _client(FakeCompletions(_response(None))).complete_text("prompt")


async def test_complete_structured_sends_schema_and_validates():
    raw = '```json\n{"ceo": "Jane Roe", "cofounders": ["A", "B"]}\n```'
    completions = FakeCompletions(_response(raw))
    answer = await _client(completions).complete_structured("prompt", ExecutiveInfo)
    assert answer.value.ceo == "Jane Roe"
    assert answer.value.cofounders == ["A", "B"]
    assert answer.raw_text == raw
    assert answer.citations == []
    fmt = completions.kwargs["response_format"]
    assert fmt["type"] == "json_schema"
    assert "ceo" in fmt["json_schema"]["schema"]["properties"]


async def test_complete_structured_malformed_keeps_raw_text():
    with pytest.raises(AnswerAPIError) as exc_info:
        await _client(FakeCompletions(_response("The CEO is Jane Roe."))).complete_structured(
            "prompt", ExecutiveInfo,
        )
    assert exc_info.value.raw_text == "The CEO is Jane Roe."


async def test_api_errors_are_translated():
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.perplexity.ai/chat/completions"))
    with pytest.raises(AnswerAPIError, match="Answer API error"):
        await _client(FakeCompletions(error=error)).complete_text("prompt")


async def test_timeout_is_translated():
    completions = FakeCompletions(_response("late"), delay=1.0)
    with pytest.raises(AnswerAPIError, match="timed out"):
        await _client(completions, timeout=0.01).complete_text("prompt")


def test_extract_json():
    assert _extract_json('{"a": 1}') == '{"a": 1}'
    assert _extract_json('Sure! {"a": {"b": "}"}} trailing') == '{"a": {"b": "}"}}'
    assert _extract_json("<think>hmm</think>\n{\"a\": 2}") == '{"a": 2}'
    assert _extract_json("no json") == "no json"
