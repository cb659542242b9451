"""Tests for the expert model client (app.expert.client)."""

from __future__ import annotations

import json

import httpx
import pytest
import respx

from app.expert import prompts
from app.expert.client import ExpertLLMClient, LlmDiagnosis, LlmFailed, LlmOk

_URL = "https://api.openai.com/v1/chat/completions"

REPLY = """\
ERROR CODE MEANING: E13 indicates the machine could not drain in time.
POSSIBLE CAUSES:
- Blocked drain pump filter with debris
RECOMMENDED SERVICE: DIY
ESTIMATED COST: DIY: £0-£15
"""


def _completion(content):
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 10, "completion_tokens": 10, "total_tokens": 20},
    }


def _client() -> ExpertLLMClient:
    return ExpertLLMClient(api_key="test-key", max_retries=0)


def test_build_prompt_placeholders():
    prompt = _client().build_prompt("Oven", "Neff", "Will not heat up at all", None)
    assert "Error code: None detected" in prompt
    assert prompts.NO_CONTEXT in prompt


@pytest.mark.asyncio
@respx.mock
async def test_complete_success():
    respx.post(_URL).mock(return_value=httpx.Response(200, json=_completion(REPLY)))
    client = _client()
    try:
        outcome = await client.complete("prompt")
    finally:
        await client.close()
    assert outcome == LlmOk(REPLY)


@pytest.mark.asyncio
@respx.mock
async def test_server_error_fails_softly():
    respx.post(_URL).mock(
        return_value=httpx.Response(500, json={"error": {"message": "boom"}})
    )
    client = _client()
    try:
        outcome = await client.complete("prompt")
    finally:
        await client.close()
    assert outcome == LlmFailed("status_500")


@pytest.mark.asyncio
@respx.mock
async def test_connection_error_fails_softly():
    respx.post(_URL).mock(side_effect=httpx.ConnectError)
    client = _client()
    try:
        outcome = await client.complete("prompt")
    finally:
        await client.close()
    assert outcome == LlmFailed("request_error")


@pytest.mark.parametrize("content", ["", "   \n", None])
@pytest.mark.asyncio
@respx.mock
async def test_empty_content(content):
    respx.post(_URL).mock(return_value=httpx.Response(200, json=_completion(content)))
    client = _client()
    try:
        outcome = await client.complete("prompt")
    finally:
        await client.close()
    assert outcome == LlmFailed("empty_content")


@pytest.mark.asyncio
@respx.mock
async def test_generate_diagnosis_parses_and_attaches_sources():
    route = respx.post(_URL).mock(
        return_value=httpx.Response(200, json=_completion(REPLY))
    )
    urls = [f"https://example.co.uk/{i}" for i in range(5)]
    client = _client()
    try:
        outcome = await client.generate_diagnosis(
            "Washing Machine",
            "Bosch",
            "Machine shows E13 and will not drain",
            "E13",
            context="E13 indicates a drainage fault",
            source_urls=urls,
        )
    finally:
        await client.close()

    assert isinstance(outcome, LlmDiagnosis)
    assert outcome.raw_text == REPLY
    assert outcome.result.recommended_service == "diy"
    assert outcome.result.estimated_cost == "£0-£15"
    assert outcome.result.error_code_meaning.startswith("E13 indicates")
    assert outcome.result.source_urls == urls[:3]

    body = json.loads(route.calls.last.request.content)
    assert body["model"] == "gpt-4o-mini"
    assert body["messages"][0]["content"] == prompts.SYSTEM_PROMPT
    user_prompt = body["messages"][1]["content"]
    assert "Error code: E13" in user_prompt
    assert "E13 indicates a drainage fault" in user_prompt


@pytest.mark.asyncio
@respx.mock
async def test_generate_diagnosis_propagates_failure():
    respx.post(_URL).mock(return_value=httpx.Response(503, json={}))
    client = _client()
    try:
        outcome = await client.generate_diagnosis(
            "Oven", "Neff", "Oven will not heat up", None
        )
    finally:
        await client.close()
    assert outcome == LlmFailed("status_503")
