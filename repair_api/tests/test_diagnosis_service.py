"""Tests for the diagnosis pipeline orchestration (app.services.diagnosis).

Covers:
  - pre-flight errors (validation, rate limit) are the only exceptions raised
  - cache hits skip enrichment and the model
  - enrichment only runs when an error code was detected
  - search failures drop the context but still reach the model
  - model and database failures degrade to the fallback
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import respx

from app.diagnosis.errors import InputValidationError, RateLimitExceededError
from app.diagnosis.parser import parse_diagnosis_response
from app.expert.client import LlmDiagnosis, LlmFailed
from app.search.enrichment import Enrichment, WebSearchEnricher
from app.search.providers import SERPAPI_URL, SerpApiProvider
from app.services.diagnosis import DiagnosisService

REQUEST = dict(
    appliance="Washing Machine",
    brand="Bosch",
    problem="Machine shows E13 and will not drain",
    email="jane@example.com",
)
NO_CODE_REQUEST = {**REQUEST, "problem": "Machine is very noisy during the spin cycle"}

LLM_REPLY = """\
ERROR CODE MEANING: E13 indicates a drainage timeout.
POSSIBLE CAUSES:
- Blocked drain pump filter with debris
RECOMMENDED SERVICE: DIY
ESTIMATED COST: DIY: £0-£15
"""


def _llm_client(outcome=None):
    if outcome is None:
        result = parse_diagnosis_response(
            LLM_REPLY, "Washing Machine", "Bosch", REQUEST["problem"], "E13"
        )
        outcome = LlmDiagnosis(result=result, raw_text=LLM_REPLY)
    client = MagicMock()
    client.generate_diagnosis = AsyncMock(return_value=outcome)
    client.close = AsyncMock()
    return client


def _enricher(enrichment=None):
    enricher = MagicMock()
    enricher.enrich = AsyncMock(
        return_value=enrichment
        or Enrichment(
            context="E13 indicates a drainage fault",
            source_urls=["https://example.co.uk/a", "https://example.co.uk/b"],
        )
    )
    return enricher


@pytest.fixture()
def store(fake_store_factory):
    return fake_store_factory()


class TestPreflight:
    @pytest.mark.asyncio
    async def test_validation_error_raised_before_rate_limit(self, store, limiter):
        service = DiagnosisService(store=store, rate_limiter=limiter)
        with pytest.raises(InputValidationError):
            await service.diagnose_problem("Oven", "Neff", "broken", "not-an-email")
        assert limiter.size() == 0
        assert store.searches == []

    @pytest.mark.asyncio
    async def test_sixth_request_in_window_is_rejected(self, store, limiter):
        service = DiagnosisService(store=store, rate_limiter=limiter)
        for _ in range(5):
            await service.diagnose_problem(**REQUEST)

        with pytest.raises(RateLimitExceededError) as exc_info:
            await service.diagnose_problem(**{**REQUEST, "email": "JANE@example.com"})
        assert exc_info.value.retry_after > 0
        assert len(store.searches) == 5

    @pytest.mark.asyncio
    async def test_window_expiry_allows_again(self, store, limiter, clock):
        service = DiagnosisService(store=store, rate_limiter=limiter)
        for _ in range(5):
            await service.diagnose_problem(**REQUEST)
        clock.advance(3600)
        result = await service.diagnose_problem(**REQUEST)
        assert result.recommended_service == "professional"


class TestPipeline:
    @pytest.mark.asyncio
    async def test_cache_hit_skips_model(self, fake_store_factory, limiter, cached_row):
        store = fake_store_factory(candidates=[cached_row()])
        llm = _llm_client()
        enricher = _enricher()
        service = DiagnosisService(store, limiter, llm_client=llm, enricher=enricher)

        result = await service.diagnose_problem(**REQUEST)

        assert result.recommended_service == "diy"
        assert result.estimated_cost == "£0-£30"
        llm.generate_diagnosis.assert_not_awaited()
        enricher.enrich.assert_not_awaited()
        assert store.inserted[0]["was_cached"] is True
        assert store.inserted[0]["confidence_score"] == 0.9

    @pytest.mark.asyncio
    async def test_error_code_path_enriches_and_calls_model(self, store, limiter):
        llm = _llm_client()
        enricher = _enricher()
        service = DiagnosisService(store, limiter, llm_client=llm, enricher=enricher)

        result = await service.diagnose_problem(**REQUEST)

        enricher.enrich.assert_awaited_once_with("Washing Machine", "Bosch", "E13")
        kwargs = llm.generate_diagnosis.await_args.kwargs
        assert kwargs["context"] == "E13 indicates a drainage fault"
        assert kwargs["source_urls"] == [
            "https://example.co.uk/a",
            "https://example.co.uk/b",
        ]
        assert result.recommended_service == "diy"
        assert store.searches[0]["error_code"] == "E13"
        assert store.inserted[0]["error_code"] == "E13"
        assert store.inserted[0]["was_cached"] is False

    @pytest.mark.asyncio
    async def test_no_code_skips_enrichment(self, store, limiter):
        llm = _llm_client()
        enricher = _enricher()
        service = DiagnosisService(store, limiter, llm_client=llm, enricher=enricher)

        result = await service.diagnose_problem(**NO_CODE_REQUEST)

        enricher.enrich.assert_not_awaited()
        assert llm.generate_diagnosis.await_args.kwargs["context"] == ""
        # code language from the model is stripped when the user gave none
        assert result.error_code_meaning is None
        assert store.inserted[0]["error_code"] is None

    @pytest.mark.asyncio
    async def test_appliance_noise_words_are_normalised(self, store, limiter):
        service = DiagnosisService(store, limiter)
        await service.diagnose_problem(**{**REQUEST, "appliance": "Washing Machine Spares"})
        assert store.searches[0]["appliance"] == "Washing Machine"

    @pytest.mark.asyncio
    async def test_model_failure_uses_fallback(self, store, limiter):
        llm = _llm_client(LlmFailed("status_500"))
        service = DiagnosisService(store, limiter, llm_client=llm, enricher=_enricher())

        result = await service.diagnose_problem(**REQUEST)

        assert result.recommended_service == "professional"
        assert result.difficulty == "expert"
        assert result.estimated_cost == "£109-£149"
        assert len(store.inserted) == 1

    @pytest.mark.asyncio
    async def test_llm_disabled_uses_fallback(self, store, limiter):
        service = DiagnosisService(store, limiter)
        result = await service.diagnose_problem(
            **{**REQUEST, "problem": "There is smoke coming out of the back"}
        )
        assert result.urgency == "high"
        assert result.recommended_service == "professional"


class TestFailuresNeverPropagate:
    @pytest.mark.asyncio
    async def test_search_store_exception(self, fake_store_factory, limiter):
        store = fake_store_factory(search_error=RuntimeError("connection refused"))
        llm = _llm_client()
        service = DiagnosisService(store, limiter, llm_client=llm)

        result = await service.diagnose_problem(**REQUEST)

        llm.generate_diagnosis.assert_awaited_once()
        assert result.recommended_service == "diy"

    @pytest.mark.asyncio
    async def test_model_raises(self, store, limiter):
        llm = MagicMock()
        llm.generate_diagnosis = AsyncMock(side_effect=RuntimeError("unexpected"))
        service = DiagnosisService(store, limiter, llm_client=llm)

        result = await service.diagnose_problem(**REQUEST)
        assert result.recommended_service == "professional"

    @pytest.mark.asyncio
    async def test_enrichment_raises_still_calls_model(self, store, limiter):
        enricher = MagicMock()
        enricher.enrich = AsyncMock(side_effect=AttributeError("bad payload"))
        llm = _llm_client()
        service = DiagnosisService(store, limiter, llm_client=llm, enricher=enricher)

        result = await service.diagnose_problem(**REQUEST)

        llm.generate_diagnosis.assert_awaited_once()
        kwargs = llm.generate_diagnosis.await_args.kwargs
        assert kwargs["context"] == ""
        assert kwargs["source_urls"] == []
        assert result.recommended_service == "diy"

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_returning_non_object_json(self, store, limiter):
        respx.get(url__startswith=SERPAPI_URL).mock(
            return_value=httpx.Response(200, json=[])
        )
        llm = _llm_client()
        async with httpx.AsyncClient() as client:
            enricher = WebSearchEnricher(SerpApiProvider("serp-key", client))
            service = DiagnosisService(store, limiter, llm_client=llm, enricher=enricher)
            result = await service.diagnose_problem(**REQUEST)

        llm.generate_diagnosis.assert_awaited_once()
        assert llm.generate_diagnosis.await_args.kwargs["context"] == ""
        assert result.recommended_service == "diy"
        assert result.estimated_cost == "£0-£15"

    @pytest.mark.asyncio
    async def test_database_insert_failure(self, fake_store_factory, limiter):
        store = fake_store_factory(insert_error=RuntimeError("disk full"))
        service = DiagnosisService(store, limiter, llm_client=_llm_client())

        result = await service.diagnose_problem(**REQUEST)
        assert result.recommended_service == "diy"

    @pytest.mark.asyncio
    async def test_every_dependency_failing_at_once(self, fake_store_factory, limiter):
        store = fake_store_factory(
            search_error=RuntimeError("search down"),
            insert_error=RuntimeError("insert down"),
        )
        llm = MagicMock()
        llm.generate_diagnosis = AsyncMock(side_effect=TimeoutError("model timeout"))
        enricher = MagicMock()
        enricher.enrich = AsyncMock(side_effect=RuntimeError("search api down"))
        service = DiagnosisService(store, limiter, llm_client=llm, enricher=enricher)

        result = await service.diagnose_problem(**REQUEST)

        assert result.recommended_service == "professional"
        assert result.possible_causes
        assert result.recommendations.diy


@pytest.mark.asyncio
async def test_aclose_closes_clients(store, limiter):
    llm = _llm_client()
    http_client = MagicMock()
    http_client.aclose = AsyncMock()
    service = DiagnosisService(store, limiter, llm_client=llm, http_client=http_client)

    await service.aclose()

    llm.close.assert_awaited_once()
    http_client.aclose.assert_awaited_once()
