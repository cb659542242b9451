from __future__ import annotations

from typing import Optional

import httpx
import structlog

from app.cache.rate_limiter import RateLimiter
from app.config import Settings
from app.diagnosis.cache_lookup import CacheHit, CacheLookup
from app.diagnosis.error_codes import detect_error_code
from app.diagnosis.errors import RateLimitExceededError
from app.diagnosis.fallback import generate_fallback_diagnosis
from app.diagnosis.persistence import DiagnosticRecorder
from app.diagnosis.sanitization import InputSanitizer, SanitizedInput, mask_email
from app.diagnosis.schemas import DiagnosisResult
from app.diagnosis.store import DiagnosticStore
from app.expert.client import ExpertLLMClient, LlmFailed
from app.search.enrichment import Enrichment, WebSearchEnricher
from app.search.providers import select_search_provider

logger = structlog.get_logger()


class DiagnosisService:
    def __init__(
        self,
        store: DiagnosticStore,
        rate_limiter: RateLimiter,
        llm_client: Optional[ExpertLLMClient] = None,
        enricher: Optional[WebSearchEnricher] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.cache = CacheLookup(store)
        self.recorder = DiagnosticRecorder(store)
        self.rate_limiter = rate_limiter
        self.llm_client = llm_client
        self.enricher = enricher
        self._http_client = http_client

    async def diagnose_problem(
        self, appliance: str, brand: str, problem: str, email: str
    ) -> DiagnosisResult:
        """
        Execute the full diagnostic pipeline:
        1. Validation & sanitisation
        2. Rate limiting
        3. Error-code detection
        4. Similarity cache
        5. Web search enrichment (error codes only)
        6. Expert analysis, or the static fallback

        Raises:
            InputValidationError: a field failed format/length checks.
            RateLimitExceededError: the email has no allowance left.

        Nothing else escapes: every other failure returns the fallback.
        """
        InputSanitizer.validate(appliance, brand, problem, email)

        clean: Optional[SanitizedInput] = None
        try:
            clean = InputSanitizer.sanitize(appliance, brand, problem, email)
        except Exception as e:
            logger.error("diagnosis_sanitize_failed", error=str(e))

        identity = InputSanitizer.normalize_identity(email)
        if not self.rate_limiter.check_and_consume(identity):
            raise RateLimitExceededError(self.rate_limiter.retry_after(identity))

        try:
            if clean is None:
                raise ValueError("inputs could not be sanitised")
            return await self._run_pipeline(clean)
        except Exception as e:
            logger.exception("diagnosis_pipeline_error", error=str(e))
            return await self._recover(clean, identity)

    async def _run_pipeline(self, clean: SanitizedInput) -> DiagnosisResult:
        error_code = detect_error_code(clean.problem)
        logger.info(
            "diagnosis_pipeline_start",
            appliance=clean.appliance,
            brand=clean.brand,
            error_code=error_code,
            email=mask_email(clean.email),
        )

        cached = await self.cache.lookup(
            clean.appliance, clean.brand, clean.problem, error_code
        )
        if isinstance(cached, CacheHit):
            return await self.recorder.record(
                clean, cached.result, error_code, was_cached=True
            )

        if self.llm_client is None:
            logger.info("diagnosis_llm_disabled", source="fallback")
            return await self._fallback(clean, error_code)

        enrichment = Enrichment()
        if error_code and self.enricher is not None:
            try:
                enrichment = await self.enricher.enrich(
                    clean.appliance, clean.brand, error_code
                )
            except Exception as e:
                logger.warning(
                    "diagnosis_enrichment_failed", error_code=error_code, error=str(e)
                )

        outcome = await self.llm_client.generate_diagnosis(
            clean.appliance,
            clean.brand,
            clean.problem,
            error_code,
            context=enrichment.context,
            source_urls=enrichment.top_sources(),
        )
        if isinstance(outcome, LlmFailed):
            logger.warning("diagnosis_llm_failed", reason=outcome.reason)
            return await self._fallback(clean, error_code)

        logger.info(
            "diagnosis_pipeline_complete",
            source="llm",
            error_code=error_code,
            recommended_service=outcome.result.recommended_service,
        )
        return await self.recorder.record(
            clean, outcome.result, error_code, was_cached=False
        )

    async def _fallback(
        self, clean: SanitizedInput, error_code: Optional[str]
    ) -> DiagnosisResult:
        result = generate_fallback_diagnosis(clean.appliance, clean.brand, clean.problem)
        return await self.recorder.record(clean, result, error_code, was_cached=False)

    async def _recover(
        self, clean: Optional[SanitizedInput], identity: str
    ) -> DiagnosisResult:
        """Best-effort fallback after an unexpected pipeline error."""
        if clean is None:
            clean = SanitizedInput(appliance="", brand="", problem="", email=identity)
        result = generate_fallback_diagnosis(clean.appliance, clean.brand, clean.problem)
        try:
            return await self.recorder.record(clean, result, None, was_cached=False)
        except Exception as e:
            logger.error("diagnosis_recover_record_failed", error=str(e))
            return result

    async def aclose(self) -> None:
        if self.llm_client is not None:
            await self.llm_client.close()
        if self._http_client is not None:
            await self._http_client.aclose()


def build_diagnosis_service(
    settings: Settings,
    rate_limiter: RateLimiter,
    store: Optional[DiagnosticStore] = None,
) -> DiagnosisService:
    """Wire the pipeline from settings; optional integrations stay off without keys."""
    llm_client = None
    if settings.llm_enabled:
        llm_client = ExpertLLMClient(
            api_key=settings.openai_api_key,
            model=settings.llm_model,
            base_url=settings.llm_base_url,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )

    http_client = httpx.AsyncClient(timeout=settings.search_timeout_seconds)
    provider = select_search_provider(settings, http_client)
    enricher = WebSearchEnricher(provider) if provider is not None else None

    return DiagnosisService(
        store=store or DiagnosticStore(),
        rate_limiter=rate_limiter,
        llm_client=llm_client,
        enricher=enricher,
        http_client=http_client,
    )
