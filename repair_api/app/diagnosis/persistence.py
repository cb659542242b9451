"""Recording diagnoses for audit and future cache hits."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

import structlog

from app.diagnosis.error_codes import mentions_error_code
from app.diagnosis.sanitization import SanitizedInput, mask_email
from app.diagnosis.schemas import DiagnosisResult

if TYPE_CHECKING:
    from app.diagnosis.store import DiagnosticStore

logger = structlog.get_logger()

CACHED_CONFIDENCE = 0.9
GENERATED_CONFIDENCE = 1.0

PLACEHOLDER_CAUSE = "Fault requires further inspection to confirm the cause"
PLACEHOLDER_DIY = "Check the appliance is powered and consult the user manual"
PLACEHOLDER_PROFESSIONAL = "Book a qualified engineer for a full diagnostic inspection"


def _without_code_mentions(items: List[str], placeholder: str) -> List[str]:
    kept = [item for item in items if not mentions_error_code(item)]
    return kept or [placeholder]


def clean_for_persistence(
    result: DiagnosisResult, error_code: Optional[str]
) -> DiagnosisResult:
    """Strip error-code language from diagnoses of requests without a code.

    Cached or generated text can mention codes the user never reported;
    those entries are dropped and emptied arrays get a placeholder entry.
    """
    if error_code:
        return result

    recommendations = result.recommendations.model_copy(
        update={
            "diy": _without_code_mentions(result.recommendations.diy, PLACEHOLDER_DIY),
            "professional": _without_code_mentions(
                result.recommendations.professional, PLACEHOLDER_PROFESSIONAL
            ),
        }
    )
    return result.model_copy(
        update={
            "error_code_meaning": None,
            "possible_causes": _without_code_mentions(
                result.possible_causes, PLACEHOLDER_CAUSE
            ),
            "recommendations": recommendations,
        }
    )


def build_record(
    request: SanitizedInput,
    result: DiagnosisResult,
    error_code: Optional[str],
    was_cached: bool,
) -> Dict[str, Any]:
    """Column values for a ``diagnostics`` row."""
    return {
        "email": request.email,
        "appliance_type": request.appliance,
        "brand": request.brand,
        "problem_description": request.problem,
        "error_code": error_code,
        "error_code_meaning": result.error_code_meaning,
        "possible_causes": list(result.possible_causes),
        "diy_solutions": list(result.recommendations.diy),
        "professional_services": list(result.recommendations.professional),
        "skills_required": result.skills_required,
        "safety_warnings": result.safety_warnings,
        "source_urls": result.source_urls,
        "priority_level": result.urgency,
        "estimated_cost": result.estimated_cost,
        "difficulty_level": result.difficulty,
        "recommended_action": result.recommended_service,
        "estimated_time": result.time_estimate,
        "service_reason": result.service_reason,
        "was_cached": was_cached,
        "confidence_score": CACHED_CONFIDENCE if was_cached else GENERATED_CONFIDENCE,
    }


class DiagnosticRecorder:
    """Writes diagnosis rows; failures never reach the caller."""

    def __init__(self, store: DiagnosticStore) -> None:
        self.store = store

    async def record(
        self,
        request: SanitizedInput,
        result: DiagnosisResult,
        error_code: Optional[str],
        was_cached: bool,
    ) -> DiagnosisResult:
        """Persist *result* and return the cleaned version that was stored."""
        cleaned = clean_for_persistence(result, error_code)
        try:
            await self.store.insert(build_record(request, cleaned, error_code, was_cached))
            logger.info(
                "diagnosis_recorded",
                email=mask_email(request.email),
                error_code=error_code,
                was_cached=was_cached,
            )
        except Exception as e:
            logger.error(
                "diagnosis_record_failed",
                error=str(e),
                email=mask_email(request.email),
            )
        return cleaned
