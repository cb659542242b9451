"""Reuse of previously computed diagnoses via fuzzy similarity search.

Acceptance is stricter than the search itself: the store is
queried at 0.5 similarity, but a candidate is only reused when its error code
matches exactly or, with no code in play, when it scores at least 0.7.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional, Union

import structlog
from pydantic import ValidationError

from app.diagnosis import parser
from app.diagnosis.schemas import (
    MAX_CAUSES,
    MAX_DIY_STEPS,
    MAX_PROFESSIONAL_STEPS,
    MAX_SAFETY_WARNINGS,
    MAX_SKILLS,
    CachedRecord,
    DiagnosisResult,
    Recommendations,
)

if TYPE_CHECKING:
    from app.diagnosis.store import DiagnosticStore

logger = structlog.get_logger()

SEARCH_THRESHOLD = 0.5
NO_CODE_ACCEPT_THRESHOLD = 0.7

REQUIRED_FIELDS = (
    "priority_level",
    "estimated_cost",
    "difficulty_level",
    "recommended_action",
    "estimated_time",
)

_URGENCIES = ("low", "medium", "high")
_DIFFICULTIES = ("easy", "moderate", "difficult", "expert")


@dataclass(frozen=True)
class CacheHit:
    result: DiagnosisResult
    similarity_score: float
    occurrence_count: int


@dataclass(frozen=True)
class CacheMiss:
    reason: str


CacheResult = Union[CacheHit, CacheMiss]


def _string_list(value: Any) -> List[str]:
    """Coerce a stored array column; anything malformed becomes ``[]``."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def accept_candidate(
    candidate: CachedRecord, error_code: Optional[str]
) -> Optional[str]:
    """Return a rejection reason, or ``None`` when the candidate is usable."""
    missing = [f for f in REQUIRED_FIELDS if not (getattr(candidate, f) or "").strip()]
    if missing:
        return f"missing_fields:{','.join(missing)}"

    if error_code:
        if candidate.error_code != error_code:
            return "error_code_mismatch"
        return None

    if candidate.similarity_score < NO_CODE_ACCEPT_THRESHOLD:
        return "similarity_below_threshold"
    return None


def map_cached_record(
    candidate: CachedRecord,
    appliance: str,
    brand: str,
    error_code: Optional[str],
) -> DiagnosisResult:
    """Map a stored row onto the result schema, defaulting bad arrays."""
    action = candidate.recommended_action.strip().lower()
    service = action if action in ("diy", "warranty") else "professional"

    urgency = candidate.priority_level.strip().lower()
    difficulty = candidate.difficulty_level.strip().lower()

    causes = _string_list(candidate.possible_causes) or parser.DEFAULT_CAUSES
    diy = _string_list(candidate.diy_solutions) or parser.DEFAULT_DIY_STEPS
    professional = (
        _string_list(candidate.professional_services)
        or parser.DEFAULT_PROFESSIONAL_STEPS
    )
    skills = _string_list(candidate.skills_required) or (
        parser.DEFAULT_DIY_SKILLS if action == "diy" else parser.DEFAULT_PROFESSIONAL_SKILLS
    )
    safety = _string_list(candidate.safety_warnings) or parser.DEFAULT_SAFETY_WARNINGS

    meaning = candidate.error_code_meaning if error_code else None

    return DiagnosisResult(
        error_code_meaning=meaning or None,
        possible_causes=list(causes[:MAX_CAUSES]),
        recommendations=Recommendations(
            diy=list(diy[:MAX_DIY_STEPS]),
            professional=list(professional[:MAX_PROFESSIONAL_STEPS]),
        ),
        urgency=urgency if urgency in _URGENCIES else "medium",
        estimated_cost=candidate.estimated_cost.strip(),
        difficulty=difficulty if difficulty in _DIFFICULTIES else "moderate",
        recommended_service=service,
        service_reason=parser.build_service_reason(
            (candidate.service_reason or "").strip(), appliance, brand, service
        ),
        skills_required=list(skills[:MAX_SKILLS]),
        time_estimate=candidate.estimated_time.strip(),
        safety_warnings=list(safety[:MAX_SAFETY_WARNINGS]),
    )


class CacheLookup:
    """Looks up a reusable diagnosis for a request."""

    def __init__(self, store: DiagnosticStore) -> None:
        self.store = store

    async def lookup(
        self,
        appliance: str,
        brand: str,
        problem: str,
        error_code: Optional[str],
    ) -> CacheResult:
        try:
            candidates = await self.store.search_similar(
                appliance, brand, problem, error_code, SEARCH_THRESHOLD
            )
        except Exception as e:
            logger.warning("diagnosis_cache_search_failed", error=str(e))
            return CacheMiss("search_failed")

        if not isinstance(candidates, list):
            logger.warning("diagnosis_cache_malformed_response", kind=type(candidates).__name__)
            return CacheMiss("malformed_response")

        if not candidates:
            logger.info("diagnosis_cache_miss", reason="no_candidates", error_code=error_code)
            return CacheMiss("no_candidates")

        try:
            candidate = CachedRecord.model_validate(candidates[0])
        except (ValidationError, TypeError) as e:
            logger.warning("diagnosis_cache_malformed_candidate", error=str(e))
            return CacheMiss("malformed_candidate")

        reason = accept_candidate(candidate, error_code)
        if reason is not None:
            logger.info(
                "diagnosis_cache_miss",
                reason=reason,
                error_code=error_code,
                candidate_error_code=candidate.error_code,
                similarity=candidate.similarity_score,
            )
            return CacheMiss(reason)

        try:
            result = map_cached_record(candidate, appliance, brand, error_code)
        except ValidationError as e:
            logger.warning("diagnosis_cache_mapping_failed", error=str(e))
            return CacheMiss("malformed_candidate")

        logger.info(
            "diagnosis_cache_hit",
            error_code=error_code,
            similarity=candidate.similarity_score,
            occurrences=candidate.occurrence_count,
        )
        return CacheHit(
            result=result,
            similarity_score=candidate.similarity_score,
            occurrence_count=candidate.occurrence_count,
        )
