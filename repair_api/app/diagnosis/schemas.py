"""Pydantic schemas for the diagnosis pipeline.

``DiagnosisResult`` is serialised with camelCase aliases because the booking
site front-end consumes it directly.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Urgency = Literal["low", "medium", "high"]
Difficulty = Literal["easy", "moderate", "difficult", "expert"]
ServiceType = Literal["diy", "professional", "warranty"]

MAX_CAUSES = 5
MAX_DIY_STEPS = 6
MAX_PROFESSIONAL_STEPS = 6
MAX_SKILLS = 4
MAX_SAFETY_WARNINGS = 4
MAX_SOURCE_URLS = 3


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Recommendations(_CamelModel):
    """DIY and professional next steps."""

    diy: List[str] = Field(..., min_length=1, max_length=MAX_DIY_STEPS)
    professional: List[str] = Field(
        ..., min_length=1, max_length=MAX_PROFESSIONAL_STEPS
    )


class DiagnosisResult(_CamelModel):
    """Canonical diagnosis returned to the caller and persisted."""

    error_code_meaning: Optional[str] = Field(
        None, description="Explanation of the detected error code"
    )
    possible_causes: List[str] = Field(..., min_length=1, max_length=MAX_CAUSES)
    recommendations: Recommendations
    urgency: Urgency
    estimated_cost: str = Field(..., description="Currency range, e.g. £80-£149")
    difficulty: Difficulty
    recommended_service: ServiceType
    service_reason: str = Field(..., min_length=1)
    skills_required: Optional[List[str]] = Field(None, max_length=MAX_SKILLS)
    time_estimate: str
    safety_warnings: Optional[List[str]] = Field(
        None, max_length=MAX_SAFETY_WARNINGS
    )
    source_urls: Optional[List[str]] = Field(None, max_length=MAX_SOURCE_URLS)


class DiagnosisRequest(BaseModel):
    """Request payload for the diagnose endpoint.

    Only presence is checked here; format and length rules live in
    :mod:`app.diagnosis.sanitization` so the service enforces them for
    every caller, not just HTTP.
    """

    appliance: str = Field(..., description="Appliance type, e.g. Washing Machine")
    brand: str = Field(..., description="Manufacturer, e.g. Bosch")
    problem: str = Field(..., description="Free-text fault description")
    email: str = Field(..., description="Used for rate limiting and audit only")


class CachedRecord(BaseModel):
    """Ranked candidate returned by ``search_similar_diagnostics``.

    Array columns are typed loosely on purpose: rows written by older
    releases may hold JSON strings or nulls, and the cache adapter falls
    back to defaults for those.
    """

    model_config = ConfigDict(extra="ignore")

    similarity_score: float = Field(..., ge=0.0, le=1.0)
    error_code: Optional[str] = None
    occurrence_count: int = 1
    appliance_type: Optional[str] = None
    brand: Optional[str] = None
    problem_description: Optional[str] = None
    error_code_meaning: Optional[str] = None
    possible_causes: Any = None
    diy_solutions: Any = None
    professional_services: Any = None
    skills_required: Any = None
    safety_warnings: Any = None
    priority_level: Optional[str] = None
    estimated_cost: Optional[str] = None
    difficulty_level: Optional[str] = None
    recommended_action: Optional[str] = None
    estimated_time: Optional[str] = None
    service_reason: Optional[str] = None
