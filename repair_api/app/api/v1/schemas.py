from typing import List

from pydantic import BaseModel, Field

from app.diagnosis.schemas import DiagnosisRequest, DiagnosisResult

__all__ = [
    "DiagnosisRequest",
    "DiagnosisResult",
    "ErrorResponse",
    "OptionsResponse",
    "SparePartResult",
    "SparePartSearchResponse",
]


class ErrorResponse(BaseModel):
    """
    Body returned for rejected requests.
    """
    detail: str
    errors: List[str] = Field(default_factory=list)


class OptionsResponse(BaseModel):
    """
    Values for the appliance / brand pickers on the diagnosis form.
    """
    options: List[str] = Field(default_factory=list)


class SparePartResult(BaseModel):
    id: str
    category: str
    brand: str
    model_number: str
    url: str
    match_type: str = Field(..., description="exact or fuzzy")
    similarity_score: float = Field(..., ge=0.0, le=1.0)


class SparePartSearchResponse(BaseModel):
    results: List[SparePartResult] = Field(default_factory=list)
    error: str = ""
