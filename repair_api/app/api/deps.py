"""Shared FastAPI dependencies."""

from typing import Iterator, Optional

from sqlalchemy.orm import Session

from app.cache import diagnosis_limiter
from app.config import settings
from app.db.session import SessionLocal
from app.services.diagnosis import DiagnosisService, build_diagnosis_service

_diagnosis_service: Optional[DiagnosisService] = None


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_diagnosis_service() -> DiagnosisService:
    """Process-wide pipeline, built on first use."""
    global _diagnosis_service
    if _diagnosis_service is None:
        _diagnosis_service = build_diagnosis_service(settings, diagnosis_limiter)
    return _diagnosis_service


async def close_diagnosis_service() -> None:
    global _diagnosis_service
    if _diagnosis_service is not None:
        await _diagnosis_service.aclose()
        _diagnosis_service = None
