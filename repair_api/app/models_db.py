"""Database models for the appliance repair diagnostics API."""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID

from app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Diagnostic(Base):
    """Every diagnosis attempt, whatever its source.

    Rows double as the similarity cache: ``search_similar_diagnostics``
    (see the alembic migration) ranks them against new requests.
    """

    __tablename__ = "diagnostics"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    email = Column(String(255), nullable=False, index=True)

    # Request
    appliance_type = Column(String(50), nullable=False, index=True)
    brand = Column(String(50), nullable=False, index=True)
    problem_description = Column(Text, nullable=False)
    error_code = Column(String(10), nullable=True, index=True)

    # Diagnosis
    error_code_meaning = Column(Text, nullable=True)
    possible_causes = Column(JSONB, nullable=False)
    diy_solutions = Column(JSONB, nullable=False)
    professional_services = Column(JSONB, nullable=False)
    skills_required = Column(JSONB, nullable=True)
    safety_warnings = Column(JSONB, nullable=True)
    source_urls = Column(JSONB, nullable=True)
    priority_level = Column(String(10), nullable=False)  # low, medium, high
    estimated_cost = Column(String(50), nullable=False)
    difficulty_level = Column(String(20), nullable=False)
    recommended_action = Column(String(20), nullable=False)  # diy, professional, warranty
    estimated_time = Column(String(50), nullable=False)
    service_reason = Column(Text, nullable=True)

    # Provenance
    was_cached = Column(Boolean, default=False, nullable=False)
    confidence_score = Column(Float, nullable=True)
    converted_to_booking = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=_utcnow, index=True)


class SparePart(Base):
    """Spare-parts catalogue entry (one product page per model)."""

    __tablename__ = "spare_parts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    category = Column(String(100), nullable=False, index=True)
    brand = Column(String(100), nullable=False, index=True)
    model_number = Column(String(100), nullable=False, index=True)
    url = Column(Text, nullable=False)

    created_at = Column(DateTime, default=_utcnow)
