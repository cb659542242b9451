"""CRUD operations for the diagnostics API."""

from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from app import models_db

_SIMILAR_DIAGNOSTICS_SQL = text(
    "SELECT * FROM search_similar_diagnostics("
    ":p_appliance, :p_brand, :p_problem, :p_error_code, :p_threshold)"
)
_SPARE_PARTS_SQL = text(
    "SELECT * FROM search_spare_parts(:p_category, :p_brand, :p_model)"
)


def search_similar_diagnostics(
    db: Session,
    appliance: str,
    brand: str,
    problem: str,
    error_code: Optional[str],
    threshold: float,
) -> List[Dict[str, Any]]:
    """Ranked fuzzy matches against past diagnoses, most similar first."""
    rows = db.execute(
        _SIMILAR_DIAGNOSTICS_SQL,
        {
            "p_appliance": appliance,
            "p_brand": brand,
            "p_problem": problem,
            "p_error_code": error_code,
            "p_threshold": threshold,
        },
    ).mappings().all()
    return [dict(row) for row in rows]


def create_diagnostic(db: Session, record: Dict[str, Any]) -> models_db.Diagnostic:
    """Insert a diagnosis row."""
    db_diagnostic = models_db.Diagnostic(**record)
    db.add(db_diagnostic)
    db.commit()
    db.refresh(db_diagnostic)
    return db_diagnostic


def search_spare_parts(
    db: Session, category: str, brand: str, model_number: str
) -> List[Dict[str, Any]]:
    """Exact and fuzzy model-number matches from the parts catalogue."""
    rows = db.execute(
        _SPARE_PARTS_SQL,
        {"p_category": category, "p_brand": brand, "p_model": model_number},
    ).mappings().all()
    return [dict(row) for row in rows]


def list_appliance_types(db: Session) -> List[str]:
    rows = (
        db.query(models_db.SparePart.category)
        .distinct()
        .order_by(models_db.SparePart.category)
        .all()
    )
    return [row[0] for row in rows if row[0]]


def list_brands(db: Session, appliance_type: str) -> List[str]:
    rows = (
        db.query(models_db.SparePart.brand)
        .filter(models_db.SparePart.category == appliance_type)
        .distinct()
        .order_by(models_db.SparePart.brand)
        .all()
    )
    return [row[0] for row in rows if row[0]]
