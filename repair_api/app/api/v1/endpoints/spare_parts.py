"""Spare-parts catalogue search.

GET /v1/spare-parts/search returns exact and fuzzy model-number matches, limited per
client address by the spare-parts rate limiter.
"""

from __future__ import annotations

import asyncio

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import crud
from app.api.deps import get_db
from app.api.v1.schemas import SparePartResult, SparePartSearchResponse
from app.cache import spare_parts_limiter
from app.diagnosis.sanitization import InputSanitizer

logger = structlog.get_logger()

router = APIRouter()


def _client_identity(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.get("/search", response_model=SparePartSearchResponse)
async def search_spare_parts(
    request: Request,
    category: str = Query(..., min_length=2, max_length=100),
    brand: str = Query(..., min_length=2, max_length=100),
    model_number: str = Query(..., min_length=2, max_length=100),
    db: Session = Depends(get_db),
) -> SparePartSearchResponse:
    """Search the parts catalogue for a model number."""
    identity = _client_identity(request)
    if not spare_parts_limiter.check_and_consume(identity):
        retry_after = spare_parts_limiter.retry_after(identity)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many searches. Please wait a moment and try again.",
            headers={"Retry-After": str(int(retry_after) + 1)},
        )

    category = InputSanitizer.sanitize_text(category, max_length=100, allow_newlines=False)
    brand = InputSanitizer.sanitize_text(brand, max_length=100, allow_newlines=False)
    model_number = InputSanitizer.sanitize_text(
        model_number, max_length=100, allow_newlines=False
    )

    try:
        rows = await asyncio.to_thread(
            crud.search_spare_parts, db, category, brand, model_number
        )
    except SQLAlchemyError as e:
        logger.error("spare_parts_search_failed", error=str(e))
        return SparePartSearchResponse(
            results=[], error="Failed to search spare parts. Please try again."
        )

    results = [
        SparePartResult(
            id=str(row["id"]),
            category=row["category"],
            brand=row["brand"],
            model_number=row["model_number"],
            url=row["url"],
            match_type=row.get("match_type") or "fuzzy",
            similarity_score=float(row.get("similarity_score") or 0.0),
        )
        for row in rows
    ]
    logger.info(
        "spare_parts_search_completed",
        category=category,
        brand=brand,
        result_count=len(results),
    )
    return SparePartSearchResponse(results=results)
