import asyncio

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import crud
from app.api.deps import get_db, get_diagnosis_service
from app.api.v1.schemas import (
    DiagnosisRequest,
    DiagnosisResult,
    ErrorResponse,
    OptionsResponse,
)
from app.diagnosis.errors import InputValidationError, RateLimitExceededError
from app.services.diagnosis import DiagnosisService

logger = structlog.get_logger()
router = APIRouter()


@router.post(
    "/",
    response_model=DiagnosisResult,
    response_model_exclude_none=True,
    responses={
        status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
    },
)
async def create_diagnosis(
    request: DiagnosisRequest,
    service: DiagnosisService = Depends(get_diagnosis_service),
):
    """
    Diagnose an appliance fault.

    1. **Validates and sanitises** the request.
    2. **Reuses a similar past diagnosis** when one matches closely enough.
    3. **Researches error codes** on the web and asks the expert model.
    4. Falls back to a conservative professional-service diagnosis.
    """
    try:
        return await service.diagnose_problem(
            request.appliance, request.brand, request.problem, request.email
        )
    except InputValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": "Invalid diagnosis request", "errors": e.errors},
        )
    except RateLimitExceededError as e:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"detail": str(e), "errors": []},
            headers={"Retry-After": str(int(e.retry_after) + 1)},
        )


@router.get("/options/appliances", response_model=OptionsResponse)
async def list_appliance_types(db: Session = Depends(get_db)) -> OptionsResponse:
    """Appliance types offered on the diagnosis form."""
    try:
        options = await asyncio.to_thread(crud.list_appliance_types, db)
    except SQLAlchemyError as e:
        logger.error("diagnosis_options_failed", kind="appliances", error=str(e))
        options = []
    return OptionsResponse(options=options)


@router.get("/options/brands", response_model=OptionsResponse)
async def list_brands(
    appliance: str = Query(..., min_length=1, max_length=100),
    db: Session = Depends(get_db),
) -> OptionsResponse:
    """Brands stocked for an appliance type."""
    try:
        options = await asyncio.to_thread(crud.list_brands, db, appliance)
    except SQLAlchemyError as e:
        logger.error("diagnosis_options_failed", kind="brands", error=str(e))
        options = []
    if not options:
        logger.info("diagnosis_brands_empty", appliance=appliance)
    return OptionsResponse(options=options)
