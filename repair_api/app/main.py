"""Main FastAPI application for the appliance repair diagnostics API.

Serves the AI-assisted fault diagnosis used by the booking site, plus the
option lists and spare-parts search that sit beside it.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Dict

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from app.api.deps import close_diagnosis_service
from app.cache import diagnosis_limiter, spare_parts_limiter
from app.config import settings


def _configure_logging(level: str, fmt: str) -> None:
    """Set up structlog with console or JSON rendering."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
    )

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


_configure_logging(settings.log_level, settings.log_format)
logger = structlog.get_logger(__name__)


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    services: Dict[str, str]


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Appliance repair booking site - Diagnostics API",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://127.0.0.1:3000", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event() -> None:
    """Application startup handler.

    Logs configuration and starts the rate-limiter sweep loops.
    """
    logger.info("app_starting", name=settings.app_name, version=settings.app_version)
    logger.info(
        "app_integrations",
        database=f"{settings.db_host}:{settings.db_port}",
        llm_enabled=settings.llm_enabled,
        llm_model=settings.llm_model,
        serpapi=bool(settings.serpapi_api_key),
        serper=bool(settings.serper_api_key),
    )
    await diagnosis_limiter.start()
    await spare_parts_limiter.start()


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Application shutdown handler."""
    await diagnosis_limiter.stop()
    await spare_parts_limiter.stop()
    await close_diagnosis_service()
    logger.info("app_shutdown", name=settings.app_name)


@app.get("/", tags=["Root"])
async def root() -> Dict[str, str]:
    """Root endpoint.

    Returns:
        Welcome message with API information
    """
    return {
        "message": "Appliance Repair Diagnostics API",
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
    }


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint.

    Optional integrations report ``disabled`` rather than failing the check.
    """
    services_status = {
        "api": "healthy",
        "llm": "configured" if settings.llm_enabled else "disabled",
        "web_search": (
            "configured"
            if settings.serpapi_api_key or settings.serper_api_key
            else "disabled"
        ),
    }
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        services=services_status,
    )


from app.api.v1.endpoints import diagnose, spare_parts

# Include routers
app.include_router(diagnose.router, prefix="/v1/diagnose", tags=["Diagnostics"])
app.include_router(spare_parts.router, prefix="/v1/spare-parts", tags=["Spare Parts"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )
