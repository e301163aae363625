"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from seo_audit.api.deps import CatalogDep, DatabaseDep, RunnerDep

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema.

    Attributes:
        status: Overall health status.
        database: Database connection status.
        catalog_version: Version of the loaded rule catalog.
        active_rules: Number of active rules.
        audits_in_progress: Audits queued or running in this process.
        timestamp: Current server time in ISO format.
    """

    status: str
    database: str
    catalog_version: str
    active_rules: int
    audits_in_progress: int
    timestamp: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: DatabaseDep,
    catalog: CatalogDep,
    runner: RunnerDep,
) -> HealthResponse:
    """Check application health and database connectivity.

    Returns:
        HealthResponse: Current health status of the application.

    Raises:
        HTTPException: If database is unreachable.
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"[Health] Database check failed: {e!r}")
        raise HTTPException(status_code=503, detail="Database connection failed")

    return HealthResponse(
        status="healthy",
        database="connected",
        catalog_version=catalog.version,
        active_rules=len(catalog),
        audits_in_progress=len(runner.pending),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/health/live")
async def liveness_check() -> dict:
    """Liveness check endpoint.

    Returns:
        dict: Simple alive status.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(db: DatabaseDep) -> dict:
    """Readiness check endpoint.

    Returns:
        dict: Ready status.

    Raises:
        HTTPException: If the database is unreachable.
    """
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        raise HTTPException(status_code=503, detail="Not ready")
    return {"status": "ready"}
