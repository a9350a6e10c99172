"""Health check API endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from club_reports.api.dependencies import DbSession

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    message: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="ok", message="Club reports API is running")


@router.get("/health/db", response_model=HealthResponse)
async def health_check_db(db: DbSession) -> HealthResponse:
    """Database health check endpoint."""
    try:
        result = await db.execute(text("SELECT 1"))
        if result.scalar() == 1:
            return HealthResponse(status="ok", message="Database connection is working")
        return HealthResponse(status="error", message="Database query failed")
    except (SQLAlchemyError, OSError) as e:
        return HealthResponse(status="error", message=f"Database connection failed: {str(e)}")
