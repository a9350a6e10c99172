"""API dependencies for database access and the requesting officer."""

from typing import Annotated, Optional

from fastapi import Depends, Header
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from club_reports.core.database import get_db
from club_reports.services.report_data import ReportDataService


class Reporter(BaseModel):
    """Officer requesting a report, as forwarded by the gateway."""

    user_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None


async def get_reporter(
    x_user_id: Annotated[Optional[str], Header()] = None,
    x_user_name: Annotated[Optional[str], Header()] = None,
    x_user_email: Annotated[Optional[str], Header()] = None,
) -> Reporter:
    """Identity headers set by the authenticating proxy."""
    return Reporter(user_id=x_user_id or None, name=x_user_name or None, email=x_user_email or None)


def get_report_service() -> ReportDataService:
    return ReportDataService()


# Dependency aliases for easier use
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentReporter = Annotated[Reporter, Depends(get_reporter)]
ReportService = Annotated[ReportDataService, Depends(get_report_service)]
