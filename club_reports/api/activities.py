"""Activity attendance API endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from club_reports.api.dependencies import CurrentReporter, ReportService
from club_reports.core.exceptions import ActivityNotFoundError, ReportFetchError
from club_reports.schemas.reports import ActivitiesDashboard, AttendanceSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/activities", tags=["activities"])


@router.get("/dashboard", response_model=ActivitiesDashboard)
async def get_dashboard(service: ReportService, reporter: CurrentReporter) -> ActivitiesDashboard:
    """Activities with temporal status and attendance rates."""
    try:
        return await service.fetch_dashboard(reporter.user_id)
    except ReportFetchError as e:
        logger.error(f"Error fetching dashboard: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.get("/{activity_id}/attendance/summary", response_model=AttendanceSummary)
async def get_attendance_summary(activity_id: str, service: ReportService) -> AttendanceSummary:
    """Check-in statistics of one activity."""
    try:
        return await service.fetch_attendance_summary(activity_id)
    except ActivityNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
    except ReportFetchError as e:
        logger.error(f"Error fetching attendance summary: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
