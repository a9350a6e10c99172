import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from club_reports.api.dependencies import get_report_service
from club_reports.core.exceptions import ActivityNotFoundError
from club_reports.main import app
from club_reports.models import ApprovalStatus
from club_reports.schemas.reports import (
    ActivitiesDashboard,
    AttendanceSummary,
    DashboardActivity,
    TemporalStatus,
)
from club_reports.services.report_data import ActivityBatch
from factories import local, make_activity, make_multi_day, make_participant


class FakeReportService:
    """In-memory stand-in for :class:`ReportDataService`."""

    def __init__(self):
        self.batch = ActivityBatch(
            activities=[
                make_activity("a1", date=local(2024, 3, 10), max_participants=4),
                make_multi_day("m1"),
            ],
            participants={
                "a1": [
                    make_participant("u1", checked_in=True),
                    make_participant("u2"),
                    make_participant("p1", ApprovalStatus.PENDING),
                ],
                "m1": [],
            },
        )
        self.latest = local(2024, 3, 10)
        self.error = None
        self.windows = []
        self.reporters = []

    async def fetch_activities(self, window, responsible_id=None):
        self.windows.append(window)
        self.reporters.append(responsible_id)
        if self.error:
            raise self.error
        return self.batch

    async def latest_activity_date(self, responsible_id=None):
        if self.error:
            raise self.error
        return self.latest

    async def fetch_attendance_summary(self, activity_id):
        if activity_id != "a1":
            raise ActivityNotFoundError(f"Activity {activity_id} not found")
        return AttendanceSummary(activity_id="a1", total=2, checked_in=1, not_checked_in=1, attendance_rate=50)

    async def fetch_dashboard(self, responsible_id=None, now=None):
        if self.error:
            raise self.error
        return ActivitiesDashboard(
            activities=[
                DashboardActivity(
                    activity_id="a1",
                    name="Hội thảo",
                    type="single_day",
                    status="published",
                    temporal_status=TemporalStatus.PAST,
                    sort_date=local(2024, 3, 10),
                    attendance_rate=50,
                )
            ],
            overall_attendance_rate=50,
        )


@pytest.fixture
def report_service():
    service = FakeReportService()
    app.dependency_overrides[get_report_service] = lambda: service
    try:
        yield service
    finally:
        app.dependency_overrides.pop(get_report_service, None)


@pytest_asyncio.fixture
async def api_client(report_service):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
