import io

import pytest
from openpyxl import load_workbook
from sqlalchemy.exc import OperationalError

from club_reports.api import reports
from club_reports.core.database import get_db
from club_reports.core.exceptions import ExportError, ReportFetchError
from club_reports.main import app
from club_reports.services.date_range import DateRangePreset
from club_reports.services.workbook_builder import EXPORT_ERROR_MESSAGE, SUMMARY_TITLE
from club_reports.utils.timezone import add_years, now_local

OFFICER_HEADERS = {
    "X-User-Id": "officer-1",
    "X-User-Name": "Tran B",
    "X-User-Email": "tranb@example.edu.vn",
}


@pytest.mark.asyncio
async def test_health(api_client):
    response = await api_client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_report_stats(api_client, report_service):
    response = await api_client.get(
        "/api/officers/reports", params={"dateRange": "all"}, headers=OFFICER_HEADERS
    )

    assert response.status_code == 200
    body = response.json()
    assert body["date_range"] == "all"
    assert body["total_activities"] == 2
    assert body["total_participants"] == 3
    assert [a["activity_id"] for a in body["activities_with_details"]] == ["a1", "m1"]
    assert body["activities_with_details"][0]["registration"]["registration_rate"] == 75
    assert report_service.reporters == ["officer-1"]


@pytest.mark.asyncio
async def test_report_defaults_to_month(api_client, report_service):
    response = await api_client.get("/api/officers/reports")

    assert response.status_code == 200
    assert response.json()["date_range"] == "month"
    assert report_service.windows[0].preset == DateRangePreset.MONTH


@pytest.mark.asyncio
async def test_custom_range(api_client):
    response = await api_client.get(
        "/api/officers/reports",
        params={"dateRange": "custom", "startDate": "2024-03-01", "endDate": "2024-03-31"},
    )

    assert response.status_code == 200
    assert [a["activity_id"] for a in response.json()["activities_with_details"]] == ["a1"]


@pytest.mark.asyncio
async def test_custom_range_start_after_end(api_client, report_service):
    response = await api_client.get(
        "/api/officers/reports",
        params={"dateRange": "custom", "startDate": "2024-03-10", "endDate": "2024-03-01"},
    )

    assert response.status_code == 422
    assert "start date" in response.json()["detail"].lower()
    assert report_service.windows == []


@pytest.mark.asyncio
async def test_unknown_preset_is_rejected(api_client):
    response = await api_client.get("/api/officers/reports", params={"dateRange": "decade"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_fetch_failure_is_503(api_client, report_service):
    report_service.error = ReportFetchError("database down")

    response = await api_client.get("/api/officers/reports", params={"dateRange": "all"})

    assert response.status_code == 503
    assert response.json()["detail"] == reports.FETCH_ERROR_MESSAGE


@pytest.mark.asyncio
async def test_preview(api_client):
    response = await api_client.get("/api/officers/reports/preview", params={"dateRange": "all"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text.startswith(SUMMARY_TITLE)
    assert "- Khoảng thời gian: Tất cả" in response.text
    assert "(2 hoạt động)" in response.text


@pytest.mark.asyncio
async def test_export(api_client):
    response = await api_client.get(
        "/api/officers/reports/export", params={"dateRange": "all"}, headers=OFFICER_HEADERS
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == reports.XLSX_MEDIA_TYPE
    disposition = response.headers["content-disposition"]
    assert disposition.startswith("attachment; filename=bao-cao-thong-ke-Tran_B-")
    assert disposition.endswith(".xlsx")

    workbook = load_workbook(io.BytesIO(response.content))
    assert workbook.sheetnames == ["Tổng Quan", "Danh Sách Hoạt Động", "Hội thảo", "Trại hè"]
    assert workbook["Tổng Quan"]["B3"].value == "Tran B"


@pytest.mark.asyncio
async def test_export_failure_is_500(api_client, monkeypatch):
    def fail(self, stats, metadata):
        raise ExportError(EXPORT_ERROR_MESSAGE)

    monkeypatch.setattr(reports.WorkbookBuilder, "export", fail)

    response = await api_client.get("/api/officers/reports/export", params={"dateRange": "all"})

    assert response.status_code == 500
    assert response.json()["detail"] == EXPORT_ERROR_MESSAGE


@pytest.mark.asyncio
async def test_date_bounds(api_client):
    response = await api_client.get("/api/officers/reports/date-bounds")

    assert response.status_code == 200
    assert response.json()["max_date"] == add_years(now_local().date(), 1).isoformat()


@pytest.mark.asyncio
async def test_attendance_summary(api_client):
    response = await api_client.get("/api/activities/a1/attendance/summary")

    assert response.status_code == 200
    assert response.json()["attendance_rate"] == 50


@pytest.mark.asyncio
async def test_attendance_summary_not_found(api_client):
    response = await api_client.get("/api/activities/missing/attendance/summary")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_dashboard(api_client):
    response = await api_client.get("/api/activities/dashboard", headers=OFFICER_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["overall_attendance_rate"] == 50
    assert body["overall_active_attendance_rate"] is None
    assert body["activities"][0]["temporal_status"] == "past"


@pytest.mark.asyncio
async def test_dashboard_fetch_failure(api_client, report_service):
    report_service.error = ReportFetchError("timeout")

    response = await api_client.get("/api/activities/dashboard")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_db_health_reports_connection_failure(api_client):
    class UnreachableSession:
        async def execute(self, statement):
            raise OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))

    async def broken_db():
        yield UnreachableSession()

    app.dependency_overrides[get_db] = broken_db
    try:
        response = await api_client.get("/health/db")
    finally:
        app.dependency_overrides.pop(get_db, None)

    assert response.status_code == 200
    assert response.json()["status"] == "error"
