"""Officer report API endpoints."""

import io
import logging
from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import PlainTextResponse, StreamingResponse

from club_reports.api.dependencies import CurrentReporter, Reporter, ReportService
from club_reports.core.exceptions import DateRangeValidationError, ExportError, ReportFetchError
from club_reports.schemas.reports import DateBoundsResponse, ReportMetadata, ReportStats
from club_reports.services.date_range import (
    DateRangePreset,
    date_range_label,
    max_selectable_date,
    resolve_window,
    validate_date_range,
)
from club_reports.services.preview import PreviewFormatter
from club_reports.services.report_aggregator import ReportAggregator
from club_reports.services.report_data import ReportDataService
from club_reports.services.workbook_builder import WorkbookBuilder, export_filename
from club_reports.utils.timezone import local_date, now_local

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/officers/reports", tags=["reports"])

FETCH_ERROR_MESSAGE = "Có lỗi xảy ra khi tải dữ liệu thống kê"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DateRangeParam = Annotated[DateRangePreset, Query(alias="dateRange")]
StartDateParam = Annotated[Optional[str], Query(alias="startDate", description="YYYY-MM-DD")]
EndDateParam = Annotated[Optional[str], Query(alias="endDate", description="YYYY-MM-DD")]


async def _max_known_date(service: ReportDataService, reporter: Reporter) -> date:
    latest = await service.latest_activity_date(reporter.user_id)
    return max_selectable_date(local_date(latest) if latest else None)


async def _report_stats(
    service: ReportDataService,
    reporter: Reporter,
    date_range: DateRangePreset,
    start_date: Optional[str],
    end_date: Optional[str],
) -> ReportStats:
    try:
        if date_range == DateRangePreset.CUSTOM:
            max_known = await _max_known_date(service, reporter)
            validate_date_range(date_range, start_date, end_date, max_known).raise_for_error()

        window = resolve_window(date_range, start_date, end_date)
        batch = await service.fetch_activities(window, reporter.user_id)
        return ReportAggregator().aggregate(batch.activities, batch.participants, window)

    except DateRangeValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except ReportFetchError as e:
        logger.error(f"Error fetching report data: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=FETCH_ERROR_MESSAGE)


def _metadata(
    reporter: Reporter,
    date_range: DateRangePreset,
    start_date: Optional[str],
    end_date: Optional[str],
) -> ReportMetadata:
    return ReportMetadata(
        reporter_name=reporter.name,
        reporter_email=reporter.email,
        date_range=date_range.value,
        date_range_label=date_range_label(date_range, start_date, end_date),
        generated_at=now_local(),
    )


@router.get("", response_model=ReportStats)
async def get_report(
    service: ReportService,
    reporter: CurrentReporter,
    date_range: DateRangeParam = DateRangePreset.MONTH,
    start_date: StartDateParam = None,
    end_date: EndDateParam = None,
) -> ReportStats:
    """Aggregated statistics of the officer's activities."""
    return await _report_stats(service, reporter, date_range, start_date, end_date)


@router.get("/preview", response_class=PlainTextResponse)
async def preview_report(
    service: ReportService,
    reporter: CurrentReporter,
    date_range: DateRangeParam = DateRangePreset.MONTH,
    start_date: StartDateParam = None,
    end_date: EndDateParam = None,
) -> PlainTextResponse:
    """Plain-text preview of what the export will contain."""
    stats = await _report_stats(service, reporter, date_range, start_date, end_date)
    label = date_range_label(date_range, start_date, end_date)
    return PlainTextResponse(PreviewFormatter().format(stats, label))


@router.get("/export")
async def export_report(
    service: ReportService,
    reporter: CurrentReporter,
    date_range: DateRangeParam = DateRangePreset.MONTH,
    start_date: StartDateParam = None,
    end_date: EndDateParam = None,
) -> StreamingResponse:
    """Export the report as an Excel workbook."""
    stats = await _report_stats(service, reporter, date_range, start_date, end_date)
    metadata = _metadata(reporter, date_range, start_date, end_date)

    try:
        data = WorkbookBuilder().export(stats, metadata)
    except ExportError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    filename = export_filename(reporter.name, metadata.generated_at.date())
    logger.info(f"Report export '{filename}' generated for {reporter.email or 'anonymous officer'}")
    return StreamingResponse(
        io.BytesIO(data),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/date-bounds", response_model=DateBoundsResponse)
async def get_date_bounds(service: ReportService, reporter: CurrentReporter) -> DateBoundsResponse:
    """Latest date selectable in a custom range."""
    try:
        return DateBoundsResponse(max_date=await _max_known_date(service, reporter))
    except ReportFetchError as e:
        logger.error(f"Error fetching date bounds: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=FETCH_ERROR_MESSAGE)
