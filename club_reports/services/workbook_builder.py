"""Multi-sheet officer report workbook."""

import logging
import re
from datetime import date
from typing import Callable, Optional

from club_reports.core.exceptions import ExportError, SheetNameError
from club_reports.models import ActivityType, ApprovalStatus
from club_reports.schemas.reports import (
    ActivityDetail,
    ParticipantSummary,
    ReportMetadata,
    ReportStats,
)
from club_reports.services.labels import (
    BUCKET_PLACEHOLDERS,
    DAY_SLOT_LABELS,
    NOT_AVAILABLE,
    NOT_SET,
    STATUS_LABELS,
    TEMPORAL_LABELS,
    TYPE_LABELS,
)
from club_reports.services.schedule_rows import SCHEDULE_COLUMNS, schedule_rows
from club_reports.services.sheet_names import (
    ACTIVITY_LIST_SHEET,
    SUMMARY_SHEET,
    SheetNameAllocator,
)
from club_reports.services.workbook_writer import (
    HEADER_FILL,
    SECTION_FILL,
    CellStyle,
    Sheet,
    WorkbookDocument,
    write_workbook,
)
from club_reports.utils.numbers import format_percent
from club_reports.utils.timezone import format_date, format_datetime, now_local

logger = logging.getLogger(__name__)

SUMMARY_TITLE = "BÁO CÁO THỐNG KÊ HOẠT ĐỘNG NGOẠI KHÓA"
DETAIL_TITLE = "BÁO CÁO CHI TIẾT HOẠT ĐỘNG NGOẠI KHÓA"
EXPORT_ERROR_MESSAGE = "Có lỗi xảy ra khi xuất file Excel. Vui lòng thử lại."

TITLE_STYLE = CellStyle(bold=True, size=16, fill=HEADER_FILL, horizontal="center")
SECTION_STYLE = CellStyle(bold=True, size=12, fill=SECTION_FILL)
HEADER_STYLE = CellStyle(bold=True, fill=HEADER_FILL, horizontal="center", wrap=True)
LABEL_STYLE = CellStyle(bold=True, wrap=True)
VALUE_STYLE = CellStyle(wrap=True)
PLAIN_STYLE = CellStyle()
NUMBER_STYLE = CellStyle(horizontal="right")
TABLE_STYLE = CellStyle(size=10, wrap=True)
ORDINAL_STYLE = CellStyle(bold=True, size=10, horizontal="center")

ACTIVITY_LIST_COLUMNS = [
    ("STT", 5),
    ("Tên hoạt động", 35),
    ("Mô tả", 50),
    ("Loại", 12),
    ("Trạng thái", 12),
    ("Ngày bắt đầu", 15),
    ("Ngày kết thúc", 15),
    ("Địa điểm", 30),
    ("Số người đăng ký", 15),
    ("Số người đã duyệt", 15),
    ("Số người chờ duyệt", 15),
    ("Số người từ chối", 15),
    ("Số người đã xóa", 15),
    ("Tỷ lệ duyệt (%)", 15),
    ("Số người điểm danh", 18),
    ("Tỷ lệ điểm danh (%)", 18),
    ("Đúng giờ", 10),
    ("Trễ", 10),
    ("Vắng", 10),
    ("Tỷ lệ hoàn thành trung bình (%)", 25),
]

PARTICIPANT_COLUMNS = [
    ("STT", 24),
    ("Họ và tên", 30),
    ("Email", 30),
    ("MSSV", 15),
    ("Tỷ lệ hoàn thành (%)", 18),
    ("Số buổi đã tham gia", 18),
    ("Tổng số buổi cần tham gia", 18),
    ("Đã điểm danh", 18),
    ("Thời gian điểm danh đầu tiên", 22),
    ("Đã đăng ký các buổi", 40),
    ("Ghi chú", 18),
]
DETAIL_WIDTH = len(PARTICIPANT_COLUMNS)


def export_filename(reporter_name: Optional[str], today: Optional[date] = None) -> str:
    """``bao-cao-thong-ke-<name>-<YYYY-MM-DD>.xlsx`` restricted to ``[A-Za-z0-9._-]``."""
    today = today or now_local().date()
    filename = f"bao-cao-thong-ke-{reporter_name or 'officer'}-{today.isoformat()}.xlsx"
    return re.sub(r"[^A-Za-z0-9._-]", "_", filename)


def registered_slots_text(participant: ParticipantSummary) -> str:
    return "; ".join(
        f"Ngày {ds.day} - {DAY_SLOT_LABELS.get(ds.slot, ds.slot)}"
        for ds in participant.registered_day_slots
    )


def _section(sheet: Sheet, title: str, merge_to: int = 2) -> None:
    sheet.add([title], style=SECTION_STYLE, height=26, merge_to=merge_to)


def _pairs(sheet: Sheet, pairs: list[tuple[str, object]], value_style: CellStyle = VALUE_STYLE) -> None:
    for label, value in pairs:
        sheet.add(
            [label, value],
            style=PLAIN_STYLE,
            height=22,
            cell_styles={1: LABEL_STYLE, 2: value_style},
        )


class WorkbookBuilder:
    """Lays out :class:`ReportStats` as summary, activity list and one sheet per activity.

    ``build`` returns an in-memory document; ``export`` also serializes it.
    Neither performs any I/O.
    """

    def __init__(self, writer: Callable[[WorkbookDocument], bytes] = write_workbook):
        self.writer = writer

    def build(self, stats: ReportStats, metadata: ReportMetadata) -> WorkbookDocument:
        allocator = SheetNameAllocator()
        document = WorkbookDocument()
        document.sheets.append(self._summary_sheet(stats, metadata))
        document.sheets.append(self._activity_list_sheet(stats))

        for index, detail in enumerate(stats.activities_with_details, start=1):
            try:
                name = allocator.allocate(detail.activity_name, detail.activity_id, index)
            except SheetNameError as e:
                logger.warning(f"Sheet name for activity {detail.activity_id} fell back to position: {e}")
                name = allocator.allocate_positional(index)
            document.sheets.append(self._detail_sheet(name, detail))

        return document

    def export(self, stats: ReportStats, metadata: ReportMetadata) -> bytes:
        try:
            document = self.build(stats, metadata)
            data = self.writer(document)
        except Exception as e:
            logger.error(f"Workbook export failed: {e}", exc_info=True)
            raise ExportError(EXPORT_ERROR_MESSAGE) from e

        logger.info(
            f"Exported workbook with {len(document.sheets)} sheets "
            f"for {stats.total_activities} activities"
        )
        return data

    # --- summary ---

    def _summary_sheet(self, stats: ReportStats, metadata: ReportMetadata) -> Sheet:
        sheet = Sheet(SUMMARY_SHEET, column_widths=[35, 25, 25, 25])
        sheet.add([SUMMARY_TITLE], style=TITLE_STYLE, height=28, merge_to=4)
        sheet.blank()
        for label, value in [
            ("Người xuất báo cáo", metadata.reporter_name or NOT_AVAILABLE),
            ("Email", metadata.reporter_email or NOT_AVAILABLE),
            ("Khoảng thời gian", metadata.date_range_label),
            ("Ngày xuất báo cáo", format_datetime(metadata.generated_at)),
        ]:
            sheet.add([label, value], style=PLAIN_STYLE, height=26)
        sheet.blank(height=10)

        _section(sheet, "TỔNG QUAN HOẠT ĐỘNG", merge_to=4)
        rows = [
            ("Tổng số hoạt động", stats.total_activities),
            ("Hoạt động một ngày", stats.by_type.get(ActivityType.SINGLE_DAY.value, 0)),
            ("Hoạt động nhiều ngày", stats.by_type.get(ActivityType.MULTIPLE_DAYS.value, 0)),
        ]
        for status, label in STATUS_LABELS.items():
            count = stats.by_status.get(status.value, 0)
            if count:
                rows.append((f"Hoạt động {label}", count))
        self._summary_rows(sheet, rows)
        sheet.blank(height=10)

        _section(sheet, "TỔNG QUAN NGƯỜI THAM GIA", merge_to=4)
        self._summary_rows(sheet, [
            ("Tổng số người tham gia", stats.total_participants),
            ("Đã duyệt", stats.approved_participants),
            ("Chờ duyệt", stats.pending_participants),
            ("Từ chối", stats.rejected_participants),
            ("Đã xóa", stats.removed_participants),
            ("Trung bình người tham gia/hoạt động", f"{stats.average_participants:.1f}"),
            ("Tỷ lệ duyệt (%)", format_percent(stats.approval_rate)),
        ])
        sheet.blank(height=10)

        totals = stats.attendance_totals
        _section(sheet, "THỐNG KÊ ĐIỂM DANH TỔNG HỢP", merge_to=4)
        self._summary_rows(sheet, [
            ("Tổng số người đã điểm danh", totals.checked_in),
            ("Đúng giờ", totals.on_time),
            ("Trễ", totals.late),
            ("Vắng", totals.absent),
            ("Tỷ lệ điểm danh trung bình (%)", format_percent(totals.average_attendance_rate)),
        ])
        return sheet

    @staticmethod
    def _summary_rows(sheet: Sheet, rows: list[tuple[str, object]]) -> None:
        for label, value in rows:
            sheet.add([label, value], style=PLAIN_STYLE, height=26, cell_styles={2: NUMBER_STYLE})

    # --- activity list ---

    def _activity_list_sheet(self, stats: ReportStats) -> Sheet:
        sheet = Sheet(
            ACTIVITY_LIST_SHEET,
            column_widths=[width for _, width in ACTIVITY_LIST_COLUMNS],
            tabular=True,
        )
        sheet.add([name for name, _ in ACTIVITY_LIST_COLUMNS], style=HEADER_STYLE, height=26)
        for index, detail in enumerate(stats.activities_with_details, start=1):
            sheet.add([
                index,
                detail.activity_name,
                detail.activity_description or "Không có mô tả",
                TYPE_LABELS[detail.activity_type],
                STATUS_LABELS[detail.activity_status],
                format_date(detail.activity_date, NOT_SET),
                format_date(detail.activity_end_date, NOT_SET),
                detail.activity_location or NOT_SET,
                detail.participants_count,
                detail.participants_by_status.approved,
                detail.participants_by_status.pending,
                detail.participants_by_status.rejected,
                detail.participants_by_status.removed,
                format_percent(detail.approval.approval_rate),
                detail.attendance.checked_in,
                format_percent(detail.attendance.attendance_rate),
                detail.attendance.on_time,
                detail.attendance.late,
                detail.attendance.absent,
                format_percent(detail.average_completion_rate),
            ])
        return sheet

    # --- per activity ---

    def _detail_sheet(self, name: str, detail: ActivityDetail) -> Sheet:
        sheet = Sheet(name, column_widths=[width for _, width in PARTICIPANT_COLUMNS])
        sheet.add([DETAIL_TITLE], style=TITLE_STYLE, height=28, merge_to=DETAIL_WIDTH)
        sheet.blank()

        _section(sheet, "THÔNG TIN HOẠT ĐỘNG")
        _pairs(sheet, [
            ("Tên hoạt động", detail.activity_name),
            ("Mô tả", detail.activity_description or "Không có mô tả"),
            ("Loại hoạt động", TYPE_LABELS[detail.activity_type]),
            ("Trạng thái", STATUS_LABELS[detail.activity_status]),
            ("Tình trạng", TEMPORAL_LABELS[detail.temporal_status]),
            ("Địa điểm", detail.activity_location or NOT_SET),
            ("Ngày bắt đầu", format_date(detail.activity_date, NOT_SET)),
            ("Ngày kết thúc", format_date(detail.activity_end_date, NOT_SET)),
            ("Số người tối đa", detail.max_participants or "Không giới hạn"),
            ("Ngưỡng đăng ký (%)", detail.registration_threshold or "Không có"),
        ])

        _section(sheet, "LỊCH TRÌNH HOẠT ĐỘNG", merge_to=len(SCHEDULE_COLUMNS))
        sheet.add(SCHEDULE_COLUMNS, style=HEADER_STYLE, height=26)
        for row in schedule_rows(detail):
            sheet.add(row.values(), style=VALUE_STYLE, height=22)

        registration_rate = detail.registration.registration_rate
        _section(sheet, "THỐNG KÊ ĐĂNG KÝ & DUYỆT")
        _pairs(sheet, [
            ("Tổng số người đăng ký", detail.participants_count),
            ("Tỷ lệ đăng ký (%)", "Không giới hạn" if registration_rate is None else format_percent(registration_rate)),
            ("Số người đã duyệt", detail.participants_by_status.approved),
            ("Số người chờ duyệt", detail.participants_by_status.pending),
            ("Số người từ chối", detail.participants_by_status.rejected),
            ("Số người đã xóa", detail.participants_by_status.removed),
            ("Tỷ lệ duyệt (%)", format_percent(detail.approval.approval_rate)),
        ], value_style=PLAIN_STYLE)

        attendance = detail.attendance
        rows = [
            ("Số người điểm danh", attendance.checked_in),
            ("Tỷ lệ điểm danh (%)", format_percent(attendance.attendance_rate)),
            ("Đúng giờ", attendance.on_time),
            ("Trễ", attendance.late),
            ("Vắng", attendance.absent),
        ]
        if not detail.attendance_known:
            rows.append(("Ghi chú", "Không tải được dữ liệu điểm danh"))
        _section(sheet, "THỐNG KÊ ĐIỂM DANH")
        _pairs(sheet, rows, value_style=PLAIN_STYLE)

        _section(sheet, "DANH SÁCH NGƯỜI THAM GIA", merge_to=DETAIL_WIDTH)
        sheet.add([name for name, _ in PARTICIPANT_COLUMNS], style=HEADER_STYLE, height=30)
        for values in self._participant_rows(detail):
            sheet.add(values, style=TABLE_STYLE, height=20, cell_styles={1: ORDINAL_STYLE})
        return sheet

    @staticmethod
    def _participant_rows(detail: ActivityDetail) -> list[list]:
        multiple_days = detail.activity_type == ActivityType.MULTIPLE_DAYS
        details = detail.participant_details
        rows = []
        number = 0

        for participant in details.approved:
            number += 1
            rows.append([
                number,
                participant.name,
                participant.email or "",
                participant.student_id or "",
                format_percent(participant.completion_rate),
                participant.total_sessions_attended,
                participant.total_expected_sessions,
                "Có" if participant.checked_in else "Không",
                format_datetime(participant.checked_in_at, "Chưa điểm danh"),
                registered_slots_text(participant) if multiple_days else "",
                "",
            ])

        for bucket, participants in (
            (ApprovalStatus.PENDING, details.pending),
            (ApprovalStatus.REJECTED, details.rejected),
            (ApprovalStatus.REMOVED, details.removed),
        ):
            completion, checked_in, first_check_in = BUCKET_PLACEHOLDERS[bucket]
            for participant in participants:
                number += 1
                rows.append([
                    number,
                    participant.name,
                    participant.email or "",
                    participant.student_id or "",
                    completion,
                    0,
                    0,
                    checked_in,
                    first_check_in,
                    registered_slots_text(participant)
                    if multiple_days and bucket == ApprovalStatus.PENDING
                    else "",
                    "",
                ])
        return rows
