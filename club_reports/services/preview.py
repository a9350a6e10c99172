"""Plain-text preview of an officer report."""

from club_reports.schemas.reports import ActivityDetail, ReportStats
from club_reports.services.labels import TYPE_LABELS
from club_reports.services.sheet_names import ACTIVITY_LIST_SHEET, SUMMARY_SHEET
from club_reports.services.workbook_builder import SUMMARY_TITLE
from club_reports.utils.numbers import format_percent

RULE = "═" * 55


class PreviewFormatter:
    """Renders the numbers of the summary sheet as text.

    Reads the same :class:`ReportStats` fields as the workbook, so both
    surfaces always agree.
    """

    def format(self, stats: ReportStats, date_range_label: str) -> str:
        lines = [
            SUMMARY_TITLE,
            RULE,
            "",
            "📊 TỔNG QUAN:",
            f"- Tổng số hoạt động: {stats.total_activities}",
            f"- Tổng số người tham gia: {stats.total_participants}",
            f"- Đã duyệt: {stats.approved_participants}",
            f"- Chờ duyệt: {stats.pending_participants}",
            f"- Từ chối: {stats.rejected_participants}",
            f"- Đã xóa: {stats.removed_participants}",
            f"- Trung bình người tham gia/hoạt động: {stats.average_participants:.1f}",
            f"- Tỷ lệ duyệt: {format_percent(stats.approval_rate)}",
            f"- Tỷ lệ điểm danh trung bình: {format_percent(stats.attendance_totals.average_attendance_rate)}",
            f"- Khoảng thời gian: {date_range_label}",
            "",
            f"📋 DANH SÁCH HOẠT ĐỘNG ({len(stats.activities_with_details)} hoạt động):",
        ]

        blocks = [
            self._activity_block(index, detail)
            for index, detail in enumerate(stats.activities_with_details, start=1)
        ]
        lines.append("\n\n".join(blocks))

        lines.extend([
            "",
            "📄 FILE EXCEL SẼ BAO GỒM:",
            f'1. Sheet "{SUMMARY_SHEET}" - Thống kê tổng quan',
            f'2. Sheet "{ACTIVITY_LIST_SHEET}" - Danh sách tất cả hoạt động',
            "3. Sheet cho mỗi hoạt động - Chi tiết người tham gia và điểm danh từng buổi",
            "",
            "💾 File sẽ được lưu dưới dạng: .xlsx",
        ])
        return "\n".join(lines)

    @staticmethod
    def _activity_block(index: int, detail: ActivityDetail) -> str:
        return "\n".join([
            f"{index}. {detail.activity_name}",
            f"   - Loại: {TYPE_LABELS[detail.activity_type]}",
            f"   - Người tham gia: {detail.participants_count} "
            f"(Đã duyệt: {detail.participants_by_status.approved})",
            f"   - Tỷ lệ điểm danh: {format_percent(detail.attendance.attendance_rate)}",
            f"   - Tỷ lệ hoàn thành: {format_percent(detail.average_completion_rate)}",
        ])
