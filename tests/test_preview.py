import io

from openpyxl import load_workbook

from club_reports.models import ApprovalStatus
from club_reports.schemas.reports import ReportMetadata
from club_reports.services.preview import PreviewFormatter
from club_reports.services.report_aggregator import ReportAggregator
from club_reports.services.workbook_builder import SUMMARY_TITLE, WorkbookBuilder
from factories import NOW, local, make_activity, make_multi_day, make_participant


def build_stats():
    participants = {
        "a1": [
            make_participant("u1", checked_in=True),
            make_participant("u2"),
            make_participant("u3", ApprovalStatus.PENDING),
            make_participant("u4", ApprovalStatus.REMOVED),
        ],
        "multi-1": [make_participant("u5")],
    }
    return ReportAggregator(now=NOW).aggregate(
        [make_activity("a1", date=local(2024, 3, 1)), make_multi_day()],
        participants,
    )


def test_preview_layout():
    text = PreviewFormatter().format(build_stats(), "Tháng này")
    lines = text.splitlines()

    assert lines[0] == SUMMARY_TITLE
    assert "📊 TỔNG QUAN:" in lines
    assert "📋 DANH SÁCH HOẠT ĐỘNG (2 hoạt động):" in lines
    assert "1. Hội thảo" in lines
    assert "2. Trại hè" in lines
    assert "   - Loại: Nhiều ngày" in lines
    assert "   - Người tham gia: 4 (Đã duyệt: 2)" in lines
    assert "   - Tỷ lệ điểm danh: 50%" in lines
    assert "- Khoảng thời gian: Tháng này" in lines
    assert text.endswith("💾 File sẽ được lưu dưới dạng: .xlsx")


def test_preview_matches_summary_sheet():
    stats = build_stats()
    text = PreviewFormatter().format(stats, "Tất cả")
    metadata = ReportMetadata(date_range="all", date_range_label="Tất cả", generated_at=NOW)
    worksheet = load_workbook(io.BytesIO(WorkbookBuilder().export(stats, metadata)))["Tổng Quan"]
    summary = {row[0]: row[1] for row in worksheet.iter_rows(values_only=True) if row[0] is not None}

    for sheet_label, preview_label in [
        ("Tổng số hoạt động", "Tổng số hoạt động"),
        ("Tổng số người tham gia", "Tổng số người tham gia"),
        ("Đã duyệt", "Đã duyệt"),
        ("Chờ duyệt", "Chờ duyệt"),
        ("Đã xóa", "Đã xóa"),
        ("Trung bình người tham gia/hoạt động", "Trung bình người tham gia/hoạt động"),
        ("Tỷ lệ duyệt (%)", "Tỷ lệ duyệt"),
        ("Tỷ lệ điểm danh trung bình (%)", "Tỷ lệ điểm danh trung bình"),
    ]:
        assert f"- {preview_label}: {summary[sheet_label]}" in text


def test_empty_preview():
    stats = ReportAggregator(now=NOW).aggregate([], {})

    text = PreviewFormatter().format(stats, "Tuần này")

    assert "- Tổng số hoạt động: 0" in text
    assert "(0 hoạt động)" in text
