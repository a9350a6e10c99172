import io
from datetime import date

import pytest
from openpyxl import load_workbook

from club_reports.core.exceptions import ExportError
from club_reports.models import ApprovalStatus
from club_reports.schemas.reports import DaySlot, ReportMetadata
from club_reports.services.report_aggregator import ReportAggregator
from club_reports.services.workbook_builder import (
    ACTIVITY_LIST_COLUMNS,
    EXPORT_ERROR_MESSAGE,
    SUMMARY_TITLE,
    WorkbookBuilder,
    export_filename,
)
from factories import NOW, local, make_activity, make_multi_day, make_participant


@pytest.fixture
def metadata():
    return ReportMetadata(
        reporter_name="Trần Thị B",
        reporter_email=None,
        date_range="all",
        date_range_label="Tất cả",
        generated_at=NOW,
    )


@pytest.fixture
def stats():
    activities = [
        make_activity("a1", date=local(2024, 3, 1)),
        make_activity("a2", date=local(2024, 3, 5), max_participants=10),
        make_multi_day("m1"),
    ]
    participants = {
        "a2": [
            make_participant("x1", ApprovalStatus.REMOVED),
            make_participant("p1", ApprovalStatus.PENDING),
            make_participant("u1", ApprovalStatus.APPROVED, checked_in=True, checked_in_at=local(2024, 3, 5, 8, 5)),
            make_participant("r1", ApprovalStatus.REJECTED),
            make_participant("u2", ApprovalStatus.APPROVED),
        ],
        "m1": [
            make_participant(
                "u3",
                ApprovalStatus.APPROVED,
                registered_day_slots=[DaySlot(day=1, slot="morning"), DaySlot(day=2, slot="afternoon")],
            ),
            make_participant("p2", ApprovalStatus.PENDING, registered_day_slots=[DaySlot(day=3, slot="evening")]),
        ],
    }
    return ReportAggregator(now=NOW).aggregate(activities, participants)


def load(data):
    return load_workbook(io.BytesIO(data))


def labelled_values(worksheet):
    return {
        row[0]: row[1]
        for row in worksheet.iter_rows(values_only=True)
        if row and row[0] is not None and len(row) > 1
    }


def table_rows(worksheet):
    """Rows of the participant table, header excluded."""
    rows = list(worksheet.iter_rows(values_only=True))
    start = next(i for i, row in enumerate(rows) if row[0] == "STT")
    return rows[start + 1:]


def test_sheet_order_and_unique_names(stats, metadata):
    workbook = load(WorkbookBuilder().export(stats, metadata))

    assert workbook.sheetnames == ["Tổng Quan", "Danh Sách Hoạt Động", "Hội thảo", "Hội thảo (1)", "Trại hè"]


def test_summary_sheet(stats, metadata):
    worksheet = load(WorkbookBuilder().export(stats, metadata))["Tổng Quan"]
    values = labelled_values(worksheet)

    assert worksheet["A1"].value == SUMMARY_TITLE
    assert "A1:D1" in {str(r) for r in worksheet.merged_cells.ranges}
    assert values["Người xuất báo cáo"] == "Trần Thị B"
    assert values["Email"] == "N/A"
    assert values["Khoảng thời gian"] == "Tất cả"
    assert values["Tổng số hoạt động"] == 3
    assert values["Hoạt động một ngày"] == 2
    assert values["Hoạt động nhiều ngày"] == 1
    assert values["Hoạt động Đã xuất bản"] == 3
    assert "Hoạt động Đã hủy" not in values
    assert values["Tổng số người tham gia"] == 7
    assert values["Đã xóa"] == 1
    assert values["Trung bình người tham gia/hoạt động"] == "2.3"


def test_activity_list_sheet(stats, metadata):
    worksheet = load(WorkbookBuilder().export(stats, metadata))["Danh Sách Hoạt Động"]
    rows = list(worksheet.iter_rows(values_only=True))

    assert list(rows[0]) == [name for name, _ in ACTIVITY_LIST_COLUMNS]
    assert len(rows) == 4
    assert [row[0] for row in rows[1:]] == [1, 2, 3]
    assert rows[1][1] == "Hội thảo"
    assert rows[1][8] == 5
    assert rows[1][13] == "40%"
    assert rows[3][3] == "Nhiều ngày"


def test_participants_ordered_by_bucket_with_continuous_numbers(stats, metadata):
    worksheet = load(WorkbookBuilder().export(stats, metadata))["Hội thảo"]
    rows = table_rows(worksheet)

    assert [row[0] for row in rows] == [1, 2, 3, 4, 5]
    assert [row[1] for row in rows] == [
        "Sinh viên u1",
        "Sinh viên u2",
        "Sinh viên p1",
        "Sinh viên r1",
        "Sinh viên x1",
    ]
    assert rows[0][7] == "Có"
    assert rows[0][8] == "05/03/2024 08:05:00"
    assert rows[1][8] == "Chưa điểm danh"
    assert rows[2][4] == "Chờ duyệt"
    assert rows[3][4] == "Từ chối"
    assert rows[4][4] == "Đã xóa"


def test_detail_sheet_sections(stats, metadata):
    worksheet = load(WorkbookBuilder().export(stats, metadata))["Hội thảo"]
    values = labelled_values(worksheet)

    assert values["Tên hoạt động"] == "Hội thảo"
    assert values["Tình trạng"] == "Đã kết thúc"
    assert values["Tỷ lệ đăng ký (%)"] == "50%"
    assert values["Tỷ lệ điểm danh (%)"] == "50%"
    assert values["Số người tối đa"] == 10
    assert "Ghi chú" not in values


def test_registered_slots_only_for_multi_day(stats, metadata):
    workbook = load(WorkbookBuilder().export(stats, metadata))

    multi_rows = table_rows(workbook["Trại hè"])
    assert multi_rows[0][9] == "Ngày 1 - Sáng; Ngày 2 - Chiều"
    assert multi_rows[1][9] == "Ngày 3 - Tối"
    assert all(row[9] is None for row in table_rows(workbook["Hội thảo"]))


def test_unknown_attendance_is_noted(metadata):
    stats = ReportAggregator(now=NOW).aggregate(
        [make_activity()],
        {"act-1": [make_participant("u1", attendance_records=None)]},
    )

    worksheet = load(WorkbookBuilder().export(stats, metadata))["Hội thảo"]

    assert labelled_values(worksheet)["Ghi chú"] == "Không tải được dữ liệu điểm danh"


def test_empty_report_still_has_fixed_sheets(metadata):
    stats = ReportAggregator(now=NOW).aggregate([], {})

    workbook = load(WorkbookBuilder().export(stats, metadata))

    assert workbook.sheetnames == ["Tổng Quan", "Danh Sách Hoạt Động"]


def test_writer_failure_becomes_export_error(stats, metadata):
    def broken_writer(document):
        raise OSError("disk full")

    with pytest.raises(ExportError) as exc_info:
        WorkbookBuilder(writer=broken_writer).export(stats, metadata)

    assert str(exc_info.value) == EXPORT_ERROR_MESSAGE


def test_build_does_not_serialize(stats, metadata):
    document = WorkbookBuilder(writer=None).build(stats, metadata)
    assert document.sheet_names[:2] == ["Tổng Quan", "Danh Sách Hoạt Động"]


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Nguyễn Văn A", "bao-cao-thong-ke-Nguy_n_V_n_A-2024-03-15.xlsx"),
        (None, "bao-cao-thong-ke-officer-2024-03-15.xlsx"),
        ("a/b\\c", "bao-cao-thong-ke-a_b_c-2024-03-15.xlsx"),
    ],
)
def test_export_filename(name, expected):
    assert export_filename(name, date(2024, 3, 15)) == expected
