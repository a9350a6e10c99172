from club_reports.schemas.reports import TimeSlot
from club_reports.services.report_aggregator import ReportAggregator
from club_reports.services.schedule_rows import location_text, schedule_rows, slot_label
from factories import AFTERNOON, MORNING, NOW, make_activity, make_multi_day


def detail_of(activity):
    return ReportAggregator(now=NOW).build_detail(activity, [])


def test_single_day_rows_from_time_slots():
    evening = TimeSlot(name="Buổi Tối", start_time="18:00", end_time="20:00", is_active=False)
    workshop = TimeSlot(
        name="Buổi Chiều",
        start_time="13:00",
        end_time="17:00",
        activities="Thực hành",
        detailed_location="Phòng Lab 2",
    )
    rows = schedule_rows(detail_of(make_activity(time_slots=[MORNING, workshop, evening], location_radius=50)))

    assert [row.values() for row in rows] == [
        ["10/03/2024", "Sáng", "08:00", "11:30", "", "Hội trường A (50m)"],
        ["10/03/2024", "Chiều", "13:00", "17:00", "Thực hành", "Phòng Lab 2 (50m)"],
    ]


def test_multi_day_rows_match_day_text_per_slot():
    rows = schedule_rows(detail_of(make_multi_day(time_slots=[MORNING, AFTERNOON])))

    assert len(rows) == 6
    assert rows[0].day == "01/01/2024"
    assert rows[0].content == "Khai mạc"
    assert rows[1].content == ""
    assert rows[3].slot == "Chiều"
    assert rows[3].content == "Dã ngoại"


def test_multi_day_without_slots_parses_schedule_text():
    rows = schedule_rows(detail_of(make_multi_day()))

    assert [row.values() for row in rows] == [
        ["01/01/2024", "Sáng", "08:00", "11:30", "Khai mạc", "Hội trường A"],
        ["02/01/2024", "Chiều", "13:00", "17:00", "Dã ngoại", "Hội trường A"],
    ]


def test_unrecognised_schedule_lines_are_skipped():
    activity = make_multi_day()
    activity.schedule[0].activities = "Tập trung tại cổng\nBuổi Tối (18:00-21:00) - Lửa trại"

    rows = schedule_rows(detail_of(activity))

    assert [(row.slot, row.content) for row in rows] == [("Tối", "Lửa trại"), ("Chiều", "Dã ngoại")]


def test_single_day_without_slots_has_no_rows():
    assert schedule_rows(detail_of(make_activity(time_slots=[]))) == []


def test_location_text():
    assert location_text(None, None, None) == "Chưa có"
    assert location_text(None, "Sân trường", 0) == "Sân trường"
    assert location_text("Phòng 101", "Sân trường", 30) == "Phòng 101 (30m)"
    assert slot_label("Buổi Sáng") == "Sáng"
