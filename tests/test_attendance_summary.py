import pytest

from club_reports.models import ApprovalStatus, AttendanceStatus, CheckInType
from club_reports.schemas.reports import DaySlot
from club_reports.services.attendance_summary import is_registered_for, slot_key, summarize_attendance
from factories import AFTERNOON, MORNING, check_in, make_activity, make_multi_day, make_participant


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Buổi Sáng", "morning"),
        ("Ngày 2 - Buổi Chiều", "afternoon"),
        ("evening", "evening"),
        ("Ca đặc biệt", "ca đặc biệt"),
    ],
)
def test_slot_key(name, expected):
    assert slot_key(name) == expected


def test_single_day_summary_counts_approved_only():
    activity = make_activity(time_slots=[MORNING, AFTERNOON])
    participants = [
        make_participant("u1", attendance_records=[check_in("Buổi Sáng")]),
        make_participant("u2"),
        make_participant("p1", ApprovalStatus.PENDING, attendance_records=[check_in("Buổi Sáng")]),
    ]

    summary = summarize_attendance(activity, participants)

    assert summary.total == 2
    assert summary.checked_in == 1
    assert summary.not_checked_in == 1
    assert summary.attendance_rate == 25


def test_end_check_in_alone_counts_the_slot():
    activity = make_activity(time_slots=[MORNING])
    participant = make_participant("u1", attendance_records=[check_in(kind=CheckInType.END)])

    assert summarize_attendance(activity, [participant]).attendance_rate == 100


def test_rejected_check_in_does_not_count():
    activity = make_activity(time_slots=[MORNING])
    participant = make_participant(
        "u1", attendance_records=[check_in(status=AttendanceStatus.REJECTED)]
    )

    summary = summarize_attendance(activity, [participant])

    assert summary.checked_in == 0
    assert summary.attendance_rate == 0


def test_multi_day_uses_registered_day_slots():
    activity = make_multi_day()
    registered = make_participant(
        "u1",
        registered_day_slots=[DaySlot(day=1, slot="morning"), DaySlot(day=2, slot="afternoon")],
        attendance_records=[
            check_in("Ngày 1 - Buổi Sáng"),
            check_in("Buổi Chiều", day=2),
        ],
    )
    everywhere = make_participant("u2")

    # u1: 2 of 2 slots; u2: 0 of 3 days x 3 default slots
    summary = summarize_attendance(activity, [registered, everywhere])

    assert summary.total == 2
    assert summary.attendance_rate == 18


def test_registration_lookup():
    participant = make_participant("u1", registered_day_slots=[DaySlot(day=2, slot="evening")])

    assert is_registered_for(participant, "Buổi Tối", 2)
    assert not is_registered_for(participant, "Buổi Tối", 1)
    assert is_registered_for(participant, "Buổi Tối")
    assert is_registered_for(make_participant("u2"), "Buổi Sáng", 1)


def test_no_slots_means_zero_rate():
    summary = summarize_attendance(make_activity(time_slots=[]), [make_participant("u1")])
    assert summary.attendance_rate == 0
