"""Slot based attendance statistics of a single activity."""

import re
from typing import Optional, Sequence

from club_reports.models import ActivityType, ApprovalStatus, AttendanceStatus, CheckInType
from club_reports.schemas.reports import (
    ActivityRecord,
    AttendanceEntry,
    AttendanceSummary,
    ParticipantRecord,
    TimeSlot,
)
from club_reports.utils.numbers import percent

DEFAULT_DAY_SLOTS = [
    TimeSlot(id="morning", name="Buổi Sáng", start_time="08:00", end_time="11:30"),
    TimeSlot(id="afternoon", name="Buổi Chiều", start_time="13:00", end_time="17:00"),
    TimeSlot(id="evening", name="Buổi Tối", start_time="18:00", end_time="21:00"),
]

SLOT_KEYS = {
    "Buổi Sáng": "morning",
    "Buổi Chiều": "afternoon",
    "Buổi Tối": "evening",
}

DAY_PREFIX = re.compile(r"^Ngày\s*\d+\s*-\s*")


def slot_key(slot_name: str) -> str:
    """``Ngày 2 - Buổi Sáng`` / ``Buổi Sáng`` / ``morning`` -> ``morning``."""
    name = DAY_PREFIX.sub("", slot_name or "").strip()
    return SLOT_KEYS.get(name, name.lower())


def is_registered_for(participant: ParticipantRecord, slot_name: str, day: Optional[int] = None) -> bool:
    """Participants who never picked day-slots count as registered everywhere."""
    if not participant.registered_day_slots:
        return True
    key = slot_key(slot_name)
    return any(
        slot_key(ds.slot) == key and (day is None or ds.day == day)
        for ds in participant.registered_day_slots
    )


def _slot_attended(
    records: Sequence[AttendanceEntry],
    slot_name: str,
    day: Optional[int] = None,
) -> bool:
    labels = {slot_name} if day is None else {f"Ngày {day} - {slot_name}"}
    for record in records:
        matches = record.time_slot in labels or (
            day is not None and record.time_slot == slot_name and record.day_number == day
        )
        if (
            matches
            and record.check_in_type in (CheckInType.START, CheckInType.END)
            and record.status == AttendanceStatus.APPROVED
        ):
            return True
    return False


def summarize_attendance(
    activity: ActivityRecord,
    participants: Sequence[ParticipantRecord],
) -> AttendanceSummary:
    """Check-in counts of approved participants and their slot attendance rate.

    A slot counts as attended when its start or end check-in is approved.
    """
    approved = [p for p in participants if p.approval_status == ApprovalStatus.APPROVED]
    checked_in = sum(
        1
        for p in approved
        if any(r.status == AttendanceStatus.APPROVED for r in p.attendance_records or [])
    )

    registered = attended = 0
    if activity.type == ActivityType.SINGLE_DAY:
        for participant in approved:
            records = participant.attendance_records or []
            for slot in activity.active_time_slots:
                if is_registered_for(participant, slot.name):
                    registered += 1
                    attended += _slot_attended(records, slot.name)
    else:
        slots = activity.active_time_slots or DEFAULT_DAY_SLOTS
        for schedule_day in activity.schedule:
            for slot in slots:
                for participant in approved:
                    if is_registered_for(participant, slot.name, schedule_day.day):
                        registered += 1
                        attended += _slot_attended(
                            participant.attendance_records or [], slot.name, schedule_day.day
                        )

    return AttendanceSummary(
        activity_id=activity.id,
        total=len(approved),
        checked_in=checked_in,
        not_checked_in=len(approved) - checked_in,
        attendance_rate=percent(attended, registered),
    )
