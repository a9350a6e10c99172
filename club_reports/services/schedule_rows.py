"""Schedule rows of an activity detail sheet.

Structured time slots are the source of truth. The free-text parser reads
lines such as ``Buổi Sáng (07:00-11:30) - Khai mạc`` and is only used for
multi-day activities that carry no structured slots.
"""

import re
from dataclasses import dataclass
from typing import Optional

from club_reports.models import ActivityType
from club_reports.schemas.reports import ActivityDetail, TimeSlot
from club_reports.services.labels import NOT_SET
from club_reports.utils.timezone import format_date

SLOT_TEXT_PATTERN = re.compile(
    r"^Buổi (Sáng|Chiều|Tối)\s*\((\d{2}:\d{2})-(\d{2}:\d{2})\)\s*-?\s*(.*)"
)
SLOT_PREFIX_PATTERN = re.compile(r"^Buổi \w+\s*\([^)]+\)\s*-?\s*")

SCHEDULE_COLUMNS = [
    "Ngày",
    "Ca",
    "Giờ bắt đầu",
    "Giờ kết thúc",
    "Nội dung / mô tả ca",
    "Địa điểm / Bán kính",
]


@dataclass(frozen=True)
class ScheduleRow:
    day: str
    slot: str
    start_time: str
    end_time: str
    content: str
    location: str

    def values(self) -> list[str]:
        return [self.day, self.slot, self.start_time, self.end_time, self.content, self.location]


def slot_label(name: Optional[str]) -> str:
    """``Buổi Sáng`` -> ``Sáng``."""
    return (name or "").replace("Buổi ", "").strip()


def location_text(
    slot_location: Optional[str],
    activity_location: Optional[str],
    radius: Optional[int],
) -> str:
    location = slot_location or activity_location or ""
    if radius:
        location += f" ({radius}m)"
    return location or NOT_SET


def _content_for_slot(day_text: str, label: str, slot: TimeSlot) -> str:
    match = re.search(rf"Buổi {re.escape(label)}[^\n]*", day_text or "", re.IGNORECASE)
    if match:
        return SLOT_PREFIX_PATTERN.sub("", match.group(0)).strip()
    return slot.activities or ""


def rows_from_time_slots(detail: ActivityDetail) -> list[ScheduleRow]:
    """Rows built from the structured time slots of an activity."""
    slots = [slot for slot in detail.time_slots if slot.is_active]
    if detail.activity_type == ActivityType.SINGLE_DAY:
        days = [(format_date(detail.activity_date, ""), None)]
    else:
        days = [(format_date(day.date, ""), day.activities) for day in detail.schedule]

    rows = []
    for day, day_text in days:
        for slot in slots:
            label = slot_label(slot.name)
            rows.append(
                ScheduleRow(
                    day=day,
                    slot=label,
                    start_time=slot.start_time or "",
                    end_time=slot.end_time or "",
                    content=(
                        slot.activities or ""
                        if day_text is None
                        else _content_for_slot(day_text, label, slot)
                    ),
                    location=location_text(
                        slot.detailed_location, detail.activity_location, detail.location_radius
                    ),
                )
            )
    return rows


def rows_from_schedule_text(detail: ActivityDetail) -> list[ScheduleRow]:
    """Rows parsed from the free-text description of each schedule day.

    Lines that do not look like ``Buổi <Sáng|Chiều|Tối> (HH:MM-HH:MM) - ...``
    are ignored.
    """
    location = location_text(None, detail.activity_location, detail.location_radius)
    rows = []
    for day in detail.schedule:
        for line in (day.activities or "").splitlines():
            match = SLOT_TEXT_PATTERN.match(line.strip())
            if not match:
                continue
            label, start, end, content = match.groups()
            rows.append(
                ScheduleRow(
                    day=format_date(day.date, ""),
                    slot=label,
                    start_time=start,
                    end_time=end,
                    content=content.strip(),
                    location=location,
                )
            )
    return rows


def schedule_rows(detail: ActivityDetail) -> list[ScheduleRow]:
    if any(slot.is_active for slot in detail.time_slots):
        return rows_from_time_slots(detail)
    if detail.activity_type == ActivityType.MULTIPLE_DAYS:
        return rows_from_schedule_text(detail)
    return []
