"""Reporting window presets, validation and activity filtering."""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Optional, Union

from club_reports.core.exceptions import DateRangeValidationError
from club_reports.core.settings import settings
from club_reports.models import ActivityType
from club_reports.schemas.reports import ActivityRecord
from club_reports.utils.timezone import (
    add_months,
    add_years,
    end_of_day,
    format_date,
    local_date,
    now_local,
    parse_date,
    start_of_day,
    to_local,
)

logger = logging.getLogger(__name__)

DateInput = Union[str, date, datetime, None]


class DateRangePreset(str, Enum):
    """Reporting window presets offered by the date range selector."""

    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    ALL = "all"
    CUSTOM = "custom"


class DateRangeErrorCode(str, Enum):
    MISSING_DATES = "missing_dates"
    INVALID_DATE = "invalid_date"
    START_AFTER_END = "start_after_end"
    BEYOND_MAX_DATE = "beyond_max_date"
    RANGE_TOO_LONG = "range_too_long"
    RANGE_TOO_SHORT = "range_too_short"


PRESET_LABELS = {
    DateRangePreset.WEEK: "Tuần này",
    DateRangePreset.MONTH: "Tháng này",
    DateRangePreset.QUARTER: "Quý này",
    DateRangePreset.YEAR: "Năm này",
    DateRangePreset.ALL: "Tất cả",
}


@dataclass(frozen=True)
class DateRangeResult:
    """Outcome of validating a reporting window."""

    error: Optional[str] = None
    code: Optional[DateRangeErrorCode] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise DateRangeValidationError(self.error, self.code.value if self.code else None)


OK = DateRangeResult()


def _fail(code: DateRangeErrorCode, message: str) -> DateRangeResult:
    return DateRangeResult(error=message, code=code)


def _coerce_preset(preset: Union[str, DateRangePreset]) -> Optional[DateRangePreset]:
    try:
        return DateRangePreset(preset)
    except ValueError:
        return None


def validate_date_range(
    preset: Union[str, DateRangePreset],
    custom_start: DateInput = None,
    custom_end: DateInput = None,
    max_known_date: Optional[date] = None,
    today: Optional[date] = None,
) -> DateRangeResult:
    """Validate a reporting window.

    Presets other than ``custom`` carry no user-supplied bounds and always pass.
    For ``custom`` the start is taken at local midnight and the end at the end
    of its day. The upper bound is ``max_known_date`` (see
    :func:`compute_max_known_date`) or one year from today.

    Never raises: partially filled input simply yields an error result.
    """
    if _coerce_preset(preset) != DateRangePreset.CUSTOM:
        return OK

    if not custom_start or not custom_end:
        return _fail(
            DateRangeErrorCode.MISSING_DATES,
            "Please select both a start date and an end date",
        )

    start_day = parse_date(custom_start)
    end_day = parse_date(custom_end)
    if start_day is None or end_day is None:
        return _fail(DateRangeErrorCode.INVALID_DATE, "Invalid date, please select again")

    start = start_of_day(start_day)
    end = end_of_day(end_day)

    if start > end:
        return _fail(
            DateRangeErrorCode.START_AFTER_END,
            "Start date must be on or before the end date",
        )

    today = today or now_local().date()
    bound_day = max_known_date or add_years(today, 1)
    bound = end_of_day(bound_day)
    if start > bound or end > bound:
        return _fail(
            DateRangeErrorCode.BEYOND_MAX_DATE,
            f"Dates after {format_date(bound_day)} cannot be selected (based on existing activities)",
        )

    diff_days = math.ceil(abs((end - start) / timedelta(days=1)))
    if diff_days > 365 * settings.report_max_range_years:
        return _fail(
            DateRangeErrorCode.RANGE_TOO_LONG,
            f"The range cannot exceed {settings.report_max_range_years} years",
        )

    if diff_days < 1:
        return _fail(DateRangeErrorCode.RANGE_TOO_SHORT, "The range must be at least 1 day")

    return OK


def compute_max_known_date(
    activities: Iterable[ActivityRecord],
    today: Optional[date] = None,
) -> date:
    """Latest selectable custom date.

    The latest activity date plus a buffer when that activity is still ahead,
    never more than one year from today.
    """
    latest: Optional[date] = None
    for activity in activities:
        if activity.type == ActivityType.MULTIPLE_DAYS and activity.end_date:
            candidate = local_date(activity.end_date)
        elif activity.display_date:
            candidate = local_date(activity.display_date)
        else:
            continue
        if latest is None or candidate > latest:
            latest = candidate

    return max_selectable_date(latest, today)


def max_selectable_date(latest: Optional[date], today: Optional[date] = None) -> date:
    today = today or now_local().date()
    one_year = add_years(today, 1)
    max_day = one_year
    if latest is not None and latest > today:
        max_day = latest + timedelta(days=settings.report_future_buffer_days)

    return min(max_day, one_year)


@dataclass(frozen=True)
class DateWindow:
    """Inclusive bounds used to select activities for a report."""

    preset: DateRangePreset
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, activity: ActivityRecord) -> bool:
        if self.start is None and self.end is None:
            return True

        if self.preset == DateRangePreset.CUSTOM:
            if activity.type == ActivityType.MULTIPLE_DAYS:
                if activity.start_date is None or activity.end_date is None:
                    return False
                return (
                    to_local(activity.start_date) <= self.end
                    and to_local(activity.end_date) >= self.start
                )
            if activity.date is None:
                return False
            return self.start <= to_local(activity.date) <= self.end

        # Look-back presets keep anything dated on or after the lower bound
        candidates = [d for d in (activity.date, activity.start_date) if d is not None]
        return any(to_local(d) >= self.start for d in candidates)


def resolve_window(
    preset: Union[str, DateRangePreset],
    custom_start: DateInput = None,
    custom_end: DateInput = None,
    now: Optional[datetime] = None,
) -> DateWindow:
    """Translate a validated query into concrete bounds."""
    resolved = _coerce_preset(preset) or DateRangePreset.ALL
    now = to_local(now) if now else now_local()

    if resolved == DateRangePreset.CUSTOM:
        start_day = parse_date(custom_start)
        end_day = parse_date(custom_end)
        if start_day is None or end_day is None:
            logger.warning("Custom range without usable dates, falling back to all activities")
            return DateWindow(DateRangePreset.ALL)
        return DateWindow(resolved, start_of_day(start_day), end_of_day(end_day))

    if resolved == DateRangePreset.WEEK:
        since = now - timedelta(days=7)
    elif resolved == DateRangePreset.MONTH:
        since = add_months(now, -1)
    elif resolved == DateRangePreset.QUARTER:
        since = add_months(now, -3)
    elif resolved == DateRangePreset.YEAR:
        since = add_months(now, -12)
    else:
        return DateWindow(DateRangePreset.ALL)

    return DateWindow(resolved, start_of_day(since), None)


def date_range_label(
    preset: Union[str, DateRangePreset],
    custom_start: DateInput = None,
    custom_end: DateInput = None,
) -> str:
    """Human readable label of the reporting window."""
    resolved = _coerce_preset(preset)
    if resolved == DateRangePreset.CUSTOM:
        start_day = parse_date(custom_start)
        end_day = parse_date(custom_end)
        if start_day and end_day:
            return f"{format_date(start_day)} - {format_date(end_day)}"
        return "Tùy chọn thời gian"
    return PRESET_LABELS.get(resolved, PRESET_LABELS[DateRangePreset.MONTH])
