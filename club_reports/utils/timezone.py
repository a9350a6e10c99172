"""Timezone utilities for local calendar handling."""

from datetime import date, datetime, time
from typing import Optional, Union
from zoneinfo import ZoneInfo

from club_reports.core.settings import settings

LOCAL_TZ = ZoneInfo(settings.timezone)

END_OF_DAY = time(23, 59, 59, 999999)


def to_local(dt: datetime) -> datetime:
    """Convert datetime to local time. Naive values are treated as local."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=LOCAL_TZ)
    return dt.astimezone(LOCAL_TZ)


def now_local() -> datetime:
    """Get current time in the local timezone."""
    return datetime.now(LOCAL_TZ)


def local_date(value: Union[date, datetime]) -> date:
    """Calendar date of a date or datetime in local time."""
    if isinstance(value, datetime):
        return to_local(value).date()
    return value


def start_of_day(value: Union[date, datetime]) -> datetime:
    """Local midnight of the given day."""
    return datetime.combine(local_date(value), time.min, tzinfo=LOCAL_TZ)


def end_of_day(value: Union[date, datetime]) -> datetime:
    """Last representable instant of the given local day."""
    return datetime.combine(local_date(value), END_OF_DAY, tzinfo=LOCAL_TZ)


def parse_time_string(time_str: str) -> time:
    """Parse time string like '14:30' or '14:30:00'."""
    parts = time_str.split(':')
    hour = int(parts[0])
    minute = int(parts[1])
    second = int(parts[2]) if len(parts) > 2 else 0
    return time(hour, minute, second)


def combine_local(day: Union[date, datetime], time_obj: time) -> datetime:
    """Combine a calendar day and a wall-clock time in local time."""
    return datetime.combine(local_date(day), time_obj, tzinfo=LOCAL_TZ)


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Parse 'YYYY-MM-DD' (or a date/datetime) into a date, None if invalid."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return local_date(value)
    if isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return local_date(datetime.fromisoformat(text))
    except ValueError:
        return None


def add_years(day: date, years: int) -> date:
    """Shift a date by whole years, clamping 29 February."""
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def add_months(value: datetime, months: int) -> datetime:
    """Shift a datetime by whole months, clamping to the month's last day."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = value.day
    while day > 28:
        try:
            return value.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1
    return value.replace(year=year, month=month, day=day)


def format_date(value: Union[date, datetime, None], default: str = "") -> str:
    """Format as dd/mm/yyyy in local time."""
    if value is None:
        return default
    return local_date(value).strftime("%d/%m/%Y")


def format_datetime(value: Optional[datetime], default: str = "") -> str:
    """Format as dd/mm/yyyy HH:MM:SS in local time."""
    if value is None:
        return default
    return to_local(value).strftime("%d/%m/%Y %H:%M:%S")
