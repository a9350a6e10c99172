"""Temporal classification of activities (upcoming / ongoing / past)."""

import logging
from datetime import datetime
from typing import Optional

from club_reports.models import ActivityType
from club_reports.schemas.reports import ActivityRecord, TemporalStatus
from club_reports.utils.timezone import (
    combine_local,
    end_of_day,
    local_date,
    now_local,
    parse_time_string,
    start_of_day,
    to_local,
)

logger = logging.getLogger(__name__)


def _window_status(now: datetime, start: datetime, end: datetime) -> TemporalStatus:
    if now < start:
        return TemporalStatus.UPCOMING
    if now <= end:
        return TemporalStatus.ONGOING
    return TemporalStatus.PAST


def _classify(activity: ActivityRecord, now: datetime) -> TemporalStatus:
    if (
        activity.type == ActivityType.MULTIPLE_DAYS
        and activity.start_date is not None
        and activity.end_date is not None
    ):
        return _window_status(
            now, start_of_day(activity.start_date), end_of_day(activity.end_date)
        )

    if activity.date is None:
        return TemporalStatus.UPCOMING

    activity_day = local_date(activity.date)
    today = now.date()
    if activity_day < today:
        return TemporalStatus.PAST
    if activity_day > today:
        return TemporalStatus.UPCOMING

    # Same calendar day: the union of active sessions decides
    slots = activity.active_time_slots
    if not slots:
        return TemporalStatus.UPCOMING

    starts = [combine_local(activity_day, parse_time_string(s.start_time)) for s in slots]
    ends = [combine_local(activity_day, parse_time_string(s.end_time)) for s in slots]
    return _window_status(now, min(starts), max(ends))


def classify(activity: ActivityRecord, now: Optional[datetime] = None) -> TemporalStatus:
    """Classify an activity relative to ``now``.

    Total: malformed dates or time slots yield ``upcoming`` instead of an error.
    """
    now = to_local(now) if now else now_local()
    try:
        return _classify(activity, now)
    except Exception as e:
        logger.debug(f"Temporal status of activity {activity.id} defaulted to upcoming: {e}")
        return TemporalStatus.UPCOMING
