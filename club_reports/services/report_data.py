"""Loading of activities, participants and check-ins for reports."""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from pydantic import ValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from club_reports.core.database import AsyncSessionLocal
from club_reports.core.exceptions import (
    ActivityNotFoundError,
    PartialFetchError,
    ReportError,
    ReportFetchError,
)
from club_reports.models import Activity, AttendanceRecord, Participant
from club_reports.schemas.reports import (
    ActivitiesDashboard,
    ActivityRecord,
    AttendanceEntry,
    AttendanceSummary,
    DashboardActivity,
    ParticipantRecord,
    TemporalStatus,
)
from club_reports.services.attendance_summary import summarize_attendance
from club_reports.services.date_range import DateRangePreset, DateWindow
from club_reports.services.report_aggregator import sort_timestamp
from club_reports.services.temporal import classify
from club_reports.utils.numbers import round_half_up
from club_reports.utils.timezone import now_local

logger = logging.getLogger(__name__)

AttendanceByParticipant = dict[int, list[AttendanceEntry]]


def activity_record(activity: Activity) -> ActivityRecord:
    return ActivityRecord(
        id=activity.id,
        name=activity.name,
        description=activity.description,
        location=activity.location,
        location_radius=activity.location_radius,
        type=activity.type,
        status=activity.status,
        date=activity.date,
        start_date=activity.start_date,
        end_date=activity.end_date,
        time_slots=activity.time_slots or [],
        schedule=activity.schedule or [],
        max_participants=activity.max_participants,
        registration_threshold=activity.registration_threshold,
        created_at=activity.created_at,
    )


def participant_record(
    participant: Participant,
    attendance: Optional[list[AttendanceEntry]],
) -> ParticipantRecord:
    return ParticipantRecord(
        user_id=participant.user_id,
        name=participant.name,
        email=participant.email,
        student_id=participant.student_id,
        avatar_url=participant.avatar_url,
        approval_status=participant.approval_status,
        checked_in=participant.checked_in,
        checked_in_at=participant.checked_in_at,
        registered_day_slots=participant.registered_day_slots or [],
        attendance_records=attendance,
    )


def _group_attendance(records: Iterable[AttendanceRecord]) -> AttendanceByParticipant:
    grouped = defaultdict(list)
    for record in records:
        grouped[record.participant_id].append(AttendanceEntry.model_validate(record))
    return grouped


@dataclass
class ActivityBatch:
    """Activities of one report request with their participants."""

    activities: list[ActivityRecord] = field(default_factory=list)
    participants: dict[str, list[ParticipantRecord]] = field(default_factory=dict)
    # Activities whose check-ins could not be loaded
    unknown_attendance: list[str] = field(default_factory=list)


class ReportDataService:
    """Read side of the reports.

    Every concurrent load opens its own session from ``session_factory``.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal):
        self.session_factory = session_factory

    # --- activities ---

    def _activities_query(self, window: DateWindow, responsible_id: Optional[str]):
        query = (
            select(Activity)
            .options(selectinload(Activity.participants))
            .order_by(Activity.created_at.desc())
        )
        if responsible_id:
            query = query.where(Activity.responsible_person_id == responsible_id)
        if window.preset != DateRangePreset.CUSTOM and window.start is not None:
            query = query.where(
                or_(Activity.date >= window.start, Activity.start_date >= window.start)
            )
        return query

    async def _load_activities(
        self,
        window: DateWindow,
        responsible_id: Optional[str],
    ) -> tuple[list[ActivityRecord], dict[str, list[Participant]]]:
        try:
            async with self.session_factory() as db:
                result = await db.execute(self._activities_query(window, responsible_id))
                rows = result.scalars().all()
                activities = []
                participants = {}
                for row in rows:
                    record = activity_record(row)
                    if window.contains(record):
                        activities.append(record)
                        participants[row.id] = list(row.participants)
        except (SQLAlchemyError, ValidationError, OSError) as e:
            logger.error(f"Error loading activities: {e}")
            raise ReportFetchError("Could not load activities") from e

        return activities, participants

    async def _load_attendance(self, activity_id: str) -> AttendanceByParticipant:
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(AttendanceRecord)
                    .where(AttendanceRecord.activity_id == activity_id)
                    .order_by(AttendanceRecord.check_in_time)
                )
                return _group_attendance(result.scalars().all())
        except (SQLAlchemyError, ValidationError, OSError) as e:
            raise PartialFetchError(activity_id, str(e)) from e

    async def _attendance_or_unknown(self, activity_id: str) -> Optional[AttendanceByParticipant]:
        try:
            return await self._load_attendance(activity_id)
        except PartialFetchError as e:
            logger.warning(str(e))
            return None

    async def fetch_activities(
        self,
        window: DateWindow,
        responsible_id: Optional[str] = None,
    ) -> ActivityBatch:
        """Activities in ``window`` with participants and their check-ins.

        Check-ins are loaded concurrently per activity. An activity whose load
        fails keeps its participants with unknown attendance.
        """
        activities, participants = await self._load_activities(window, responsible_id)
        attendance = await asyncio.gather(
            *(self._attendance_or_unknown(activity.id) for activity in activities)
        )

        batch = ActivityBatch(activities=activities)
        for activity, grouped in zip(activities, attendance):
            batch.participants[activity.id] = self._participants(
                activity.id, participants[activity.id], grouped
            )
            if grouped is None or any(
                p.attendance_records is None for p in batch.participants[activity.id]
            ):
                batch.unknown_attendance.append(activity.id)

        logger.info(
            f"Loaded {len(activities)} activities for range '{window.preset.value}' "
            f"({len(batch.unknown_attendance)} with unknown attendance)"
        )
        return batch

    @staticmethod
    def _participants(
        activity_id: str,
        participants: list[Participant],
        grouped: Optional[AttendanceByParticipant],
    ) -> list[ParticipantRecord]:
        try:
            return [
                participant_record(p, None if grouped is None else grouped.get(p.id, []))
                for p in participants
            ]
        except ValidationError as e:
            logger.warning(f"Inconsistent check-ins for activity {activity_id}: {e}")
            return [participant_record(p, None) for p in participants]

    async def latest_activity_date(self, responsible_id: Optional[str] = None) -> Optional[datetime]:
        """Latest end date (or date) across activities."""
        query = select(
            func.max(func.coalesce(Activity.end_date, Activity.date, Activity.start_date))
        )
        if responsible_id:
            query = query.where(Activity.responsible_person_id == responsible_id)
        try:
            async with self.session_factory() as db:
                result = await db.execute(query)
                return result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error loading latest activity date: {e}")
            raise ReportFetchError("Could not load activity dates") from e

    # --- attendance summaries ---

    async def fetch_attendance_summary(self, activity_id: str) -> AttendanceSummary:
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(Activity)
                    .options(
                        selectinload(Activity.participants).selectinload(
                            Participant.attendance_records
                        )
                    )
                    .where(Activity.id == activity_id)
                )
                activity = result.scalar_one_or_none()
                if activity is None:
                    raise ActivityNotFoundError(f"Activity {activity_id} not found")

                record = activity_record(activity)
                participants = [
                    participant_record(
                        p, [AttendanceEntry.model_validate(r) for r in p.attendance_records]
                    )
                    for p in activity.participants
                ]
        except (SQLAlchemyError, ValidationError, OSError) as e:
            logger.error(f"Error loading attendance of activity {activity_id}: {e}")
            raise ReportFetchError(f"Could not load attendance of activity {activity_id}") from e

        return summarize_attendance(record, participants)

    async def _summary_or_none(self, activity_id: str) -> Optional[AttendanceSummary]:
        try:
            return await self.fetch_attendance_summary(activity_id)
        except ReportError as e:
            logger.warning(f"Attendance rate of activity {activity_id} unknown: {e}")
            return None

    async def fetch_attendance_summaries(
        self,
        activity_ids: Iterable[str],
    ) -> dict[str, Optional[AttendanceSummary]]:
        """Concurrent summaries; a failed one is ``None`` and does not affect the rest."""
        ids = list(activity_ids)
        summaries = await asyncio.gather(*(self._summary_or_none(i) for i in ids))
        return dict(zip(ids, summaries))

    # --- dashboard ---

    async def fetch_dashboard(
        self,
        responsible_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ActivitiesDashboard:
        now = now or now_local()
        activities, _ = await self._load_activities(DateWindow(DateRangePreset.ALL), responsible_id)
        activities.sort(key=lambda a: sort_timestamp(a.sort_date), reverse=True)
        summaries = await self.fetch_attendance_summaries(a.id for a in activities)

        items = []
        for activity in activities:
            summary = summaries.get(activity.id)
            items.append(
                DashboardActivity(
                    activity_id=activity.id,
                    name=activity.name,
                    type=activity.type,
                    status=activity.status,
                    temporal_status=classify(activity, now),
                    sort_date=activity.sort_date,
                    attendance_rate=summary.attendance_rate if summary else None,
                )
            )

        past = [i for i in items if i.temporal_status == TemporalStatus.PAST]
        active = [i for i in items if i.temporal_status != TemporalStatus.PAST]
        return ActivitiesDashboard(
            activities=items,
            overall_attendance_rate=self._mean_rate(past),
            overall_active_attendance_rate=self._mean_rate(active),
        )

    @staticmethod
    def _mean_rate(items: list[DashboardActivity]) -> Optional[int]:
        if not items:
            return None
        return round_half_up(sum(i.attendance_rate or 0 for i in items) / len(items))
