"""Aggregation of activities, participants and check-ins into report statistics."""

import logging
from collections import Counter
from datetime import datetime, time, timedelta
from typing import Iterable, Mapping, Optional, Sequence, Union

from club_reports.core.exceptions import AggregationInputError
from club_reports.core.settings import settings
from club_reports.models import ActivityStatus, ActivityType, ApprovalStatus, AttendanceStatus
from club_reports.schemas.reports import (
    ActivityDetail,
    ActivityRecord,
    ApprovalStats,
    ApprovedParticipantDetail,
    AttendanceStats,
    AttendanceTotals,
    MonthCount,
    ParticipantDetails,
    ParticipantRecord,
    ParticipantsByStatus,
    ParticipantSummary,
    RegistrationStats,
    ReportStats,
    TemporalStatus,
)
from club_reports.services.date_range import DateWindow
from club_reports.services.temporal import classify
from club_reports.utils.numbers import percent, round_half_up
from club_reports.utils.timezone import combine_local, now_local, parse_time_string, to_local

logger = logging.getLogger(__name__)

EPOCH_TIMESTAMP = 0.0
MULTI_DAY_START = time(8, 0)


def sort_timestamp(value: Optional[datetime]) -> float:
    """Sort key of a sort date; missing or unusable dates sort as the epoch."""
    if value is None:
        return EPOCH_TIMESTAMP
    try:
        return to_local(value).timestamp()
    except (OverflowError, OSError, ValueError):
        return EPOCH_TIMESTAMP


def sort_activities_by_date(activities: Iterable[ActivityDetail]) -> list[ActivityDetail]:
    """Canonical order: newest sort date first, ties keep their input order.

    Every list, chart and sheet of a report uses this order.
    """
    return sorted(activities, key=lambda a: sort_timestamp(a.sort_date), reverse=True)


def _split_by_bucket(participants: Sequence[ParticipantRecord]) -> dict[ApprovalStatus, list[ParticipantRecord]]:
    buckets = {status: [] for status in ApprovalStatus}
    for participant in participants:
        buckets[participant.approval_status].append(participant)
    return buckets


def _summary(participant: ParticipantRecord) -> ParticipantSummary:
    return ParticipantSummary(
        user_id=participant.user_id,
        name=participant.name,
        email=participant.email,
        student_id=participant.student_id,
        avatar_url=participant.avatar_url,
        registered_day_slots=participant.registered_day_slots,
    )


def expected_sessions(activity: ActivityRecord, participants: Sequence[ParticipantRecord]) -> int:
    """Number of sessions an approved participant is expected to attend."""
    if activity.type == ActivityType.SINGLE_DAY:
        return len(activity.active_time_slots)

    day_slots = {
        (ds.day, ds.slot)
        for p in participants
        for ds in p.registered_day_slots
    }
    return len(day_slots) if day_slots else len(activity.schedule)


def activity_start_time(activity: ActivityRecord) -> Optional[datetime]:
    """Reference instant for on-time check-ins."""
    if activity.type == ActivityType.SINGLE_DAY:
        if activity.date is None:
            return None
        starts = []
        for slot in activity.active_time_slots:
            try:
                starts.append(combine_local(activity.date, parse_time_string(slot.start_time)))
            except (AttributeError, TypeError, ValueError, IndexError):
                logger.debug(f"Unparsable start time '{slot.start_time}' in activity {activity.id}")
        return min(starts) if starts else to_local(activity.date)

    if activity.start_date is None:
        return None
    if activity.schedule and activity.schedule[0].date is not None:
        return combine_local(activity.schedule[0].date, MULTI_DAY_START)
    return to_local(activity.start_date)


class ReportAggregator:
    """Builds :class:`ReportStats` from raw activity records.

    Every call works on fresh structures; an instance holds configuration only.
    """

    def __init__(
        self,
        now: Optional[datetime] = None,
        top_limit: Optional[int] = None,
        months_limit: Optional[int] = None,
        grace_minutes: Optional[int] = None,
    ):
        self.now = now
        self.top_limit = settings.report_top_activities if top_limit is None else top_limit
        self.months_limit = settings.report_months_limit if months_limit is None else months_limit
        self.grace = timedelta(
            minutes=settings.report_on_time_grace_minutes if grace_minutes is None else grace_minutes
        )

    # --- per activity ---

    def build_detail(
        self,
        activity: ActivityRecord,
        participants: Sequence[ParticipantRecord],
        now: Optional[datetime] = None,
    ) -> ActivityDetail:
        """Statistics of one activity, degraded when required dates are missing."""
        try:
            missing = activity.missing_date_fields()
            if missing:
                raise AggregationInputError(activity.id, missing)
            return self._full_detail(activity, participants, now or self.now)
        except (AggregationInputError, TypeError, ValueError) as e:
            logger.warning(f"Degraded report row for activity {activity.id}: {e}")
            return self._degraded_detail(activity, participants)

    def _base_detail(self, activity: ActivityRecord, participants: Sequence[ParticipantRecord]) -> dict:
        buckets = _split_by_bucket(participants)
        return dict(
            activity_id=activity.id,
            activity_name=activity.name,
            activity_description=activity.description,
            activity_date=activity.display_date,
            activity_end_date=activity.end_date,
            activity_type=activity.type,
            activity_status=activity.status,
            activity_location=activity.location,
            location_radius=activity.location_radius,
            max_participants=activity.max_participants or None,
            registration_threshold=activity.registration_threshold or None,
            created_at=activity.created_at,
            time_slots=activity.time_slots,
            schedule=activity.schedule,
            participants_count=len(participants),
            participants_by_status=ParticipantsByStatus(
                approved=len(buckets[ApprovalStatus.APPROVED]),
                pending=len(buckets[ApprovalStatus.PENDING]),
                rejected=len(buckets[ApprovalStatus.REJECTED]),
                removed=len(buckets[ApprovalStatus.REMOVED]),
            ),
        ), buckets

    def _full_detail(
        self,
        activity: ActivityRecord,
        participants: Sequence[ParticipantRecord],
        now: Optional[datetime],
    ) -> ActivityDetail:
        base, buckets = self._base_detail(activity, participants)
        approved = buckets[ApprovalStatus.APPROVED]
        total_registered = len(participants)
        max_participants = activity.max_participants or None

        registration = RegistrationStats(
            total_registered=total_registered,
            max_participants=max_participants,
            registration_rate=(
                percent(total_registered, max_participants) if max_participants else None
            ),
        )
        approval = ApprovalStats(
            approved=len(approved),
            approval_rate=percent(len(approved), total_registered),
        )

        start_time = activity_start_time(activity)
        late_after = start_time + self.grace if start_time else None
        on_time = late = absent = 0
        for participant in approved:
            if not participant.checked_in:
                absent += 1
            elif late_after is None or participant.checked_in_at is None:
                on_time += 1
            elif to_local(participant.checked_in_at) <= late_after:
                on_time += 1
            else:
                late += 1

        checked_in = on_time + late
        attendance = AttendanceStats(
            checked_in=checked_in,
            attendance_rate=percent(checked_in, len(approved)),
            on_time=on_time,
            on_time_rate=percent(on_time, len(approved)),
            late=late,
            late_rate=percent(late, len(approved)),
            absent=absent,
            absent_rate=percent(absent, len(approved)),
            not_checked_in=len(approved) - checked_in,
        )

        total_expected = expected_sessions(activity, participants)
        approved_details = [
            self._approved_detail(p, total_expected) for p in approved
        ]
        attendance_known = all(p.attendance_records is not None for p in participants)
        if not attendance_known:
            logger.warning(f"Attendance of activity {activity.id} unknown, completion rates zeroed")

        return ActivityDetail(
            **base,
            total_expected_sessions=total_expected,
            registration=registration,
            approval=approval,
            attendance=attendance,
            participant_details=ParticipantDetails(
                approved=approved_details,
                pending=[_summary(p) for p in buckets[ApprovalStatus.PENDING]],
                rejected=[_summary(p) for p in buckets[ApprovalStatus.REJECTED]],
                removed=[_summary(p) for p in buckets[ApprovalStatus.REMOVED]],
            ),
            average_completion_rate=self._average_completion(approved_details),
            temporal_status=classify(activity, now),
            attendance_known=attendance_known,
        )

    def _approved_detail(self, participant: ParticipantRecord, total_expected: int) -> ApprovedParticipantDetail:
        records = participant.attendance_records or []
        attended = sum(1 for r in records if r.status == AttendanceStatus.APPROVED)
        if participant.attendance_records is None:
            completion = 0
        elif total_expected > 0:
            completion = percent(attended, total_expected)
        else:
            completion = 100 if attended > 0 else 0

        return ApprovedParticipantDetail(
            **_summary(participant).model_dump(),
            checked_in=participant.checked_in,
            checked_in_at=participant.checked_in_at,
            attendance_records=records,
            completion_rate=completion,
            total_sessions_attended=attended,
            total_expected_sessions=total_expected,
        )

    @staticmethod
    def _average_completion(approved: Sequence[ApprovedParticipantDetail]) -> float:
        if not approved:
            return 0.0
        return round_half_up(sum(p.completion_rate for p in approved) / len(approved), 1)

    def _degraded_detail(
        self,
        activity: ActivityRecord,
        participants: Sequence[ParticipantRecord],
    ) -> ActivityDetail:
        base, buckets = self._base_detail(activity, participants)
        max_participants = activity.max_participants or None
        return ActivityDetail(
            **base,
            registration=RegistrationStats(
                total_registered=len(participants),
                max_participants=max_participants,
                registration_rate=0 if max_participants else None,
            ),
            approval=ApprovalStats(approved=len(buckets[ApprovalStatus.APPROVED]), approval_rate=0),
            attendance=AttendanceStats(),
            participant_details=ParticipantDetails(
                approved=[
                    ApprovedParticipantDetail(**_summary(p).model_dump(), checked_in=p.checked_in)
                    for p in buckets[ApprovalStatus.APPROVED]
                ],
                pending=[_summary(p) for p in buckets[ApprovalStatus.PENDING]],
                rejected=[_summary(p) for p in buckets[ApprovalStatus.REJECTED]],
                removed=[_summary(p) for p in buckets[ApprovalStatus.REMOVED]],
            ),
            temporal_status=TemporalStatus.UPCOMING,
            attendance_known=False,
            degraded=True,
        )

    # --- fleet ---

    def aggregate(
        self,
        activities: Iterable[ActivityRecord],
        participants_by_activity: Mapping[str, Sequence[ParticipantRecord]],
        date_range: Union[DateWindow, str] = "all",
        now: Optional[datetime] = None,
    ) -> ReportStats:
        """Aggregate every activity in range into fleet-wide statistics."""
        now = now or self.now or now_local()

        if isinstance(date_range, DateWindow):
            window = date_range
            activities = [a for a in activities if window.contains(a)]
            range_key = window.preset.value
        else:
            range_key = date_range

        details = sort_activities_by_date(
            self.build_detail(activity, participants_by_activity.get(activity.id, []), now)
            for activity in activities
        )
        total_activities = len(details)
        total_participants = sum(d.participants_count for d in details)
        approved = sum(d.participants_by_status.approved for d in details)

        by_status = {status.value: 0 for status in ActivityStatus}
        by_type = {activity_type.value: 0 for activity_type in ActivityType}
        for detail in details:
            by_status[detail.activity_status.value] += 1
            by_type[detail.activity_type.value] += 1

        stats = ReportStats(
            date_range=range_key,
            total_activities=total_activities,
            total_participants=total_participants,
            approved_participants=approved,
            pending_participants=sum(d.participants_by_status.pending for d in details),
            rejected_participants=sum(d.participants_by_status.rejected for d in details),
            removed_participants=sum(d.participants_by_status.removed for d in details),
            average_participants=(
                round_half_up(total_participants / total_activities, 1) if total_activities else 0.0
            ),
            approval_rate=percent(approved, total_participants),
            by_status=by_status,
            by_type=by_type,
            by_month=self._by_month(details),
            attendance_totals=self._attendance_totals(details),
            top_activities_by_participants=sorted(
                details, key=lambda d: d.participants_count, reverse=True
            )[: self.top_limit],
            activities_with_details=details,
        )
        logger.info(
            f"Aggregated {total_activities} activities, {total_participants} participants "
            f"for range '{range_key}'"
        )
        return stats

    def _by_month(self, details: Sequence[ActivityDetail]) -> list[MonthCount]:
        counts = Counter(
            to_local(d.sort_date).strftime("%Y-%m") for d in details if d.sort_date is not None
        )
        months = [MonthCount(month=month, count=count) for month, count in sorted(counts.items())]
        return months[-self.months_limit:] if self.months_limit else months

    @staticmethod
    def _attendance_totals(details: Sequence[ActivityDetail]) -> AttendanceTotals:
        if not details:
            return AttendanceTotals()
        return AttendanceTotals(
            checked_in=sum(d.attendance.checked_in for d in details),
            on_time=sum(d.attendance.on_time for d in details),
            late=sum(d.attendance.late for d in details),
            absent=sum(d.attendance.absent for d in details),
            average_attendance_rate=round_half_up(
                sum(d.attendance.attendance_rate for d in details) / len(details), 1
            ),
        )
