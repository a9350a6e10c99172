"""Report input and output models."""

from datetime import date, datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from club_reports.models import (
    ActivityStatus,
    ActivityType,
    ApprovalStatus,
    AttendanceStatus,
    CheckInType,
)
from club_reports.utils.timezone import to_local


class TemporalStatus(str, Enum):
    """Where an activity sits relative to the current time."""

    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    PAST = "past"


# === INPUT RECORDS ===

class TimeSlot(BaseModel):
    """A session within an activity day."""

    id: Optional[str] = None
    name: str = ""
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_active: bool = True
    activities: str = ""
    detailed_location: Optional[str] = None


class ScheduleDay(BaseModel):
    """One day of a multi-day activity."""

    day: int
    date: Optional[datetime] = None
    activities: str = ""


class DaySlot(BaseModel):
    """A (day, session) pair a participant registered for."""

    day: int
    slot: Literal["morning", "afternoon", "evening"]


class AttendanceEntry(BaseModel):
    """One check-in of a participant."""

    time_slot: str
    check_in_type: CheckInType
    check_in_time: datetime
    status: AttendanceStatus
    day_number: Optional[int] = None
    late_reason: Optional[str] = None

    class Config:
        from_attributes = True


class ParticipantRecord(BaseModel):
    """A participant of one activity together with their check-ins.

    ``attendance_records`` is ``None`` when the check-ins could not be loaded.
    """

    user_id: str
    name: str
    email: Optional[str] = None
    student_id: Optional[str] = None
    avatar_url: Optional[str] = None
    approval_status: ApprovalStatus
    checked_in: bool = False
    checked_in_at: Optional[datetime] = None
    registered_day_slots: list[DaySlot] = Field(default_factory=list)
    attendance_records: Optional[list[AttendanceEntry]] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_single_check_in_per_slot(self) -> "ParticipantRecord":
        seen = set()
        for record in self.attendance_records or []:
            key = (record.time_slot, record.check_in_type, record.day_number)
            if key in seen:
                raise ValueError(
                    f"Duplicate '{record.check_in_type.value}' check-in for slot '{record.time_slot}'"
                )
            seen.add(key)
        return self


class ActivityRecord(BaseModel):
    """A scheduled club activity as read from storage."""

    id: str
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    location_radius: Optional[int] = None
    type: ActivityType = ActivityType.SINGLE_DAY
    status: ActivityStatus = ActivityStatus.DRAFT
    date: Optional[datetime] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    time_slots: list[TimeSlot] = Field(default_factory=list)
    schedule: list[ScheduleDay] = Field(default_factory=list)
    max_participants: Optional[int] = None
    registration_threshold: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def active_time_slots(self) -> list[TimeSlot]:
        return [slot for slot in self.time_slots if slot.is_active]

    @property
    def display_date(self) -> Optional[datetime]:
        return self.date or self.start_date

    @property
    def sort_date(self) -> Optional[datetime]:
        return self.end_date or self.display_date

    def missing_date_fields(self) -> list[str]:
        """Date fields this activity's type requires but does not have."""
        if self.type == ActivityType.MULTIPLE_DAYS:
            missing = [
                name for name in ("start_date", "end_date") if getattr(self, name) is None
            ]
            if not missing and to_local(self.start_date) > to_local(self.end_date):
                missing.append("start_date <= end_date")
            return missing
        return [] if self.date is not None else ["date"]


# === DERIVED STATISTICS ===

class ParticipantsByStatus(BaseModel):
    approved: int = 0
    pending: int = 0
    rejected: int = 0
    removed: int = 0


class RegistrationStats(BaseModel):
    total_registered: int = 0
    max_participants: Optional[int] = None
    registration_rate: Optional[int] = None


class ApprovalStats(BaseModel):
    approved: int = 0
    approval_rate: int = 0


class AttendanceStats(BaseModel):
    checked_in: int = 0
    attendance_rate: int = 0
    on_time: int = 0
    on_time_rate: int = 0
    late: int = 0
    late_rate: int = 0
    absent: int = 0
    absent_rate: int = 0
    not_checked_in: int = 0


class ParticipantSummary(BaseModel):
    user_id: str
    name: str
    email: Optional[str] = None
    student_id: Optional[str] = None
    avatar_url: Optional[str] = None
    registered_day_slots: list[DaySlot] = Field(default_factory=list)


class ApprovedParticipantDetail(ParticipantSummary):
    checked_in: bool = False
    checked_in_at: Optional[datetime] = None
    attendance_records: list[AttendanceEntry] = Field(default_factory=list)
    completion_rate: int = 0
    total_sessions_attended: int = 0
    total_expected_sessions: int = 0


class ParticipantDetails(BaseModel):
    approved: list[ApprovedParticipantDetail] = Field(default_factory=list)
    pending: list[ParticipantSummary] = Field(default_factory=list)
    rejected: list[ParticipantSummary] = Field(default_factory=list)
    removed: list[ParticipantSummary] = Field(default_factory=list)


class ActivityDetail(BaseModel):
    """Per-activity report row."""

    activity_id: str
    activity_name: str
    activity_description: Optional[str] = None
    activity_date: Optional[datetime] = None
    activity_end_date: Optional[datetime] = None
    activity_type: ActivityType
    activity_status: ActivityStatus
    activity_location: Optional[str] = None
    location_radius: Optional[int] = None
    max_participants: Optional[int] = None
    registration_threshold: Optional[int] = None
    created_at: Optional[datetime] = None
    time_slots: list[TimeSlot] = Field(default_factory=list)
    schedule: list[ScheduleDay] = Field(default_factory=list)
    total_expected_sessions: int = 0
    participants_count: int = 0
    participants_by_status: ParticipantsByStatus = Field(default_factory=ParticipantsByStatus)
    registration: RegistrationStats = Field(default_factory=RegistrationStats)
    approval: ApprovalStats = Field(default_factory=ApprovalStats)
    attendance: AttendanceStats = Field(default_factory=AttendanceStats)
    participant_details: ParticipantDetails = Field(default_factory=ParticipantDetails)
    average_completion_rate: float = 0.0
    temporal_status: TemporalStatus = TemporalStatus.UPCOMING
    attendance_known: bool = True
    degraded: bool = False

    @property
    def sort_date(self) -> Optional[datetime]:
        return self.activity_end_date or self.activity_date


class MonthCount(BaseModel):
    month: str
    count: int


class AttendanceTotals(BaseModel):
    checked_in: int = 0
    on_time: int = 0
    late: int = 0
    absent: int = 0
    average_attendance_rate: float = 0.0


class ReportStats(BaseModel):
    """Fleet-wide statistics over the selected date range."""

    date_range: str
    total_activities: int = 0
    total_participants: int = 0
    approved_participants: int = 0
    pending_participants: int = 0
    rejected_participants: int = 0
    removed_participants: int = 0
    average_participants: float = 0.0
    approval_rate: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_type: dict[str, int] = Field(default_factory=dict)
    by_month: list[MonthCount] = Field(default_factory=list)
    attendance_totals: AttendanceTotals = Field(default_factory=AttendanceTotals)
    top_activities_by_participants: list[ActivityDetail] = Field(default_factory=list)
    activities_with_details: list[ActivityDetail] = Field(default_factory=list)


class ReportMetadata(BaseModel):
    """Who generated a report, for which window and when."""

    reporter_name: Optional[str] = None
    reporter_email: Optional[str] = None
    date_range: str = "month"
    date_range_label: str = ""
    generated_at: datetime


# === ATTENDANCE SUMMARY / DASHBOARD ===

class AttendanceSummary(BaseModel):
    activity_id: str
    total: int = 0
    checked_in: int = 0
    not_checked_in: int = 0
    attendance_rate: int = 0


class DashboardActivity(BaseModel):
    activity_id: str
    name: str
    type: ActivityType
    status: ActivityStatus
    temporal_status: TemporalStatus
    sort_date: Optional[datetime] = None
    attendance_rate: Optional[int] = None


class ActivitiesDashboard(BaseModel):
    activities: list[DashboardActivity] = Field(default_factory=list)
    # Mean rate of past / upcoming-or-ongoing activities, unknown rates count as 0
    overall_attendance_rate: Optional[int] = None
    overall_active_attendance_rate: Optional[int] = None


class DateBoundsResponse(BaseModel):
    max_date: date
