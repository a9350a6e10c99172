"""Database models for the club activity reports service."""

from club_reports.models.activity import Activity, ActivityStatus, ActivityType
from club_reports.models.attendance import AttendanceRecord, AttendanceStatus, CheckInType
from club_reports.models.participant import ApprovalStatus, Participant

__all__ = [
    "Activity",
    "ActivityStatus",
    "ActivityType",
    "Participant",
    "ApprovalStatus",
    "AttendanceRecord",
    "AttendanceStatus",
    "CheckInType",
]
