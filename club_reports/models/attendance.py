"""Attendance record model."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from club_reports.core.database import Base


class CheckInType(str, Enum):
    """Check-in at the start or at the end of a session."""

    START = "start"
    END = "end"


class AttendanceStatus(str, Enum):
    """Verification status of a check-in."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AttendanceRecord(Base):
    """One check-in of a participant for one session."""

    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint(
            "participant_id", "time_slot", "check_in_type", "day_number",
            name="attendance_records_slot_unique"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    activity_id: Mapped[str] = mapped_column(
        ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("activity_participants.id", ondelete="CASCADE"), nullable=False
    )
    time_slot: Mapped[str] = mapped_column(String(100), nullable=False)  # "Buổi Sáng" or "Ngày 2 - Buổi Sáng"
    check_in_type: Mapped[CheckInType] = mapped_column(
        SQLEnum(CheckInType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    check_in_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[AttendanceStatus] = mapped_column(
        SQLEnum(AttendanceStatus, values_callable=lambda e: [m.value for m in e]),
        default=AttendanceStatus.PENDING,
        nullable=False,
    )
    day_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    late_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    participant: Mapped["Participant"] = relationship(
        "Participant", back_populates="attendance_records"
    )

    def __repr__(self) -> str:
        return (
            f"<AttendanceRecord(id={self.id}, participant={self.participant_id}, "
            f"slot='{self.time_slot}', type={self.check_in_type}, status={self.status})>"
        )
