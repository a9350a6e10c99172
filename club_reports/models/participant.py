"""Activity participant model."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from club_reports.core.database import Base


class ApprovalStatus(str, Enum):
    """Approval bucket of a participant."""

    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"
    REMOVED = "removed"


class Participant(Base):
    """A person's registration for one activity."""

    __tablename__ = "activity_participants"
    __table_args__ = (
        UniqueConstraint(
            "activity_id", "user_id",
            name="activity_participants_activity_user_unique"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    activity_id: Mapped[str] = mapped_column(
        ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    student_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        SQLEnum(ApprovalStatus, values_callable=lambda e: [m.value for m in e]),
        default=ApprovalStatus.PENDING,
        nullable=False,
    )
    checked_in: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # [{day: int, slot: morning|afternoon|evening}], multiple_days only
    registered_day_slots: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    activity: Mapped["Activity"] = relationship("Activity", back_populates="participants")
    attendance_records: Mapped[list["AttendanceRecord"]] = relationship(
        "AttendanceRecord", back_populates="participant", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<Participant(id={self.id}, name='{self.name}', "
            f"activity={self.activity_id}, status={self.approval_status})>"
        )
