"""Activity model."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Enum as SQLEnum, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from club_reports.core.database import Base


class ActivityType(str, Enum):
    """Activity type enum."""

    SINGLE_DAY = "single_day"
    MULTIPLE_DAYS = "multiple_days"


class ActivityStatus(str, Enum):
    """Lifecycle status, set by officers and independent of the calendar."""

    DRAFT = "draft"
    PUBLISHED = "published"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    POSTPONED = "postponed"


class Activity(Base):
    """Club activity with its schedule and capacity."""

    __tablename__ = "activities"
    __table_args__ = (
        CheckConstraint(
            "type != 'multiple_days' OR "
            "(start_date IS NOT NULL AND end_date IS NOT NULL AND start_date <= end_date)",
            name="activities_multiple_days_range",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: uuid.uuid4().hex
    )
    responsible_person_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    location_radius: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # metres
    type: Mapped[ActivityType] = mapped_column(
        SQLEnum(ActivityType, values_callable=lambda e: [m.value for m in e]),
        default=ActivityType.SINGLE_DAY,
        nullable=False,
    )
    status: Mapped[ActivityStatus] = mapped_column(
        SQLEnum(ActivityStatus, values_callable=lambda e: [m.value for m in e]),
        default=ActivityStatus.DRAFT,
        nullable=False,
    )

    # single_day uses date, multiple_days uses start_date/end_date
    date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # [{id, name, start_time, end_time, is_active, activities, detailed_location}]
    time_slots: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)
    # [{day, date, activities}]
    schedule: Mapped[Optional[list]] = mapped_column(JSONB, nullable=True)

    max_participants: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    registration_threshold: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    participants: Mapped[list["Participant"]] = relationship(
        "Participant", back_populates="activity", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Activity(id={self.id}, name='{self.name}', type={self.type}, status={self.status})>"
