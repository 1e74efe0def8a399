"""
CalendarEvent and EventAttendee models backing the SQL event store.
"""
from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Text, ForeignKey, Boolean, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import JSONB

from bizcal.database import Base

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB, "postgresql")


class CalendarEventRecord(Base):
    __tablename__ = "calendar_events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Event details
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_all_day: Mapped[bool] = mapped_column(Boolean, default=False)

    # 'MEETING', 'APPOINTMENT', 'TASK', ...
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    # 'LOW', 'MEDIUM', 'HIGH', 'URGENT'
    priority: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    # 'CONFIRMED', 'TENTATIVE', 'CANCELLED', 'COMPLETED'
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    organizer_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    # Derived data, replaced wholesale on every detection pass
    recurrence: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    conflicts: Mapped[Optional[list]] = mapped_column(JSONType, nullable=True)
    ai_suggestions: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    # External calendar linkage
    external_calendar_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    external_event_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Dashboard linkage
    project_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    client_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    attendees: Mapped[list["EventAttendeeRecord"]] = relationship(
        "EventAttendeeRecord",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventAttendeeRecord.position",
        lazy="selectin",
    )


class EventAttendeeRecord(Base):
    __tablename__ = "event_attendees"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    event_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("calendar_events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(default=0)  # keeps attendee order stable
    user_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="PENDING")
    is_optional: Mapped[bool] = mapped_column(Boolean, default=False)

    # Relationships
    event: Mapped["CalendarEventRecord"] = relationship(
        "CalendarEventRecord", back_populates="attendees"
    )
