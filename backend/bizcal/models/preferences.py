"""
Per-user calendar preference model.
"""
from datetime import datetime
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from bizcal.database import Base
from bizcal.models.calendar_event import JSONType


class CalendarPreferenceRecord(Base):
    __tablename__ = "calendar_preferences"

    # One row per user; the whole preference document is replaced on write
    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[dict] = mapped_column(JSONType, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
