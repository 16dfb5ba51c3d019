from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_rewards.db.base import Base
from campus_rewards.models.common import TimestampMixin, UUIDPrimaryKeyMixin
from campus_rewards.models.enums import ActivityType


class Event(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "events"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    total_slots: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0 = unlimited
    token_reward: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    activity_type: Mapped[str] = mapped_column(String(32), nullable=False, default=ActivityType.EVENT_ATTENDANCE)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    participations = relationship("EventParticipation", back_populates="event", cascade="all, delete-orphan")
