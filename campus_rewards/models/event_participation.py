from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_rewards.db.base import Base
from campus_rewards.models.common import CreatedAtMixin, UUIDPrimaryKeyMixin
from campus_rewards.models.enums import ParticipationStatus


class EventParticipation(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "event_participations"
    __table_args__ = (UniqueConstraint("user_id", "event_id", name="uq_event_participations_user_event"),)

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id: Mapped[str] = mapped_column(String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ParticipationStatus.PENDING)

    user = relationship("User", back_populates="participations")
    event = relationship("Event", back_populates="participations")
