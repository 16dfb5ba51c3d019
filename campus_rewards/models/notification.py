from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_rewards.db.base import Base
from campus_rewards.models.common import CreatedAtMixin, UUIDPrimaryKeyMixin
from campus_rewards.models.enums import NotificationType


class Notification(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(String(1024), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=NotificationType.INFO)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    link: Mapped[str | None] = mapped_column(String(512), nullable=True)

    user = relationship("User", back_populates="notifications")
