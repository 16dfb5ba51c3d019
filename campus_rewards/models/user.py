from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_rewards.db.base import Base
from campus_rewards.models.common import TimestampMixin, UUIDPrimaryKeyMixin
from campus_rewards.models.enums import ADMIN_ROLES, Role, UserStatus


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "users"

    wallet_address: Mapped[str] = mapped_column(String(42), nullable=False, unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    college_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    roll_no: Mapped[str | None] = mapped_column(String(64), nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    branch: Mapped[str | None] = mapped_column(String(128), nullable=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=Role.USER)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=UserStatus.PENDING, index=True)

    activities = relationship("Activity", back_populates="user", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="user", cascade="all, delete-orphan")
    redemptions = relationship("Redemption", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
    participations = relationship("EventParticipation", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
