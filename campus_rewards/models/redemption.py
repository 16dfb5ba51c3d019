from sqlalchemy import CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_rewards.db.base import Base
from campus_rewards.models.common import TimestampMixin, UUIDPrimaryKeyMixin
from campus_rewards.models.enums import RedemptionStatus


class Redemption(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "redemptions"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_redemptions_quantity_positive"),)

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    reward_id: Mapped[str] = mapped_column(String(36), ForeignKey("rewards.id", ondelete="RESTRICT"), nullable=False, index=True)
    transaction_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RedemptionStatus.PENDING, index=True)
    tx_hash: Mapped[str | None] = mapped_column(String(80), nullable=True)

    user = relationship("User", back_populates="redemptions")
    reward = relationship("Reward", back_populates="redemptions")
    transaction = relationship("Transaction")
