from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from campus_rewards.db.base import Base
from campus_rewards.models.common import CreatedAtMixin, UUIDPrimaryKeyMixin
from campus_rewards.models.enums import TransactionStatus


class Transaction(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    __tablename__ = "transactions"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)  # EARN | REDEEM | TRANSFER
    description: Mapped[str] = mapped_column(String(512), nullable=False)
    tx_hash: Mapped[str | None] = mapped_column(String(80), nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=TransactionStatus.PENDING)
    idempotency_key: Mapped[str | None] = mapped_column(String(128), nullable=True, unique=True)

    user = relationship("User", back_populates="transactions")
