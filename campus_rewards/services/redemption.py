"""
Reward redemption.

Stock is reserved with a single conditional UPDATE, so two requests racing
for the last unit cannot both succeed and stock never goes negative. The
reservation, the redemption row and its REDEEM transaction are committed
together before the chain call; a failed burn is compensated by returning
the stock and marking both rows as failed.

Every status change is a conditional UPDATE on the current status, so the
stock held by a redemption is released at most once. Admins cannot move a
redemption while its burn is still in flight.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, selectinload

from campus_rewards.core.errors import ChainGatewayError, Conflict, NotFound, ValidationFailed
from campus_rewards.models.enums import (
    TERMINAL_REDEMPTION_STATUSES,
    RedemptionStatus,
    TransactionStatus,
    TransactionType,
)
from campus_rewards.models.redemption import Redemption
from campus_rewards.models.reward import Reward
from campus_rewards.models.transaction import Transaction
from campus_rewards.models.user import User
from campus_rewards.services.chain import ChainGateway
from campus_rewards.services.notifications import notify_redemption_status

logger = logging.getLogger(__name__)


@dataclass
class RedemptionResult:
    redemption: Redemption
    transaction: Transaction
    tx_hash: str


def reserve_stock(db: Session, reward_id: str, quantity: int) -> bool:
    """Decrement stock only if enough is left. Does not commit."""
    result = db.execute(
        update(Reward)
        .where(Reward.id == reward_id, Reward.is_active.is_(True), Reward.stock >= quantity)
        .values(stock=Reward.stock - quantity)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def release_stock(db: Session, reward_id: str, quantity: int) -> None:
    db.execute(
        update(Reward)
        .where(Reward.id == reward_id)
        .values(stock=Reward.stock + quantity)
        .execution_options(synchronize_session=False)
    )


def _load_redemption(db: Session, redemption_id: str) -> Redemption | None:
    return db.scalar(
        select(Redemption)
        .where(Redemption.id == redemption_id)
        .options(selectinload(Redemption.reward), selectinload(Redemption.user))
        .execution_options(populate_existing=True)
    )


def transition_redemption(db: Session, redemption_id: str, from_status: str, to_status: str) -> bool:
    """Move a redemption only if it is still in ``from_status``. Does not commit."""
    result = db.execute(
        update(Redemption)
        .where(Redemption.id == redemption_id, Redemption.status == from_status)
        .values(status=to_status)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def redeem(db: Session, gateway: ChainGateway, user: User, reward_id: str, quantity: int) -> RedemptionResult:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationFailed("Quantity must be a positive integer")

    reward = db.get(Reward, reward_id)
    if not reward:
        raise NotFound("Reward not found")
    if not reward.is_active:
        raise ValidationFailed("Reward is not available")
    if reward.stock < quantity:
        raise ValidationFailed("Insufficient stock")

    if not reserve_stock(db, reward.id, quantity):
        db.rollback()
        raise ValidationFailed("Insufficient stock")

    total_cost = reward.cost * quantity
    transaction = Transaction(
        user_id=user.id,
        amount=total_cost,
        type=TransactionType.REDEEM,
        description=f"Redeemed {quantity} x {reward.name}",
        status=TransactionStatus.PENDING,
    )
    db.add(transaction)
    db.flush()
    redemption = Redemption(
        user_id=user.id,
        reward_id=reward.id,
        transaction_id=transaction.id,
        quantity=quantity,
        status=RedemptionStatus.PENDING,
    )
    db.add(redemption)
    db.commit()
    logger.info("Reserved %s x %s for user %s (redemption %s)", quantity, reward.id, user.id, redemption.id)

    try:
        tx_hash = gateway.redeem(user.wallet_address, reward.id, total_cost, quantity)
    except Exception as exc:
        if transition_redemption(db, redemption.id, RedemptionStatus.PENDING, RedemptionStatus.CANCELLED):
            release_stock(db, reward.id, quantity)
        db.execute(
            update(Transaction)
            .where(Transaction.id == transaction.id)
            .values(status=TransactionStatus.FAILED)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        logger.error("Redemption %s failed on chain: %s", redemption.id, exc)
        if isinstance(exc, ChainGatewayError):
            raise
        raise ChainGatewayError(f"Token redemption failed: {exc}") from exc

    redemption.tx_hash = tx_hash
    transaction.tx_hash = tx_hash
    transaction.status = TransactionStatus.COMPLETED
    db.commit()
    logger.info("Redemption %s confirmed (tx: %s)", redemption.id, tx_hash)

    return RedemptionResult(redemption=_load_redemption(db, redemption.id), transaction=transaction, tx_hash=tx_hash)


def update_redemption_status(
    db: Session,
    redemption_id: str,
    new_status: str,
    tx_hash: str | None = None,
) -> Redemption:
    if new_status not in frozenset(RedemptionStatus):
        raise ValidationFailed(f"Unknown redemption status: {new_status}")

    redemption = _load_redemption(db, redemption_id)
    if not redemption:
        raise NotFound("Redemption not found")

    current = redemption.status
    if current == new_status and tx_hash is None:
        return redemption
    if current in TERMINAL_REDEMPTION_STATUSES:
        raise Conflict(f"Redemption is already {current}")
    if redemption.transaction_id is not None:
        burn_status = db.scalar(select(Transaction.status).where(Transaction.id == redemption.transaction_id))
        if burn_status == TransactionStatus.PENDING:
            raise Conflict("Redemption is still being processed on chain")

    if not transition_redemption(db, redemption.id, current, new_status):
        db.rollback()
        raise Conflict("Redemption was updated by another request")
    if tx_hash is not None:
        db.execute(
            update(Redemption)
            .where(Redemption.id == redemption.id)
            .values(tx_hash=tx_hash)
            .execution_options(synchronize_session=False)
        )
    if new_status == RedemptionStatus.CANCELLED:
        release_stock(db, redemption.reward_id, redemption.quantity)

    redemption = _load_redemption(db, redemption.id)
    if current != new_status:
        notify_redemption_status(db, redemption)
    db.commit()
    logger.info("Redemption %s moved %s -> %s", redemption.id, current, new_status)
    return _load_redemption(db, redemption.id)


def list_redemptions(
    db: Session,
    *,
    status: str | None = None,
    user_id: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Redemption], int]:
    conditions = []
    if status:
        conditions.append(Redemption.status == status)
    if user_id:
        conditions.append(Redemption.user_id == user_id)

    total = db.scalar(select(func.count()).select_from(Redemption).where(*conditions)) or 0
    rows = db.scalars(
        select(Redemption)
        .where(*conditions)
        .options(selectinload(Redemption.reward), selectinload(Redemption.user))
        .order_by(Redemption.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()
    return list(rows), total
