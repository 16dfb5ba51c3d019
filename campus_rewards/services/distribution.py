"""
Token distribution: mint G-CORE for verified activities and mirror each
mint in the off-chain ledger as one EARN transaction plus one activity.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campus_rewards.core.errors import ChainGatewayError, Conflict, LedgerError, NotFound, ValidationFailed
from campus_rewards.core.security import is_wallet_address, normalize_wallet_address
from campus_rewards.models.activity import Activity
from campus_rewards.models.common import utcnow
from campus_rewards.models.enums import ActivityType, NotificationType, ParticipationStatus, TransactionStatus, TransactionType
from campus_rewards.models.event import Event
from campus_rewards.models.event_participation import EventParticipation
from campus_rewards.models.transaction import Transaction
from campus_rewards.models.user import User
from campus_rewards.services.chain import ChainGateway
from campus_rewards.services.notifications import notify
from campus_rewards.services.users import find_or_create_user

logger = logging.getLogger(__name__)

SUCCESS = "SUCCESS"
FAILED = "FAILED"
SKIPPED = "SKIPPED"

_ACTIVITY_TYPES = frozenset(ActivityType)


@dataclass
class DistributionResult:
    transaction: Transaction
    activity: Activity
    tx_hash: str
    replayed: bool = False


@dataclass
class DistributionOutcome:
    wallet_address: str
    amount: int
    status: str
    tx_hash: str | None = None
    transaction_id: str | None = None
    error: str | None = None


@dataclass
class BatchResult:
    results: list[DistributionOutcome] = field(default_factory=list)

    @property
    def total_requests(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for item in self.results if item.status == SUCCESS)

    @property
    def failure_count(self) -> int:
        return sum(1 for item in self.results if item.status == FAILED)

    @property
    def skipped_count(self) -> int:
        return sum(1 for item in self.results if item.status == SKIPPED)


def _validate(wallet_address: str, amount: int, activity_type: str) -> None:
    if not is_wallet_address(wallet_address):
        raise ValidationFailed("Invalid wallet address")
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationFailed("Amount must be a positive integer")
    if activity_type not in _ACTIVITY_TYPES:
        raise ValidationFailed(f"Unknown activity type: {activity_type}")


def _mint(gateway: ChainGateway, wallet_address: str, amount: int, activity_type: str, description: str) -> str:
    try:
        return gateway.mint(wallet_address, amount, activity_type, description)
    except ChainGatewayError:
        raise
    except Exception as exc:
        logger.error("Failed to distribute tokens to %s: %s", wallet_address, exc)
        raise ChainGatewayError(f"Token distribution failed: {exc}") from exc


def _replay(
    db: Session,
    idempotency_key: str,
    wallet_address: str,
    amount: int,
    activity_type: str,
) -> DistributionResult | None:
    transaction = db.scalar(select(Transaction).where(Transaction.idempotency_key == idempotency_key))
    if transaction is None:
        return None
    activity = db.scalar(select(Activity).where(Activity.transaction_id == transaction.id))
    if activity is None:
        raise LedgerError(f"Ledger entry for idempotency key {idempotency_key} has no activity")

    recorded = (transaction.user.wallet_address, transaction.amount, activity.type)
    if recorded != (normalize_wallet_address(wallet_address), amount, activity_type):
        raise Conflict(f"Idempotency key {idempotency_key} was already used for a different distribution")
    logger.info("Distribution %s already recorded as transaction %s", idempotency_key, transaction.id)
    return DistributionResult(transaction=transaction, activity=activity, tx_hash=transaction.tx_hash or "", replayed=True)


def distribute(
    db: Session,
    gateway: ChainGateway,
    wallet_address: str,
    amount: int,
    activity_type: str,
    description: str,
    metadata: dict[str, Any] | None = None,
    idempotency_key: str | None = None,
) -> DistributionResult:
    _validate(wallet_address, amount, activity_type)

    if idempotency_key:
        replay = _replay(db, idempotency_key, wallet_address, amount, activity_type)
        if replay is not None:
            return replay

    user, _ = find_or_create_user(db, wallet_address)
    tx_hash = _mint(gateway, user.wallet_address, amount, activity_type, description)

    transaction = Transaction(
        user_id=user.id,
        amount=amount,
        type=TransactionType.EARN,
        description=f"{activity_type}: {description}",
        tx_hash=tx_hash,
        status=TransactionStatus.COMPLETED,
        idempotency_key=idempotency_key,
    )
    db.add(transaction)
    try:
        db.flush()
        activity = Activity(
            user_id=user.id,
            type=activity_type,
            points=amount,
            metadata_={"description": description, **(metadata or {})},
            verified_at=utcnow(),
            transaction_id=transaction.id,
        )
        db.add(activity)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Minted %s to %s (tx: %s) but the ledger write failed: %s",
            amount,
            user.wallet_address,
            tx_hash,
            exc,
        )
        raise LedgerError(f"Tokens were minted (tx {tx_hash}) but the ledger could not be updated") from exc

    logger.info("Distributed %s to %s for %s (tx: %s)", amount, user.wallet_address, activity_type, tx_hash)
    return DistributionResult(transaction=transaction, activity=activity, tx_hash=tx_hash)


def batch_distribute(db: Session, gateway: ChainGateway, items: Iterable[Any]) -> BatchResult:
    """Distribute each item in order; one failure never stops the rest."""
    batch = BatchResult()
    for item in items:
        try:
            result = distribute(
                db,
                gateway,
                wallet_address=item.wallet_address,
                amount=item.amount,
                activity_type=item.activity_type,
                description=item.description,
                metadata=getattr(item, "metadata", None),
            )
        except LedgerError as exc:
            logger.warning("Batch item for %s failed: %s", item.wallet_address, exc.message)
            batch.results.append(
                DistributionOutcome(
                    wallet_address=item.wallet_address.lower(),
                    amount=item.amount,
                    status=FAILED,
                    error=exc.message,
                )
            )
            continue
        batch.results.append(
            DistributionOutcome(
                wallet_address=item.wallet_address.lower(),
                amount=item.amount,
                status=SUCCESS,
                tx_hash=result.tx_hash,
                transaction_id=result.transaction.id,
            )
        )

    logger.info(
        "Batch distribution finished: %d succeeded, %d failed",
        batch.success_count,
        batch.failure_count,
    )
    return batch


def verify_activity(db: Session, gateway: ChainGateway, user_id: str, activity_id: str) -> DistributionResult:
    """Verify a pending activity claim and mint its points exactly once."""
    activity = db.get(Activity, activity_id)
    if not activity or activity.user_id != user_id:
        raise NotFound("Activity not found")
    if activity.verified_at is not None:
        raise ValidationFailed("Activity already verified")

    claimed_at = utcnow()
    claimed = db.execute(
        update(Activity)
        .where(Activity.id == activity_id, Activity.verified_at.is_(None))
        .values(verified_at=claimed_at)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        db.rollback()
        raise ValidationFailed("Activity already verified")
    db.commit()

    user = db.get(User, user_id)
    description = str((activity.metadata_ or {}).get("description") or activity.type)
    try:
        tx_hash = _mint(gateway, user.wallet_address, activity.points, activity.type, description)
    except ChainGatewayError:
        db.execute(
            update(Activity)
            .where(Activity.id == activity_id)
            .values(verified_at=None)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        raise

    transaction = Transaction(
        user_id=user.id,
        amount=activity.points,
        type=TransactionType.EARN,
        description=f"{activity.type}: {description}",
        tx_hash=tx_hash,
        status=TransactionStatus.COMPLETED,
    )
    db.add(transaction)
    db.flush()
    activity.verified_at = claimed_at
    activity.transaction_id = transaction.id
    notify(
        db,
        user.id,
        "Activity Verified",
        f"Your {activity.type.replace('_', ' ').lower()} earned {activity.points} tokens.",
        NotificationType.SUCCESS,
        link="/profile",
    )
    db.commit()
    logger.info("Verified activity %s and minted %s to %s (tx: %s)", activity.id, activity.points, user.wallet_address, tx_hash)
    return DistributionResult(transaction=transaction, activity=activity, tx_hash=tx_hash)


def _set_participation_status(db: Session, participation_id: str, from_status: str, to_status: str) -> bool:
    result = db.execute(
        update(EventParticipation)
        .where(EventParticipation.id == participation_id, EventParticipation.status == from_status)
        .values(status=to_status)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount == 1


def distribute_event_rewards(db: Session, gateway: ChainGateway, event_id: str, user_ids: Iterable[str]) -> BatchResult:
    """Approve pending participants of an event and pay each the event reward."""
    event = db.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")

    batch = BatchResult()
    for user_id in dict.fromkeys(user_ids):
        row = db.execute(
            select(EventParticipation, User)
            .join(User, User.id == EventParticipation.user_id)
            .where(EventParticipation.event_id == event_id, EventParticipation.user_id == user_id)
        ).first()
        if row is None:
            batch.results.append(
                DistributionOutcome(wallet_address="", amount=0, status=FAILED, error=f"User {user_id} is not registered for this event")
            )
            continue

        participation, user = row
        if not _set_participation_status(db, participation.id, ParticipationStatus.PENDING, ParticipationStatus.APPROVED):
            batch.results.append(
                DistributionOutcome(wallet_address=user.wallet_address, amount=0, status=SKIPPED, error="Already approved")
            )
            continue

        outcome = DistributionOutcome(wallet_address=user.wallet_address, amount=event.token_reward, status=SUCCESS)
        if event.token_reward > 0:
            try:
                result = distribute(
                    db,
                    gateway,
                    wallet_address=user.wallet_address,
                    amount=event.token_reward,
                    activity_type=event.activity_type,
                    description=event.title,
                    metadata={"event_id": event.id},
                    idempotency_key=f"event:{event.id}:{user.id}",
                )
            except LedgerError as exc:
                _set_participation_status(db, participation.id, ParticipationStatus.APPROVED, ParticipationStatus.PENDING)
                logger.warning("Event reward for %s on %s failed: %s", user.wallet_address, event.id, exc.message)
                outcome.status = FAILED
                outcome.error = exc.message
                batch.results.append(outcome)
                continue
            outcome.tx_hash = result.tx_hash
            outcome.transaction_id = result.transaction.id

        notify(
            db,
            user.id,
            "Participation Approved",
            f"Your participation in {event.title} was approved. {event.token_reward} tokens are on their way!",
            NotificationType.SUCCESS,
            link="/events",
        )
        db.commit()
        batch.results.append(outcome)

    logger.info(
        "Event %s rewards: %d paid, %d failed, %d skipped",
        event.id,
        batch.success_count,
        batch.failure_count,
        batch.skipped_count,
    )
    return batch
