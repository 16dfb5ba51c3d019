import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_rewards.core.errors import ValidationFailed
from campus_rewards.core.security import is_wallet_address, normalize_wallet_address
from campus_rewards.models.user import User

logger = logging.getLogger(__name__)


def get_user_by_wallet(db: Session, wallet_address: str) -> User | None:
    return db.scalar(select(User).where(User.wallet_address == normalize_wallet_address(wallet_address)))


def find_or_create_user(db: Session, wallet_address: str) -> tuple[User, bool]:
    """Return the user for a wallet, creating it on first sight.

    Commits the new row so it survives a later chain failure. A concurrent
    insert of the same address loses on the unique index and re-reads.
    """
    if not is_wallet_address(wallet_address):
        raise ValidationFailed("Invalid wallet address")

    address = normalize_wallet_address(wallet_address)
    user = db.scalar(select(User).where(User.wallet_address == address))
    if user:
        return user, False

    user = User(wallet_address=address)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        user = db.scalar(select(User).where(User.wallet_address == address))
        if user is None:
            raise
        return user, False

    logger.info("Created user %s for wallet %s", user.id, address)
    return user, True
