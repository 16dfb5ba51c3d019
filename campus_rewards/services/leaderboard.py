import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.orm import Session

from campus_rewards.core.errors import ValidationFailed
from campus_rewards.models.activity import Activity
from campus_rewards.models.common import utcnow
from campus_rewards.models.enums import ActivityType
from campus_rewards.models.user import User
from campus_rewards.services.chain import ChainGateway

logger = logging.getLogger(__name__)

TIMEFRAMES = {
    "all": None,
    "month": timedelta(days=30),
    "week": timedelta(days=7),
}


@dataclass
class Standing:
    user: User
    total_tokens: Decimal
    balance_available: bool
    total_activities: int
    total_points: int
    rank: int = 0


def _balance(gateway: ChainGateway, wallet_address: str) -> tuple[Decimal, bool]:
    try:
        balance = gateway.get_balance(wallet_address)
        return Decimal(balance.formatted), True
    except (InvalidOperation, ValueError) as exc:
        logger.warning("Unparseable balance for %s: %s", wallet_address, exc)
    except Exception as exc:
        logger.warning("Failed to get balance for %s: %s", wallet_address, exc)
    return Decimal(0), False


def build_leaderboard(
    db: Session,
    gateway: ChainGateway,
    timeframe: str = "all",
    category: str = "all",
) -> list[Standing]:
    """Rank every user by on-chain balance.

    One balance lookup per user. A lookup that fails ranks the user with a
    zero balance and flags ``balance_available`` as False instead of failing
    the whole listing.
    """
    if timeframe not in TIMEFRAMES:
        raise ValidationFailed(f"Unknown timeframe: {timeframe}")
    if category != "all" and category not in frozenset(ActivityType):
        raise ValidationFailed(f"Unknown category: {category}")

    conditions = [Activity.verified_at.is_not(None)]
    window = TIMEFRAMES[timeframe]
    if window is not None:
        conditions.append(Activity.verified_at >= utcnow() - window)
    if category != "all":
        conditions.append(Activity.type == category)

    points_by_user: dict[str, list[int]] = {}
    for user_id, points in db.execute(select(Activity.user_id, Activity.points).where(*conditions)):
        points_by_user.setdefault(user_id, []).append(points)

    standings: list[Standing] = []
    for user in db.scalars(select(User).order_by(User.created_at)).all():
        points = points_by_user.get(user.id, [])
        total_tokens, available = _balance(gateway, user.wallet_address)
        standings.append(
            Standing(
                user=user,
                total_tokens=total_tokens,
                balance_available=available,
                total_activities=len(points),
                total_points=sum(points),
            )
        )

    standings.sort(key=lambda item: item.total_tokens, reverse=True)
    for index, standing in enumerate(standings, start=1):
        standing.rank = index
    return standings
