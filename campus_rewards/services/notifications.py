import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from campus_rewards.models.enums import ADMIN_ROLES, NotificationType, RedemptionStatus
from campus_rewards.models.notification import Notification
from campus_rewards.models.redemption import Redemption
from campus_rewards.models.user import User

logger = logging.getLogger(__name__)

_REDEMPTION_NOTICES: dict[str, tuple[str, str, NotificationType]] = {
    RedemptionStatus.PENDING: (
        "Order Pending",
        "Your order for {quantity} x {reward} is pending review.",
        NotificationType.INFO,
    ),
    RedemptionStatus.APPROVED: (
        "Order Approved",
        "Your order for {quantity} x {reward} has been approved.",
        NotificationType.INFO,
    ),
    RedemptionStatus.FULFILLED: (
        "Order Ready",
        "Your order for {quantity} x {reward} is packed and ready for pickup.",
        NotificationType.INFO,
    ),
    RedemptionStatus.DELIVERED: (
        "Order Delivered",
        "Your order for {quantity} x {reward} has been delivered. Enjoy!",
        NotificationType.SUCCESS,
    ),
    RedemptionStatus.CANCELLED: (
        "Order Cancelled",
        "Your order for {quantity} x {reward} was cancelled.",
        NotificationType.WARNING,
    ),
}


def notify(
    db: Session,
    user_id: str,
    title: str,
    message: str,
    notification_type: str = NotificationType.INFO,
    link: str | None = None,
) -> Notification:
    """Stage a notification on the session; the caller commits."""
    notification = Notification(user_id=user_id, title=title, message=message, type=notification_type, link=link)
    db.add(notification)
    return notification


def notify_admins(db: Session, title: str, message: str, link: str | None = None) -> int:
    admin_ids = db.scalars(select(User.id).where(User.role.in_(list(ADMIN_ROLES)))).all()
    for admin_id in admin_ids:
        notify(db, admin_id, title, message, NotificationType.INFO, link)
    return len(admin_ids)


def notify_redemption_status(db: Session, redemption: Redemption) -> Notification:
    title, template, notification_type = _REDEMPTION_NOTICES[redemption.status]
    reward_name = redemption.reward.name if redemption.reward else "reward"
    message = template.format(quantity=redemption.quantity, reward=reward_name)
    return notify(db, redemption.user_id, title, message, notification_type, link="/profile")
