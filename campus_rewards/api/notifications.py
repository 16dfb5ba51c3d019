from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from campus_rewards.api.deps import get_current_user
from campus_rewards.db.session import get_db
from campus_rewards.models.notification import Notification
from campus_rewards.models.user import User
from campus_rewards.schemas.common import Envelope, ok
from campus_rewards.schemas.notifications import NotificationListResponse, NotificationOut

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=Envelope[NotificationListResponse])
def list_notifications(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    rows = db.scalars(
        select(Notification)
        .where(Notification.user_id == user.id)
        .order_by(Notification.created_at.desc())
        .limit(50)
    ).all()
    unread = db.scalar(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user.id, Notification.is_read.is_(False))
    )
    return ok(
        NotificationListResponse(
            notifications=[NotificationOut.model_validate(row) for row in rows],
            unread_count=unread or 0,
        )
    )


@router.patch("/{notification_id}/read", response_model=Envelope[None])
def mark_read(notification_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    notification = db.get(Notification, notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    if notification.user_id != user.id:
        raise HTTPException(status_code=403, detail="Unauthorized")

    notification.is_read = True
    db.commit()
    return ok(message="Notification marked as read")


@router.post("/read-all", response_model=Envelope[None])
def mark_all_read(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    db.execute(
        update(Notification)
        .where(Notification.user_id == user.id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    db.commit()
    return ok(message="All notifications marked as read")
