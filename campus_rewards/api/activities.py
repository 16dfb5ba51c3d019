from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_rewards.api.deps import get_current_user
from campus_rewards.db.session import get_db
from campus_rewards.models.activity import Activity
from campus_rewards.models.user import User
from campus_rewards.schemas.common import Envelope, ok
from campus_rewards.schemas.ledger import ActivityClaimRequest, ActivityOut
from campus_rewards.services.notifications import notify_admins

router = APIRouter(prefix="/activities", tags=["activities"])


@router.post("", response_model=Envelope[ActivityOut])
def submit_activity(
    payload: ActivityClaimRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    activity = Activity(
        user_id=user.id,
        type=payload.type,
        points=payload.points,
        metadata_=payload.metadata,
        verified_at=None,
    )
    db.add(activity)
    notify_admins(
        db,
        "Activity Awaiting Verification",
        f"{user.name or user.wallet_address} submitted {payload.type.value} for {payload.points} tokens.",
        link="/admin/activities",
    )
    db.commit()
    db.refresh(activity)
    return ok(ActivityOut.model_validate(activity), message="Activity submitted for verification")
