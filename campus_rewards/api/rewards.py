from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from campus_rewards.api.deps import PageParams, get_current_user, page_params
from campus_rewards.db.session import get_db
from campus_rewards.models.reward import Reward
from campus_rewards.models.user import User
from campus_rewards.schemas.common import Envelope, Pagination, ok
from campus_rewards.schemas.ledger import TransactionOut
from campus_rewards.schemas.rewards import (
    MyRedemptionListResponse,
    RedeemRequest,
    RedeemResponse,
    RedemptionOut,
    RewardListResponse,
    RewardOut,
)
from campus_rewards.services.chain import ChainGateway, get_chain_gateway
from campus_rewards.services.redemption import list_redemptions, redeem

router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.get("", response_model=Envelope[RewardListResponse])
def list_rewards(
    category: str | None = Query(default=None, max_length=128),
    search: str | None = Query(default=None, max_length=255),
    include_inactive: bool = Query(default=False),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
):
    conditions = []
    if not include_inactive:
        conditions.append(Reward.is_active.is_(True))
    if category:
        conditions.append(Reward.category == category)
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(Reward.name.ilike(pattern), Reward.description.ilike(pattern)))

    total = db.scalar(select(func.count()).select_from(Reward).where(*conditions)) or 0
    rows = db.scalars(
        select(Reward)
        .where(*conditions)
        .order_by(Reward.cost.asc(), Reward.name.asc())
        .offset(paging.offset)
        .limit(paging.limit)
    ).all()
    return ok(
        RewardListResponse(
            rewards=[RewardOut.model_validate(row) for row in rows],
            pagination=Pagination.build(total, paging.page, paging.limit),
        )
    )


@router.post("/redeem", response_model=Envelope[RedeemResponse])
def redeem_reward(
    payload: RedeemRequest,
    db: Session = Depends(get_db),
    gateway: ChainGateway = Depends(get_chain_gateway),
    user: User = Depends(get_current_user),
):
    result = redeem(db, gateway, user, payload.reward_id, payload.quantity)
    return ok(
        RedeemResponse(
            redemption=RedemptionOut.model_validate(result.redemption),
            transaction=TransactionOut.model_validate(result.transaction),
            tx_hash=result.tx_hash,
        ),
        message="Reward redeemed",
    )


@router.get("/redemptions/me", response_model=Envelope[MyRedemptionListResponse])
def my_redemptions(
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    rows, total = list_redemptions(db, user_id=user.id, page=paging.page, limit=paging.limit)
    return ok(
        MyRedemptionListResponse(
            redemptions=[RedemptionOut.model_validate(row) for row in rows],
            pagination=Pagination.build(total, paging.page, paging.limit),
        )
    )


@router.get("/{reward_id}", response_model=Envelope[RewardOut])
def reward_details(reward_id: str, db: Session = Depends(get_db)):
    reward = db.get(Reward, reward_id)
    if not reward:
        raise HTTPException(status_code=404, detail="Reward not found")
    return ok(RewardOut.model_validate(reward))
