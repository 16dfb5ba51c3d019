from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from campus_rewards.api.deps import PageParams, get_current_admin, page_params
from campus_rewards.db.session import get_db
from campus_rewards.models.enums import NotificationType, RedemptionStatus, UserStatus
from campus_rewards.models.event import Event
from campus_rewards.models.event_participation import EventParticipation
from campus_rewards.models.redemption import Redemption
from campus_rewards.models.reward import Reward
from campus_rewards.models.user import User
from campus_rewards.schemas.common import Envelope, Pagination, ok
from campus_rewards.schemas.events import (
    AdminEventListResponse,
    EventCreateRequest,
    EventDistributeRequest,
    EventDistributeResponse,
    EventOut,
    EventUpdateRequest,
    ParticipantListResponse,
    ParticipantOut,
)
from campus_rewards.schemas.ledger import (
    ActivityOut,
    BatchDistributeRequest,
    BatchDistributeResponse,
    DistributeRequest,
    DistributeResponse,
    DistributionOutcome,
    TransactionOut,
    VerifyActivityRequest,
)
from campus_rewards.schemas.rewards import (
    AdminRedemptionOut,
    RedemptionListResponse,
    RedemptionStatusUpdateRequest,
    RewardCreateRequest,
    RewardDeleteResponse,
    RewardOut,
    RewardUpdateRequest,
)
from campus_rewards.schemas.users import UserListResponse, UserOut, UserStatusUpdateRequest
from campus_rewards.services import distribution
from campus_rewards.services.chain import ChainGateway, get_chain_gateway
from campus_rewards.services.notifications import notify
from campus_rewards.services.redemption import list_redemptions, update_redemption_status

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(get_current_admin)])


def _distribute_response(result: distribution.DistributionResult) -> DistributeResponse:
    return DistributeResponse(
        transaction=TransactionOut.model_validate(result.transaction),
        activity=ActivityOut.model_validate(result.activity),
        tx_hash=result.tx_hash,
    )


@router.post("/distribute", response_model=Envelope[DistributeResponse])
def distribute_tokens(
    payload: DistributeRequest,
    db: Session = Depends(get_db),
    gateway: ChainGateway = Depends(get_chain_gateway),
):
    result = distribution.distribute(
        db,
        gateway,
        wallet_address=payload.wallet_address,
        amount=payload.amount,
        activity_type=payload.activity_type,
        description=payload.description,
        metadata=payload.metadata,
        idempotency_key=payload.idempotency_key,
    )
    message = "Distribution already recorded" if result.replayed else "Tokens distributed"
    return ok(_distribute_response(result), message=message)


@router.post("/batch-distribute", response_model=Envelope[BatchDistributeResponse])
def batch_distribute_tokens(
    payload: BatchDistributeRequest,
    db: Session = Depends(get_db),
    gateway: ChainGateway = Depends(get_chain_gateway),
):
    batch = distribution.batch_distribute(db, gateway, payload.distributions)
    return ok(
        BatchDistributeResponse(
            total_requests=batch.total_requests,
            success_count=batch.success_count,
            failure_count=batch.failure_count,
            skipped_count=batch.skipped_count,
            results=[DistributionOutcome(**asdict(item)) for item in batch.results],
        ),
        message=f"{batch.success_count} of {batch.total_requests} distributions succeeded",
    )


@router.post("/verify-activity", response_model=Envelope[DistributeResponse])
def verify_activity(
    payload: VerifyActivityRequest,
    db: Session = Depends(get_db),
    gateway: ChainGateway = Depends(get_chain_gateway),
):
    result = distribution.verify_activity(db, gateway, payload.user_id, payload.activity_id)
    return ok(_distribute_response(result), message="Activity verified")


@router.get("/redemptions", response_model=Envelope[RedemptionListResponse])
def admin_list_redemptions(
    status_value: RedemptionStatus | None = Query(default=None, alias="status"),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
):
    rows, total = list_redemptions(db, status=status_value, page=paging.page, limit=paging.limit)
    return ok(
        RedemptionListResponse(
            redemptions=[AdminRedemptionOut.model_validate(row) for row in rows],
            pagination=Pagination.build(total, paging.page, paging.limit),
        )
    )


@router.patch("/redemptions/{redemption_id}", response_model=Envelope[AdminRedemptionOut])
def admin_update_redemption(
    redemption_id: str,
    payload: RedemptionStatusUpdateRequest,
    db: Session = Depends(get_db),
):
    redemption = update_redemption_status(db, redemption_id, payload.status, payload.tx_hash)
    return ok(AdminRedemptionOut.model_validate(redemption), message=f"Redemption {redemption.status}")


@router.get("/users", response_model=Envelope[UserListResponse])
def admin_list_users(
    status_value: UserStatus | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
):
    stmt = select(User).order_by(User.created_at.desc())
    if status_value:
        stmt = stmt.where(User.status == status_value)
    rows = db.scalars(stmt).all()
    return ok(UserListResponse(users=[UserOut.model_validate(row) for row in rows]))


@router.patch("/users/{user_id}/status", response_model=Envelope[UserOut])
def admin_update_user_status(
    user_id: str,
    payload: UserStatusUpdateRequest,
    db: Session = Depends(get_db),
):
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    user.status = payload.status
    if payload.status == UserStatus.APPROVED:
        notify(
            db,
            user.id,
            "Registration Approved",
            "Welcome aboard! You can now join events and earn tokens.",
            NotificationType.SUCCESS,
            link="/events",
        )
    else:
        notify(
            db,
            user.id,
            "Registration Rejected",
            "Your registration was rejected. Update your profile and try again.",
            NotificationType.WARNING,
            link="/profile",
        )
    db.commit()
    db.refresh(user)
    return ok(UserOut.model_validate(user))


@router.post("/rewards", response_model=Envelope[RewardOut])
def admin_create_reward(payload: RewardCreateRequest, db: Session = Depends(get_db)):
    reward = Reward(**payload.model_dump())
    db.add(reward)
    db.commit()
    db.refresh(reward)
    return ok(RewardOut.model_validate(reward), message="Reward created")


@router.patch("/rewards/{reward_id}", response_model=Envelope[RewardOut])
def admin_update_reward(reward_id: str, payload: RewardUpdateRequest, db: Session = Depends(get_db)):
    reward = db.get(Reward, reward_id)
    if not reward:
        raise HTTPException(status_code=404, detail="Reward not found")

    for field_name, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field_name != "image_url":
            continue
        setattr(reward, field_name, value)
    db.commit()
    db.refresh(reward)
    return ok(RewardOut.model_validate(reward), message="Reward updated")


@router.delete("/rewards/{reward_id}", response_model=Envelope[RewardDeleteResponse])
def admin_delete_reward(reward_id: str, db: Session = Depends(get_db)):
    reward = db.get(Reward, reward_id)
    if not reward:
        raise HTTPException(status_code=404, detail="Reward not found")

    has_history = (db.scalar(select(func.count()).select_from(Redemption).where(Redemption.reward_id == reward.id)) or 0) > 0
    if has_history:
        reward.is_active = False
        db.commit()
        return ok(
            RewardDeleteResponse(id=reward.id, deleted=False, deactivated=True),
            message="Reward has redemption history and was deactivated",
        )

    db.delete(reward)
    db.commit()
    return ok(RewardDeleteResponse(id=reward_id, deleted=True, deactivated=False), message="Reward deleted")


@router.get("/events", response_model=Envelope[AdminEventListResponse])
def admin_list_events(db: Session = Depends(get_db)):
    rows = db.scalars(select(Event).order_by(Event.created_at.desc())).all()
    return ok(AdminEventListResponse(events=[EventOut.model_validate(row) for row in rows]))


@router.post("/events", response_model=Envelope[EventOut])
def admin_create_event(payload: EventCreateRequest, db: Session = Depends(get_db)):
    event = Event(**payload.model_dump())
    db.add(event)
    db.commit()
    db.refresh(event)
    return ok(EventOut.model_validate(event), message="Event created")


@router.patch("/events/{event_id}", response_model=Envelope[EventOut])
def admin_update_event(event_id: str, payload: EventUpdateRequest, db: Session = Depends(get_db)):
    event = db.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")

    for field_name, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(event, field_name, value)
    db.commit()
    db.refresh(event)
    return ok(EventOut.model_validate(event), message="Event updated")


@router.get("/events/{event_id}/participants", response_model=Envelope[ParticipantListResponse])
def admin_event_participants(event_id: str, db: Session = Depends(get_db)):
    if not db.get(Event, event_id):
        raise HTTPException(status_code=404, detail="Event not found")

    rows = db.scalars(
        select(EventParticipation)
        .where(EventParticipation.event_id == event_id)
        .options(selectinload(EventParticipation.user))
        .order_by(EventParticipation.created_at.asc())
    ).all()
    return ok(ParticipantListResponse(participations=[ParticipantOut.model_validate(row) for row in rows]))


@router.post("/events/{event_id}/distribute", response_model=Envelope[EventDistributeResponse])
def admin_distribute_event_rewards(
    event_id: str,
    payload: EventDistributeRequest,
    db: Session = Depends(get_db),
    gateway: ChainGateway = Depends(get_chain_gateway),
):
    batch = distribution.distribute_event_rewards(db, gateway, event_id, payload.user_ids)
    return ok(
        EventDistributeResponse(
            event_id=event_id,
            total_requests=batch.total_requests,
            success_count=batch.success_count,
            failure_count=batch.failure_count,
            skipped_count=batch.skipped_count,
            results=[DistributionOutcome(**asdict(item)) for item in batch.results],
        )
    )
