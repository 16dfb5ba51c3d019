from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_rewards.api.deps import get_current_user
from campus_rewards.db.session import get_db
from campus_rewards.models.enums import NotificationType, UserStatus
from campus_rewards.models.event import Event
from campus_rewards.models.event_participation import EventParticipation
from campus_rewards.models.user import User
from campus_rewards.schemas.common import Envelope, ok
from campus_rewards.schemas.events import EventListItem, EventListResponse, EventOut, JoinEventResponse, ParticipationOut
from campus_rewards.services.events import claim_event_slot
from campus_rewards.services.notifications import notify, notify_admins

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=Envelope[EventListResponse])
def list_events(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    events = db.scalars(
        select(Event).where(Event.is_active.is_(True)).order_by(Event.date.desc().nulls_last(), Event.created_at.desc())
    ).all()
    counts = dict(
        db.execute(
            select(EventParticipation.event_id, func.count()).group_by(EventParticipation.event_id)
        ).all()
    )
    own = dict(
        db.execute(
            select(EventParticipation.event_id, EventParticipation.status).where(EventParticipation.user_id == user.id)
        ).all()
    )
    items = [
        EventListItem(
            **EventOut.model_validate(event).model_dump(),
            participant_count=counts.get(event.id, 0),
            user_status=own.get(event.id, "NONE"),
        )
        for event in events
    ]
    return ok(EventListResponse(events=items))


@router.post("/{event_id}/join", response_model=Envelope[JoinEventResponse])
def join_event(event_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    event = db.get(Event, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    if not event.is_active:
        raise HTTPException(status_code=400, detail="Event is not active")
    if user.status != UserStatus.APPROVED:
        raise HTTPException(status_code=403, detail="Only approved members can register for events")
    already_joined = db.scalar(
        select(EventParticipation.id).where(EventParticipation.event_id == event.id, EventParticipation.user_id == user.id)
    )
    if already_joined:
        raise HTTPException(status_code=400, detail="Already joined this event")
    try:
        participation_id = claim_event_slot(db, event.id, user.id)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail="Already joined this event") from exc
    if participation_id is None:
        db.rollback()
        raise HTTPException(status_code=400, detail="Event is full")

    notify(
        db,
        user.id,
        "Event Registration",
        f"You've registered for {event.title}. Stay tuned for updates!",
        NotificationType.SUCCESS,
        link="/events",
    )
    notify_admins(
        db,
        "New Event Registration",
        f"{user.name or user.wallet_address} has registered for {event.title}.",
        link=f"/admin/events/{event.id}/participants",
    )
    db.commit()
    participation = db.get(EventParticipation, participation_id)
    return ok(JoinEventResponse(participation=ParticipationOut.model_validate(participation)), message="Participation requested")
