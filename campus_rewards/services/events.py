from uuid import uuid4

from sqlalchemy import DateTime, String, func, insert, literal, or_, select
from sqlalchemy.orm import Session

from campus_rewards.models.common import utcnow
from campus_rewards.models.enums import ParticipationStatus
from campus_rewards.models.event import Event
from campus_rewards.models.event_participation import EventParticipation


def claim_event_slot(db: Session, event_id: str, user_id: str) -> str | None:
    """Insert a PENDING participation only while the event has a free slot.

    Returns the new participation id, or None when the event is full. The
    event row is locked first; the count and the insert are one statement.
    Does not commit.
    """
    db.execute(select(Event.id).where(Event.id == event_id).with_for_update())

    taken = (
        select(func.count())
        .select_from(EventParticipation)
        .where(EventParticipation.event_id == event_id)
        .scalar_subquery()
    )
    participation_id = str(uuid4())
    source = select(
        literal(participation_id, String(36)),
        literal(user_id, String(36)),
        Event.id,
        literal(ParticipationStatus.PENDING.value, String(16)),
        literal(utcnow(), DateTime(timezone=True)),
    ).where(Event.id == event_id, or_(Event.total_slots == 0, taken < Event.total_slots))

    result = db.execute(
        insert(EventParticipation.__table__).from_select(["id", "user_id", "event_id", "status", "created_at"], source)
    )
    return participation_id if result.rowcount == 1 else None
