from datetime import datetime

from pydantic import BaseModel, Field

from campus_rewards.models.enums import ActivityType
from campus_rewards.schemas.ledger import DistributionOutcome
from campus_rewards.schemas.users import UserBrief


class EventCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=4000)
    date: datetime | None = None
    location: str | None = Field(default=None, max_length=255)
    total_slots: int = Field(default=0, ge=0)
    token_reward: int = Field(default=0, ge=0)
    activity_type: ActivityType = ActivityType.EVENT_ATTENDANCE
    is_active: bool = True


class EventUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=4000)
    date: datetime | None = None
    location: str | None = Field(default=None, max_length=255)
    total_slots: int | None = Field(default=None, ge=0)
    token_reward: int | None = Field(default=None, ge=0)
    activity_type: ActivityType | None = None
    is_active: bool | None = None


class EventOut(BaseModel):
    id: str
    title: str
    description: str
    date: datetime | None
    location: str | None
    total_slots: int
    token_reward: int
    activity_type: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListItem(EventOut):
    participant_count: int
    user_status: str


class EventListResponse(BaseModel):
    events: list[EventListItem]


class AdminEventListResponse(BaseModel):
    events: list[EventOut]


class ParticipationOut(BaseModel):
    id: str
    user_id: str
    event_id: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ParticipantOut(ParticipationOut):
    user: UserBrief


class ParticipantListResponse(BaseModel):
    participations: list[ParticipantOut]


class JoinEventResponse(BaseModel):
    participation: ParticipationOut


class EventDistributeRequest(BaseModel):
    user_ids: list[str] = Field(..., min_length=1, max_length=500)


class EventDistributeResponse(BaseModel):
    event_id: str
    total_requests: int
    success_count: int
    failure_count: int
    skipped_count: int
    results: list[DistributionOutcome]
