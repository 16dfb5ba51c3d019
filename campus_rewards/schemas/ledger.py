from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field

from campus_rewards.core.security import WALLET_ADDRESS_PATTERN
from campus_rewards.models.enums import ActivityType
from campus_rewards.schemas.common import Pagination
from campus_rewards.schemas.users import UserBrief, UserOut


class TransactionOut(BaseModel):
    id: str
    user_id: str
    amount: int
    type: str
    description: str
    tx_hash: str | None
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PublicTransactionOut(TransactionOut):
    user: UserBrief


class ActivityOut(BaseModel):
    id: str
    user_id: str
    type: str
    points: int
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("metadata_", "metadata"))
    verified_at: datetime | None
    transaction_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ActivityClaimRequest(BaseModel):
    type: ActivityType
    points: int = Field(..., gt=0, le=100_000)
    metadata: dict[str, Any] = Field(default_factory=dict)


class DistributeRequest(BaseModel):
    wallet_address: str = Field(..., pattern=WALLET_ADDRESS_PATTERN)
    amount: int = Field(..., gt=0)
    activity_type: ActivityType
    description: str = Field(..., min_length=1, max_length=400)
    metadata: dict[str, Any] | None = None
    idempotency_key: str | None = Field(default=None, min_length=1, max_length=128)


class DistributeResponse(BaseModel):
    transaction: TransactionOut
    activity: ActivityOut
    tx_hash: str


class BatchDistributeItem(BaseModel):
    wallet_address: str = Field(..., pattern=WALLET_ADDRESS_PATTERN)
    amount: int = Field(..., gt=0)
    activity_type: ActivityType = ActivityType.EVENT_ATTENDANCE
    description: str = Field(..., min_length=1, max_length=400)
    metadata: dict[str, Any] | None = None


class BatchDistributeRequest(BaseModel):
    distributions: list[BatchDistributeItem] = Field(..., min_length=1, max_length=500)


class DistributionOutcome(BaseModel):
    wallet_address: str
    amount: int
    status: Literal["SUCCESS", "FAILED", "SKIPPED"]
    tx_hash: str | None = None
    transaction_id: str | None = None
    error: str | None = None


class BatchDistributeResponse(BaseModel):
    total_requests: int
    success_count: int
    failure_count: int
    skipped_count: int = 0
    results: list[DistributionOutcome]


class VerifyActivityRequest(BaseModel):
    user_id: str
    activity_id: str


class TransactionListResponse(BaseModel):
    transactions: list[TransactionOut]
    pagination: Pagination


class PublicTransactionListResponse(BaseModel):
    transactions: list[PublicTransactionOut]


class UserProfileResponse(BaseModel):
    user: UserOut
    transactions: list[TransactionOut]
    activities: list[ActivityOut]
