from datetime import datetime

from pydantic import BaseModel, Field

from campus_rewards.models.enums import RedemptionStatus
from campus_rewards.schemas.common import Pagination
from campus_rewards.schemas.ledger import TransactionOut
from campus_rewards.schemas.users import UserBrief


class RewardOut(BaseModel):
    id: str
    name: str
    description: str
    cost: int
    stock: int
    category: str
    image_url: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class RewardCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=4000)
    cost: int = Field(..., gt=0)
    stock: int = Field(..., ge=0)
    category: str = Field(..., min_length=1, max_length=128)
    image_url: str | None = Field(default=None, max_length=1024)
    is_active: bool = True


class RewardUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=4000)
    cost: int | None = Field(default=None, gt=0)
    stock: int | None = Field(default=None, ge=0)
    category: str | None = Field(default=None, min_length=1, max_length=128)
    image_url: str | None = Field(default=None, max_length=1024)
    is_active: bool | None = None


class RewardListResponse(BaseModel):
    rewards: list[RewardOut]
    pagination: Pagination


class RewardDeleteResponse(BaseModel):
    id: str
    deleted: bool
    deactivated: bool


class RedeemRequest(BaseModel):
    reward_id: str = Field(..., min_length=1, max_length=36)
    quantity: int = Field(..., gt=0, le=100)


class RedemptionOut(BaseModel):
    id: str
    user_id: str
    reward_id: str
    quantity: int
    status: str
    tx_hash: str | None
    created_at: datetime
    updated_at: datetime
    reward: RewardOut

    model_config = {"from_attributes": True}


class AdminRedemptionOut(RedemptionOut):
    user: UserBrief


class RedeemResponse(BaseModel):
    redemption: RedemptionOut
    transaction: TransactionOut
    tx_hash: str


class RedemptionStatusUpdateRequest(BaseModel):
    status: RedemptionStatus
    tx_hash: str | None = Field(default=None, max_length=80)


class RedemptionListResponse(BaseModel):
    redemptions: list[AdminRedemptionOut]
    pagination: Pagination


class MyRedemptionListResponse(BaseModel):
    redemptions: list[RedemptionOut]
    pagination: Pagination
