from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class UserOut(BaseModel):
    id: str
    wallet_address: str
    name: str | None
    college_email: str | None
    roll_no: str | None
    year: int | None
    branch: str | None
    role: str
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class UserBrief(BaseModel):
    id: str
    wallet_address: str
    name: str | None

    model_config = {"from_attributes": True}


class ProfileUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    college_email: str | None = Field(default=None, max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    roll_no: str | None = Field(default=None, max_length=64)
    year: int | None = Field(default=None, ge=1, le=6)
    branch: str | None = Field(default=None, max_length=128)


class UserStatusUpdateRequest(BaseModel):
    status: Literal["APPROVED", "REJECTED"]


class UserListResponse(BaseModel):
    users: list[UserOut]


class BalanceOut(BaseModel):
    balance: str
    formatted: str
    symbol: str
