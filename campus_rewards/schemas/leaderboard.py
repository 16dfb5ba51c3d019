from pydantic import BaseModel

from campus_rewards.schemas.common import Pagination
from campus_rewards.schemas.users import UserBrief


class LeaderboardEntry(BaseModel):
    rank: int
    user: UserBrief
    total_tokens: float
    balance_available: bool
    total_activities: int
    total_points: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntry]
    pagination: Pagination
