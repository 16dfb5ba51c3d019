from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from campus_rewards.api.deps import PageParams, page_params
from campus_rewards.db.session import get_db
from campus_rewards.schemas.common import Envelope, Pagination, ok
from campus_rewards.schemas.leaderboard import LeaderboardEntry, LeaderboardResponse
from campus_rewards.schemas.users import UserBrief
from campus_rewards.services.chain import ChainGateway, get_chain_gateway
from campus_rewards.services.leaderboard import build_leaderboard

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("", response_model=Envelope[LeaderboardResponse])
def leaderboard(
    timeframe: str = Query(default="all"),
    category: str = Query(default="all"),
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    gateway: ChainGateway = Depends(get_chain_gateway),
):
    standings = build_leaderboard(db, gateway, timeframe=timeframe, category=category)
    page = standings[paging.offset : paging.offset + paging.limit]
    entries = [
        LeaderboardEntry(
            rank=item.rank,
            user=UserBrief.model_validate(item.user),
            total_tokens=float(item.total_tokens),
            balance_available=item.balance_available,
            total_activities=item.total_activities,
            total_points=item.total_points,
        )
        for item in page
    ]
    return ok(LeaderboardResponse(entries=entries, pagination=Pagination.build(len(standings), paging.page, paging.limit)))
