from fastapi import APIRouter, Depends, Request
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from campus_rewards.core.config import get_settings
from campus_rewards.db.session import get_db
from campus_rewards.models.reward import Reward
from campus_rewards.models.transaction import Transaction
from campus_rewards.models.user import User

router = APIRouter(tags=["system"])


@router.get("/health")
def health():
    settings = get_settings()
    return {"status": "ok", "version": settings.app_version}


@router.get("/system/info")
def system_info(request: Request, db: Session = Depends(get_db)):
    settings = get_settings()
    return {
        "app_name": settings.app_name,
        "app_env": settings.app_env,
        "app_version": settings.app_version,
        "token_symbol": settings.token_symbol,
        "chain_backend": type(request.app.state.chain_gateway).__name__,
        "users": db.scalar(select(func.count()).select_from(User)) or 0,
        "transactions": db.scalar(select(func.count()).select_from(Transaction)) or 0,
        "active_rewards": db.scalar(select(func.count()).select_from(Reward).where(Reward.is_active.is_(True))) or 0,
    }
