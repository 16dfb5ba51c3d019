from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from campus_rewards.api.deps import PageParams, get_current_user, page_params
from campus_rewards.db.session import get_db
from campus_rewards.models.enums import TransactionStatus
from campus_rewards.models.transaction import Transaction
from campus_rewards.models.user import User
from campus_rewards.schemas.common import Envelope, Pagination, ok
from campus_rewards.schemas.ledger import (
    PublicTransactionListResponse,
    PublicTransactionOut,
    TransactionListResponse,
    TransactionOut,
)

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=Envelope[TransactionListResponse])
def my_transactions(
    paging: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    total = db.scalar(select(func.count()).select_from(Transaction).where(Transaction.user_id == user.id)) or 0
    rows = db.scalars(
        select(Transaction)
        .where(Transaction.user_id == user.id)
        .order_by(Transaction.created_at.desc())
        .offset(paging.offset)
        .limit(paging.limit)
    ).all()
    return ok(
        TransactionListResponse(
            transactions=[TransactionOut.model_validate(row) for row in rows],
            pagination=Pagination.build(total, paging.page, paging.limit),
        )
    )


@router.get("/public", response_model=Envelope[PublicTransactionListResponse])
def latest_transactions(
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    rows = db.scalars(
        select(Transaction)
        .where(Transaction.status == TransactionStatus.COMPLETED)
        .options(selectinload(Transaction.user))
        .order_by(Transaction.created_at.desc())
        .limit(limit)
    ).all()
    return ok(PublicTransactionListResponse(transactions=[PublicTransactionOut.model_validate(row) for row in rows]))
