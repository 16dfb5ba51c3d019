from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from campus_rewards.api.deps import get_current_user
from campus_rewards.core.config import get_settings
from campus_rewards.core.security import is_wallet_address
from campus_rewards.db.session import get_db
from campus_rewards.models.activity import Activity
from campus_rewards.models.enums import UserStatus
from campus_rewards.models.transaction import Transaction
from campus_rewards.models.user import User
from campus_rewards.schemas.common import Envelope, ok
from campus_rewards.schemas.ledger import ActivityOut, TransactionOut, UserProfileResponse
from campus_rewards.schemas.users import BalanceOut, ProfileUpdateRequest, UserOut
from campus_rewards.services.chain import ChainGateway, get_chain_gateway
from campus_rewards.services.notifications import notify_admins
from campus_rewards.services.users import get_user_by_wallet

router = APIRouter(prefix="/users", tags=["users"])


@router.patch("/me", response_model=Envelope[UserOut])
def update_profile(
    payload: ProfileUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail="Nothing to update")

    for field_name, value in changes.items():
        setattr(user, field_name, value)

    if user.status == UserStatus.REJECTED:
        user.status = UserStatus.PENDING
        notify_admins(
            db,
            "Registration Resubmitted",
            f"{user.name or user.wallet_address} updated their profile and is awaiting approval.",
            link="/admin/users",
        )

    db.add(user)
    db.commit()
    db.refresh(user)
    return ok(UserOut.model_validate(user), message="Profile updated")


@router.get("/{address}/balance", response_model=Envelope[BalanceOut])
def wallet_balance(
    address: str,
    gateway: ChainGateway = Depends(get_chain_gateway),
    _: User = Depends(get_current_user),
):
    if not is_wallet_address(address):
        raise HTTPException(status_code=400, detail="Invalid wallet address")
    balance = gateway.get_balance(address)
    settings = get_settings()
    return ok(BalanceOut(balance=str(balance.raw), formatted=balance.formatted, symbol=settings.token_symbol))


@router.get("/{address}", response_model=Envelope[UserProfileResponse])
def user_profile(
    address: str,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
):
    user = get_user_by_wallet(db, address)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    transactions = db.scalars(
        select(Transaction).where(Transaction.user_id == user.id).order_by(Transaction.created_at.desc()).limit(20)
    ).all()
    activities = db.scalars(
        select(Activity).where(Activity.user_id == user.id).order_by(Activity.created_at.desc()).limit(20)
    ).all()
    return ok(
        UserProfileResponse(
            user=UserOut.model_validate(user),
            transactions=[TransactionOut.model_validate(row) for row in transactions],
            activities=[ActivityOut.model_validate(row) for row in activities],
        )
    )
