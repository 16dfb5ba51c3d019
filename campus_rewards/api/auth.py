from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_rewards.api.deps import get_current_user
from campus_rewards.core.security import create_access_token
from campus_rewards.db.session import get_db
from campus_rewards.models.user import User
from campus_rewards.schemas.auth import ConnectWalletRequest, ConnectWalletResponse
from campus_rewards.schemas.common import Envelope, ok
from campus_rewards.schemas.users import UserOut
from campus_rewards.services.users import find_or_create_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/connect", response_model=Envelope[ConnectWalletResponse])
def connect_wallet(payload: ConnectWalletRequest, db: Session = Depends(get_db)):
    user, _ = find_or_create_user(db, payload.wallet_address)
    token = create_access_token(subject=user.id, wallet_address=user.wallet_address, role=user.role)
    return ok(ConnectWalletResponse(user=UserOut.model_validate(user), token=token))


@router.get("/me", response_model=Envelope[UserOut])
def me(user: User = Depends(get_current_user)):
    return ok(UserOut.model_validate(user))
