from pydantic import BaseModel, Field

from campus_rewards.core.security import WALLET_ADDRESS_PATTERN
from campus_rewards.schemas.users import UserOut


class ConnectWalletRequest(BaseModel):
    wallet_address: str = Field(..., pattern=WALLET_ADDRESS_PATTERN)
    signature: str | None = None


class ConnectWalletResponse(BaseModel):
    user: UserOut
    token: str
    token_type: str = "bearer"
