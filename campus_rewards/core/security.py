import re
from datetime import UTC, datetime, timedelta

import jwt

from campus_rewards.core.config import get_settings

WALLET_ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"
_WALLET_ADDRESS_RE = re.compile(WALLET_ADDRESS_PATTERN)


def is_wallet_address(value: str) -> bool:
    return bool(_WALLET_ADDRESS_RE.match(value or ""))


def normalize_wallet_address(value: str) -> str:
    return value.strip().lower()


def create_access_token(
    subject: str,
    wallet_address: str,
    role: str,
    expires_minutes: int | None = None,
) -> str:
    settings = get_settings()
    expires_delta = timedelta(minutes=expires_minutes or settings.jwt_expire_minutes)
    now = datetime.now(UTC)
    payload = {
        "sub": subject,
        "wallet_address": wallet_address,
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
