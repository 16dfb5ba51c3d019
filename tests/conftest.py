from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from campus_rewards.core.errors import ChainGatewayError
from campus_rewards.services.chain import InMemoryChainGateway

ADMIN_WALLET = "0x" + "a" * 40


def wallet(n: int) -> str:
    return "0x" + f"{n:040x}"


class FlakyChainGateway(InMemoryChainGateway):
    """In-memory gateway that rejects mints and burns for selected wallets."""

    def __init__(self, failing: set[str] | None = None) -> None:
        super().__init__(decimals=18)
        self.failing = {address.lower() for address in failing or set()}
        self.fail_redeem = False
        self.on_redeem = None

    def mint(self, address: str, amount: int, activity_type: str, description: str) -> str:
        if address.lower() in self.failing:
            raise ChainGatewayError("Token distribution failed: execution reverted")
        return super().mint(address, amount, activity_type, description)

    def redeem(self, address: str, reward_id: str, amount: int, quantity: int) -> str:
        if self.on_redeem is not None:
            self.on_redeem(reward_id)
        if self.fail_redeem:
            raise ChainGatewayError("Token redemption failed: execution reverted")
        return super().redeem(address, reward_id, amount, quantity)


class BrokenBalanceGateway(InMemoryChainGateway):
    def __init__(self, broken: set[str]) -> None:
        super().__init__(decimals=18)
        self.broken = {address.lower() for address in broken}

    def get_balance(self, address: str):
        if address.lower() in self.broken:
            raise ChainGatewayError(f"Failed to get token balance for {address}")
        return super().get_balance(address)


@pytest.fixture()
def gateway() -> FlakyChainGateway:
    return FlakyChainGateway()


@pytest.fixture()
def app_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, gateway):
    db_file = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+pysqlite:///{db_file.as_posix()}")
    monkeypatch.setenv("CHAIN_BACKEND", "memory")
    monkeypatch.setenv("AUTO_CREATE_ADMIN", "true")
    monkeypatch.setenv("BOOTSTRAP_ADMIN_WALLET", ADMIN_WALLET)
    monkeypatch.setenv("JWT_SECRET", "test-secret-for-the-rewards-ledger-suite")

    from campus_rewards.core.config import clear_settings_cache
    from campus_rewards.db.base import Base
    from campus_rewards.db.session import get_engine, reset_engine
    from campus_rewards.main import create_app

    import campus_rewards.models  # noqa: F401

    clear_settings_cache()
    reset_engine()
    Base.metadata.create_all(bind=get_engine())

    app = create_app()
    app.state.chain_gateway = gateway
    with TestClient(app) as client:
        yield client

    Base.metadata.drop_all(bind=get_engine())
    reset_engine()
    clear_settings_cache()


@pytest.fixture()
def db_session(app_client: TestClient):
    from campus_rewards.db.session import get_session_factory

    with get_session_factory()() as db:
        yield db


def connect(client: TestClient, wallet_address: str) -> dict:
    response = client.post("/api/auth/connect", json={"wallet_address": wallet_address})
    assert response.status_code == 200, response.text
    return response.json()["data"]


def auth_headers(client: TestClient, wallet_address: str = ADMIN_WALLET) -> dict[str, str]:
    token = connect(client, wallet_address)["token"]
    return {"Authorization": f"Bearer {token}"}


def admin_headers(client: TestClient) -> dict[str, str]:
    return auth_headers(client, ADMIN_WALLET)


def create_reward(client: TestClient, **overrides) -> dict:
    payload = {"name": "Campus Hoodie", "description": "Cozy", "cost": 50, "stock": 5, "category": "merch"}
    payload.update(overrides)
    response = client.post("/api/admin/rewards", headers=admin_headers(client), json=payload)
    assert response.status_code == 200, response.text
    return response.json()["data"]


def fund(client: TestClient, wallet_address: str, amount: int) -> dict:
    response = client.post(
        "/api/admin/distribute",
        headers=admin_headers(client),
        json={
            "wallet_address": wallet_address,
            "amount": amount,
            "activity_type": "EVENT_ATTENDANCE",
            "description": "Orientation",
        },
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]
