from fastapi.testclient import TestClient
from sqlalchemy import func, select

from campus_rewards.models.activity import Activity
from campus_rewards.models.transaction import Transaction
from campus_rewards.models.user import User
from tests.conftest import admin_headers, auth_headers, connect, wallet


def _count(db, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


def test_distribute_creates_user_transaction_and_activity(app_client: TestClient, gateway, db_session):
    address = wallet(1)
    response = app_client.post(
        "/api/admin/distribute",
        headers=admin_headers(app_client),
        json={
            "wallet_address": address.upper().replace("0X", "0x"),
            "amount": 25,
            "activity_type": "WORKSHOP_COMPLETION",
            "description": "Intro to Solidity",
            "metadata": {"workshop": "solidity-101"},
        },
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["tx_hash"].startswith("0x")
    assert data["transaction"]["type"] == "EARN"
    assert data["transaction"]["status"] == "COMPLETED"
    assert data["transaction"]["amount"] == 25
    assert data["transaction"]["description"] == "WORKSHOP_COMPLETION: Intro to Solidity"
    assert data["activity"]["points"] == 25
    assert data["activity"]["verified_at"] is not None
    assert data["activity"]["metadata"] == {"description": "Intro to Solidity", "workshop": "solidity-101"}

    user = db_session.scalar(select(User).where(User.wallet_address == address))
    assert user is not None
    assert user.status == "PENDING"
    assert _count(db_session, Transaction) == 1
    assert _count(db_session, Activity) == 1
    assert gateway.minted == [(address, 25, "WORKSHOP_COMPLETION")]


def test_second_distribution_reuses_user(app_client: TestClient, db_session):
    headers = admin_headers(app_client)
    for amount in (10, 15):
        response = app_client.post(
            "/api/admin/distribute",
            headers=headers,
            json={
                "wallet_address": wallet(2),
                "amount": amount,
                "activity_type": "VOLUNTEERING",
                "description": "Beach cleanup",
            },
        )
        assert response.status_code == 200, response.text

    users = db_session.scalars(select(User).where(User.wallet_address == wallet(2))).all()
    assert len(users) == 1
    assert _count(db_session, Transaction) == 2
    assert _count(db_session, Activity) == 2


def test_distribute_rejects_bad_input(app_client: TestClient, gateway, db_session):
    headers = admin_headers(app_client)
    bad_payloads = [
        {"wallet_address": "0x123", "amount": 10, "activity_type": "VOLUNTEERING", "description": "x"},
        {"wallet_address": wallet(3), "amount": 0, "activity_type": "VOLUNTEERING", "description": "x"},
        {"wallet_address": wallet(3), "amount": -5, "activity_type": "VOLUNTEERING", "description": "x"},
        {"wallet_address": wallet(3), "amount": 10, "activity_type": "SLEEPING", "description": "x"},
    ]
    for payload in bad_payloads:
        response = app_client.post("/api/admin/distribute", headers=headers, json=payload)
        assert response.status_code == 400, payload
        assert response.json()["success"] is False

    assert gateway.minted == []
    assert _count(db_session, Transaction) == 0


def test_distribute_chain_failure_records_nothing(app_client: TestClient, gateway, db_session):
    gateway.failing.add(wallet(4))
    response = app_client.post(
        "/api/admin/distribute",
        headers=admin_headers(app_client),
        json={"wallet_address": wallet(4), "amount": 10, "activity_type": "VOLUNTEERING", "description": "x"},
    )
    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "data": None,
        "message": "Token distribution failed: execution reverted",
    }
    assert _count(db_session, Transaction) == 0
    assert _count(db_session, Activity) == 0


def test_distribute_idempotency_key_replays(app_client: TestClient, gateway, db_session):
    headers = admin_headers(app_client)
    payload = {
        "wallet_address": wallet(5),
        "amount": 40,
        "activity_type": "CONTEST_PARTICIPATION",
        "description": "Hackathon",
        "idempotency_key": "hackathon-2026:team-7",
    }
    first = app_client.post("/api/admin/distribute", headers=headers, json=payload)
    second = app_client.post("/api/admin/distribute", headers=headers, json=payload)
    assert first.status_code == 200, first.text
    assert second.status_code == 200, second.text
    assert second.json()["message"] == "Distribution already recorded"
    assert second.json()["data"]["transaction"]["id"] == first.json()["data"]["transaction"]["id"]
    assert len(gateway.minted) == 1
    assert _count(db_session, Transaction) == 1


def test_idempotency_key_reused_for_different_distribution_conflicts(app_client: TestClient, gateway, db_session):
    headers = admin_headers(app_client)
    payload = {
        "wallet_address": wallet(0xAB6),
        "amount": 40,
        "activity_type": "CONTEST_PARTICIPATION",
        "description": "Hackathon",
        "idempotency_key": "hackathon-2026:team-8",
    }
    first = app_client.post("/api/admin/distribute", headers=headers, json=payload)
    assert first.status_code == 200, first.text

    for change in ({"amount": 400}, {"wallet_address": wallet(0xAB7)}, {"activity_type": "VOLUNTEERING"}):
        response = app_client.post("/api/admin/distribute", headers=headers, json={**payload, **change})
        assert response.status_code == 409, response.text
        assert "already used for a different distribution" in response.json()["message"]

    same_wallet_other_case = app_client.post(
        "/api/admin/distribute",
        headers=headers,
        json={**payload, "wallet_address": wallet(0xAB6).upper().replace("0X", "0x")},
    )
    assert same_wallet_other_case.status_code == 200, same_wallet_other_case.text
    assert len(gateway.minted) == 1
    assert _count(db_session, Transaction) == 1


def test_batch_distribute_isolates_failures(app_client: TestClient, gateway, db_session):
    gateway.failing.add(wallet(12))
    items = [{"wallet_address": wallet(n), "amount": 5, "description": "Demo day"} for n in (11, 12, 13)]
    response = app_client.post(
        "/api/admin/batch-distribute",
        headers=admin_headers(app_client),
        json={"distributions": items},
    )
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["total_requests"] == 3
    assert data["success_count"] == 2
    assert data["failure_count"] == 1
    statuses = [item["status"] for item in data["results"]]
    assert statuses == ["SUCCESS", "FAILED", "SUCCESS"]
    assert data["results"][1]["error"] == "Token distribution failed: execution reverted"
    assert data["results"][0]["tx_hash"].startswith("0x")

    assert _count(db_session, Transaction) == 2
    activity_types = set(db_session.scalars(select(Activity.type)).all())
    assert activity_types == {"EVENT_ATTENDANCE"}


def test_batch_distribute_rejects_empty_list(app_client: TestClient):
    response = app_client.post(
        "/api/admin/batch-distribute",
        headers=admin_headers(app_client),
        json={"distributions": []},
    )
    assert response.status_code == 400


def test_verify_activity_mints_once(app_client: TestClient, gateway):
    member = wallet(20)
    member_headers = auth_headers(app_client, member)
    user_id = connect(app_client, member)["user"]["id"]

    claim = app_client.post(
        "/api/activities",
        headers=member_headers,
        json={"type": "CONTENT_CREATION", "points": 30, "metadata": {"description": "Blog post"}},
    )
    assert claim.status_code == 200, claim.text
    activity_id = claim.json()["data"]["id"]
    assert claim.json()["data"]["verified_at"] is None

    headers = admin_headers(app_client)
    verify = app_client.post(
        "/api/admin/verify-activity",
        headers=headers,
        json={"user_id": user_id, "activity_id": activity_id},
    )
    assert verify.status_code == 200, verify.text
    data = verify.json()["data"]
    assert data["activity"]["verified_at"] is not None
    assert data["activity"]["transaction_id"] == data["transaction"]["id"]
    assert data["transaction"]["description"] == "CONTENT_CREATION: Blog post"

    again = app_client.post(
        "/api/admin/verify-activity",
        headers=headers,
        json={"user_id": user_id, "activity_id": activity_id},
    )
    assert again.status_code == 400
    assert again.json()["message"] == "Activity already verified"
    assert len(gateway.minted) == 1

    notifications = app_client.get("/api/notifications", headers=member_headers).json()["data"]
    assert "Activity Verified" in [item["title"] for item in notifications["notifications"]]


def test_verify_activity_rolls_back_claim_on_chain_failure(app_client: TestClient, gateway, db_session):
    member = wallet(21)
    member_headers = auth_headers(app_client, member)
    user_id = connect(app_client, member)["user"]["id"]
    activity_id = app_client.post(
        "/api/activities",
        headers=member_headers,
        json={"type": "VOLUNTEERING", "points": 10},
    ).json()["data"]["id"]

    gateway.failing.add(member)
    response = app_client.post(
        "/api/admin/verify-activity",
        headers=admin_headers(app_client),
        json={"user_id": user_id, "activity_id": activity_id},
    )
    assert response.status_code == 500
    activity = db_session.get(Activity, activity_id)
    assert activity.verified_at is None
    assert activity.transaction_id is None


def test_verify_activity_of_other_user_is_not_found(app_client: TestClient):
    owner_headers = auth_headers(app_client, wallet(22))
    other_id = connect(app_client, wallet(23))["user"]["id"]
    activity_id = app_client.post(
        "/api/activities",
        headers=owner_headers,
        json={"type": "VOLUNTEERING", "points": 10},
    ).json()["data"]["id"]

    response = app_client.post(
        "/api/admin/verify-activity",
        headers=admin_headers(app_client),
        json={"user_id": other_id, "activity_id": activity_id},
    )
    assert response.status_code == 404


def test_workshop_distribution_on_fresh_database(app_client: TestClient, db_session):
    address = "0xabc" + "0" * 37
    response = app_client.post(
        "/api/admin/distribute",
        headers=admin_headers(app_client),
        json={"wallet_address": address, "amount": 100, "activity_type": "EVENT_ATTENDANCE", "description": "workshop"},
    )
    assert response.status_code == 200, response.text

    user = db_session.scalar(select(User).where(User.wallet_address == address))
    transaction = db_session.scalar(select(Transaction).where(Transaction.user_id == user.id))
    activity = db_session.scalar(select(Activity).where(Activity.user_id == user.id))
    assert (transaction.amount, transaction.type) == (100, "EARN")
    assert (activity.type, activity.points) == ("EVENT_ATTENDANCE", 100)
    assert activity.verified_at is not None
    assert activity.transaction_id == transaction.id
