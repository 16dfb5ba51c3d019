from datetime import UTC, datetime, timedelta

import jwt
from fastapi.testclient import TestClient

from campus_rewards.db.session import get_session_factory
from campus_rewards.services.events import claim_event_slot
from tests.conftest import ADMIN_WALLET, admin_headers, auth_headers, connect, create_reward, fund, wallet


def _approve(client: TestClient, user_id: str) -> None:
    response = client.patch(
        f"/api/admin/users/{user_id}/status",
        headers=admin_headers(client),
        json={"status": "APPROVED"},
    )
    assert response.status_code == 200, response.text


def _create_event(client: TestClient, **overrides) -> dict:
    payload = {
        "title": "Blockchain Bootcamp",
        "description": "Two days of hands-on labs",
        "date": (datetime.now(UTC) + timedelta(days=3)).isoformat(),
        "location": "Main Auditorium",
        "total_slots": 0,
        "token_reward": 20,
    }
    payload.update(overrides)
    response = client.post("/api/admin/events", headers=admin_headers(client), json=payload)
    assert response.status_code == 200, response.text
    return response.json()["data"]


def test_health_and_system_info(app_client: TestClient):
    health = app_client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"

    info = app_client.get("/system/info").json()
    assert info["chain_backend"] == "FlakyChainGateway"
    assert info["token_symbol"] == "G-CORE"
    assert info["users"] == 1


def test_connect_wallet_issues_token(app_client: TestClient):
    data = connect(app_client, "0x" + "AbCd" * 10)
    assert data["user"]["wallet_address"] == "0x" + "abcd" * 10
    assert data["user"]["role"] == "USER"
    assert data["user"]["status"] == "PENDING"

    payload = jwt.decode(data["token"], "test-secret-for-the-rewards-ledger-suite", algorithms=["HS256"])
    assert payload["sub"] == data["user"]["id"]
    assert payload["wallet_address"] == "0x" + "abcd" * 10

    again = connect(app_client, "0x" + "abcd" * 10)
    assert again["user"]["id"] == data["user"]["id"]

    me = app_client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.json()["data"]["id"] == data["user"]["id"]


def test_connect_rejects_malformed_wallet(app_client: TestClient):
    response = app_client.post("/api/auth/connect", json={"wallet_address": "not-a-wallet"})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_auth_errors(app_client: TestClient):
    assert app_client.get("/api/auth/me").json()["message"] == "No token provided"

    bad = app_client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert bad.status_code == 401
    assert bad.json()["message"] == "Invalid token"

    member = auth_headers(app_client, wallet(70))
    forbidden = app_client.post(
        "/api/admin/distribute",
        headers=member,
        json={"wallet_address": wallet(70), "amount": 10, "activity_type": "VOLUNTEERING", "description": "x"},
    )
    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "Admin access required"


def test_bootstrap_admin_is_super_admin(app_client: TestClient):
    user = connect(app_client, ADMIN_WALLET)["user"]
    assert user["role"] == "SUPER_ADMIN"
    assert user["status"] == "APPROVED"


def test_profile_update_and_resubmission(app_client: TestClient):
    member = wallet(71)
    headers = auth_headers(app_client, member)
    user_id = connect(app_client, member)["user"]["id"]

    empty = app_client.patch("/api/users/me", headers=headers, json={})
    assert empty.status_code == 400
    assert empty.json()["message"] == "Nothing to update"

    rejected = app_client.patch(
        f"/api/admin/users/{user_id}/status",
        headers=admin_headers(app_client),
        json={"status": "REJECTED"},
    )
    assert rejected.json()["data"]["status"] == "REJECTED"

    updated = app_client.patch(
        "/api/users/me",
        headers=headers,
        json={"name": "Asha", "college_email": "asha@campus.edu", "year": 3, "branch": "CSE"},
    )
    assert updated.status_code == 200, updated.text
    assert updated.json()["data"]["status"] == "PENDING"
    assert updated.json()["data"]["name"] == "Asha"

    admin_inbox = app_client.get("/api/notifications", headers=admin_headers(app_client)).json()["data"]
    assert "Registration Resubmitted" in [item["title"] for item in admin_inbox["notifications"]]


def test_balance_and_profile(app_client: TestClient):
    member = wallet(72)
    fund(app_client, member, 12)
    headers = auth_headers(app_client, member)

    balance = app_client.get(f"/api/users/{member}/balance", headers=headers).json()["data"]
    assert balance == {"balance": str(12 * 10**18), "formatted": "12", "symbol": "G-CORE"}

    bad = app_client.get("/api/users/0x1234/balance", headers=headers)
    assert bad.status_code == 400

    profile = app_client.get(f"/api/users/{member}", headers=headers).json()["data"]
    assert profile["user"]["wallet_address"] == member
    assert len(profile["transactions"]) == 1
    assert profile["activities"][0]["points"] == 12

    assert app_client.get(f"/api/users/{wallet(73)}", headers=headers).status_code == 404


def test_transactions_own_and_public(app_client: TestClient):
    member = wallet(74)
    fund(app_client, member, 8)
    fund(app_client, wallet(75), 9)

    own = app_client.get("/api/transactions", headers=auth_headers(app_client, member)).json()["data"]
    assert [item["amount"] for item in own["transactions"]] == [8]
    assert own["pagination"]["total"] == 1

    public = app_client.get("/api/transactions/public", params={"limit": 10}).json()["data"]
    assert {item["user"]["wallet_address"] for item in public["transactions"]} == {member, wallet(75)}


def test_reward_listing_filters(app_client: TestClient):
    create_reward(app_client, name="Sticker Pack", cost=5, category="merch")
    create_reward(app_client, name="Cafeteria Voucher", cost=20, category="food")
    create_reward(app_client, name="Old Mug", cost=10, category="merch", is_active=False)

    listing = app_client.get("/api/rewards").json()["data"]
    assert [item["name"] for item in listing["rewards"]] == ["Sticker Pack", "Cafeteria Voucher"]

    merch = app_client.get("/api/rewards", params={"category": "merch"}).json()["data"]
    assert [item["name"] for item in merch["rewards"]] == ["Sticker Pack"]

    search = app_client.get("/api/rewards", params={"search": "vouch"}).json()["data"]
    assert [item["name"] for item in search["rewards"]] == ["Cafeteria Voucher"]

    everything = app_client.get("/api/rewards", params={"include_inactive": "true"}).json()["data"]
    assert everything["pagination"]["total"] == 3


def test_reward_update_and_delete(app_client: TestClient):
    headers = admin_headers(app_client)
    unused = create_reward(app_client, name="Poster")
    patched = app_client.patch(f"/api/admin/rewards/{unused['id']}", headers=headers, json={"stock": 9})
    assert patched.json()["data"]["stock"] == 9

    deleted = app_client.delete(f"/api/admin/rewards/{unused['id']}", headers=headers).json()["data"]
    assert deleted == {"id": unused["id"], "deleted": True, "deactivated": False}
    assert app_client.get(f"/api/rewards/{unused['id']}").status_code == 404

    member = wallet(76)
    fund(app_client, member, 100)
    redeemed = create_reward(app_client, name="Tote Bag", cost=30)
    response = app_client.post(
        "/api/rewards/redeem",
        headers=auth_headers(app_client, member),
        json={"reward_id": redeemed["id"], "quantity": 1},
    )
    assert response.status_code == 200, response.text

    soft = app_client.delete(f"/api/admin/rewards/{redeemed['id']}", headers=headers).json()["data"]
    assert soft == {"id": redeemed["id"], "deleted": False, "deactivated": True}
    assert app_client.get(f"/api/rewards/{redeemed['id']}").json()["data"]["is_active"] is False


def test_notifications_read_flow(app_client: TestClient):
    member = wallet(77)
    headers = auth_headers(app_client, member)
    user_id = connect(app_client, member)["user"]["id"]
    _approve(app_client, user_id)

    inbox = app_client.get("/api/notifications", headers=headers).json()["data"]
    assert inbox["unread_count"] == 1
    notification = inbox["notifications"][0]
    assert notification["title"] == "Registration Approved"

    other = app_client.patch(f"/api/notifications/{notification['id']}/read", headers=admin_headers(app_client))
    assert other.status_code == 403

    assert app_client.patch(f"/api/notifications/{notification['id']}/read", headers=headers).status_code == 200
    assert app_client.get("/api/notifications", headers=headers).json()["data"]["unread_count"] == 0

    assert app_client.patch("/api/notifications/missing/read", headers=headers).status_code == 404
    assert app_client.post("/api/notifications/read-all", headers=headers).status_code == 200


def test_event_join_rules(app_client: TestClient):
    event = _create_event(app_client, total_slots=1)
    member = wallet(78)
    headers = auth_headers(app_client, member)

    pending = app_client.post(f"/api/events/{event['id']}/join", headers=headers)
    assert pending.status_code == 403

    _approve(app_client, connect(app_client, member)["user"]["id"])
    joined = app_client.post(f"/api/events/{event['id']}/join", headers=headers)
    assert joined.status_code == 200, joined.text
    assert joined.json()["data"]["participation"]["status"] == "PENDING"

    full = app_client.post(f"/api/events/{event['id']}/join", headers=admin_headers(app_client))
    assert full.status_code == 400
    assert full.json()["message"] == "Event is full"

    listing = app_client.get("/api/events", headers=headers).json()["data"]["events"]
    assert listing[0]["participant_count"] == 1
    assert listing[0]["user_status"] == "PENDING"

    assert app_client.post("/api/events/unknown/join", headers=headers).status_code == 404


def test_event_join_twice(app_client: TestClient):
    event = _create_event(app_client)
    headers = admin_headers(app_client)
    assert app_client.post(f"/api/events/{event['id']}/join", headers=headers).status_code == 200
    again = app_client.post(f"/api/events/{event['id']}/join", headers=headers)
    assert again.status_code == 400
    assert again.json()["message"] == "Already joined this event"


def test_event_reward_distribution(app_client: TestClient, gateway):
    event = _create_event(app_client, token_reward=15)
    attendee, absentee = wallet(80), wallet(81)
    attendee_id = connect(app_client, attendee)["user"]["id"]
    absentee_id = connect(app_client, absentee)["user"]["id"]
    _approve(app_client, attendee_id)
    assert app_client.post(f"/api/events/{event['id']}/join", headers=auth_headers(app_client, attendee)).status_code == 200

    headers = admin_headers(app_client)
    url = f"/api/admin/events/{event['id']}/distribute"
    first = app_client.post(url, headers=headers, json={"user_ids": [attendee_id, absentee_id]}).json()["data"]
    assert first["success_count"] == 1
    assert first["failure_count"] == 1
    assert first["results"][0]["amount"] == 15
    assert first["results"][0]["tx_hash"].startswith("0x")

    second = app_client.post(url, headers=headers, json={"user_ids": [attendee_id]}).json()["data"]
    assert second["skipped_count"] == 1
    assert len(gateway.minted) == 1

    participants = app_client.get(f"/api/admin/events/{event['id']}/participants", headers=headers).json()["data"]
    assert [item["status"] for item in participants["participations"]] == ["APPROVED"]
    assert gateway.get_balance(attendee).formatted == "15"


def test_event_reward_chain_failure_keeps_participation_pending(app_client: TestClient, gateway):
    event = _create_event(app_client, token_reward=5)
    attendee = wallet(82)
    attendee_id = connect(app_client, attendee)["user"]["id"]
    _approve(app_client, attendee_id)
    app_client.post(f"/api/events/{event['id']}/join", headers=auth_headers(app_client, attendee))

    gateway.failing.add(attendee)
    headers = admin_headers(app_client)
    url = f"/api/admin/events/{event['id']}/distribute"
    failed = app_client.post(url, headers=headers, json={"user_ids": [attendee_id]}).json()["data"]
    assert failed["failure_count"] == 1

    gateway.failing.clear()
    retried = app_client.post(url, headers=headers, json={"user_ids": [attendee_id]}).json()["data"]
    assert retried["success_count"] == 1


def test_unknown_route_uses_envelope(app_client: TestClient):
    response = app_client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"success": False, "data": None, "message": "Not Found"}


def test_last_event_slot_is_claimed_once_across_sessions(app_client: TestClient):
    event = _create_event(app_client, total_slots=2)
    user_ids = [connect(app_client, wallet(n))["user"]["id"] for n in (83, 84, 85)]
    factory = get_session_factory()

    with factory() as db:
        assert claim_event_slot(db, event["id"], user_ids[0]) is not None
        db.commit()

    with factory() as first, factory() as second:
        assert claim_event_slot(first, event["id"], user_ids[1]) is not None
        first.commit()
        assert claim_event_slot(second, event["id"], user_ids[2]) is None
        second.rollback()

    participants = app_client.get(
        f"/api/admin/events/{event['id']}/participants",
        headers=admin_headers(app_client),
    ).json()["data"]["participations"]
    assert sorted(item["user_id"] for item in participants) == sorted(user_ids[:2])


def test_unlimited_event_accepts_every_member(app_client: TestClient):
    event = _create_event(app_client, total_slots=0)
    user_ids = [connect(app_client, wallet(n))["user"]["id"] for n in (86, 87, 88)]
    with get_session_factory()() as db:
        for user_id in user_ids:
            assert claim_event_slot(db, event["id"], user_id) is not None
        db.commit()
