"""HTTP surface: routing, auth, alias handling and error mapping."""

import httpx
import pytest

from app.core.events import get_publisher
from app.core.security import create_access_token
from app.db.session import get_db
from app.main import app


@pytest.fixture
async def client(db, publisher):
    async def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_publisher] = lambda: publisher

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


def auth(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


async def test_requires_token(client, group):
    res = await client.get(f"/api/v1/settle/{group.id}/balances")

    assert res.status_code == 401


async def test_full_settle_up_flow(client, group, users, publisher):
    alice, bob = users["alice"], users["bob"]

    res = await client.post(
        f"/api/v1/expenses/{group.id}",
        json={
            "amount": 100,
            "description": "Dinner",
            "splitType": "exact",
            "splits": [
                {"userId": alice.id, "shareAmount": 50},
                {"user_id": bob.id, "share_amount": 50},
            ],
        },
        headers=auth(alice),
    )
    assert res.status_code == 201, res.text

    res = await client.get(f"/api/v1/settle/{group.id}/settlements", headers=auth(bob))
    assert res.status_code == 200
    assert res.json() == [{
        "from_user_id": bob.id,
        "from_username": "bob",
        "to_user_id": alice.id,
        "to_username": "alice",
        "amount": "50.00",
    }]

    res = await client.post(
        f"/api/v1/settle/{group.id}/record",
        json={"toUserId": alice.id, "amount": 50, "message": "cash"},
        headers=auth(bob),
    )
    assert res.status_code == 201, res.text
    settlement_id = res.json()["id"]
    assert res.json()["status"] == "pending"

    res = await client.post(f"/api/v1/settle/{settlement_id}/accept", headers=auth(alice))
    assert res.status_code == 200
    assert res.json()["status"] == "accepted"

    res = await client.post(f"/api/v1/settle/{settlement_id}/accept", headers=auth(alice))
    assert res.status_code == 400
    assert res.json()["detail"] == "Settlement is already accepted"

    res = await client.get(f"/api/v1/settle/{group.id}/balances", headers=auth(alice))
    rows = {r["user_id"]: r for r in res.json()}
    assert rows[alice.id]["is_settled"] is True
    assert rows[bob.id]["is_settled"] is True

    assert publisher.types_for(alice.id) == ["settlement_requested"]
    assert publisher.types_for(bob.id) == ["settlement_accepted"]


async def test_error_mapping(client, group, users):
    alice, bob, dave = users["alice"], users["bob"], users["dave"]

    res = await client.post(
        f"/api/v1/settle/{group.id}/record",
        json={"to_user_id": alice.id, "amount": 0},
        headers=auth(bob),
    )
    assert res.status_code == 422

    res = await client.get(f"/api/v1/settle/{group.id}/history", headers=auth(dave))
    assert res.status_code == 403

    res = await client.get("/api/v1/settle/9999/balances", headers=auth(alice))
    assert res.status_code == 404

    res = await client.post("/api/v1/settle/9999/accept", headers=auth(alice))
    assert res.status_code == 404


async def test_reject_and_resend(client, group, users):
    alice, bob = users["alice"], users["bob"]

    res = await client.post(
        f"/api/v1/settle/{group.id}/record",
        json={"to_user_id": alice.id, "amount": "12.5"},
        headers=auth(bob),
    )
    settlement_id = res.json()["id"]

    res = await client.post(
        f"/api/v1/settle/{settlement_id}/reject",
        json={"reason": "wrong amount"},
        headers=auth(alice),
    )
    assert res.json()["rejected_reason"] == "wrong amount"

    res = await client.post(
        f"/api/v1/settle/{settlement_id}/resend",
        json={"amount": 15},
        headers=auth(bob),
    )
    assert res.status_code == 201
    assert res.json()["resent_from_id"] == settlement_id
    assert res.json()["amount"] == "15.00"

    res = await client.get("/api/v1/settle/pending", headers=auth(alice))
    assert [p["id"] for p in res.json()] == [settlement_id + 1]

    res = await client.get(f"/api/v1/settle/{group.id}/history?status=rejected", headers=auth(bob))
    assert [h["id"] for h in res.json()] == [settlement_id]


async def test_global_routes_and_mode(client, group, users):
    alice, dave = users["alice"], users["dave"]

    res = await client.put(
        "/api/v1/users/me/global-settlement-mode",
        json={"mode": "auto_adjust"},
        headers=auth(alice),
    )
    assert res.json()["settlement_mode"] == "auto_adjust"

    res = await client.post(
        "/api/v1/settle/global/record",
        json={"to_user_id": dave.id, "amount": 20},
        headers=auth(alice),
    )
    assert res.status_code == 201
    gs_id = res.json()["id"]

    res = await client.post(f"/api/v1/settle/global/{gs_id}/accept", headers=auth(dave))
    assert res.json()["status"] == "accepted"

    res = await client.get(f"/api/v1/settle/{group.id}/balances", headers=auth(alice))
    row = next(r for r in res.json() if r["user_id"] == alice.id)
    assert row["original_net"] == "0.00"
    assert row["global_adjustment"] == "-20.00"
    assert row["owes"] is True

    res = await client.get("/api/v1/settle/global/history", headers=auth(dave))
    assert [h["id"] for h in res.json()] == [gs_id]

    res = await client.get("/api/v1/settle/global/balances", headers=auth(dave))
    assert res.status_code == 200
    assert res.json() == [{
        "user_id": alice.id,
        "username": "alice",
        "group_balance": "0.00",
        "global_adjustment": "-20.00",
        "net": "-20.00",
        "is_owed": False,
        "owes": True,
        "is_settled": False,
    }]

    res = await client.get("/api/v1/settle/global/settlements", headers=auth(dave))
    assert res.json() == [{
        "from_user_id": dave.id,
        "from_username": "dave",
        "to_user_id": alice.id,
        "to_username": "alice",
        "amount": "20.00",
    }]


async def test_group_membership_routes(client, users):
    alice, bob = users["alice"], users["bob"]

    res = await client.post("/api/v1/groups/", json={"name": "Flat"}, headers=auth(alice))
    assert res.status_code == 201
    group_id = res.json()["id"]

    res = await client.post(f"/api/v1/groups/{group_id}/members", json={"userId": bob.id}, headers=auth(alice))
    assert res.status_code == 201
    assert res.json() == {"user_id": bob.id, "group_id": group_id, "is_admin": False}

    res = await client.post(f"/api/v1/groups/{group_id}/members", json={"user_id": alice.id}, headers=auth(bob))
    assert res.status_code == 403

    res = await client.get("/api/v1/groups/my-groups", headers=auth(bob))
    assert [g["id"] for g in res.json()] == [group_id]

    res = await client.post(f"/api/v1/groups/{group_id}/leave", headers=auth(bob))
    assert res.json() == {"status": "left"}


async def test_system_routes(client, group, users):
    res = await client.get("/api/v1/system/health")
    assert res.json() == {"status": "ok"}

    res = await client.get("/api/v1/system/health/db")
    assert res.json()["db"] is True

    await client.post(
        f"/api/v1/settle/{group.id}/record",
        json={"toUserId": users["alice"].id, "amount": 5},
        headers=auth(users["bob"]),
    )
    res = await client.get("/api/v1/system/metrics")
    body = res.json()
    assert body["users"] == 4
    assert body["groups"] == 1
    assert body["pending_settlements"] == 1
    assert body["pending_global_settlements"] == 0
