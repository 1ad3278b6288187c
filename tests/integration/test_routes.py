from decimal import Decimal

import pytest


def _deposit_body(user, amount="150", plan="silver"):
    return {
        "amount": amount,
        "type": "deposit",
        "plan": plan,
        "wallet_address": user.trust_wallet_address,
        "transaction_image": "https://img.example.com/proof.png",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"

    ready = await client.get("/ready")
    assert ready.json() == {"status": "ready", "db_connected": True}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_plans_are_public_but_updates_need_admin(client, seeded_plans, admin_headers):
    resp = await client.get("/api/v1/plans")
    assert resp.status_code == 200
    assert [p["name"] for p in resp.json()] == ["silver", "gold", "platinum"]

    denied = await client.put("/api/v1/plans/gold", json={"max_return_rate": "12"})
    assert denied.status_code == 403
    assert denied.json()["code"] == "forbidden"

    wrong = await client.put(
        "/api/v1/plans/gold", json={"max_return_rate": "12"}, headers={"X-Admin-Token": "nope"}
    )
    assert wrong.status_code == 403

    ok = await client.put("/api/v1/plans/gold", json={"max_return_rate": "12"}, headers=admin_headers)
    assert ok.status_code == 200
    assert Decimal(ok.json()["max_return_rate"]) == Decimal("12")

    missing = await client.get("/api/v1/plans/diamond")
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submit_and_decide_over_http(client, seeded_plans, make_user, admin_headers):
    user = await make_user()
    user_headers = {"X-User-Id": user.id}

    created = await client.post("/api/v1/transactions", json=_deposit_body(user), headers=user_headers)
    assert created.status_code == 201
    request_id = created.json()["id"]
    assert created.json()["status"] == "pending"

    decided = await client.put(
        f"/api/v1/transactions/{request_id}/decision",
        json={"decision": "approve"},
        headers=admin_headers,
    )
    assert decided.status_code == 200
    assert decided.json()["status"] == "approved"

    again = await client.put(
        f"/api/v1/transactions/{request_id}/decision",
        json={"decision": "reject", "rejection_reason": "late"},
        headers=admin_headers,
    )
    assert again.status_code == 409
    assert again.json()["code"] == "already_decided"

    portfolio = await client.get("/api/v1/portfolio/me", headers=user_headers)
    assert portfolio.status_code == 200
    body = portfolio.json()
    assert Decimal(body["total_invested"]) == Decimal("150")
    silver = next(p for p in body["plans"] if p["name"] == "silver")
    assert Decimal(silver["current_value"]) == Decimal("150")
    assert len(silver["price_history"]) == 1
    assert set(silver["return_rate"]) == {"min", "max"}

    history = await client.get("/api/v1/history/me", headers=user_headers)
    assert history.json()["items"][0]["status"] == "approved"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submit_validation_errors(client, seeded_plans, make_user):
    user = await make_user()
    headers = {"X-User-Id": user.id}

    extra = dict(_deposit_body(user), status="approved")
    resp = await client.post("/api/v1/transactions", json=extra, headers=headers)
    assert resp.status_code == 422

    negative = dict(_deposit_body(user), amount="-5")
    resp = await client.post("/api/v1/transactions", json=negative, headers=headers)
    assert resp.status_code == 422

    no_image = dict(_deposit_body(user), transaction_image=None)
    resp = await client.post("/api/v1/transactions", json=no_image, headers=headers)
    assert resp.status_code == 422
    assert resp.json()["code"] == "validation_error"

    anonymous = await client.post("/api/v1/transactions", json=_deposit_body(user))
    assert anonymous.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_reject_requires_reason_over_http(client, seeded_plans, make_user, submit_and_decide, admin_headers):
    user = await make_user()
    pending = await submit_and_decide(user, "100", decision=None)

    resp = await client.put(
        f"/api/v1/transactions/{pending.id}/decision",
        json={"decision": "reject"},
        headers=admin_headers,
    )
    assert resp.status_code == 422

    unknown = await client.put(
        "/api/v1/transactions/does-not-exist/decision",
        json={"decision": "approve"},
        headers=admin_headers,
    )
    assert unknown.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_list_is_paginated(client, seeded_plans, make_user, submit_and_decide, admin_headers):
    user = await make_user()
    for amount in ("60", "70", "80"):
        await submit_and_decide(user, amount, decision=None)

    resp = await client.get("/api/v1/transactions", params={"page": 1, "limit": 2}, headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["items"]) == 2
    assert body["pagination"] == {
        "page": 1,
        "limit": 2,
        "total": 3,
        "total_pages": 2,
        "has_next": True,
        "has_prev": False,
    }

    too_big = await client.get("/api/v1/transactions", params={"limit": 500}, headers=admin_headers)
    assert too_big.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_return_rate_and_accrual_routes(client, seeded_plans, make_user, submit_and_decide, admin_headers):
    user = await make_user()
    await submit_and_decide(user, "1000", plan="platinum")

    resp = await client.put(
        f"/api/v1/portfolio/{user.id}/plans/platinum/return-rate",
        json={"annual_rate": "3.65"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    platinum = next(p for p in resp.json()["plans"] if p["name"] == "platinum")
    assert Decimal(platinum["admin_return_rate"]) == Decimal("3.65")

    run = await client.post("/api/v1/portfolio/accrual/run", headers=admin_headers)
    assert run.status_code == 200
    assert run.json() == {"scanned": 1, "updated": 1, "failed": 0}

    portfolio = await client.get(f"/api/v1/portfolio/{user.id}", headers=admin_headers)
    assert Decimal(portfolio.json()["current_value"]) == Decimal("1000.1")

    missing = await client.get("/api/v1/portfolio/me", headers={"X-User-Id": "nobody"})
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_referral_flow_over_http(client, seeded_plans, make_user, submit_and_decide, admin_headers):
    referrer = await make_user(name="Kim", wallet="TWalletKim")
    referred = await make_user(name="Lee", wallet="TWalletLee")

    created = await client.post(
        "/api/v1/referrals",
        json={"referrer_id": referrer.id, "referred_id": referred.id},
        headers=admin_headers,
    )
    assert created.status_code == 201

    deposit = await submit_and_decide(referred, "300", plan="gold")
    reward = await client.post(
        "/api/v1/referrals/rewards",
        json={"referred_id": referred.id, "transaction_request_id": deposit.id, "reward_amount": "15"},
        headers=admin_headers,
    )
    assert reward.status_code == 201

    decided = await client.put(
        f"/api/v1/referrals/rewards/{reward.json()['id']}/decision",
        json={"decision": "approve", "percentage": "5"},
        headers=admin_headers,
    )
    assert decided.status_code == 200
    assert decided.json()["approved_by"] == "ops-admin"

    portfolio = await client.get("/api/v1/portfolio/me", headers={"X-User-Id": referrer.id})
    assert Decimal(portfolio.json()["referral_rewards"]) == Decimal("15")
    assert Decimal(portfolio.json()["current_value"]) == Decimal("15")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_notifications_inbox(client, seeded_plans, make_user, submit_and_decide, admin_headers):
    user = await make_user()
    await submit_and_decide(user, "100")
    headers = {"X-User-Id": user.id}

    inbox = await client.get("/api/v1/notifications/me", headers=headers)
    assert inbox.status_code == 200
    items = inbox.json()["items"]
    assert items and "approved" in items[0]["message"]

    marked = await client.put(f"/api/v1/notifications/me/{items[0]['id']}/read", headers=headers)
    assert marked.status_code == 200

    unread = await client.get("/api/v1/notifications/me", params={"unread_only": True}, headers=headers)
    assert unread.json()["pagination"]["total"] == 0

    admin_inbox = await client.get("/api/v1/notifications/admin", headers=admin_headers)
    assert admin_inbox.json()["pagination"]["total"] >= 1
