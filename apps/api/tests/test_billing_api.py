import pytest

from services.session_token import create_session_token


BILLING_USER_ID = "billing-user"
BILLING_AUTH_HEADER = {"Authorization": f"Bearer {create_session_token(BILLING_USER_ID)['token']}"}


@pytest.mark.asyncio
async def test_credits_summary_initializes_free_balance(api_client):
    response = await api_client.get("/billing/credits", headers=BILLING_AUTH_HEADER)
    assert response.status_code == 200
    payload = response.json()
    assert payload["balance"] == 5
    assert payload["plan"] == "free"
    assert payload["monthly_credits"] == 5
    assert len(payload["recent_transactions"]) == 1
    assert payload["recent_transactions"][0]["type"] == "bonus"


@pytest.mark.asyncio
async def test_credits_summary_requires_session_and_matching_user(api_client):
    missing = await api_client.get("/billing/credits")
    assert missing.status_code == 401

    bad_token = await api_client.get("/billing/credits", headers={"Authorization": "Bearer not-a-token"})
    assert bad_token.status_code == 401

    cross_user = await api_client.get("/billing/credits?user_id=someone-else", headers=BILLING_AUTH_HEADER)
    assert cross_user.status_code == 403


@pytest.mark.asyncio
async def test_plans_catalog_lists_tiers_and_packs(api_client):
    response = await api_client.get("/billing/plans")
    assert response.status_code == 200
    payload = response.json()
    assert [plan["key"] for plan in payload["plans"]] == ["free", "starter", "pro", "ultra"]
    assert {pack["price_id"]: pack["credits"] for pack in payload["credit_packs"]} == {
        "credits_40": 40,
        "credits_80": 80,
        "credits_200": 200,
        "credits_400": 400,
    }


@pytest.mark.asyncio
async def test_topup_credits_and_lists_history(api_client):
    response = await api_client.post(
        "/billing/topup",
        json={"credits": 40, "billing_reference": "manual-1"},
        headers=BILLING_AUTH_HEADER,
    )
    assert response.status_code == 200
    assert response.json() == {"ok": True, "credits_added": 40, "duplicate": False, "balance_after": 45}

    replay = await api_client.post(
        "/billing/topup",
        json={"credits": 40, "billing_reference": "manual-1"},
        headers=BILLING_AUTH_HEADER,
    )
    assert replay.status_code == 200
    assert replay.json()["duplicate"] is True
    assert replay.json()["balance_after"] == 45

    history = await api_client.get("/billing/transactions?limit=5", headers=BILLING_AUTH_HEADER)
    assert history.status_code == 200
    amounts = [entry["amount"] for entry in history.json()["transactions"]]
    assert amounts == [40, 5]


@pytest.mark.asyncio
async def test_topup_validates_amount_and_limit(api_client):
    response = await api_client.post("/billing/topup", json={"credits": 0}, headers=BILLING_AUTH_HEADER)
    assert response.status_code == 422

    history = await api_client.get("/billing/transactions?limit=51", headers=BILLING_AUTH_HEADER)
    assert history.status_code == 422


@pytest.mark.asyncio
async def test_topup_reference_is_scoped_to_each_user(api_client):
    other_header = {"Authorization": f"Bearer {create_session_token('other-billing-user')['token']}"}

    first = await api_client.post(
        "/billing/topup",
        json={"credits": 40, "billing_reference": "ref-1"},
        headers=BILLING_AUTH_HEADER,
    )
    second = await api_client.post(
        "/billing/topup",
        json={"credits": 40, "billing_reference": "ref-1"},
        headers=other_header,
    )

    assert first.json() == {"ok": True, "credits_added": 40, "duplicate": False, "balance_after": 45}
    assert second.json() == {"ok": True, "credits_added": 40, "duplicate": False, "balance_after": 45}
