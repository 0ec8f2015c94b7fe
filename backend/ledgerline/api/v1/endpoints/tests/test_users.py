"""API tests for the end-user endpoints.

Real billing services run against in-memory fakes; requests identify the
caller with ``X-User-Id``.
"""

import pytest

SIGNUP_CREDIT = 200_000_000


@pytest.fixture
def priced_model(fake_price_repo):
    return fake_price_repo.seed("gpt-x", 2000, provider="openai")


class TestIdentity:
    """Requests without a user identity."""

    @pytest.mark.asyncio
    async def test_missing_user_header_is_401(self, client):
        response = await client.get("/users/me/balance")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client, user_headers):
        response = await client.get(
            "/users/me/transactions", headers={**user_headers, "X-Request-ID": "req-123"}
        )

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "req-123"


class TestSignup:
    @pytest.mark.asyncio
    async def test_signup_grants_credit_once(self, client, user_headers):
        first = await client.post("/users/me/signup", json={}, headers=user_headers)
        second = await client.post("/users/me/signup", json={}, headers=user_headers)

        assert first.status_code == 200
        assert first.json()["initial_balance_micro"] == SIGNUP_CREDIT
        assert first.json()["replayed"] is False
        assert second.json()["replayed"] is True
        assert second.json()["user_id"] == first.json()["user_id"]

    @pytest.mark.asyncio
    async def test_balance_after_signup(self, client, user_headers):
        await client.post("/users/me/signup", json={"email": "a@example.com"}, headers=user_headers)

        response = await client.get("/users/me/balance", headers=user_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["balance_micro"] == SIGNUP_CREDIT
        assert body["balance_cents"] == 200
        assert body["version"] == 1
        assert body["received_signup_credit"] is True

    @pytest.mark.asyncio
    async def test_balance_of_unknown_user_is_404(self, client, user_headers):
        response = await client.get("/users/me/balance", headers=user_headers)

        assert response.status_code == 404


class TestUsageCharge:
    @pytest.mark.asyncio
    async def test_end_to_end_charge(self, client, user_headers, admin_headers, priced_model):
        await client.post("/users/me/signup", json={}, headers=user_headers)
        topup = await client.post(
            "/admin/topups",
            json={
                "external_user_id": user_headers["X-User-Id"],
                "amount_cents": 2500,
                "payment_reference": "wire-1",
            },
            headers=admin_headers,
        )
        assert topup.json()["new_balance_micro"] == 3_200_000_000

        response = await client.post(
            "/users/me/usage",
            json={"model_id": "gpt-x", "input_tokens": 10_000, "output_tokens": 0},
            headers=user_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["charged"] is True
        assert body["provider_cost_micro"] == 20_000_000
        assert body["fee_micro"] == 2_800_000
        assert body["total_micro"] == 22_800_000
        assert body["balance_micro"] == 3_177_200_000

        transactions = await client.get("/users/me/transactions", headers=user_headers)
        assert [t["type"] for t in transactions.json()] == [
            "model_charge",
            "bonus",
            "topup",
            "signup_credit",
        ]

    @pytest.mark.asyncio
    async def test_unaffordable_call_is_not_an_error(
        self, client, user_headers, fake_user_repo, priced_model
    ):
        fake_user_repo.seed(user_headers["X-User-Id"])

        response = await client.post(
            "/users/me/usage",
            json={"model_id": "gpt-x", "input_tokens": 1, "output_tokens": 1},
            headers=user_headers,
        )

        assert response.status_code == 200
        assert response.json()["charged"] is False

        usage = await client.get("/users/me/usage", headers=user_headers)
        assert [u["status"] for u in usage.json()] == ["failed"]

    @pytest.mark.asyncio
    async def test_unpriced_model_is_404(self, client, user_headers):
        await client.post("/users/me/signup", json={}, headers=user_headers)

        response = await client.post(
            "/users/me/usage",
            json={"model_id": "nope", "input_tokens": 1, "output_tokens": 1},
            headers=user_headers,
        )

        assert response.status_code == 404
        assert "nope" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_negative_tokens_are_422(self, client, user_headers, priced_model):
        await client.post("/users/me/signup", json={}, headers=user_headers)

        response = await client.post(
            "/users/me/usage",
            json={"model_id": "gpt-x", "input_tokens": -1, "output_tokens": 1},
            headers=user_headers,
        )

        assert response.status_code == 422
        assert response.json()["field"] == "input_tokens"

    @pytest.mark.asyncio
    async def test_lost_races_are_409(self, client, user_headers, fake_balance_repo, priced_model):
        await client.post("/users/me/signup", json={}, headers=user_headers)
        fake_balance_repo.fail_next_cas = 100

        response = await client.post(
            "/users/me/usage",
            json={"model_id": "gpt-x", "input_tokens": 1, "output_tokens": 1},
            headers=user_headers,
        )

        assert response.status_code == 409
        assert response.headers["Retry-After"] == "1"

    @pytest.mark.asyncio
    async def test_idempotent_retry(self, client, user_headers, priced_model):
        await client.post("/users/me/signup", json={}, headers=user_headers)
        body = {"model_id": "gpt-x", "input_tokens": 10, "output_tokens": 5, "idempotency_key": "x"}

        first = await client.post("/users/me/usage", json=body, headers=user_headers)
        second = await client.post("/users/me/usage", json=body, headers=user_headers)

        assert second.json()["replayed"] is True
        assert second.json()["usage_log_id"] == first.json()["usage_log_id"]
        assert second.json()["balance_micro"] == first.json()["balance_micro"]


class TestCheckBalance:
    @pytest.mark.asyncio
    async def test_estimate(self, client, user_headers, priced_model):
        await client.post("/users/me/signup", json={}, headers=user_headers)

        response = await client.get(
            "/users/me/check-balance",
            params={
                "model_id": "gpt-x",
                "estimated_input_tokens": 1000,
                "estimated_output_tokens": 0,
            },
            headers=user_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "has_sufficient_balance": True,
            "estimated_cost_micro": 2_280_000,
            "current_balance_micro": SIGNUP_CREDIT,
        }

    @pytest.mark.asyncio
    async def test_balance_check_for_unpriced_model_is_404(self, client, user_headers):
        await client.post("/users/me/signup", json={}, headers=user_headers)

        response = await client.get(
            "/users/me/check-balance", params={"model_id": "never-priced"}, headers=user_headers
        )

        assert response.status_code == 404
