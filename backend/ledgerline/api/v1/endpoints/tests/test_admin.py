"""API tests for the operator endpoints."""

from uuid import uuid4

import pytest

from ledgerline.core.shared_models import TransactionType


class TestAdminAuth:
    """Every admin route requires the shared key."""

    @pytest.mark.asyncio
    async def test_missing_key_is_403(self, client):
        response = await client.get("/admin/low-balances")

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_wrong_key_is_403(self, client):
        response = await client.get("/admin/low-balances", headers={"X-Admin-Key": "guess"})

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_user_header_is_not_enough(self, client, user_headers):
        response = await client.post("/admin/idempotency/purge", headers=user_headers)

        assert response.status_code == 403


class TestPrices:
    @pytest.mark.asyncio
    async def test_set_and_read_back(self, client, admin_headers, fake_price_repo):
        response = await client.post(
            "/admin/prices",
            json={"model_id": "gpt-x", "price_micro_per_token": 2000, "reason": "launch"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        [row] = fake_price_repo.rows_for("gpt-x")
        assert str(row.id) == response.json()["price_id"]
        assert row.admin_id == "ops@example.com"

        history = await client.get("/admin/prices/gpt-x", headers=admin_headers)
        assert history.json()[0]["price_micro_cents_per_input_token"] == 2000

    @pytest.mark.asyncio
    async def test_split_prices(self, client, admin_headers, fake_price_repo):
        response = await client.post(
            "/admin/prices",
            json={"model_id": "gpt-x", "input_price_micro": 1000, "output_price_micro": 3000},
            headers=admin_headers,
        )

        assert response.status_code == 200
        [row] = fake_price_repo.rows_for("gpt-x")
        assert row.price_micro_cents_per_output_token == 3000

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"model_id": "gpt-x"},
            {"model_id": "gpt-x", "input_price_micro": 1},
            {
                "model_id": "gpt-x",
                "price_micro_per_token": 1,
                "input_price_micro": 1,
                "output_price_micro": 1,
            },
        ],
    )
    async def test_price_shape_is_validated(self, client, admin_headers, body):
        response = await client.post("/admin/prices", json=body, headers=admin_headers)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_negative_price_names_field(self, client, admin_headers):
        response = await client.post(
            "/admin/prices",
            json={"model_id": "gpt-x", "price_micro_per_token": -5},
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert response.json()["field"] == "input_price_micro"


class TestBalances:
    @pytest.mark.asyncio
    async def test_manual_topup_with_bonus(self, client, admin_headers):
        response = await client.post(
            "/admin/topups",
            json={
                "external_user_id": "auth0|bob",
                "amount_cents": 2000,
                "payment_reference": "wire-9",
                "idempotency_key": "wire-9",
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["bonus_micro"] == 400_000_000
        assert response.json()["new_balance_micro"] == 2_400_000_000

    @pytest.mark.asyncio
    async def test_adjustment_and_lookup(self, client, admin_headers, fake_user_repo):
        user = fake_user_repo.seed("auth0|bob")

        response = await client.post(
            "/admin/adjustments",
            json={"user_id": str(user.id), "amount_micro": 5_000, "reason": "goodwill"},
            headers=admin_headers,
        )
        assert response.status_code == 200

        balance = await client.get(f"/admin/users/{user.id}/balance", headers=admin_headers)
        assert balance.json()["balance_micro"] == 5_000

    @pytest.mark.asyncio
    async def test_overdrawing_adjustment_is_400(self, client, admin_headers, fake_user_repo):
        user = fake_user_repo.seed("auth0|bob")

        response = await client.post(
            "/admin/adjustments",
            json={"user_id": str(user.id), "amount_micro": -1, "reason": "clawback"},
            headers=admin_headers,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_user_balance_is_404(self, client, admin_headers):
        response = await client.get(f"/admin/users/{uuid4()}/balance", headers=admin_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_low_balances(self, client, admin_headers, fake_reconciliation_repo):
        from ledgerline.models import BillingUser

        user = BillingUser(id=uuid4(), external_id="auth0|poor", email="p@example.com")
        fake_reconciliation_repo.low_balances = [(user, 10, None)]

        response = await client.get(
            "/admin/low-balances", params={"threshold_cents": 1}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()[0]["external_id"] == "auth0|poor"


class TestReporting:
    @pytest.mark.asyncio
    async def test_analytics(self, client, admin_headers, fake_reconciliation_repo):
        fake_reconciliation_repo.add_transaction(TransactionType.FEE_REVENUE, 280)

        response = await client.get(
            "/admin/analytics",
            params={"start_date": "2000-01-01T00:00:00", "end_date": "2100-01-01T00:00:00"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["total_fees_micro"] == 280

    @pytest.mark.asyncio
    async def test_inverted_window_is_422(self, client, admin_headers):
        response = await client.get(
            "/admin/analytics",
            params={"start_date": "2026-02-01T00:00:00", "end_date": "2026-01-01T00:00:00"},
            headers=admin_headers,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invoice_then_reconcile(self, client, admin_headers, fake_reconciliation_repo):
        recorded = await client.post(
            "/admin/invoices",
            json={
                "provider": "openai",
                "invoice_date": "2026-03-15T00:00:00",
                "amount_cents": 50,
                "metadata": {"number": "INV-1"},
            },
            headers=admin_headers,
        )
        assert recorded.status_code == 200

        window = {"start_date": "2026-03-01T00:00:00", "end_date": "2026-03-31T00:00:00"}
        report = await client.get("/admin/reconciliation", params=window, headers=admin_headers)
        assert report.json()["invoiced_cents"] == 50
        assert report.json()["reconciled"] is True

        marked = await client.post("/admin/invoices/reconcile", json=window, headers=admin_headers)
        assert marked.json() == {"marked": 1}
        assert fake_reconciliation_repo.invoices[0].reconciled


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_purge(self, client, admin_headers, fake_idempotency_repo):
        from datetime import datetime

        fake_idempotency_repo.seed("old", "topup", "r", created_at=datetime(2000, 1, 1))

        response = await client.post("/admin/idempotency/purge", headers=admin_headers)

        assert response.json() == {"deleted": 1}
