# ==============================================================================
# ACCOUNT ENDPOINT TESTS
# ==============================================================================
# Account creation, wallet balance and reconciliation routes
# ==============================================================================

from decimal import Decimal

import pytest
from httpx import AsyncClient

from walletwise.core.security import verify_access_token
from walletwise.database.unit_of_work import UnitOfWork


class TestAccounts:

    @pytest.mark.asyncio
    async def test_open_account(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/accounts",
            json={"email": "asha@example.com", "fullName": "  Asha Rao  "},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["tokenType"] == "bearer"
        assert data["account"]["walletBalance"] == 0.0
        assert data["account"]["fullName"] == "Asha Rao"
        assert verify_access_token(data["accessToken"])["sub"] == data["account"]["id"]

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, client: AsyncClient):
        body = {"email": "dup@example.com"}

        assert (await client.post("/api/v1/accounts", json=body)).status_code == 201
        response = await client.post("/api/v1/accounts", json=body)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_EXISTS"

    @pytest.mark.asyncio
    async def test_invalid_email_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/accounts", json={"email": "not-an-email"})

        assert response.status_code == 400
        assert "email" in response.json()["error"]["details"]["validation_errors"]

    @pytest.mark.asyncio
    async def test_me_and_wallet(self, auth_client):
        client, user_id = auth_client

        me = await client.get("/api/v1/accounts/me")
        wallet = await client.get("/api/v1/accounts/me/wallet")

        assert me.json()["data"]["id"] == user_id
        assert wallet.json()["data"] == {"userId": user_id, "walletBalance": 0.0}

    @pytest.mark.asyncio
    async def test_token_for_unknown_account(self, client: AsyncClient):
        from walletwise.core.security import create_access_token

        client.headers["Authorization"] = (
            f"Bearer {create_access_token('00000000-0000-4000-8000-000000000000')}"
        )
        response = await client.get("/api/v1/accounts/me/wallet")
        del client.headers["Authorization"]

        assert response.status_code == 404


class TestReconciliation:

    @pytest.mark.asyncio
    async def test_reconcile_consistent_wallet(self, auth_client, income_data, expense_data):
        client, _ = auth_client
        await client.post("/api/v1/transactions", json=income_data)
        await client.post("/api/v1/transactions", json=expense_data)

        response = await client.post("/api/v1/accounts/me/wallet/reconcile")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["previousBalance"] == 700.0
        assert data["walletBalance"] == 700.0
        assert data["difference"] == 0.0

    @pytest.mark.asyncio
    async def test_reconcile_repairs_drift(self, auth_client, adapter, income_data):
        client, user_id = auth_client
        await client.post("/api/v1/transactions", json=income_data)

        async with UnitOfWork(adapter, user_id=user_id) as uow:
            await uow.wallets.set_balance(user_id, Decimal("12.34"))

        response = await client.post("/api/v1/accounts/me/wallet/reconcile")

        data = response.json()["data"]
        assert data["previousBalance"] == 12.34
        assert data["walletBalance"] == 1000.0
        assert data["difference"] == 987.66
