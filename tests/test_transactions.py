# ==============================================================================
# TRANSACTION ENDPOINT TESTS
# ==============================================================================
# Tests for the ledger routes over HTTP
# ==============================================================================

from datetime import timedelta

import pytest
from httpx import AsyncClient

from walletwise.utils.helpers import utc_now


async def wallet_balance(client: AsyncClient) -> float:
    response = await client.get("/api/v1/accounts/me/wallet")
    assert response.status_code == 200
    return response.json()["data"]["walletBalance"]


class TestTransactions:
    """Tests for transaction CRUD endpoints."""

    @pytest.mark.asyncio
    async def test_create_transaction(self, auth_client, income_data: dict):
        client, user_id = auth_client

        response = await client.post("/api/v1/transactions", json=income_data)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        entry = data["data"]
        assert entry["type"] == "income"
        assert entry["amount"] == 1000.0
        assert entry["category"] == "salary"
        assert entry["paymentMethod"] == "cash"
        assert entry["mood"] == "neutral"
        assert entry["isRecurring"] is False
        assert entry["recurringInterval"] is None
        assert entry["userId"] == user_id
        assert await wallet_balance(client) == 1000.0

    @pytest.mark.asyncio
    async def test_create_transaction_unauthenticated(self, client: AsyncClient, income_data: dict):
        response = await client.post("/api/v1/transactions", json=income_data)

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"

    @pytest.mark.asyncio
    async def test_garbage_token_rejected(self, client: AsyncClient, income_data: dict):
        client.headers["Authorization"] = "Bearer not-a-jwt"
        response = await client.post("/api/v1/transactions", json=income_data)
        del client.headers["Authorization"]

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_validation_lists_every_field(self, auth_client):
        client, _ = auth_client

        response = await client.post(
            "/api/v1/transactions",
            json={"type": "gift", "amount": 0, "category": "", "paymentMethod": "cheque"},
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        fields = error["details"]["validation_errors"]
        assert {"type", "amount", "category", "paymentMethod"} <= set(fields)
        assert fields["amount"] == "Amount must be greater than zero"

    @pytest.mark.asyncio
    async def test_operator_payload_rejected(self, auth_client):
        client, _ = auth_client

        response = await client.post(
            "/api/v1/transactions",
            json={"type": "income", "amount": {"$gt": 0}, "category": "salary"},
        )

        assert response.status_code == 400
        assert await wallet_balance(client) == 0.0

    @pytest.mark.asyncio
    async def test_body_cannot_set_owner(self, auth_client, income_data: dict):
        client, user_id = auth_client

        response = await client.post(
            "/api/v1/transactions",
            json={**income_data, "userId": "someone-else", "id": "chosen-id"},
        )

        assert response.status_code == 201
        entry = response.json()["data"]
        assert entry["userId"] == user_id
        assert entry["id"] != "chosen-id"

    @pytest.mark.asyncio
    async def test_idempotency_key_replay(self, auth_client, expense_data: dict):
        client, _ = auth_client
        headers = {"Idempotency-Key": "checkout-42"}

        first = await client.post("/api/v1/transactions", json=expense_data, headers=headers)
        second = await client.post("/api/v1/transactions", json=expense_data, headers=headers)

        assert first.status_code == 201
        assert second.status_code == 201
        assert first.json()["data"]["id"] == second.json()["data"]["id"]
        assert await wallet_balance(client) == -300.0

    @pytest.mark.asyncio
    async def test_get_update_delete(self, auth_client, income_data: dict):
        client, _ = auth_client
        created = (await client.post("/api/v1/transactions", json=income_data)).json()["data"]
        url = f"/api/v1/transactions/{created['id']}"

        fetched = await client.get(url)
        assert fetched.status_code == 200
        assert fetched.json()["data"]["id"] == created["id"]

        updated = await client.put(url, json={"amount": 1250, "description": "Raise"})
        assert updated.status_code == 200
        assert updated.json()["data"]["amount"] == 1250.0
        assert updated.json()["data"]["description"] == "Raise"
        assert await wallet_balance(client) == 1250.0

        deleted = await client.delete(url)
        assert deleted.status_code == 200
        assert deleted.json()["data"]["amount"] == 1250.0
        assert await wallet_balance(client) == 0.0

        assert (await client.get(url)).status_code == 404
        assert (await client.delete(url)).status_code == 404

    @pytest.mark.asyncio
    async def test_update_rejects_null_required_field(self, auth_client, expense_data: dict):
        client, _ = auth_client
        created = (await client.post("/api/v1/transactions", json=expense_data)).json()["data"]

        response = await client.put(
            f"/api/v1/transactions/{created['id']}",
            json={"type": None},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_malformed_id(self, auth_client):
        client, _ = auth_client

        response = await client.get("/api/v1/transactions/12345")

        assert response.status_code == 400
        assert response.json()["error"]["details"]["validation_errors"]["id"] == (
            "Invalid transaction ID format"
        )

    @pytest.mark.asyncio
    async def test_other_users_transaction_not_found(self, client: AsyncClient, income_data: dict):
        from walletwise.core.security import create_access_token

        owner = (await client.post("/api/v1/accounts", json={})).json()["data"]
        stranger = (await client.post("/api/v1/accounts", json={})).json()["data"]

        client.headers["Authorization"] = f"Bearer {owner['accessToken']}"
        created = (await client.post("/api/v1/transactions", json=income_data)).json()["data"]

        client.headers["Authorization"] = f"Bearer {create_access_token(stranger['account']['id'])}"
        response = await client.delete(f"/api/v1/transactions/{created['id']}")
        del client.headers["Authorization"]

        assert response.status_code == 404


class TestListing:

    @pytest.mark.asyncio
    async def test_list_transactions(self, auth_client, income_data: dict, expense_data: dict):
        client, _ = auth_client
        await client.post("/api/v1/transactions", json=income_data)
        await client.post("/api/v1/transactions", json=expense_data)

        response = await client.get("/api/v1/transactions")

        assert response.status_code == 200
        page = response.json()["data"]
        assert page["total"] == 2
        assert page["page"] == 1
        assert page["pages"] == 1
        assert page["limit"] == 10
        item = page["items"][0]
        assert set(item) >= {
            "id", "type", "amount", "category", "description", "date",
            "paymentMethod", "mood", "isRecurring", "recurringInterval", "nextExecutionDate",
        }

    @pytest.mark.asyncio
    async def test_list_filters(self, auth_client, income_data: dict, expense_data: dict):
        client, _ = auth_client
        await client.post("/api/v1/transactions", json={**income_data, "date": "2024-01-15T09:00:00Z"})
        await client.post("/api/v1/transactions", json={**expense_data, "date": "2024-02-15T09:00:00Z"})

        by_type = await client.get("/api/v1/transactions", params={"type": "expense"})
        assert by_type.json()["data"]["total"] == 1

        by_range = await client.get(
            "/api/v1/transactions",
            params={"startDate": "2024-01-01", "endDate": "2024-01-31"},
        )
        assert [item["type"] for item in by_range.json()["data"]["items"]] == ["income"]

        by_search = await client.get("/api/v1/transactions", params={"search": "GROCER"})
        assert by_search.json()["data"]["total"] == 1

        sorted_low = await client.get("/api/v1/transactions", params={"sort": "amount-low"})
        amounts = [item["amount"] for item in sorted_low.json()["data"]["items"]]
        assert amounts == [300.0, 1000.0]

    @pytest.mark.asyncio
    async def test_list_rejects_bad_params(self, auth_client):
        client, _ = auth_client

        for params in ({"limit": "0"}, {"limit": "101"}, {"page": "0"}, {"sort": "sideways"},
                       {"startDate": "yesterday"}, {"page": str(10**20)}):
            response = await client.get("/api/v1/transactions", params=params)
            assert response.status_code == 400, params

    @pytest.mark.asyncio
    async def test_bad_params_do_not_run_recurrence(self, auth_client, adapter):
        client, _ = auth_client
        created = (await client.post(
            "/api/v1/transactions",
            json={
                "type": "expense",
                "amount": 9.99,
                "category": "subscriptions",
                "isRecurring": True,
                "recurringInterval": "monthly",
            },
        )).json()["data"]
        await adapter.update_one(
            "transactions",
            {"id": created["id"]},
            {"next_execution_date": utc_now() - timedelta(hours=1)},
        )

        response = await client.get("/api/v1/transactions", params={"sort": "sideways"})

        assert response.status_code == 400
        assert response.json()["error"]["details"]["validation_errors"]["sort"]
        assert await wallet_balance(client) == -9.99

    @pytest.mark.asyncio
    async def test_listing_runs_due_recurrence(self, auth_client, adapter):
        client, _ = auth_client
        created = (await client.post(
            "/api/v1/transactions",
            json={
                "type": "expense",
                "amount": 9.99,
                "category": "subscriptions",
                "isRecurring": True,
                "recurringInterval": "monthly",
            },
        )).json()["data"]
        assert created["nextExecutionDate"] is not None

        await adapter.update_one(
            "transactions",
            {"id": created["id"]},
            {"next_execution_date": utc_now() - timedelta(hours=1)},
        )

        response = await client.get("/api/v1/transactions")

        assert response.json()["data"]["total"] == 2
        assert await wallet_balance(client) == -19.98

    @pytest.mark.asyncio
    async def test_explicit_sweep(self, auth_client):
        client, _ = auth_client

        response = await client.post("/api/v1/transactions/recurring/sweep")

        assert response.status_code == 200
        assert response.json()["data"] == {"materialized": 0, "skipped": 0, "failed": 0}
