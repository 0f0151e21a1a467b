# ==============================================================================
# CONFTEST - Pytest Fixtures and Configuration
# ==============================================================================
# Shared fixtures for all tests
# ==============================================================================

from __future__ import annotations

import os
from typing import AsyncGenerator, Tuple
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment before importing the package
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "false"
os.environ["DATABASE_TYPE"] = "sqlite"
os.environ["SQLITE_URL"] = "sqlite+aiosqlite:///./test_walletwise.db"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-32chars!"
os.environ["RECURRENCE_SWEEP_INTERVAL_SECONDS"] = "0"
os.environ["LEDGER_CONFLICT_BACKOFF_SECONDS"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"


# ==============================================================================
# DATABASE FIXTURES
# ==============================================================================

@pytest_asyncio.fixture
async def adapter(tmp_path) -> AsyncGenerator:
    """Fresh file-backed SQLite database per test."""
    from walletwise.database.factory import DatabaseFactory

    DatabaseFactory.reset()
    database_url = f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"
    db = await DatabaseFactory.initialize(database_url=database_url)

    yield db

    await DatabaseFactory.shutdown()
    DatabaseFactory.reset()


# ==============================================================================
# SERVICE FIXTURES
# ==============================================================================

@pytest.fixture
def ledger(adapter):
    from walletwise.services.ledger_service import LedgerService
    return LedgerService(adapter)


@pytest.fixture
def recurrence(adapter, ledger):
    from walletwise.services.recurrence_service import RecurrenceService
    return RecurrenceService(adapter, ledger)


@pytest.fixture
def accounts(adapter):
    from walletwise.services.account_service import AccountService
    return AccountService(adapter)


@pytest_asyncio.fixture
async def user_id(accounts) -> str:
    """Account with a zero balance."""
    created = await accounts.create_account({"full_name": "Test User"})
    return created.account.id


@pytest_asyncio.fixture
async def other_user_id(accounts) -> str:
    created = await accounts.create_account({"full_name": "Other User"})
    return created.account.id


# ==============================================================================
# HTTP CLIENT FIXTURES
# ==============================================================================

@pytest_asyncio.fixture
async def client(adapter) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the app and the per-test database."""
    from walletwise.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        timeout=30.0,
    ) as async_client:
        yield async_client


@pytest_asyncio.fixture
async def auth_client(client: AsyncClient) -> AsyncGenerator[Tuple[AsyncClient, str], None]:
    """
    Client authenticated as a freshly opened account.

    Returns:
        Tuple of (client, user_id)
    """
    response = await client.post(
        "/api/v1/accounts",
        json={
            "email": f"user_{uuid4().hex[:8]}@example.com",
            "fullName": "Test User",
        },
    )
    assert response.status_code == 201, f"Failed to open account: {response.text}"

    data = response.json()["data"]
    client.headers["Authorization"] = f"Bearer {data['accessToken']}"

    yield client, data["account"]["id"]

    if "Authorization" in client.headers:
        del client.headers["Authorization"]


# ==============================================================================
# HELPER FIXTURES
# ==============================================================================

@pytest.fixture
def income_data() -> dict:
    return {
        "type": "income",
        "amount": 1000,
        "category": "salary",
        "description": "Monthly salary",
    }


@pytest.fixture
def expense_data() -> dict:
    return {
        "type": "expense",
        "amount": 300,
        "category": "food",
        "description": "Groceries for the week",
        "paymentMethod": "card",
        "mood": "calm",
    }
