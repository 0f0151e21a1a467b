# ==============================================================================
# API DEPENDENCIES - Dependency Injection
# ==============================================================================
# FastAPI dependencies for authentication and service access
# ==============================================================================

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from walletwise.core.constants import APIConstants
from walletwise.core.exceptions import AuthenticationError
from walletwise.core.security import verify_access_token
from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter
from walletwise.database.factory import DatabaseFactory
from walletwise.services.account_service import AccountService
from walletwise.services.ledger_service import LedgerService
from walletwise.services.recurrence_service import RecurrenceService

# Bearer scheme for JWT access tokens
bearer_scheme = HTTPBearer(auto_error=False)


# ==============================================================================
# DATABASE DEPENDENCIES
# ==============================================================================

async def get_adapter() -> BaseDatabaseAdapter:
    """
    Get database adapter dependency.

    Returns initialized adapter from factory.
    """
    return DatabaseFactory.get_adapter()


DatabaseDep = Annotated[BaseDatabaseAdapter, Depends(get_adapter)]


# ==============================================================================
# AUTHENTICATION DEPENDENCIES
# ==============================================================================

async def get_current_user_id(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
) -> str:
    """
    Extract the account id from the bearer token.

    The owner of every ledger operation comes from here and never from
    the request body.

    Raises:
        AuthenticationError: If the token is missing, expired or invalid
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError(message="Not authenticated")

    payload = verify_access_token(credentials.credentials)
    return payload["sub"]


CurrentUserID = Annotated[str, Depends(get_current_user_id)]


async def get_idempotency_key(
    idempotency_key: Annotated[
        Optional[str],
        Header(alias=APIConstants.IDEMPOTENCY_KEY_HEADER),
    ] = None,
) -> Optional[str]:
    return idempotency_key


IdempotencyKey = Annotated[Optional[str], Depends(get_idempotency_key)]


# ==============================================================================
# SERVICE DEPENDENCIES
# ==============================================================================

async def get_ledger_service(adapter: DatabaseDep) -> LedgerService:
    """Get ledger service instance."""
    return LedgerService(adapter)


async def get_recurrence_service(
    adapter: DatabaseDep,
    ledger: Annotated[LedgerService, Depends(get_ledger_service)],
) -> RecurrenceService:
    """Get recurrence service instance sharing the request's ledger."""
    return RecurrenceService(adapter, ledger)


async def get_account_service(adapter: DatabaseDep) -> AccountService:
    """Get account service instance."""
    return AccountService(adapter)


LedgerServiceDep = Annotated[LedgerService, Depends(get_ledger_service)]
RecurrenceServiceDep = Annotated[RecurrenceService, Depends(get_recurrence_service)]
AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]
