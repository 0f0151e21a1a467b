# ==============================================================================
# ACCOUNTS ENDPOINTS - Wallet Holder Routes
# ==============================================================================
# Account creation, wallet balance and reconciliation
# ==============================================================================

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, status

from walletwise.api.dependencies import AccountServiceDep, CurrentUserID
from walletwise.core.constants import SuccessMessages
from walletwise.schemas.account import (
    AccountCreate,
    AccountResponse,
    AccountTokenResponse,
    ReconcileResponse,
    WalletResponse,
)
from walletwise.schemas.base import APIResponse

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post(
    "",
    response_model=APIResponse[AccountTokenResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Open account",
    description="Create an account with a zero balance and return an access token.",
)
async def create_account(
    service: AccountServiceDep,
    schema: Optional[AccountCreate] = None,
) -> APIResponse[AccountTokenResponse]:
    """Open a new account."""
    created = await service.create_account(schema)
    return APIResponse.ok(data=created, message=SuccessMessages.ACCOUNT_CREATED)


@router.get(
    "/me",
    response_model=APIResponse[AccountResponse],
    summary="Get current account",
)
async def get_me(
    user_id: CurrentUserID,
    service: AccountServiceDep,
) -> APIResponse[AccountResponse]:
    return APIResponse.ok(data=await service.get_account(user_id))


@router.get(
    "/me/wallet",
    response_model=APIResponse[WalletResponse],
    summary="Get wallet balance",
    description="Current balance, maintained with every ledger change.",
)
async def get_wallet(
    user_id: CurrentUserID,
    service: AccountServiceDep,
) -> APIResponse[WalletResponse]:
    return APIResponse.ok(data=await service.get_wallet(user_id))


@router.post(
    "/me/wallet/reconcile",
    response_model=APIResponse[ReconcileResponse],
    summary="Reconcile wallet balance",
    description="Recompute the balance as total income minus total expense.",
)
async def reconcile_wallet(
    user_id: CurrentUserID,
    service: AccountServiceDep,
) -> APIResponse[ReconcileResponse]:
    """Rebuild the balance from the ledger."""
    result = await service.reconcile_balance(user_id)
    return APIResponse.ok(data=result, message=SuccessMessages.BALANCE_RECONCILED)
