# ==============================================================================
# TRANSACTIONS ENDPOINTS - Ledger Routes
# ==============================================================================
# Add, list, change and remove income/expense entries for the caller
# ==============================================================================

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Query, status

from walletwise.api.dependencies import (
    CurrentUserID,
    IdempotencyKey,
    LedgerServiceDep,
    RecurrenceServiceDep,
)
from walletwise.core.constants import SuccessMessages
from walletwise.core.settings import settings
from walletwise.schemas.base import APIResponse, PaginatedResponse, parse_model
from walletwise.schemas.transaction import (
    SweepResultResponse,
    TransactionCreate,
    TransactionListItem,
    TransactionQuery,
    TransactionResponse,
    TransactionUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post(
    "",
    response_model=APIResponse[TransactionResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add transaction",
    description="Record an income or expense and update the wallet balance.",
)
async def add_transaction(
    user_id: CurrentUserID,
    schema: TransactionCreate,
    service: LedgerServiceDep,
    idempotency_key: IdempotencyKey,
) -> APIResponse[TransactionResponse]:
    """Add a transaction."""
    transaction = await service.add_transaction(user_id, schema, idempotency_key)
    return APIResponse.ok(data=transaction, message=SuccessMessages.TRANSACTION_CREATED)


@router.get(
    "",
    response_model=APIResponse[PaginatedResponse[TransactionListItem]],
    summary="List transactions",
    description="Filter, search, sort and paginate the caller's transactions.",
)
async def list_transactions(
    user_id: CurrentUserID,
    service: LedgerServiceDep,
    recurrence: RecurrenceServiceDep,
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    type_filter: Optional[str] = Query(None, alias="type"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    sort: Optional[str] = Query(None),
) -> APIResponse[PaginatedResponse[TransactionListItem]]:
    """Get one page of the caller's transactions."""
    raw = {
        "page": page,
        "limit": limit,
        "search": search,
        "type": type_filter,
        "start_date": start_date,
        "end_date": end_date,
        "sort": sort,
    }
    query = parse_model(
        TransactionQuery,
        {key: value for key, value in raw.items() if value is not None},
    )

    if settings.RECURRENCE_SWEEP_ON_LIST and service.adapter.supports_transactions:
        await recurrence.run_due(user_id=user_id)

    result = await service.list_transactions(user_id, query)
    return APIResponse.ok(data=result)


@router.post(
    "/recurring/sweep",
    response_model=APIResponse[SweepResultResponse],
    summary="Process recurring transactions",
    description="Materialize the caller's due recurring templates, one cycle each.",
)
async def sweep_recurring(
    user_id: CurrentUserID,
    recurrence: RecurrenceServiceDep,
) -> APIResponse[SweepResultResponse]:
    """Run the recurrence sweep for the caller."""
    result = await recurrence.run_due(user_id=user_id)
    return APIResponse.ok(
        data=SweepResultResponse(
            materialized=result.materialized,
            skipped=result.skipped,
            failed=result.failed,
        ),
        message=SuccessMessages.SWEEP_COMPLETED,
    )


@router.get(
    "/{transaction_id}",
    response_model=APIResponse[TransactionResponse],
    summary="Get transaction",
    description="Get one of the caller's transactions by ID.",
)
async def get_transaction(
    transaction_id: str,
    user_id: CurrentUserID,
    service: LedgerServiceDep,
) -> APIResponse[TransactionResponse]:
    transaction = await service.get_transaction(user_id, transaction_id)
    return APIResponse.ok(data=transaction)


@router.put(
    "/{transaction_id}",
    response_model=APIResponse[TransactionResponse],
    summary="Update transaction",
    description="Change supplied fields; the balance moves by the net difference.",
)
async def update_transaction(
    transaction_id: str,
    user_id: CurrentUserID,
    schema: TransactionUpdate,
    service: LedgerServiceDep,
) -> APIResponse[TransactionResponse]:
    """Update a transaction."""
    transaction = await service.update_transaction(user_id, transaction_id, schema)
    return APIResponse.ok(data=transaction, message=SuccessMessages.TRANSACTION_UPDATED)


@router.delete(
    "/{transaction_id}",
    response_model=APIResponse[TransactionResponse],
    summary="Delete transaction",
    description="Remove a transaction and reverse its effect on the balance.",
)
async def delete_transaction(
    transaction_id: str,
    user_id: CurrentUserID,
    service: LedgerServiceDep,
) -> APIResponse[TransactionResponse]:
    """Delete a transaction."""
    transaction = await service.delete_transaction(user_id, transaction_id)
    return APIResponse.ok(data=transaction, message=SuccessMessages.TRANSACTION_DELETED)
