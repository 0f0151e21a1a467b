# ==============================================================================
# ACCOUNT SERVICE - Wallet Holders & Balance Reconciliation
# ==============================================================================
# Opens accounts, reads wallet balances and rebuilds them from the ledger
# ==============================================================================

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from walletwise.core.exceptions import AlreadyExistsError, ConflictError
from walletwise.core.security import create_access_token
from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter, Record
from walletwise.database.repositories.wallet_repository import WalletRepository
from walletwise.database.unit_of_work.uow import UnitOfWork
from walletwise.schemas.account import (
    AccountCreate,
    AccountResponse,
    AccountTokenResponse,
    ReconcileResponse,
    WalletResponse,
)
from walletwise.schemas.base import parse_model
from walletwise.services.base_service import BaseService

logger = logging.getLogger(__name__)


class AccountService(BaseService[AccountResponse]):
    """
    Account service for wallet holders.

    The balance is never written here except by ``reconcile_balance``,
    which recomputes it as Σ income − Σ expense under the user's lock.
    """

    def __init__(self, adapter: Optional[BaseDatabaseAdapter] = None) -> None:
        super().__init__(adapter)
        self._wallets = WalletRepository(self._adapter)

    def _to_response(self, entity: Record) -> AccountResponse:
        return AccountResponse.model_validate(entity)

    async def create_account(
        self,
        payload: Union[Dict[str, Any], AccountCreate, None] = None,
    ) -> AccountTokenResponse:
        """
        Open an account with a zero balance and issue an access token.

        Raises:
            ValidationError: If the payload is invalid
            AlreadyExistsError: If the email is already registered
        """
        schema = parse_model(AccountCreate, payload or {})

        async def work(uow: UnitOfWork) -> Record:
            return await uow.wallets.open_account(
                email=str(schema.email) if schema.email else None,
                full_name=schema.full_name,
            )

        try:
            record = await self._atomic(work)
        except ConflictError:
            raise AlreadyExistsError(
                message="Email already registered",
                resource_type="account",
            )

        logger.info(f"Opened account {record['id']}")
        return AccountTokenResponse(
            account=self._to_response(record),
            access_token=create_access_token(subject=record["id"]),
        )

    async def get_account(self, user_id: str) -> AccountResponse:
        return self._to_response(await self._wallets.get_account(user_id))

    async def get_wallet(self, user_id: str) -> WalletResponse:
        """Current stored balance."""
        balance = await self._wallets.get_balance(user_id)
        return WalletResponse(user_id=user_id, wallet_balance=balance)

    async def reconcile_balance(self, user_id: str) -> ReconcileResponse:
        """
        Recompute the balance from the ledger and store it.

        Runs under the user's lock, so no ledger mutation for the same user
        can land between the sum and the write.

        Raises:
            NotFoundError: If the account does not exist
        """

        async def work(uow: UnitOfWork) -> Dict[str, Decimal]:
            previous = await uow.wallets.get_balance(user_id)
            totals = await uow.transactions.totals_by_type(user_id)
            expected = totals.get("income", Decimal("0.00")) - totals.get(
                "expense", Decimal("0.00")
            )
            stored = await uow.wallets.set_balance(user_id, expected)
            return {"previous": previous, "stored": stored}

        outcome = await self._atomic(work, user_id)
        difference = outcome["stored"] - outcome["previous"]
        if difference != 0:
            logger.warning(
                f"Wallet for user {user_id} drifted by {difference}; reset to {outcome['stored']}"
            )
        return ReconcileResponse(
            user_id=user_id,
            previous_balance=outcome["previous"],
            wallet_balance=outcome["stored"],
            difference=difference,
        )
