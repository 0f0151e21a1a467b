# ==============================================================================
# WALLET REPOSITORY - Balance Accumulator
# ==============================================================================
# The user's running wallet balance, changed by single atomic increments
# ==============================================================================

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

from walletwise.core.constants import DatabaseConstants, ErrorMessages
from walletwise.core.exceptions import NotFoundError
from walletwise.database.adapters.base_adapter import Record
from walletwise.database.repositories.base_repository import BaseRepository
from walletwise.utils.helpers import quantize_money

BALANCE = DatabaseConstants.WALLET_BALANCE_FIELD


class WalletRepository(BaseRepository):
    """
    Balance accumulator over the ``users`` collection.

    Constructed by ``UnitOfWork`` only, so every change lands inside an
    atomic scope together with the ledger write that caused it.
    """

    collection_name = DatabaseConstants.USERS_COLLECTION

    def _not_found(self, user_id: Any) -> NotFoundError:
        return NotFoundError(
            ErrorMessages.ACCOUNT_NOT_FOUND,
            resource_type="account",
            resource_id=user_id,
        )

    def _account_filter(self, user_id: Any) -> Dict[str, Any]:
        # A malformed id cannot match any account
        if not self._adapter.is_valid_id(user_id):
            raise self._not_found(user_id)
        return {"id": user_id}

    async def open_account(
        self,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
    ) -> Record:
        """Create an account with a zero balance."""
        return await self.insert({
            "email": email,
            "full_name": full_name,
            BALANCE: Decimal("0.00"),
        })

    async def get_account(self, user_id: Any) -> Record:
        self._account_filter(user_id)
        record = await self.get_by_id(user_id)
        if record is None:
            raise self._not_found(user_id)
        return record

    async def adjust(self, user_id: Any, delta: Decimal) -> Decimal:
        """
        Add ``delta`` to the balance in one read-modify-write.

        Returns:
            The new balance

        Raises:
            NotFoundError: If the account does not exist
        """
        record = await self._adapter.increment(
            self.collection_name,
            self._account_filter(user_id),
            BALANCE,
            quantize_money(delta),
            session=self._session,
        )
        if record is None:
            raise self._not_found(user_id)
        return record[BALANCE]

    async def get_balance(self, user_id: Any) -> Decimal:
        return (await self.get_account(user_id))[BALANCE]

    async def set_balance(self, user_id: Any, value: Decimal) -> Decimal:
        """Overwrite the balance; reserved for reconciliation."""
        record = await self.update_where(
            self._account_filter(user_id),
            {BALANCE: quantize_money(value)},
        )
        if record is None:
            raise self._not_found(user_id)
        return record[BALANCE]
