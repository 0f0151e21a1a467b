# ==============================================================================
# TRANSACTION REPOSITORY - Ledger Store
# ==============================================================================
# Owner-scoped persistence of ledger entries and recurring templates
# No balance side effects happen here
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from walletwise.core.constants import (
    DatabaseConstants,
    ErrorMessages,
    TransactionSort,
    TypeFilter,
)
from walletwise.core.exceptions import NotFoundError, ValidationError
from walletwise.database.adapters.base_adapter import Record
from walletwise.database.query import ASCENDING, DESCENDING, QuerySpec
from walletwise.database.repositories.base_repository import BaseRepository
from walletwise.schemas.transaction import TransactionQuery
from walletwise.utils.helpers import calculate_offset

SEARCH_FIELDS = ("description", "category")

SORT_ORDERS: Dict[TransactionSort, List[Tuple[str, int]]] = {
    TransactionSort.NEWEST: [("date", DESCENDING), ("id", DESCENDING)],
    TransactionSort.OLDEST: [("date", ASCENDING), ("id", ASCENDING)],
    TransactionSort.AMOUNT_HIGH: [("amount", DESCENDING), ("id", DESCENDING)],
    TransactionSort.AMOUNT_LOW: [("amount", ASCENDING), ("id", ASCENDING)],
}


class TransactionRepository(BaseRepository):
    """
    Ledger store.

    Every read and write is keyed by the owning user id as well as the
    record id, so a record owned by someone else is indistinguishable
    from a missing one.

    Example:
        >>> repo = TransactionRepository(adapter, session=session)
        >>> row = await repo.create(user_id, {"type": "expense", "amount": Decimal("12.50"), ...})
        >>> await repo.get_owned(user_id, row["id"])
    """

    collection_name = DatabaseConstants.TRANSACTIONS_COLLECTION

    def _owned(self, user_id: str, transaction_id: Any) -> Dict[str, Any]:
        self.validate_id(transaction_id, ErrorMessages.INVALID_TRANSACTION_ID)
        return {"id": transaction_id, "user_id": user_id}

    # ==========================================================================
    # WRITES
    # ==========================================================================

    async def create(self, user_id: str, fields: Dict[str, Any]) -> Record:
        """
        Persist a validated entry for ``user_id``.

        Args:
            user_id: Owner
            fields: Normalized column values (from ``TransactionCreate``)

        Returns:
            Stored record
        """
        data = {key: value for key, value in fields.items() if key not in ("id", "user_id")}
        data["user_id"] = user_id
        return await self.insert(data)

    async def update(
        self,
        user_id: str,
        transaction_id: Any,
        fields: Dict[str, Any],
    ) -> Record:
        """
        Change only the supplied fields of an owned entry.

        Raises:
            ValidationError: If the id is malformed or the amount is not positive
            NotFoundError: If the user owns no such entry
        """
        filters = self._owned(user_id, transaction_id)
        amount = fields.get("amount")
        if amount is not None and Decimal(amount) <= 0:
            raise ValidationError(errors={"amount": "Amount must be greater than zero"})

        changes = {key: value for key, value in fields.items() if key not in ("id", "user_id")}
        if not changes:
            return await self.get_owned(user_id, transaction_id)

        record = await self.update_where(filters, changes)
        if record is None:
            raise NotFoundError(
                ErrorMessages.TRANSACTION_NOT_FOUND,
                resource_type="transaction",
                resource_id=transaction_id,
            )
        return record

    async def delete(self, user_id: str, transaction_id: Any) -> Record:
        """
        Remove an owned entry.

        Returns:
            Snapshot of the deleted entry

        Raises:
            NotFoundError: If the user owns no such entry
        """
        record = await self.delete_where(self._owned(user_id, transaction_id))
        if record is None:
            raise NotFoundError(
                ErrorMessages.TRANSACTION_NOT_FOUND,
                resource_type="transaction",
                resource_id=transaction_id,
            )
        return record

    async def advance_schedule(
        self,
        template_id: str,
        expected_next: datetime,
        new_next: datetime,
    ) -> Optional[Record]:
        """
        Compare-and-set a template's ``next_execution_date``.

        Returns:
            The advanced template, or None when another sweep already moved it
        """
        return await self.update_where(
            {
                "id": template_id,
                "is_recurring": True,
                "next_execution_date": expected_next,
            },
            {"next_execution_date": new_next},
        )

    # ==========================================================================
    # READS
    # ==========================================================================

    async def get_owned(
        self,
        user_id: str,
        transaction_id: Any,
        for_update: bool = False,
    ) -> Record:
        """
        Fetch one entry owned by ``user_id``.

        Raises:
            ValidationError: If the id is malformed
            NotFoundError: If the user owns no such entry
        """
        record = await self.find_one(
            self._owned(user_id, transaction_id),
            for_update=for_update,
        )
        if record is None:
            raise NotFoundError(
                ErrorMessages.TRANSACTION_NOT_FOUND,
                resource_type="transaction",
                resource_id=transaction_id,
            )
        return record

    async def find_by_idempotency_key(self, user_id: str, key: str) -> Optional[Record]:
        return await self.find_one({"user_id": user_id, "idempotency_key": key})

    def build_query(self, user_id: str, params: TransactionQuery) -> QuerySpec:
        filters: Dict[str, Any] = {"user_id": user_id}
        type_filter = TypeFilter(params.type)
        if type_filter is not TypeFilter.ALL:
            filters["type"] = type_filter.value

        ranges = {}
        if params.start_date is not None or params.end_date is not None:
            ranges["date"] = (params.start_date, params.end_date)

        return QuerySpec(
            filters=filters,
            ranges=ranges,
            search_term=params.search,
            search_fields=SEARCH_FIELDS,
            sort=SORT_ORDERS[TransactionSort(params.sort)],
            skip=calculate_offset(params.page, params.limit),
            limit=params.limit,
        )

    async def list(self, user_id: str, params: TransactionQuery) -> Tuple[List[Record], int]:
        """
        One page of the user's entries plus the total match count.

        Returns:
            ``(items, total)``
        """
        query = self.build_query(user_id, params)
        items = await self.find(query)
        total = await self.count(query)
        return items, total

    async def find_due(
        self,
        now: datetime,
        user_id: Optional[str] = None,
        limit: int = 500,
        exclude_ids: Iterable[str] = (),
    ) -> List[Record]:
        """Recurring templates whose next execution is at or before ``now``, oldest first."""
        filters: Dict[str, Any] = {"is_recurring": True}
        if user_id is not None:
            filters["user_id"] = user_id
        return await self.find(
            QuerySpec(
                filters=filters,
                ranges={"next_execution_date": (None, now)},
                sort=[("next_execution_date", ASCENDING), ("id", ASCENDING)],
                exclude_ids=tuple(exclude_ids),
                limit=limit,
            )
        )

    async def totals_by_type(self, user_id: str) -> Dict[str, Decimal]:
        """Σ amount per type for one user."""
        return await self._adapter.sum_by(
            self.collection_name,
            {"user_id": user_id},
            "amount",
            "type",
            session=self._session,
        )
