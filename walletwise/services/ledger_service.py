# ==============================================================================
# LEDGER SERVICE - Transactional Coordinator
# ==============================================================================
# Every ledger mutation and its wallet adjustment commit in one scope
# ==============================================================================

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from walletwise.core.settings import settings
from walletwise.core.constants import ErrorMessages, LedgerConstants
from walletwise.core.exceptions import ConflictError, ValidationError
from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter, Record
from walletwise.database.repositories.transaction_repository import TransactionRepository
from walletwise.database.unit_of_work.uow import UnitOfWork
from walletwise.schemas.base import PaginatedResponse, parse_model
from walletwise.schemas.transaction import (
    TransactionCreate,
    TransactionListItem,
    TransactionQuery,
    TransactionResponse,
    TransactionUpdate,
)
from walletwise.services.base_service import BaseService
from walletwise.utils.helpers import paginate_results, signed_amount, to_utc, utc_now
from walletwise.utils.recurrence import advance

logger = logging.getLogger(__name__)

Payload = Union[Dict[str, Any], TransactionCreate, TransactionUpdate]


class LedgerService(BaseService[TransactionResponse]):
    """
    Transactional coordinator for the ledger.

    The only writer of the wallet balance during normal operation. Each
    mutation validates its input first, then opens one unit of work that
    writes the ledger row and applies the signed delta
    (``+amount`` for income, ``-amount`` for expense) before committing.

    Scopes for the same user run one at a time; a scope that exceeds
    ``LEDGER_COMMIT_TIMEOUT_SECONDS`` is rolled back and reported as
    ``CommitTimeoutError``. Updates and deletes are retried on write
    conflicts; adds are not, clients pass an idempotency key instead.

    Example:
        >>> ledger = LedgerService(adapter)
        >>> row = await ledger.add_transaction(uid, {"type": "income", "amount": 1000, "category": "salary"})
        >>> await ledger.update_transaction(uid, row.id, {"amount": 1250})
        >>> await ledger.delete_transaction(uid, row.id)
    """

    def __init__(self, adapter: Optional[BaseDatabaseAdapter] = None) -> None:
        super().__init__(adapter)
        self._store = TransactionRepository(self._adapter)

    def _to_response(self, entity: Record) -> TransactionResponse:
        return TransactionResponse.model_validate(entity)

    def _conflict_retry(self):
        return retry(
            retry=retry_if_exception_type(ConflictError),
            stop=stop_after_attempt(settings.LEDGER_CONFLICT_RETRIES),
            wait=wait_exponential(multiplier=settings.LEDGER_CONFLICT_BACKOFF_SECONDS, max=1),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    @staticmethod
    def _validate_idempotency_key(key: Optional[str]) -> Optional[str]:
        if key is None:
            return None
        key = key.strip()
        if not key or len(key) > LedgerConstants.MAX_IDEMPOTENCY_KEY_LENGTH:
            message = (
                f"Idempotency key must be 1-{LedgerConstants.MAX_IDEMPOTENCY_KEY_LENGTH} characters"
            )
            raise ValidationError(errors={"idempotencyKey": message})
        return key

    # ==========================================================================
    # SHARED INSERTION PATH
    # ==========================================================================

    async def _insert(self, uow: UnitOfWork, user_id: str, fields: Dict[str, Any]) -> Record:
        """Create the row and apply its contribution; caller owns the scope."""
        record = await uow.transactions.create(user_id, fields)
        balance = await uow.wallets.adjust(
            user_id, signed_amount(record["type"], record["amount"])
        )
        logger.debug(
            f"Ledger insert {record['id']} for user {user_id}; balance now {balance}"
        )
        return record

    # ==========================================================================
    # MUTATIONS
    # ==========================================================================

    async def add_transaction(
        self,
        user_id: str,
        payload: Payload,
        idempotency_key: Optional[str] = None,
    ) -> TransactionResponse:
        """
        Record a new income or expense and move the balance with it.

        Recurring templates get ``next_execution_date = now + 1 interval``.
        With an idempotency key that is already on record, the stored row is
        returned and nothing changes.

        Raises:
            ValidationError: Listing every invalid field
            NotFoundError: If the account does not exist
            CommitTimeoutError: If the scope ran out of time
        """
        schema = parse_model(TransactionCreate, payload)
        key = self._validate_idempotency_key(idempotency_key)

        fields = schema.to_fields()
        if fields["is_recurring"]:
            fields["next_execution_date"] = advance(utc_now(), fields["recurring_interval"])
        if key is not None:
            fields["idempotency_key"] = key

        async def work(uow: UnitOfWork) -> Record:
            if key is not None:
                existing = await uow.transactions.find_by_idempotency_key(user_id, key)
                if existing is not None:
                    logger.info(f"Idempotent replay of {existing['id']} for user {user_id}")
                    return existing
            return await self._insert(uow, user_id, fields)

        try:
            record = await self._atomic(work, user_id)
        except ConflictError:
            # Another process committed the same key first
            if key is None:
                raise
            record = await self._store.find_by_idempotency_key(user_id, key)
            if record is None:
                raise
        return self._to_response(record)

    async def update_transaction(
        self,
        user_id: str,
        transaction_id: Any,
        payload: Payload,
    ) -> TransactionResponse:
        """
        Change an owned transaction; the balance moves by the net delta.

        net = new signed contribution - old signed contribution. Turning
        recurrence on or changing the interval schedules ``now + 1 interval``;
        turning it off clears the schedule.

        Raises:
            ValidationError: Invalid id or fields
            NotFoundError: If the user owns no such transaction
            ConflictError: If retries were exhausted
        """
        self._store.validate_id(transaction_id, ErrorMessages.INVALID_TRANSACTION_ID)
        changes = parse_model(TransactionUpdate, payload).changes()

        async def work(uow: UnitOfWork) -> Record:
            current = await uow.transactions.get_owned(user_id, transaction_id, for_update=True)
            fields = dict(changes)
            self._apply_recurrence_change(current, fields)

            updated = await uow.transactions.update(user_id, transaction_id, fields)

            delta = signed_amount(updated["type"], updated["amount"]) - signed_amount(
                current["type"], current["amount"]
            )
            if delta != 0:
                await uow.wallets.adjust(user_id, delta)
            logger.debug(f"Ledger update {transaction_id} for user {user_id}; delta {delta}")
            return updated

        @self._conflict_retry()
        async def _update() -> Record:
            return await self._atomic(work, user_id)

        return self._to_response(await _update())

    @staticmethod
    def _apply_recurrence_change(current: Record, fields: Dict[str, Any]) -> None:
        if "is_recurring" not in fields and "recurring_interval" not in fields:
            return

        is_recurring = fields.get("is_recurring", current["is_recurring"])
        if not is_recurring:
            fields["recurring_interval"] = None
            fields["next_execution_date"] = None
            return

        interval = fields.get("recurring_interval", current["recurring_interval"])
        if interval is None:
            raise ValidationError(
                errors={"recurringInterval": "Recurring interval is required for recurring transactions"}
            )
        fields["recurring_interval"] = interval

        schedule_changed = (
            not current["is_recurring"]
            or interval != current["recurring_interval"]
            or current["next_execution_date"] is None
        )
        if schedule_changed:
            fields["next_execution_date"] = advance(utc_now(), interval)

    async def delete_transaction(self, user_id: str, transaction_id: Any) -> TransactionResponse:
        """
        Remove an owned transaction and reverse its contribution.

        Returns:
            Snapshot of the deleted transaction

        Raises:
            NotFoundError: If the user owns no such transaction (including a
                second delete of the same id)
        """
        self._store.validate_id(transaction_id, ErrorMessages.INVALID_TRANSACTION_ID)

        async def work(uow: UnitOfWork) -> Record:
            deleted = await uow.transactions.delete(user_id, transaction_id)
            await uow.wallets.adjust(
                user_id, -signed_amount(deleted["type"], deleted["amount"])
            )
            logger.debug(f"Ledger delete {transaction_id} for user {user_id}")
            return deleted

        @self._conflict_retry()
        async def _delete() -> Record:
            return await self._atomic(work, user_id)

        return self._to_response(await _delete())

    async def materialize_occurrence(
        self,
        template: Record,
        now: Optional[datetime] = None,
    ) -> Optional[Record]:
        """
        Turn one due template cycle into a concrete transaction.

        In one scope: advance the template one interval from its previous
        ``next_execution_date`` (compare-and-set), insert a non-recurring
        copy dated ``now`` and apply its contribution.

        Returns:
            The new transaction, or None if another sweep already advanced
            the template (nothing is written in that case)
        """
        now = to_utc(now) if now is not None else utc_now()
        previous = template["next_execution_date"]
        following = advance(previous, template["recurring_interval"])
        fields = {
            "type": template["type"],
            "amount": template["amount"],
            "category": template["category"],
            "description": template.get("description"),
            "payment_method": template["payment_method"],
            "mood": template["mood"],
            "date": now,
            "is_recurring": False,
            "recurring_interval": None,
        }

        async def work(uow: UnitOfWork) -> Optional[Record]:
            advanced = await uow.transactions.advance_schedule(template["id"], previous, following)
            if advanced is None:
                return None
            return await self._insert(uow, template["user_id"], fields)

        return await self._atomic(work, template["user_id"])

    # ==========================================================================
    # READS
    # ==========================================================================

    async def get_transaction(self, user_id: str, transaction_id: Any) -> TransactionResponse:
        record = await self._store.get_owned(user_id, transaction_id)
        return self._to_response(record)

    async def list_transactions(
        self,
        user_id: str,
        params: Union[Dict[str, Any], TransactionQuery, None] = None,
    ) -> PaginatedResponse[TransactionListItem]:
        """
        One page of the user's transactions.

        Returns:
            Items plus ``total``, ``page``, ``pages`` and ``limit``
        """
        query = parse_model(TransactionQuery, params or {})
        items, total = await self._store.list(user_id, query)
        page = paginate_results(
            [TransactionListItem.model_validate(item) for item in items],
            page=query.page,
            limit=query.limit,
            total=total,
        )
        return PaginatedResponse[TransactionListItem](**page)

    async def wallet_delta(self, user_id: str) -> Decimal:
        """Σ income − Σ expense straight from the ledger."""
        totals = await self._store.totals_by_type(user_id)
        return totals.get("income", Decimal("0.00")) - totals.get("expense", Decimal("0.00"))
