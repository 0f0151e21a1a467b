# ==============================================================================
# RECURRENCE SERVICE - Recurring Template Materialization
# ==============================================================================
# Sweeps due templates into concrete transactions, one cycle per sweep
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Set

from walletwise.core.settings import settings
from walletwise.core.exceptions import AtomicityUnsupportedError
from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter
from walletwise.database.factory import DatabaseFactory
from walletwise.database.repositories.transaction_repository import TransactionRepository
from walletwise.services.ledger_service import LedgerService
from walletwise.utils.helpers import to_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """Counts for one sweep."""

    materialized: int = 0
    skipped: int = 0
    failed: int = 0


class RecurrenceService:
    """
    Recurrence engine.

    For each recurring template with ``next_execution_date <= now`` the
    sweep produces at most one new transaction and moves the template
    forward one interval. Templates that fell several cycles behind
    catch up one cycle per sweep.

    Each template is processed in its own atomic scope through the
    ledger, so a failure on one leaves the others untouched and can be
    retried by the next sweep.

    Example:
        >>> engine = RecurrenceService(adapter)
        >>> result = await engine.run_due(user_id=uid)
        >>> result.materialized
        1
    """

    def __init__(
        self,
        adapter: Optional[BaseDatabaseAdapter] = None,
        ledger: Optional[LedgerService] = None,
    ) -> None:
        self._adapter = adapter or DatabaseFactory.get_adapter()
        self._ledger = ledger or LedgerService(self._adapter)
        self._store = TransactionRepository(self._adapter)

    async def run_due(
        self,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SweepResult:
        """
        Materialize due templates.

        Args:
            user_id: Limit the sweep to one owner (all owners when None)
            now: Reference instant (defaults to the current time)

        Returns:
            SweepResult with materialized/skipped/failed counts

        Raises:
            AtomicityUnsupportedError: If the backend cannot run atomic scopes
        """
        if not self._adapter.supports_transactions:
            raise AtomicityUnsupportedError()

        now = to_utc(now) if now is not None else utc_now()
        result = SweepResult()
        # Each template is attempted at most once per sweep
        seen: Set[str] = set()

        while True:
            due = await self._store.find_due(
                now,
                user_id=user_id,
                limit=settings.RECURRENCE_BATCH_SIZE,
                exclude_ids=seen,
            )
            if not due:
                break

            for template in due:
                seen.add(template["id"])
                try:
                    created = await self._ledger.materialize_occurrence(template, now)
                except AtomicityUnsupportedError:
                    raise
                except Exception:
                    result.failed += 1
                    logger.exception(f"Recurring template {template['id']} failed")
                    continue

                if created is None:
                    result.skipped += 1
                else:
                    result.materialized += 1

        if seen:
            logger.info(
                f"Recurrence sweep: {result.materialized} materialized, "
                f"{result.skipped} skipped, {result.failed} failed"
            )
        return result


class RecurrenceScheduler:
    """
    Background task that runs the sweep on a fixed interval.

    Example:
        >>> scheduler = RecurrenceScheduler(interval_seconds=3600)
        >>> scheduler.start()
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        interval_seconds: float,
        service: Optional[RecurrenceService] = None,
    ) -> None:
        self._interval = interval_seconds
        self._service = service
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="recurrence-sweep")
        logger.info(f"Recurrence scheduler started (every {self._interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Recurrence scheduler stopped")

    async def _loop(self) -> None:
        while True:
            try:
                service = self._service or RecurrenceService()
                await service.run_due()
            except AtomicityUnsupportedError:
                logger.error("Recurrence scheduler stopping: backend has no transactions")
                return
            except Exception:
                logger.exception("Recurrence sweep failed")
            await asyncio.sleep(self._interval)
