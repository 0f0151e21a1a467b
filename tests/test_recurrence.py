# ==============================================================================
# RECURRENCE TESTS
# ==============================================================================
# Interval arithmetic and the due-template sweep
# ==============================================================================

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from walletwise.core.exceptions import AtomicityUnsupportedError, ValidationError
from walletwise.core.settings import settings
from walletwise.database.repositories.transaction_repository import TransactionRepository
from walletwise.services.ledger_service import LedgerService
from walletwise.services.recurrence_service import RecurrenceService
from walletwise.utils.recurrence import add_months, advance

UTC = timezone.utc


class TestIntervalArithmetic:

    def test_daily_and_weekly(self):
        start = datetime(2024, 12, 31, 9, 30, tzinfo=UTC)

        assert advance(start, "daily") == datetime(2025, 1, 1, 9, 30, tzinfo=UTC)
        assert advance(start, "weekly") == datetime(2025, 1, 7, 9, 30, tzinfo=UTC)

    def test_monthly_clamps_to_month_end(self):
        jan_31 = datetime(2024, 1, 31, tzinfo=UTC)

        feb = advance(jan_31, "monthly")
        assert feb == datetime(2024, 2, 29, tzinfo=UTC)
        assert advance(feb, "monthly") == datetime(2024, 3, 29, tzinfo=UTC)
        assert advance(datetime(2023, 1, 31, tzinfo=UTC), "monthly") == datetime(2023, 2, 28, tzinfo=UTC)

    def test_input_is_unchanged(self):
        start = datetime(2024, 1, 31, tzinfo=UTC)
        advance(start, "monthly")
        assert start == datetime(2024, 1, 31, tzinfo=UTC)

    def test_add_months_crosses_year(self):
        assert add_months(datetime(2024, 11, 30), 3) == datetime(2025, 2, 28)

    def test_unknown_interval(self):
        with pytest.raises(ValueError):
            advance(datetime(2024, 1, 1, tzinfo=UTC), "yearly")


async def make_template(ledger, adapter, user_id, next_due, interval="daily", amount=15):
    """Create a recurring template and force its next due date."""
    created = await ledger.add_transaction(
        user_id,
        {
            "type": "expense",
            "amount": amount,
            "category": "subscriptions",
            "description": "Streaming plan",
            "paymentMethod": "card",
            "mood": "bored",
            "isRecurring": True,
            "recurringInterval": interval,
        },
    )
    await adapter.update_one(
        "transactions",
        {"id": created.id},
        {"next_execution_date": next_due},
    )
    return await TransactionRepository(adapter).get_owned(user_id, created.id)


class TestSweep:

    @pytest.mark.asyncio
    async def test_new_template_is_scheduled_one_interval_ahead(self, ledger, user_id):
        before = datetime.now(UTC)
        created = await ledger.add_transaction(
            user_id,
            {
                "type": "expense",
                "amount": 15,
                "category": "subscriptions",
                "isRecurring": True,
                "recurringInterval": "weekly",
            },
        )

        gap = created.next_execution_date - before
        assert timedelta(days=7) - timedelta(seconds=1) <= gap <= timedelta(days=7, seconds=5)

    @pytest.mark.asyncio
    async def test_due_template_materializes_once(self, ledger, recurrence, accounts, adapter, user_id):
        now = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)
        due = datetime(2024, 6, 15, 8, 0, tzinfo=UTC)
        template = await make_template(ledger, adapter, user_id, due, interval="monthly")

        result = await recurrence.run_due(user_id=user_id, now=now)

        assert (result.materialized, result.skipped, result.failed) == (1, 0, 0)

        refreshed = await TransactionRepository(adapter).get_owned(user_id, template["id"])
        assert refreshed["next_execution_date"] == datetime(2024, 7, 15, 8, 0, tzinfo=UTC)

        page = await ledger.list_transactions(user_id, {"sort": "oldest"})
        copies = [item for item in page.items if item.id != template["id"]]
        assert len(copies) == 1
        copy = copies[0]
        assert copy.is_recurring is False
        assert copy.recurring_interval is None
        assert copy.next_execution_date is None
        assert copy.date == now
        assert (copy.type, copy.category, copy.payment_method, copy.mood) == (
            "expense", "subscriptions", "card", "bored",
        )
        assert copy.description == "Streaming plan"

        # Template itself plus one occurrence
        wallet = await accounts.get_wallet(user_id)
        assert wallet.wallet_balance == Decimal("-30.00")

    @pytest.mark.asyncio
    async def test_missed_cycles_catch_up_one_per_sweep(self, ledger, recurrence, adapter, user_id):
        now = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)
        template = await make_template(ledger, adapter, user_id, now - timedelta(days=2))
        repo = TransactionRepository(adapter)

        counts = []
        for _ in range(4):
            counts.append((await recurrence.run_due(user_id=user_id, now=now)).materialized)

        assert counts == [1, 1, 1, 0]
        refreshed = await repo.get_owned(user_id, template["id"])
        assert refreshed["next_execution_date"] == now + timedelta(days=1)

    @pytest.mark.asyncio
    async def test_future_template_is_not_due(self, ledger, recurrence, adapter, user_id):
        now = datetime(2024, 3, 10, tzinfo=UTC)
        await make_template(ledger, adapter, user_id, now + timedelta(minutes=1))

        result = await recurrence.run_due(user_id=user_id, now=now)

        assert result.materialized == 0

    @pytest.mark.asyncio
    async def test_stale_template_loses_compare_and_set(self, ledger, adapter, accounts, user_id):
        now = datetime(2024, 3, 10, tzinfo=UTC)
        template = await make_template(ledger, adapter, user_id, now - timedelta(hours=1))

        first = await ledger.materialize_occurrence(template, now)
        second = await ledger.materialize_occurrence(template, now)

        assert first is not None
        assert second is None
        wallet = await accounts.get_wallet(user_id)
        assert wallet.wallet_balance == Decimal("-30.00")

    @pytest.mark.asyncio
    async def test_sweep_is_scoped_to_user(self, ledger, recurrence, adapter, user_id, other_user_id):
        now = datetime(2024, 3, 10, tzinfo=UTC)
        await make_template(ledger, adapter, user_id, now - timedelta(hours=1))
        await make_template(ledger, adapter, other_user_id, now - timedelta(hours=1))

        mine = await recurrence.run_due(user_id=user_id, now=now)
        everyone = await recurrence.run_due(now=now)

        assert mine.materialized == 1
        assert everyone.materialized == 1

    @pytest.mark.asyncio
    async def test_failure_is_isolated_per_template(self, adapter, ledger, user_id, monkeypatch):
        now = datetime(2024, 3, 10, tzinfo=UTC)
        broken = await make_template(ledger, adapter, user_id, now - timedelta(hours=2))
        healthy = await make_template(ledger, adapter, user_id, now - timedelta(hours=1))
        original = LedgerService.materialize_occurrence

        async def flaky(self, template, moment=None):
            if template["id"] == broken["id"]:
                raise ValidationError(errors={"amount": "corrupt template"})
            return await original(self, template, moment)

        monkeypatch.setattr(LedgerService, "materialize_occurrence", flaky)

        result = await RecurrenceService(adapter, ledger).run_due(user_id=user_id, now=now)

        assert (result.materialized, result.failed) == (1, 1)
        repo = TransactionRepository(adapter)
        assert (await repo.get_owned(user_id, healthy["id"]))["next_execution_date"] > now
        assert (await repo.get_owned(user_id, broken["id"]))["next_execution_date"] < now

    @pytest.mark.asyncio
    async def test_failing_templates_do_not_starve_later_batches(
        self, adapter, ledger, user_id, monkeypatch
    ):
        now = datetime(2024, 3, 10, tzinfo=UTC)
        broken = [
            await make_template(ledger, adapter, user_id, now - timedelta(hours=hours))
            for hours in (3, 2)
        ]
        healthy = await make_template(ledger, adapter, user_id, now - timedelta(hours=1))
        broken_ids = {template["id"] for template in broken}
        original = LedgerService.materialize_occurrence

        async def malformed(self, template, moment=None):
            if template["id"] in broken_ids:
                raise KeyError("recurring_interval")
            return await original(self, template, moment)

        monkeypatch.setattr(LedgerService, "materialize_occurrence", malformed)
        monkeypatch.setattr(settings, "RECURRENCE_BATCH_SIZE", 1)

        result = await RecurrenceService(adapter, ledger).run_due(user_id=user_id, now=now)

        assert (result.materialized, result.skipped, result.failed) == (1, 0, 2)
        repo = TransactionRepository(adapter)
        assert (await repo.get_owned(user_id, healthy["id"]))["next_execution_date"] > now

    @pytest.mark.asyncio
    async def test_small_batches_keep_one_cycle_per_sweep(
        self, ledger, recurrence, adapter, user_id, monkeypatch
    ):
        now = datetime(2024, 3, 10, 12, 0, tzinfo=UTC)
        await make_template(ledger, adapter, user_id, now - timedelta(days=3))
        await make_template(ledger, adapter, user_id, now - timedelta(days=3, hours=1))
        monkeypatch.setattr(settings, "RECURRENCE_BATCH_SIZE", 1)

        result = await recurrence.run_due(user_id=user_id, now=now)

        assert result.materialized == 2

    @pytest.mark.asyncio
    async def test_non_transactional_backend_aborts_sweep(self):
        class StandaloneAdapter:
            supports_transactions = False

        service = RecurrenceService(StandaloneAdapter(), ledger=object())

        with pytest.raises(AtomicityUnsupportedError):
            await service.run_due()
