# ==============================================================================
# LEDGER SERVICE TESTS
# ==============================================================================
# Balance bookkeeping through add/update/delete, driven at the service layer
# ==============================================================================

import asyncio
from decimal import Decimal

import pytest

from walletwise.core.exceptions import ConflictError, NotFoundError, ValidationError
from walletwise.database.repositories.transaction_repository import TransactionRepository
from walletwise.database.repositories.wallet_repository import WalletRepository


async def balance_of(accounts, user_id: str) -> Decimal:
    return (await accounts.get_wallet(user_id)).wallet_balance


class TestBalanceBookkeeping:
    """Wallet balance follows every ledger mutation."""

    @pytest.mark.asyncio
    async def test_add_update_delete_scenario(self, ledger, accounts, user_id):
        await ledger.add_transaction(user_id, {"type": "income", "amount": 1000, "category": "salary"})
        assert await balance_of(accounts, user_id) == Decimal("1000.00")

        expense = await ledger.add_transaction(
            user_id, {"type": "expense", "amount": 300, "category": "food"}
        )
        assert await balance_of(accounts, user_id) == Decimal("700.00")

        await ledger.add_transaction(user_id, {"type": "income", "amount": 500, "category": "freelance"})
        assert await balance_of(accounts, user_id) == Decimal("1200.00")

        await ledger.delete_transaction(user_id, expense.id)
        assert await balance_of(accounts, user_id) == Decimal("1500.00")

    @pytest.mark.asyncio
    async def test_update_amount_applies_net_delta(self, ledger, accounts, user_id):
        income = await ledger.add_transaction(
            user_id, {"type": "income", "amount": 1000, "category": "salary"}
        )

        updated = await ledger.update_transaction(user_id, income.id, {"amount": 1250})

        assert updated.amount == Decimal("1250.00")
        assert await balance_of(accounts, user_id) == Decimal("1250.00")

    @pytest.mark.asyncio
    async def test_update_type_flip(self, ledger, accounts, user_id):
        entry = await ledger.add_transaction(
            user_id, {"type": "expense", "amount": 100, "category": "shopping"}
        )
        assert await balance_of(accounts, user_id) == Decimal("-100.00")

        await ledger.update_transaction(user_id, entry.id, {"type": "income"})

        assert await balance_of(accounts, user_id) == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_update_without_money_change_keeps_balance(self, ledger, accounts, user_id):
        entry = await ledger.add_transaction(
            user_id, {"type": "expense", "amount": 40, "category": "food"}
        )

        updated = await ledger.update_transaction(
            user_id, entry.id, {"description": "Lunch", "mood": "happy"}
        )

        assert updated.description == "Lunch"
        assert updated.mood == "happy"
        assert updated.date == entry.date
        assert await balance_of(accounts, user_id) == Decimal("-40.00")

    @pytest.mark.asyncio
    async def test_delete_twice_reverses_once(self, ledger, accounts, user_id):
        entry = await ledger.add_transaction(
            user_id, {"type": "income", "amount": 80, "category": "gift"}
        )

        snapshot = await ledger.delete_transaction(user_id, entry.id)
        assert snapshot.id == entry.id
        assert snapshot.amount == Decimal("80.00")

        with pytest.raises(NotFoundError):
            await ledger.delete_transaction(user_id, entry.id)
        assert await balance_of(accounts, user_id) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_concurrent_adds_for_one_user(self, ledger, accounts, user_id):
        await asyncio.gather(*[
            ledger.add_transaction(user_id, {"type": "income", "amount": 10, "category": "gift"})
            for _ in range(10)
        ])

        assert await balance_of(accounts, user_id) == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_reconcile_matches_incremental_balance(self, ledger, accounts, user_id):
        await ledger.add_transaction(user_id, {"type": "income", "amount": "250.10", "category": "salary"})
        entry = await ledger.add_transaction(user_id, {"type": "expense", "amount": "99.99", "category": "bills"})
        await ledger.update_transaction(user_id, entry.id, {"amount": "120.01"})

        result = await accounts.reconcile_balance(user_id)

        assert result.difference == Decimal("0.00")
        assert result.wallet_balance == Decimal("130.09")
        assert await ledger.wallet_delta(user_id) == Decimal("130.09")


class TestAtomicity:
    """A failure inside the scope leaves neither the row nor the balance change."""

    @pytest.mark.asyncio
    async def test_failed_adjust_rolls_back_add(self, ledger, accounts, user_id, monkeypatch):
        async def broken_adjust(self, user_id, delta):
            raise RuntimeError("balance write failed")

        monkeypatch.setattr(WalletRepository, "adjust", broken_adjust)

        with pytest.raises(RuntimeError):
            await ledger.add_transaction(user_id, {"type": "income", "amount": 500, "category": "salary"})

        monkeypatch.undo()
        page = await ledger.list_transactions(user_id)
        assert page.total == 0
        assert await balance_of(accounts, user_id) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_failed_adjust_rolls_back_delete(self, ledger, accounts, user_id, monkeypatch):
        entry = await ledger.add_transaction(
            user_id, {"type": "expense", "amount": 75, "category": "travel"}
        )

        async def broken_adjust(self, user_id, delta):
            raise RuntimeError("balance write failed")

        monkeypatch.setattr(WalletRepository, "adjust", broken_adjust)
        with pytest.raises(RuntimeError):
            await ledger.delete_transaction(user_id, entry.id)
        monkeypatch.undo()

        still_there = await ledger.get_transaction(user_id, entry.id)
        assert still_there.id == entry.id
        assert await balance_of(accounts, user_id) == Decimal("-75.00")

    @pytest.mark.asyncio
    async def test_add_for_missing_account_writes_nothing(self, ledger, adapter):
        ghost = "00000000-0000-4000-8000-000000000000"

        with pytest.raises(NotFoundError):
            await ledger.add_transaction(ghost, {"type": "income", "amount": 5, "category": "gift"})

        page = await ledger.list_transactions(ghost)
        assert page.total == 0

    @pytest.mark.asyncio
    async def test_delete_retried_on_conflict(self, ledger, accounts, user_id, monkeypatch):
        entry = await ledger.add_transaction(
            user_id, {"type": "income", "amount": 60, "category": "gift"}
        )
        original = TransactionRepository.delete
        calls = []

        async def flaky_delete(self, owner, transaction_id):
            calls.append(transaction_id)
            if len(calls) == 1:
                raise ConflictError()
            return await original(self, owner, transaction_id)

        monkeypatch.setattr(TransactionRepository, "delete", flaky_delete)
        await ledger.delete_transaction(user_id, entry.id)

        assert len(calls) == 2
        assert await balance_of(accounts, user_id) == Decimal("0.00")


class TestIdempotency:

    @pytest.mark.asyncio
    async def test_same_key_records_once(self, ledger, accounts, user_id):
        payload = {"type": "income", "amount": 200, "category": "salary"}

        first = await ledger.add_transaction(user_id, payload, idempotency_key="pay-2024-05")
        second = await ledger.add_transaction(user_id, payload, idempotency_key="pay-2024-05")

        assert first.id == second.id
        assert await balance_of(accounts, user_id) == Decimal("200.00")

    @pytest.mark.asyncio
    async def test_keys_are_scoped_per_user(self, ledger, accounts, user_id, other_user_id):
        payload = {"type": "income", "amount": 10, "category": "gift"}

        mine = await ledger.add_transaction(user_id, payload, idempotency_key="k1")
        theirs = await ledger.add_transaction(other_user_id, payload, idempotency_key="k1")

        assert mine.id != theirs.id
        assert await balance_of(accounts, other_user_id) == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_oversized_key_rejected(self, ledger, user_id):
        with pytest.raises(ValidationError):
            await ledger.add_transaction(
                user_id,
                {"type": "income", "amount": 10, "category": "gift"},
                idempotency_key="x" * 129,
            )


class TestValidationAndOwnership:

    @pytest.mark.asyncio
    async def test_every_invalid_field_reported(self, ledger, user_id):
        with pytest.raises(ValidationError) as exc_info:
            await ledger.add_transaction(
                user_id,
                {"type": "transfer", "amount": -5, "category": "lottery", "mood": "ecstatic"},
            )

        errors = exc_info.value.errors
        assert {"type", "amount", "category", "mood"} <= set(errors)

    @pytest.mark.asyncio
    async def test_amount_rounding(self, ledger, user_id):
        entry = await ledger.add_transaction(
            user_id, {"type": "expense", "amount": 10.005, "category": "Food "}
        )
        assert entry.amount == Decimal("10.01")
        assert entry.category == "food"

        with pytest.raises(ValidationError) as exc_info:
            await ledger.add_transaction(
                user_id, {"type": "expense", "amount": "0.004", "category": "food"}
            )
        assert "amount" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_recurring_requires_interval(self, ledger, user_id):
        with pytest.raises(ValidationError) as exc_info:
            await ledger.add_transaction(
                user_id,
                {"type": "expense", "amount": 9, "category": "subscriptions", "isRecurring": True},
            )
        assert "recurringInterval" in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_error_keys_use_json_names(self, ledger, user_id):
        with pytest.raises(ValidationError) as exc_info:
            await ledger.add_transaction(
                user_id,
                {
                    "type": "expense",
                    "amount": 9,
                    "category": "food",
                    "payment_method": "cheque",
                    "isRecurring": True,
                    "recurringInterval": "yearly",
                },
            )
        assert {"paymentMethod", "recurringInterval"} <= set(exc_info.value.errors)
        assert "payment_method" not in exc_info.value.errors
        assert "recurring_interval" not in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_null_for_required_field_rejected(self, ledger, user_id):
        entry = await ledger.add_transaction(
            user_id, {"type": "expense", "amount": 9, "category": "food"}
        )
        with pytest.raises(ValidationError):
            await ledger.update_transaction(user_id, entry.id, {"category": None})

    @pytest.mark.asyncio
    async def test_operator_id_rejected(self, ledger, user_id):
        with pytest.raises(ValidationError):
            await ledger.get_transaction(user_id, {"$ne": None})
        with pytest.raises(ValidationError):
            await ledger.delete_transaction(user_id, {"$gt": ""})
        with pytest.raises(ValidationError):
            await ledger.update_transaction(user_id, "not-a-uuid", {"amount": 1})

    @pytest.mark.asyncio
    async def test_other_users_entry_is_invisible(self, ledger, accounts, user_id, other_user_id):
        entry = await ledger.add_transaction(
            user_id, {"type": "income", "amount": 30, "category": "gift"}
        )

        with pytest.raises(NotFoundError):
            await ledger.get_transaction(other_user_id, entry.id)
        with pytest.raises(NotFoundError):
            await ledger.update_transaction(other_user_id, entry.id, {"amount": 1})
        with pytest.raises(NotFoundError):
            await ledger.delete_transaction(other_user_id, entry.id)

        assert await balance_of(accounts, user_id) == Decimal("30.00")
        assert await balance_of(accounts, other_user_id) == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_body_cannot_choose_owner(self, ledger, user_id, other_user_id):
        entry = await ledger.add_transaction(
            user_id,
            {"type": "income", "amount": 5, "category": "gift", "userId": other_user_id},
        )
        assert entry.user_id == user_id


class TestListing:

    @pytest.mark.asyncio
    async def test_pagination_is_deterministic(self, ledger, user_id):
        for i in range(25):
            await ledger.add_transaction(
                user_id,
                {
                    "type": "expense",
                    "amount": 5,
                    "category": "food",
                    "description": f"Snack {i}",
                    "date": "2024-05-01T10:00:00Z",
                },
            )

        seen = []
        for page in (1, 2, 3):
            result = await ledger.list_transactions(user_id, {"page": page, "limit": 10})
            assert result.total == 25
            assert result.pages == 3
            seen.extend(item.id for item in result.items)

        assert len(seen) == 25
        assert len(set(seen)) == 25

        again = await ledger.list_transactions(user_id, {"page": 1, "limit": 10})
        assert [item.id for item in again.items] == seen[:10]

    @pytest.mark.asyncio
    async def test_type_filter_and_amount_sort(self, ledger, user_id):
        await ledger.add_transaction(user_id, {"type": "income", "amount": 50, "category": "gift"})
        await ledger.add_transaction(user_id, {"type": "expense", "amount": 20, "category": "food"})
        await ledger.add_transaction(user_id, {"type": "expense", "amount": 70, "category": "rent"})

        result = await ledger.list_transactions(user_id, {"type": "expense", "sort": "amount-high"})

        assert result.total == 2
        assert [item.amount for item in result.items] == [Decimal("70.00"), Decimal("20.00")]

    @pytest.mark.asyncio
    async def test_date_range_includes_whole_end_day(self, ledger, user_id):
        for moment in ("2024-01-01T00:00:00Z", "2024-01-31T23:59:59.500Z", "2024-02-01T00:00:00Z"):
            await ledger.add_transaction(
                user_id,
                {"type": "expense", "amount": 1, "category": "food", "date": moment},
            )

        result = await ledger.list_transactions(
            user_id, {"startDate": "2024-01-01", "endDate": "2024-01-31"}
        )

        assert result.total == 2

    @pytest.mark.asyncio
    async def test_search_is_literal_and_case_insensitive(self, ledger, user_id):
        await ledger.add_transaction(
            user_id, {"type": "expense", "amount": 3, "category": "food", "description": "100% juice"}
        )
        await ledger.add_transaction(
            user_id, {"type": "expense", "amount": 2, "category": "dining", "description": "Plain water"}
        )

        assert (await ledger.list_transactions(user_id, {"search": "%"})).total == 1
        assert (await ledger.list_transactions(user_id, {"search": "FOOD"})).total == 1
        assert (await ledger.list_transactions(user_id, {"search": "water"})).total == 1

    @pytest.mark.asyncio
    async def test_invalid_listing_params(self, ledger, user_id):
        with pytest.raises(ValidationError):
            await ledger.list_transactions(user_id, {"limit": 500})
        with pytest.raises(ValidationError):
            await ledger.list_transactions(user_id, {"sort": "random"})

    @pytest.mark.asyncio
    async def test_page_beyond_limit_is_rejected(self, ledger, user_id):
        with pytest.raises(ValidationError) as exc_info:
            await ledger.list_transactions(user_id, {"page": 10**20})
        assert "page" in exc_info.value.errors

        last = await ledger.list_transactions(user_id, {"page": 1_000_000})
        assert last.items == []
        assert last.total == 0
