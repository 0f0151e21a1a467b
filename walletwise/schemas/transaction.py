# ==============================================================================
# TRANSACTION SCHEMAS - Ledger Entries
# ==============================================================================
# Request/Response schemas for income and expense records
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from pydantic import Field, ValidationInfo, field_validator

from walletwise.core.constants import (
    APIConstants,
    LedgerConstants,
    Mood,
    PaymentMethod,
    RecurringInterval,
    TransactionSort,
    TransactionType,
    TypeFilter,
)
from walletwise.core.settings import get_settings
from walletwise.schemas.base import BaseSchema, MoneyField, TimestampSchema
from walletwise.utils.helpers import parse_date_bound, quantize_money, to_utc, utc_now


# ==============================================================================
# FIELD NORMALIZERS
# ==============================================================================

def normalize_amount(value: Any) -> Decimal:
    """
    Finite, positive, bounded, rounded half-up to two places.

    Raises:
        ValueError: With a message naming the violated rule
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("Amount must be a number")
    try:
        amount = quantize_money(value)
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError("Amount must be a number")
    if not amount.is_finite():
        raise ValueError("Amount must be a finite number")
    if amount <= 0:
        raise ValueError("Amount must be greater than zero")
    if amount > LedgerConstants.MAX_AMOUNT:
        raise ValueError("Amount exceeds maximum limit")
    return amount


def normalize_category(value: Any) -> str:
    """Lowercase, trim and check against the configured categories."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("Category is required")
    category = value.strip().lower()
    allowed = get_settings().LEDGER_CATEGORIES
    if category not in allowed:
        raise ValueError(f"Category must be one of: {', '.join(allowed)}")
    return category


def normalize_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class TransactionCreate(BaseSchema):
    """
    Schema for adding a transaction.

    Owner, id and timestamps are never taken from the body.
    """

    type: TransactionType = Field(
        ...,
        description="income or expense",
    )
    amount: Decimal = Field(
        ...,
        description="Positive amount, rounded to two places",
    )
    category: str = Field(
        ...,
        description="Category from the configured set (case-insensitive)",
    )
    description: Optional[str] = Field(
        None,
        max_length=LedgerConstants.MAX_DESCRIPTION_LENGTH,
        description="Free text note",
    )
    payment_method: PaymentMethod = Field(
        PaymentMethod.CASH,
        description="cash, card, upi or online",
    )
    mood: Mood = Field(
        Mood.NEUTRAL,
        description="Spending mood tag",
    )
    date: Optional[datetime] = Field(
        None,
        description="When the money moved (defaults to now)",
    )
    is_recurring: bool = Field(
        False,
        description="Repeat this entry on a schedule",
    )
    recurring_interval: Optional[RecurringInterval] = Field(
        None,
        validate_default=True,
        description="daily, weekly or monthly; required when recurring",
    )

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> Decimal:
        return normalize_amount(v)

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v: Any) -> str:
        return normalize_category(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return normalize_description(v)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v) if v is not None else None

    @field_validator("recurring_interval")
    @classmethod
    def validate_interval(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        if not info.data.get("is_recurring"):
            return None
        if v is None:
            raise ValueError("Recurring interval is required for recurring transactions")
        return v

    def to_fields(self) -> Dict[str, Any]:
        """Column values for a new ledger row."""
        return {
            "type": self.type,
            "amount": self.amount,
            "category": self.category,
            "description": self.description,
            "payment_method": self.payment_method,
            "mood": self.mood,
            "date": self.date or utc_now(),
            "is_recurring": self.is_recurring,
            "recurring_interval": self.recurring_interval,
        }


class TransactionUpdate(BaseSchema):
    """
    Schema for changing a transaction.

    Only supplied fields change. Sending ``null`` for a field that every
    transaction must have is an error rather than a reset.
    """

    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = None
    category: Optional[str] = None
    description: Optional[str] = Field(
        None,
        max_length=LedgerConstants.MAX_DESCRIPTION_LENGTH,
    )
    payment_method: Optional[PaymentMethod] = None
    mood: Optional[Mood] = None
    date: Optional[datetime] = None
    is_recurring: Optional[bool] = None
    recurring_interval: Optional[RecurringInterval] = None

    @field_validator(
        "type", "category", "payment_method", "mood", "date", "is_recurring",
        mode="before",
    )
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("Field cannot be null")
        return v

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v: Any) -> Decimal:
        return normalize_amount(v)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        return normalize_category(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return normalize_description(v)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: datetime) -> datetime:
        return to_utc(v)

    def changes(self) -> Dict[str, Any]:
        """Supplied fields only, keyed by column name."""
        return self.model_dump(exclude_unset=True)


class TransactionQuery(BaseSchema):
    """Listing parameters."""

    page: int = Field(1, ge=1, le=APIConstants.MAX_PAGE)
    limit: int = Field(
        APIConstants.DEFAULT_PAGE_SIZE,
        ge=APIConstants.MIN_PAGE_SIZE,
        le=APIConstants.MAX_PAGE_SIZE,
    )
    search: Optional[str] = Field(None, max_length=100)
    type: TypeFilter = TypeFilter.ALL
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    sort: TransactionSort = TransactionSort.NEWEST

    @field_validator("search")
    @classmethod
    def validate_search(cls, v: Optional[str]) -> Optional[str]:
        return normalize_description(v)

    @field_validator("start_date", mode="before")
    @classmethod
    def parse_start(cls, v: Any) -> Optional[datetime]:
        if isinstance(v, datetime):
            return to_utc(v)
        return parse_date_bound(v)

    @field_validator("end_date", mode="before")
    @classmethod
    def parse_end(cls, v: Any) -> Optional[datetime]:
        if isinstance(v, datetime):
            return to_utc(v)
        return parse_date_bound(v, end_of_day=True)


# ==============================================================================
# RESPONSES
# ==============================================================================

class TransactionListItem(BaseSchema):
    """Projection returned by listings."""

    id: str
    type: TransactionType
    amount: MoneyField
    category: str
    description: Optional[str] = None
    date: datetime
    payment_method: PaymentMethod
    mood: Mood
    is_recurring: bool
    recurring_interval: Optional[RecurringInterval] = None
    next_execution_date: Optional[datetime] = None


class TransactionResponse(TransactionListItem, TimestampSchema):
    """Full transaction record."""

    user_id: str


class SweepResultResponse(BaseSchema):
    """Outcome of one recurrence sweep."""

    materialized: int = 0
    skipped: int = 0
    failed: int = 0
