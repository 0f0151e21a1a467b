# ==============================================================================
# APPLICATION CONSTANTS - Ledger Vocabulary
# ==============================================================================
# Immutable constants used throughout the application
# Enumerations shared by schemas, models and services live here
# ==============================================================================

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Final


# ==============================================================================
# API CONSTANTS
# ==============================================================================

class APIConstants:
    """API-related constants."""

    # Pagination defaults
    DEFAULT_PAGE_SIZE: Final[int] = 10
    MAX_PAGE_SIZE: Final[int] = 100
    MIN_PAGE_SIZE: Final[int] = 1
    MAX_PAGE: Final[int] = 1_000_000

    # Request headers
    REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
    RESPONSE_TIME_HEADER: Final[str] = "X-Response-Time"
    IDEMPOTENCY_KEY_HEADER: Final[str] = "Idempotency-Key"


# ==============================================================================
# DATABASE CONSTANTS
# ==============================================================================

class DatabaseConstants:
    """Database-related constants."""

    # Collection/Table names
    USERS_COLLECTION: Final[str] = "users"
    TRANSACTIONS_COLLECTION: Final[str] = "transactions"

    # Wallet field on the user record
    WALLET_BALANCE_FIELD: Final[str] = "wallet_balance"


# ==============================================================================
# SECURITY CONSTANTS
# ==============================================================================

class SecurityConstants:
    """Security-related constants."""

    TOKEN_TYPE_BEARER: Final[str] = "bearer"


# ==============================================================================
# LEDGER CONSTANTS
# ==============================================================================

class LedgerConstants:
    """Money and text limits for ledger entries."""

    AMOUNT_PLACES: Final[Decimal] = Decimal("0.01")
    MAX_AMOUNT: Final[Decimal] = Decimal("1000000000")
    MAX_DESCRIPTION_LENGTH: Final[int] = 500
    MAX_IDEMPOTENCY_KEY_LENGTH: Final[int] = 128


class TransactionType(str, Enum):
    """Direction of a ledger entry; decides the balance sign."""
    INCOME = "income"
    EXPENSE = "expense"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    ONLINE = "online"


class Mood(str, Enum):
    HAPPY = "happy"
    STRESSED = "stressed"
    BORED = "bored"
    SAD = "sad"
    CALM = "calm"
    NEUTRAL = "neutral"


class RecurringInterval(str, Enum):
    """Cadence of a recurring template."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TransactionSort(str, Enum):
    """
    Listing orders.

    Every order breaks ties on id so that paging is deterministic.
    """
    NEWEST = "newest"
    OLDEST = "oldest"
    AMOUNT_HIGH = "amount-high"
    AMOUNT_LOW = "amount-low"


class TypeFilter(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    ALL = "all"


# ==============================================================================
# ERROR MESSAGES
# ==============================================================================

class ErrorMessages:
    """Standardized error messages."""

    TRANSACTION_NOT_FOUND: Final[str] = "Transaction not found"
    ACCOUNT_NOT_FOUND: Final[str] = "Account not found"
    INVALID_TRANSACTION_ID: Final[str] = "Invalid transaction ID format"
    INVALID_TOKEN: Final[str] = "Invalid or expired token"
    DATABASE_ERROR: Final[str] = "Database operation failed"
    VALIDATION_ERROR: Final[str] = "Validation error"
    INTERNAL_ERROR: Final[str] = "An unexpected error occurred"


# ==============================================================================
# SUCCESS MESSAGES
# ==============================================================================

class SuccessMessages:
    """Standardized success messages."""

    ACCOUNT_CREATED: Final[str] = "Account created successfully"
    BALANCE_RECONCILED: Final[str] = "Wallet balance reconciled"
    TRANSACTION_CREATED: Final[str] = "Transaction added successfully"
    TRANSACTION_UPDATED: Final[str] = "Transaction updated successfully"
    TRANSACTION_DELETED: Final[str] = "Transaction deleted successfully"
    SWEEP_COMPLETED: Final[str] = "Recurring transactions processed"
