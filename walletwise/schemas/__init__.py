# ==============================================================================
# SCHEMAS PACKAGE INITIALIZATION
# ==============================================================================

"""
Pydantic Schemas
================

Request/Response validation schemas for API endpoints:
- Base: Common schemas, pagination and error mapping
- Transaction: Ledger entry, listing and sweep schemas
- Account: Account, wallet and reconciliation schemas
"""

from walletwise.schemas.base import (
    BaseSchema,
    TimestampSchema,
    PaginatedResponse,
    APIResponse,
    HealthResponse,
    MoneyField,
    collect_field_errors,
    parse_model,
)
from walletwise.schemas.transaction import (
    TransactionCreate,
    TransactionUpdate,
    TransactionQuery,
    TransactionListItem,
    TransactionResponse,
    SweepResultResponse,
)
from walletwise.schemas.account import (
    AccountCreate,
    AccountResponse,
    AccountTokenResponse,
    WalletResponse,
    ReconcileResponse,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampSchema",
    "PaginatedResponse",
    "APIResponse",
    "HealthResponse",
    "MoneyField",
    "collect_field_errors",
    "parse_model",
    # Transaction
    "TransactionCreate",
    "TransactionUpdate",
    "TransactionQuery",
    "TransactionListItem",
    "TransactionResponse",
    "SweepResultResponse",
    # Account
    "AccountCreate",
    "AccountResponse",
    "AccountTokenResponse",
    "WalletResponse",
    "ReconcileResponse",
]
