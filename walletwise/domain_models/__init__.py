# ==============================================================================
# DOMAIN MODELS PACKAGE INITIALIZATION
# ==============================================================================

"""
Domain Models
=============

SQLAlchemy ORM models for database entities:
- User: Wallet holder and balance accumulator
- Transaction: Ledger entries and recurring templates
"""

from walletwise.domain_models.base import SQLBase, TimestampMixin
from walletwise.domain_models.user import User
from walletwise.domain_models.transaction import Transaction

__all__ = [
    "SQLBase",
    "TimestampMixin",
    "User",
    "Transaction",
]
