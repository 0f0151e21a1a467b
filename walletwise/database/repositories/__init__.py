# ==============================================================================
# REPOSITORIES PACKAGE INITIALIZATION
# ==============================================================================

"""
Repository Pattern Implementation
=================================

Provides data access abstraction through the Repository Pattern:
- BaseRepository: Session-aware collection access
- TransactionRepository: Ledger store
- WalletRepository: Balance accumulator
"""

from walletwise.database.repositories.base_repository import BaseRepository
from walletwise.database.repositories.transaction_repository import TransactionRepository
from walletwise.database.repositories.wallet_repository import WalletRepository

__all__ = [
    "BaseRepository",
    "TransactionRepository",
    "WalletRepository",
]
