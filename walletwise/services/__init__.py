# ==============================================================================
# SERVICES PACKAGE INITIALIZATION
# ==============================================================================

"""
Service Layer
=============

Business logic for the ledger:
- BaseService: Response mapping and atomic scopes
- LedgerService: Transactional coordinator for ledger mutations
- RecurrenceService: Materializes due recurring templates
- RecurrenceScheduler: Runs the recurrence sweep periodically
- AccountService: Accounts, balances and reconciliation
"""

from walletwise.services.base_service import BaseService
from walletwise.services.ledger_service import LedgerService
from walletwise.services.recurrence_service import (
    RecurrenceScheduler,
    RecurrenceService,
    SweepResult,
)
from walletwise.services.account_service import AccountService

__all__ = [
    "BaseService",
    "LedgerService",
    "RecurrenceService",
    "RecurrenceScheduler",
    "SweepResult",
    "AccountService",
]
