# ==============================================================================
# UNIT OF WORK PACKAGE INITIALIZATION
# ==============================================================================

"""
Unit of Work Pattern Implementation
===================================

Provides transactional consistency across repository operations:
- UnitOfWork: One atomic scope over ledger and wallet repositories
- run_in_unit_of_work: Time-bounded scope runner
"""

from walletwise.database.unit_of_work.uow import (
    UnitOfWork,
    run_in_unit_of_work,
    user_locks,
)

__all__ = [
    "UnitOfWork",
    "run_in_unit_of_work",
    "user_locks",
]
