# ==============================================================================
# WALLETWISE PACKAGE INITIALIZATION
# ==============================================================================
# Personal finance ledger with an atomically maintained wallet balance
# Supports: SQLite, PostgreSQL, MongoDB (replica set)
# Architecture: Repository Pattern, Unit of Work, Factory Pattern
# ==============================================================================

"""
WalletWise Ledger
=================

A FastAPI backend that records income and expense transactions and keeps
each user's wallet balance equal to total income minus total expense.

Features:
---------
- Ledger writes and balance adjustments commit in one atomic scope
- Per-user serialization with a bounded commit time
- Recurring templates materialized one cycle per sweep
- Filtering, search, sorting and pagination of the ledger
- Balance reconciliation from the ledger
- SQLite, PostgreSQL and MongoDB backends behind one adapter interface

Usage:
------
    from walletwise.main import app

    # Run with uvicorn
    uvicorn walletwise.main:app --reload
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
