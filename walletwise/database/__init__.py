# ==============================================================================
# DATABASE PACKAGE INITIALIZATION
# ==============================================================================
# Database Abstraction Layer with multi-database support
# ==============================================================================

"""
Database Module
===============

Provides a unified database abstraction layer supporting:
- SQLite (development/testing)
- PostgreSQL (production)
- MongoDB (replica set)

Key Components:
- Adapters: Database-specific implementations
- Factory: Dynamic adapter instantiation
- Repositories: Ledger and wallet data access
- Unit of Work: Atomic ledger scopes
"""

from walletwise.database.factory import DatabaseFactory
from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter
from walletwise.database.query import QuerySpec

__all__ = [
    "DatabaseFactory",
    "BaseDatabaseAdapter",
    "QuerySpec",
]
