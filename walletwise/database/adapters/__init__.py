# ==============================================================================
# DATABASE ADAPTERS PACKAGE
# ==============================================================================

"""
Database Adapters
=================

Provides unified interface implementations for different databases:
- BaseDatabaseAdapter: Abstract interface definition
- SQLAlchemyAdapter: SQLite (aiosqlite) and PostgreSQL (asyncpg)
- MongoDBAdapter: MongoDB using Motor async driver
"""

from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter
from walletwise.database.adapters.sql_adapter import SQLAlchemyAdapter
from walletwise.database.adapters.mongodb_adapter import MongoDBAdapter

__all__ = [
    "BaseDatabaseAdapter",
    "SQLAlchemyAdapter",
    "MongoDBAdapter",
]
