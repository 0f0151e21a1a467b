# ==============================================================================
# DATABASE FACTORY - Adapter Instantiation & Lifecycle Management
# ==============================================================================
# Factory Pattern for creating and managing database adapters
# Singleton caching for efficient resource utilization
# ==============================================================================

from __future__ import annotations

import logging
from typing import Dict, Optional

from walletwise.core.settings import settings, DatabaseType
from walletwise.core.constants import DatabaseConstants
from walletwise.core.exceptions import AppException, DatabaseError
from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter
from walletwise.database.adapters.mongodb_adapter import MongoDBAdapter
from walletwise.database.adapters.sql_adapter import SQLAlchemyAdapter

logger = logging.getLogger(__name__)


class DatabaseFactory:
    """
    Factory class for creating and managing database adapters.

    Implements the Factory Pattern with singleton caching so that the
    whole process shares one connection pool per backend.

    Class Attributes:
        _instances: Cache of initialized adapter instances

    Example:
        >>> # Initialize at application startup
        >>> await DatabaseFactory.initialize()
        >>>
        >>> # Get adapter for database operations
        >>> adapter = DatabaseFactory.get_adapter()
        >>>
        >>> # Shutdown at application exit
        >>> await DatabaseFactory.shutdown()
    """

    _instances: Dict[DatabaseType, BaseDatabaseAdapter] = {}

    @classmethod
    def create_adapter(
        cls,
        db_type: Optional[DatabaseType] = None,
        **kwargs,
    ) -> BaseDatabaseAdapter:
        """
        Create and return appropriate database adapter.

        Returns cached instance if available, otherwise creates new.

        Args:
            db_type: Database type (defaults to settings.DATABASE_TYPE)
            **kwargs: Additional adapter configuration
                - database_url: Custom SQL connection URL
                - connection_url: MongoDB connection URL
                - database_name: MongoDB database name

        Raises:
            ValueError: If database type is not supported
        """
        db_type = db_type or settings.DATABASE_TYPE

        if db_type in cls._instances:
            return cls._instances[db_type]

        adapter: BaseDatabaseAdapter

        if db_type == DatabaseType.SQLITE:
            adapter = SQLAlchemyAdapter(
                database_url=kwargs.get("database_url") or settings.sqlite_async_url
            )
            cls._register_models(adapter)
            logger.info("Created SQLite adapter")

        elif db_type == DatabaseType.POSTGRESQL:
            adapter = SQLAlchemyAdapter(
                database_url=kwargs.get("database_url") or settings.postgres_url
            )
            cls._register_models(adapter)
            logger.info("Created PostgreSQL adapter")

        elif db_type == DatabaseType.MONGODB:
            adapter = MongoDBAdapter(
                connection_url=kwargs.get("connection_url"),
                database_name=kwargs.get("database_name"),
            )
            logger.info("Created MongoDB adapter")

        else:
            raise ValueError(f"Unsupported database type: {db_type}")

        cls._instances[db_type] = adapter
        return adapter

    @staticmethod
    def _register_models(adapter: SQLAlchemyAdapter) -> None:
        """Map collection names onto the ORM models."""
        from walletwise.domain_models.transaction import Transaction
        from walletwise.domain_models.user import User

        adapter.register_model(DatabaseConstants.USERS_COLLECTION, User)
        adapter.register_model(DatabaseConstants.TRANSACTIONS_COLLECTION, Transaction)

    @classmethod
    async def initialize(
        cls,
        db_type: Optional[DatabaseType] = None,
        **kwargs,
    ) -> BaseDatabaseAdapter:
        """
        Initialize database connection.

        Should be called at application startup.

        Raises:
            DatabaseError: If connection fails
        """
        db_type = db_type or settings.DATABASE_TYPE
        adapter = cls.create_adapter(db_type, **kwargs)

        try:
            await adapter.connect()
        except AppException as e:
            cls._instances.pop(db_type, None)
            logger.error(f"Database initialization failed: {e.message}")
            raise DatabaseError(f"Failed to initialize database: {e.message}")

        logger.info(f"Database initialized: {db_type.value}")
        return adapter

    @classmethod
    async def shutdown(cls) -> None:
        """
        Close all database connections.

        Releases all resources and clears adapter cache.
        """
        for db_type, adapter in cls._instances.items():
            try:
                await adapter.disconnect()
                logger.info(f"Disconnected: {db_type.value}")
            except Exception as e:
                logger.error(f"Error disconnecting {db_type.value}: {e}")

        cls._instances.clear()
        logger.info("All database connections closed")

    @classmethod
    def get_adapter(
        cls,
        db_type: Optional[DatabaseType] = None,
    ) -> BaseDatabaseAdapter:
        """
        Get existing adapter instance.

        Raises:
            RuntimeError: If adapter not initialized
        """
        db_type = db_type or settings.DATABASE_TYPE

        if db_type not in cls._instances:
            raise RuntimeError(
                f"Database adapter for {db_type} not initialized. "
                f"Call DatabaseFactory.initialize() first."
            )

        return cls._instances[db_type]

    @classmethod
    def is_initialized(
        cls,
        db_type: Optional[DatabaseType] = None,
    ) -> bool:
        db_type = db_type or settings.DATABASE_TYPE
        return db_type in cls._instances

    @classmethod
    async def health_check(
        cls,
        db_type: Optional[DatabaseType] = None,
    ) -> bool:
        """
        Check database health.

        Returns:
            True if database is healthy
        """
        if not cls.is_initialized(db_type):
            return False
        return await cls.get_adapter(db_type).health_check()

    @classmethod
    def reset(cls) -> None:
        """
        Reset factory state.

        Clears adapter cache without disconnecting.
        Primarily for testing purposes.
        """
        cls._instances.clear()
