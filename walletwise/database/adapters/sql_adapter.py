# ==============================================================================
# SQL ADAPTER - SQLAlchemy Async (SQLite via aiosqlite, PostgreSQL via asyncpg)
# ==============================================================================
# Relational adapter; one class serves both dialects
# ==============================================================================

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Optional, Type
from uuid import UUID

from sqlalchemy import delete, func, or_, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from walletwise.core.settings import settings, DatabaseType
from walletwise.core.exceptions import (
    AppException,
    ConflictError,
    DatabaseConnectionError,
    DatabaseError,
)
from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter, Record
from walletwise.database.query import DESCENDING, QuerySpec
from walletwise.domain_models.base import SQLBase

logger = logging.getLogger(__name__)

# SQLSTATEs for serialization failure and deadlock
_RETRYABLE_SQLSTATES = {"40001", "40P01"}
_RETRYABLE_MESSAGES = (
    "database is locked",
    "could not serialize access",
    "deadlock detected",
)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLAlchemyAdapter(BaseDatabaseAdapter):
    """
    SQL database adapter using SQLAlchemy async.

    SQLite is used for development and tests, PostgreSQL in production.
    Tables are mapped by the ORM models registered under collection names.

    Features:
        - Async operations on aiosqlite or asyncpg
        - Automatic table creation on connect
        - Row locks (``SELECT ... FOR UPDATE``) where the dialect has them
        - Single-statement ``UPDATE ... SET x = x + :delta`` increments
        - Driver errors translated to ledger exceptions

    Attributes:
        _database_url: Async connection string
        _engine: SQLAlchemy async engine
        _session_factory: Session factory for creating sessions
        _model_registry: Mapping of collection names to model classes

    Example:
        >>> adapter = SQLAlchemyAdapter("sqlite+aiosqlite:///./dev.db")
        >>> adapter.register_model("users", User)
        >>> await adapter.connect()
        >>> user = await adapter.create("users", {"full_name": "Asha"})
    """

    def __init__(self, database_url: Optional[str] = None) -> None:
        """
        Initialize SQL adapter.

        Args:
            database_url: Connection URL (defaults to settings.database_url,
                or the SQLite URL when MongoDB is configured)
        """
        if database_url is None:
            if settings.DATABASE_TYPE == DatabaseType.MONGODB:
                database_url = settings.sqlite_async_url
            else:
                database_url = settings.database_url
        if database_url.startswith("sqlite://"):
            database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://")

        self._database_url = database_url
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._model_registry: Dict[str, Type[SQLBase]] = {}

    @property
    def is_sqlite(self) -> bool:
        return self._database_url.startswith("sqlite")

    @property
    def supports_transactions(self) -> bool:
        return True

    def is_valid_id(self, value: Any) -> bool:
        if not isinstance(value, str):
            return False
        try:
            UUID(value)
        except ValueError:
            return False
        return True

    # ==========================================================================
    # MODEL REGISTRY
    # ==========================================================================

    def register_model(
        self,
        name: str,
        model: Type[SQLBase],
    ) -> None:
        """
        Register a SQLAlchemy model for table mapping.

        Args:
            name: Collection/table identifier
            model: SQLAlchemy model class
        """
        self._model_registry[name] = model
        logger.debug(f"Registered model '{name}' -> {model.__name__}")

    def _get_model(self, collection: str) -> Type[SQLBase]:
        if collection not in self._model_registry:
            raise ValueError(
                f"Model '{collection}' not registered. "
                f"Available models: {list(self._model_registry.keys())}"
            )
        return self._model_registry[collection]

    # ==========================================================================
    # LIFECYCLE METHODS
    # ==========================================================================

    async def connect(self) -> None:
        """
        Initialize database engine and create tables.

        Raises:
            DatabaseConnectionError: If the engine cannot reach the database
        """
        try:
            if self.is_sqlite:
                self._engine = create_async_engine(
                    self._database_url,
                    echo=False,
                    connect_args={
                        "check_same_thread": False,
                        "timeout": settings.SQLITE_BUSY_TIMEOUT,
                    },
                )
            else:
                self._engine = create_async_engine(
                    self._database_url,
                    echo=False,
                    pool_size=settings.DB_POOL_SIZE,
                    max_overflow=settings.DB_MAX_OVERFLOW,
                    pool_timeout=settings.DB_POOL_TIMEOUT,
                    pool_recycle=settings.DB_POOL_RECYCLE,
                    pool_pre_ping=True,
                )

            self._session_factory = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )

            async with self._engine.begin() as conn:
                await conn.run_sync(SQLBase.metadata.create_all)

            logger.info(f"SQL adapter connected ({self._engine.dialect.name})")

        except SQLAlchemyError as e:
            logger.error(f"Failed to connect to SQL database: {e}")
            raise DatabaseConnectionError(f"SQL connection failed: {e}")

    async def disconnect(self) -> None:
        """Dispose the engine and its pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("SQL adapter disconnected")

    async def health_check(self) -> bool:
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except (AppException, RuntimeError) as e:
            logger.warning(f"SQL health check failed: {e}")
            return False

    # ==========================================================================
    # SESSION MANAGEMENT
    # ==========================================================================

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Provide transactional session scope.

        Commits on successful exit, rolls back on any exception including
        cancellation. SQLAlchemy errors leave as ledger exceptions.

        Raises:
            RuntimeError: If database not connected
        """
        if self._session_factory is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        session: AsyncSession = self._session_factory()
        try:
            yield session
            await session.commit()
        except BaseException as exc:
            try:
                await session.rollback()
            except SQLAlchemyError as rollback_error:
                logger.warning(f"Rollback failed: {rollback_error}")
            translated = self._translate_error(exc)
            if translated is exc:
                raise
            raise translated from exc
        finally:
            await session.close()

    @asynccontextmanager
    async def _scope(self, session: Optional[AsyncSession]) -> AsyncIterator[AsyncSession]:
        """Join the caller's scope, or open a short one."""
        if session is not None:
            yield session
        else:
            async with self.session() as own:
                yield own

    @staticmethod
    def _translate_error(exc: BaseException) -> BaseException:
        if not isinstance(exc, SQLAlchemyError):
            return exc
        if isinstance(exc, IntegrityError):
            return ConflictError(
                "Write rejected by a uniqueness constraint",
                details={"reason": "integrity"},
            )
        if isinstance(exc, DBAPIError):
            orig = exc.orig
            sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
            message = str(orig).lower()
            if sqlstate in _RETRYABLE_SQLSTATES or any(
                marker in message for marker in _RETRYABLE_MESSAGES
            ):
                return ConflictError(details={"reason": message[:200]})
        logger.error(f"SQL operation failed: {exc}")
        return DatabaseError(details={"reason": type(exc).__name__})

    # ==========================================================================
    # QUERY BUILDING
    # ==========================================================================

    def _conditions(self, model: Type[SQLBase], filters: Dict[str, Any]) -> List[Any]:
        conditions = []
        for key, value in filters.items():
            if not hasattr(model, key):
                raise ValueError(f"Unknown field '{key}' for {model.__name__}")
            if isinstance(value, (dict, list, set, tuple)):
                raise ValueError(f"Filter '{key}' must be a scalar value")
            column = getattr(model, key)
            conditions.append(column.is_(None) if value is None else column == value)
        return conditions

    def _where(self, model: Type[SQLBase], query: QuerySpec) -> List[Any]:
        conditions = self._conditions(model, query.filters)

        for key, (lower, upper) in query.ranges.items():
            column = getattr(model, key)
            if lower is not None:
                conditions.append(column >= lower)
            if upper is not None:
                conditions.append(column <= upper)

        if query.search_term and query.search_fields:
            pattern = f"%{_escape_like(query.search_term)}%"
            conditions.append(
                or_(*[
                    getattr(model, name).ilike(pattern, escape="\\")
                    for name in query.search_fields
                ])
            )

        if query.exclude_ids:
            conditions.append(model.id.notin_(list(query.exclude_ids)))
        return conditions

    @staticmethod
    def _columns(model: Type[SQLBase]) -> List[Any]:
        return list(model.__table__.columns)

    # ==========================================================================
    # CRUD OPERATIONS
    # ==========================================================================

    async def create(
        self,
        collection: str,
        data: Dict[str, Any],
        *,
        session: Optional[AsyncSession] = None,
    ) -> Record:
        model = self._get_model(collection)

        async with self._scope(session) as s:
            instance = model(**data)
            s.add(instance)
            await s.flush()
            return instance.to_dict()

    async def get_by_id(
        self,
        collection: str,
        id: str,
        *,
        session: Optional[AsyncSession] = None,
    ) -> Optional[Record]:
        return await self.find_one(collection, {"id": id}, session=session)

    async def find_one(
        self,
        collection: str,
        filters: Dict[str, Any],
        *,
        session: Optional[AsyncSession] = None,
        for_update: bool = False,
    ) -> Optional[Record]:
        model = self._get_model(collection)
        stmt = select(*self._columns(model)).where(*self._conditions(model, filters)).limit(1)
        if for_update:
            stmt = stmt.with_for_update()

        async with self._scope(session) as s:
            row = (await s.execute(stmt)).first()
            return dict(row._mapping) if row is not None else None

    async def find(
        self,
        collection: str,
        query: QuerySpec,
        *,
        session: Optional[AsyncSession] = None,
    ) -> List[Record]:
        model = self._get_model(collection)
        stmt = select(*self._columns(model)).where(*self._where(model, query))

        for name, direction in query.sort:
            column = getattr(model, name)
            stmt = stmt.order_by(column.desc() if direction == DESCENDING else column.asc())

        if query.skip:
            stmt = stmt.offset(query.skip)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return [dict(row._mapping) for row in result]

    async def count(
        self,
        collection: str,
        query: QuerySpec,
        *,
        session: Optional[AsyncSession] = None,
    ) -> int:
        model = self._get_model(collection)
        stmt = select(func.count()).select_from(model).where(*self._where(model, query))

        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return result.scalar() or 0

    async def update_one(
        self,
        collection: str,
        filters: Dict[str, Any],
        data: Dict[str, Any],
        *,
        session: Optional[AsyncSession] = None,
    ) -> Optional[Record]:
        model = self._get_model(collection)
        stmt = (
            update(model)
            .where(*self._conditions(model, filters))
            .values(**data)
            .returning(*self._columns(model))
            .execution_options(synchronize_session=False)
        )

        async with self._scope(session) as s:
            row = (await s.execute(stmt)).first()
            return dict(row._mapping) if row is not None else None

    async def delete_one(
        self,
        collection: str,
        filters: Dict[str, Any],
        *,
        session: Optional[AsyncSession] = None,
    ) -> Optional[Record]:
        model = self._get_model(collection)
        stmt = (
            delete(model)
            .where(*self._conditions(model, filters))
            .returning(*self._columns(model))
            .execution_options(synchronize_session=False)
        )

        async with self._scope(session) as s:
            row = (await s.execute(stmt)).first()
            return dict(row._mapping) if row is not None else None

    # ==========================================================================
    # ATOMIC ARITHMETIC
    # ==========================================================================

    async def increment(
        self,
        collection: str,
        filters: Dict[str, Any],
        field: str,
        amount: Decimal,
        *,
        session: Optional[AsyncSession] = None,
    ) -> Optional[Record]:
        model = self._get_model(collection)
        column = getattr(model, field)
        return await self.update_one(
            collection,
            filters,
            {field: column + amount},
            session=session,
        )

    async def sum_by(
        self,
        collection: str,
        filters: Dict[str, Any],
        field: str,
        group_by: str,
        *,
        session: Optional[AsyncSession] = None,
    ) -> Dict[Any, Decimal]:
        model = self._get_model(collection)
        group_column = getattr(model, group_by)
        stmt = (
            select(group_column, func.sum(getattr(model, field)))
            .where(*self._conditions(model, filters))
            .group_by(group_column)
        )

        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return {group: total or Decimal("0.00") for group, total in result}
