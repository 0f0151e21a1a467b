# ==============================================================================
# BASE DATABASE ADAPTER - Abstract Interface
# ==============================================================================
# Defines the contract for all database adapters
# Ensures consistent API across SQLite, PostgreSQL, MongoDB
# ==============================================================================

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import (
    Any,
    AsyncIterator,
    Dict,
    List,
    Optional,
)

from walletwise.database.query import QuerySpec

Record = Dict[str, Any]


class BaseDatabaseAdapter(ABC):
    """
    Abstract Base Class for Database Adapters.

    Provides a unified interface for ledger storage across different
    database backends. Records cross this boundary as plain dicts with
    string ``id``, ``Decimal`` money and aware UTC datetimes.

    Every data method accepts an optional ``session`` keyword. When given,
    the call joins that atomic scope; otherwise it runs in its own
    short scope.

    Design Pattern:
        Implements the Adapter Pattern to provide a uniform interface
        for heterogeneous database systems.

    Example:
        >>> adapter = SQLAlchemyAdapter()
        >>> await adapter.connect()
        >>> async with adapter.session() as session:
        ...     user = await adapter.create("users", {}, session=session)
        ...     await adapter.increment(
        ...         "users", {"id": user["id"]}, "wallet_balance", Decimal("5"),
        ...         session=session,
        ...     )
        >>> await adapter.disconnect()
    """

    # ==========================================================================
    # LIFECYCLE METHODS
    # ==========================================================================

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish database connection.

        Initializes the engine/client and makes sure tables or indexes exist.

        Raises:
            DatabaseConnectionError: If connection cannot be established
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """Close database connection and release the pool."""

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            True if connection is healthy, False otherwise
        """

    @property
    @abstractmethod
    def supports_transactions(self) -> bool:
        """Whether ``session()`` gives all-or-nothing multi-record commits."""

    @abstractmethod
    def is_valid_id(self, value: Any) -> bool:
        """Whether ``value`` is a well-formed identifier for this backend."""

    # ==========================================================================
    # SESSION MANAGEMENT
    # ==========================================================================

    @abstractmethod
    @asynccontextmanager
    async def session(self) -> AsyncIterator[Any]:
        """
        Provide a transactional session scope.

        Changes are committed on successful exit or rolled back on
        exception. Driver errors raised inside the scope are translated
        to ``ConflictError``, ``AtomicityUnsupportedError`` or
        ``DatabaseError``.

        Yields:
            Session object appropriate for the database type
        """
        yield None

    # ==========================================================================
    # CRUD OPERATIONS
    # ==========================================================================

    @abstractmethod
    async def create(
        self,
        collection: str,
        data: Dict[str, Any],
        *,
        session: Any = None,
    ) -> Record:
        """
        Create a new record.

        Returns:
            Created record with generated ID
        """

    @abstractmethod
    async def get_by_id(
        self,
        collection: str,
        id: str,
        *,
        session: Any = None,
    ) -> Optional[Record]:
        """Retrieve a record by its primary identifier."""

    @abstractmethod
    async def find_one(
        self,
        collection: str,
        filters: Dict[str, Any],
        *,
        session: Any = None,
        for_update: bool = False,
    ) -> Optional[Record]:
        """
        Find a single record matching exact-match filters.

        Args:
            for_update: Lock the row for the rest of the scope where the
                backend supports row locks
        """

    @abstractmethod
    async def find(
        self,
        collection: str,
        query: QuerySpec,
        *,
        session: Any = None,
    ) -> List[Record]:
        """Retrieve records described by a ``QuerySpec``."""

    @abstractmethod
    async def count(
        self,
        collection: str,
        query: QuerySpec,
        *,
        session: Any = None,
    ) -> int:
        """Count records matching the query's filters, ranges and search."""

    @abstractmethod
    async def update_one(
        self,
        collection: str,
        filters: Dict[str, Any],
        data: Dict[str, Any],
        *,
        session: Any = None,
    ) -> Optional[Record]:
        """
        Update the record matching ``filters``.

        Extra filter fields turn this into a compare-and-set.

        Returns:
            Updated record, None when nothing matched
        """

    @abstractmethod
    async def delete_one(
        self,
        collection: str,
        filters: Dict[str, Any],
        *,
        session: Any = None,
    ) -> Optional[Record]:
        """
        Delete the record matching ``filters``.

        Returns:
            The deleted record, None when nothing matched
        """

    # ==========================================================================
    # ATOMIC ARITHMETIC
    # ==========================================================================

    @abstractmethod
    async def increment(
        self,
        collection: str,
        filters: Dict[str, Any],
        field: str,
        amount: Decimal,
        *,
        session: Any = None,
    ) -> Optional[Record]:
        """
        Add ``amount`` to a numeric field in one server-side step.

        Returns:
            Updated record, None when nothing matched
        """

    @abstractmethod
    async def sum_by(
        self,
        collection: str,
        filters: Dict[str, Any],
        field: str,
        group_by: str,
        *,
        session: Any = None,
    ) -> Dict[Any, Decimal]:
        """
        Sum ``field`` over matching records, grouped by ``group_by``.

        Returns:
            Mapping of group value to total
        """
