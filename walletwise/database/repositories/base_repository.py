# ==============================================================================
# BASE REPOSITORY - Generic Data Access Abstraction
# ==============================================================================
# Repository Pattern implementation for consistent data access
# Works with both SQL and NoSQL database adapters
# ==============================================================================

from __future__ import annotations

from typing import Any, Dict, List, Optional

from walletwise.core.exceptions import ValidationError
from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter, Record
from walletwise.database.query import QuerySpec


class BaseRepository:
    """
    Base repository providing session-aware access to one collection.

    Implements the Repository Pattern for data access abstraction,
    decoupling business logic from database implementation details.
    A repository is bound to at most one atomic scope: every call made
    through it joins that scope.

    Attributes:
        collection_name: Table/collection identifier (set by subclasses)
        _adapter: Database adapter for database operations
        _session: Backend session of the enclosing unit of work, if any

    Example:
        >>> class TransactionRepository(BaseRepository):
        ...     collection_name = "transactions"
        ...
        >>> repo = TransactionRepository(adapter, session=uow_session)
        >>> record = await repo.get_by_id(some_id)
    """

    collection_name: str = ""

    def __init__(
        self,
        adapter: BaseDatabaseAdapter,
        session: Any = None,
    ) -> None:
        """
        Initialize repository.

        Args:
            adapter: Database adapter instance
            session: Session of an open atomic scope (None for standalone reads)
        """
        self._adapter = adapter
        self._session = session

    # ==========================================================================
    # IDENTIFIERS
    # ==========================================================================

    def validate_id(self, value: Any, message: str = "Invalid ID format") -> str:
        """
        Check an externally supplied identifier before it reaches a query.

        Raises:
            ValidationError: If the value is not a well-formed id string
        """
        if not self._adapter.is_valid_id(value):
            raise ValidationError(message=message, errors={"id": message})
        return value

    def _to_entity(self, data: Optional[Record]) -> Optional[Record]:
        """Hook for subclasses that reshape stored records."""
        return data

    # ==========================================================================
    # CRUD OPERATIONS
    # ==========================================================================

    async def insert(self, data: Dict[str, Any]) -> Record:
        result = await self._adapter.create(
            self.collection_name, data, session=self._session
        )
        return self._to_entity(result)

    async def get_by_id(self, id: str) -> Optional[Record]:
        result = await self._adapter.get_by_id(
            self.collection_name, id, session=self._session
        )
        return self._to_entity(result)

    async def find_one(
        self,
        filters: Dict[str, Any],
        for_update: bool = False,
    ) -> Optional[Record]:
        result = await self._adapter.find_one(
            self.collection_name,
            filters,
            session=self._session,
            for_update=for_update,
        )
        return self._to_entity(result)

    async def find(self, query: QuerySpec) -> List[Record]:
        results = await self._adapter.find(
            self.collection_name, query, session=self._session
        )
        return [self._to_entity(r) for r in results]

    async def count(self, query: QuerySpec) -> int:
        return await self._adapter.count(
            self.collection_name, query, session=self._session
        )

    async def update_where(
        self,
        filters: Dict[str, Any],
        data: Dict[str, Any],
    ) -> Optional[Record]:
        """
        Update the record matching ``filters``.

        Returns:
            Updated record, None if nothing matched
        """
        result = await self._adapter.update_one(
            self.collection_name, filters, data, session=self._session
        )
        return self._to_entity(result)

    async def delete_where(self, filters: Dict[str, Any]) -> Optional[Record]:
        """
        Delete the record matching ``filters``.

        Returns:
            Deleted record, None if nothing matched
        """
        result = await self._adapter.delete_one(
            self.collection_name, filters, session=self._session
        )
        return self._to_entity(result)
