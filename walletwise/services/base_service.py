# ==============================================================================
# BASE SERVICE - Generic Business Logic Layer
# ==============================================================================
# Shared plumbing for services: response mapping and atomic scopes
# ==============================================================================

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel

from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter, Record
from walletwise.database.factory import DatabaseFactory
from walletwise.database.unit_of_work.uow import UnitOfWork, run_in_unit_of_work

ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)
T = TypeVar("T")


class BaseService(ABC, Generic[ResponseSchemaType]):
    """
    Abstract base service.

    Encapsulates business logic for a domain entity and gives subclasses
    one way to run work inside an atomic, time-bounded scope.

    Generic Parameters:
        ResponseSchemaType: Pydantic schema for responses

    Attributes:
        _adapter: Database adapter for operations

    Example:
        >>> class AccountService(BaseService[AccountResponse]):
        ...     def _to_response(self, entity):
        ...         return AccountResponse.model_validate(entity)
    """

    def __init__(self, adapter: Optional[BaseDatabaseAdapter] = None) -> None:
        """
        Initialize service.

        Args:
            adapter: Database adapter instance (defaults to the factory's)
        """
        self._adapter = adapter or DatabaseFactory.get_adapter()

    @property
    def adapter(self) -> BaseDatabaseAdapter:
        return self._adapter

    @abstractmethod
    def _to_response(self, entity: Record) -> ResponseSchemaType:
        """Convert a stored record to the response schema."""

    async def _atomic(
        self,
        work: Callable[[UnitOfWork], Awaitable[T]],
        user_id: Optional[str] = None,
        **kwargs: Any,
    ) -> T:
        """Run ``work`` in one unit of work, serialized on ``user_id``."""
        return await run_in_unit_of_work(
            work,
            adapter=self._adapter,
            user_id=user_id,
            **kwargs,
        )
