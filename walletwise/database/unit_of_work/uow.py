# ==============================================================================
# UNIT OF WORK - Atomic Ledger Scope
# ==============================================================================
# One backend transaction shared by the ledger and wallet repositories,
# serialized per user and bounded in time
# ==============================================================================

from __future__ import annotations

import asyncio
import logging
import weakref
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar

from walletwise.core.settings import settings
from walletwise.core.exceptions import AtomicityUnsupportedError, CommitTimeoutError
from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter
from walletwise.database.factory import DatabaseFactory
from walletwise.database.repositories.base_repository import BaseRepository
from walletwise.database.repositories.transaction_repository import TransactionRepository
from walletwise.database.repositories.wallet_repository import WalletRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UserLockRegistry:
    """
    One ``asyncio.Lock`` per user id, dropped once nobody holds it.

    Serializes same-user scopes inside this process; the backend
    transaction covers other processes.
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock


user_locks = UserLockRegistry()


class AbstractUnitOfWork(ABC):
    """
    Abstract Unit of Work pattern interface.

    Defines the contract for managing transactional boundaries
    and coordinating repository access.
    """

    @abstractmethod
    async def __aenter__(self) -> "AbstractUnitOfWork":
        """Enter transactional context."""

    @abstractmethod
    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> Optional[bool]:
        """Exit transactional context."""


class UnitOfWork(AbstractUnitOfWork):
    """
    Concrete Unit of Work implementation.

    Opens one backend transaction and hands out repositories bound to it.
    The scope commits on clean exit and rolls back on any exception, so a
    ledger write and its balance adjustment land together or not at all.

    Features:
        - Refuses to start on backends without multi-document transactions
        - Per-user lock held for the lifetime of the scope
        - ``transactions`` and ``wallets`` repositories registered on entry

    Attributes:
        _adapter: Database adapter for operations
        _user_id: Owner whose lock serializes this scope
        _repositories: Registered repository instances
        _session: Active backend session

    Example:
        >>> async with UnitOfWork(user_id=uid) as uow:
        ...     row = await uow.transactions.create(uid, fields)
        ...     await uow.wallets.adjust(uid, row["amount"])
        ...     # Commits automatically on successful exit
    """

    def __init__(
        self,
        adapter: Optional[BaseDatabaseAdapter] = None,
        user_id: Optional[str] = None,
    ) -> None:
        """
        Initialize Unit of Work.

        Args:
            adapter: Database adapter (defaults to factory adapter)
            user_id: Serialize against other scopes of this user
        """
        self._adapter = adapter
        self._user_id = user_id
        self._repositories: Dict[str, BaseRepository] = {}
        self._session: Any = None
        self._session_cm: Any = None
        self._lock: Optional[asyncio.Lock] = None
        self._is_active = False

    @property
    def adapter(self) -> BaseDatabaseAdapter:
        """Get database adapter, initializing if needed."""
        if self._adapter is None:
            self._adapter = DatabaseFactory.get_adapter()
        return self._adapter

    # ==========================================================================
    # REPOSITORY MANAGEMENT
    # ==========================================================================

    def register_repository(
        self,
        name: str,
        repository_class: Type[BaseRepository],
    ) -> BaseRepository:
        """
        Register a repository bound to this scope's session.

        Raises:
            RuntimeError: If the scope is not open
        """
        if not self._is_active:
            raise RuntimeError("Unit of work is not active")
        repo = repository_class(adapter=self.adapter, session=self._session)
        self._repositories[name] = repo
        return repo

    def get_repository(self, name: str) -> BaseRepository:
        """
        Get a registered repository.

        Raises:
            ValueError: If repository not registered
        """
        if name not in self._repositories:
            raise ValueError(
                f"Repository '{name}' not registered. "
                f"Available: {list(self._repositories.keys())}"
            )
        return self._repositories[name]

    @property
    def transactions(self) -> TransactionRepository:
        return self.get_repository("transactions")

    @property
    def wallets(self) -> WalletRepository:
        return self.get_repository("wallets")

    # ==========================================================================
    # CONTEXT MANAGEMENT
    # ==========================================================================

    async def __aenter__(self) -> "UnitOfWork":
        """
        Acquire the user's lock and start a backend transaction.

        Raises:
            AtomicityUnsupportedError: If the backend cannot run transactions
        """
        if not self.adapter.supports_transactions:
            raise AtomicityUnsupportedError()

        if self._user_id is not None:
            self._lock = user_locks.get(self._user_id)
            await self._lock.acquire()

        try:
            self._session_cm = self.adapter.session()
            self._session = await self._session_cm.__aenter__()
        except BaseException:
            self._release()
            raise

        self._is_active = True
        self.register_repository("transactions", TransactionRepository)
        self.register_repository("wallets", WalletRepository)
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> Optional[bool]:
        """
        Commit on successful exit, roll back on exception.

        Commit failures surface here as translated ledger exceptions.
        """
        self._is_active = False
        self._repositories.clear()
        try:
            return await self._session_cm.__aexit__(exc_type, exc_val, exc_tb)
        finally:
            self._session = None
            self._release()

    def _release(self) -> None:
        if self._lock is not None:
            self._lock.release()
            self._lock = None

    @property
    def is_active(self) -> bool:
        """Check if unit of work has an active session."""
        return self._is_active


async def run_in_unit_of_work(
    work: Callable[[UnitOfWork], Awaitable[T]],
    adapter: Optional[BaseDatabaseAdapter] = None,
    user_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> T:
    """
    Run ``work`` inside one atomic scope with a time bound.

    The bound covers waiting for the user's lock as well as the work and
    the commit. On expiry the scope is cancelled, which rolls it back.

    Args:
        work: Coroutine function receiving the open unit of work
        adapter: Database adapter (defaults to factory adapter)
        user_id: Owner to serialize against
        timeout: Seconds (defaults to LEDGER_COMMIT_TIMEOUT_SECONDS)

    Raises:
        CommitTimeoutError: If the scope did not finish in time
    """
    timeout = timeout or settings.LEDGER_COMMIT_TIMEOUT_SECONDS

    async def _run() -> T:
        async with UnitOfWork(adapter, user_id=user_id) as uow:
            return await work(uow)

    try:
        return await asyncio.wait_for(_run(), timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Ledger scope for user {user_id} exceeded {timeout}s; rolled back")
        raise CommitTimeoutError(timeout_seconds=timeout)
