# ==============================================================================
# MONGODB ADAPTER - Motor Async Driver Implementation
# ==============================================================================
# Document-oriented ledger storage with multi-document transactions
# Requires a replica set or sharded cluster for atomic scopes
# ==============================================================================

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional

from bson import Decimal128, ObjectId
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorClientSession,
    AsyncIOMotorDatabase,
)
from pymongo import ASCENDING, DESCENDING, IndexModel, ReturnDocument
from pymongo.errors import DuplicateKeyError, OperationFailure, PyMongoError

from walletwise.core.settings import settings
from walletwise.core.constants import DatabaseConstants
from walletwise.core.exceptions import (
    AtomicityUnsupportedError,
    ConflictError,
    DatabaseConnectionError,
    DatabaseError,
)
from walletwise.database.adapters.base_adapter import BaseDatabaseAdapter, Record
from walletwise.database.query import QuerySpec
from walletwise.utils.helpers import quantize_money, to_utc, utc_now

logger = logging.getLogger(__name__)

# Server error codes
_WRITE_CONFLICT = 112
_ILLEGAL_OPERATION = 20


def topology_supports_transactions(hello: Dict[str, Any]) -> bool:
    """
    Decide from a ``hello`` reply whether transactions are available.

    Replica set members report ``setName``; mongos reports ``msg: isdbgrid``.
    """
    return "setName" in hello or hello.get("msg") == "isdbgrid"


class MongoDBAdapter(BaseDatabaseAdapter):
    """
    MongoDB database adapter using Motor async driver.

    Provides async document operations with automatic ObjectId and
    Decimal128 conversion, plus transaction support through client sessions.

    Features:
        - Async MongoDB operations using Motor
        - Automatic ObjectId <-> string conversion
        - Decimal <-> Decimal128 conversion for money
        - Topology detection at connect (standalone servers cannot
          run transactions)
        - Operator dictionaries refused in equality filters

    Attributes:
        _connection_url: MongoDB connection string
        _database_name: Target database name
        _client: Motor async client
        _database: Target database instance
        _supports_transactions: Result of topology detection

    Example:
        >>> adapter = MongoDBAdapter()
        >>> await adapter.connect()
        >>> doc = await adapter.create("users", {"full_name": "Asha"})
        >>> print(doc["id"])  # String ID
    """

    def __init__(
        self,
        connection_url: Optional[str] = None,
        database_name: Optional[str] = None,
    ) -> None:
        self._connection_url = connection_url or settings.MONGODB_URL
        self._database_name = database_name or settings.MONGODB_DB
        self._client: Optional[AsyncIOMotorClient] = None
        self._database: Optional[AsyncIOMotorDatabase] = None
        self._supports_transactions = False

    @property
    def supports_transactions(self) -> bool:
        return self._supports_transactions

    def is_valid_id(self, value: Any) -> bool:
        return isinstance(value, str) and ObjectId.is_valid(value)

    # ==========================================================================
    # SERIALIZATION HELPERS
    # ==========================================================================

    @staticmethod
    def _serialize(document: Optional[Dict[str, Any]]) -> Optional[Record]:
        """
        Convert a stored document into an adapter record.

        ``_id`` becomes a string ``id``, Decimal128 becomes Decimal and
        datetimes are normalized to aware UTC.
        """
        if document is None:
            return None
        record: Record = {}
        for key, value in document.items():
            if key == "_id":
                record["id"] = str(value)
            elif isinstance(value, Decimal128):
                record[key] = quantize_money(value.to_decimal())
            elif isinstance(value, datetime):
                record[key] = to_utc(value)
            else:
                record[key] = value
        return record

    @staticmethod
    def _encode(value: Any) -> Any:
        if isinstance(value, Decimal):
            return Decimal128(quantize_money(value))
        if isinstance(value, datetime):
            return to_utc(value)
        return value

    def _encode_document(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return {key: self._encode(value) for key, value in data.items() if key != "id"}

    def _build_query(
        self,
        filters: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Build an equality query from a filter dictionary.

        Only scalar values are accepted, so a client supplied
        ``{"$ne": None}`` can never widen a match.

        Raises:
            ValueError: On operator keys, nested documents or a malformed id
        """
        if not filters:
            return {}

        query: Dict[str, Any] = {}
        for key, value in filters.items():
            if key.startswith("$"):
                raise ValueError(f"Operator '{key}' is not allowed in filters")
            if isinstance(value, (dict, list, set, tuple)):
                raise ValueError(f"Filter '{key}' must be a scalar value")
            if key == "id":
                if not self.is_valid_id(value):
                    raise ValueError(f"Malformed id: {value!r}")
                query["_id"] = ObjectId(value)
            else:
                query[key] = self._encode(value)
        return query

    def _build_spec_query(self, spec: QuerySpec) -> Dict[str, Any]:
        query = self._build_query(spec.filters)

        for key, (lower, upper) in spec.ranges.items():
            bounds: Dict[str, Any] = {}
            if lower is not None:
                bounds["$gte"] = self._encode(lower)
            if upper is not None:
                bounds["$lte"] = self._encode(upper)
            if bounds:
                query[key] = bounds

        if spec.search_term and spec.search_fields:
            pattern = re.escape(spec.search_term)
            query["$or"] = [
                {name: {"$regex": pattern, "$options": "i"}}
                for name in spec.search_fields
            ]

        if spec.exclude_ids:
            excluded = {"$nin": [ObjectId(value) for value in spec.exclude_ids]}
            if "_id" in query:
                query["$and"] = [{"_id": query.pop("_id")}, {"_id": excluded}]
            else:
                query["_id"] = excluded
        return query

    # ==========================================================================
    # ERROR TRANSLATION
    # ==========================================================================

    @staticmethod
    def _translate_error(exc: PyMongoError) -> Exception:
        if isinstance(exc, DuplicateKeyError):
            return ConflictError(
                "Write rejected by a unique index",
                details={"reason": "duplicate_key"},
            )
        if isinstance(exc, OperationFailure):
            message = str(exc)
            if exc.code == _ILLEGAL_OPERATION and "Transaction numbers" in message:
                return AtomicityUnsupportedError()
            if exc.code == _WRITE_CONFLICT:
                return ConflictError(details={"reason": "write_conflict"})
        if exc.has_error_label("TransientTransactionError"):
            return ConflictError(details={"reason": "transient_transaction"})
        logger.error(f"MongoDB operation failed: {exc}")
        return DatabaseError(details={"reason": type(exc).__name__})

    @contextmanager
    def _errors(self) -> Iterator[None]:
        """Translate driver errors raised by a single operation."""
        if self._database is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        try:
            yield
        except PyMongoError as exc:
            raise self._translate_error(exc) from exc

    # ==========================================================================
    # LIFECYCLE METHODS
    # ==========================================================================

    async def connect(self) -> None:
        """
        Initialize MongoDB connection.

        Creates the Motor client, detects whether the topology supports
        transactions and makes sure the ledger indexes exist.
        """
        try:
            self._client = AsyncIOMotorClient(
                self._connection_url,
                tz_aware=True,
                maxPoolSize=settings.DB_POOL_SIZE,
                minPoolSize=1,
                maxIdleTimeMS=settings.DB_POOL_TIMEOUT * 1000,
            )
            self._database = self._client[self._database_name]

            hello = await self._client.admin.command("hello")
            self._supports_transactions = topology_supports_transactions(hello)
            if not self._supports_transactions:
                logger.warning(
                    "MongoDB topology is standalone; ledger writes will be refused"
                )

            await self._ensure_indexes()

            logger.info(f"MongoDB adapter connected to {self._database_name}")

        except PyMongoError as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise DatabaseConnectionError(f"MongoDB connection failed: {e}")

    async def _ensure_indexes(self) -> None:
        string_key = {"idempotency_key": {"$type": "string"}}
        await self._database[DatabaseConstants.TRANSACTIONS_COLLECTION].create_indexes([
            IndexModel([("user_id", ASCENDING), ("type", ASCENDING), ("date", DESCENDING)]),
            IndexModel([("user_id", ASCENDING), ("category", ASCENDING)]),
            IndexModel([("user_id", ASCENDING), ("description", ASCENDING)]),
            IndexModel([("is_recurring", ASCENDING), ("next_execution_date", ASCENDING)]),
            IndexModel(
                [("user_id", ASCENDING), ("idempotency_key", ASCENDING)],
                unique=True,
                partialFilterExpression=string_key,
            ),
        ])
        await self._database[DatabaseConstants.USERS_COLLECTION].create_indexes([
            IndexModel(
                [("email", ASCENDING)],
                unique=True,
                partialFilterExpression={"email": {"$type": "string"}},
            ),
        ])

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self._client is not None:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB adapter disconnected")

    async def health_check(self) -> bool:
        try:
            if self._client is not None:
                await self._client.admin.command("ping")
                return True
            return False
        except PyMongoError as e:
            logger.warning(f"MongoDB health check failed: {e}")
            return False

    # ==========================================================================
    # SESSION MANAGEMENT
    # ==========================================================================

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncIOMotorClientSession]:
        """
        Provide transactional session scope.

        The transaction commits when the block exits cleanly and is
        aborted otherwise.

        Raises:
            RuntimeError: If database not connected
            AtomicityUnsupportedError: If the server rejects transactions
        """
        if self._client is None:
            raise RuntimeError("Database not connected. Call connect() first.")

        try:
            async with await self._client.start_session() as session:
                async with session.start_transaction():
                    yield session
        except PyMongoError as exc:
            raise self._translate_error(exc) from exc

    # ==========================================================================
    # CRUD OPERATIONS
    # ==========================================================================

    async def create(
        self,
        collection: str,
        data: Dict[str, Any],
        *,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Record:
        now = utc_now()
        document = self._encode_document(data)
        document.setdefault("created_at", now)
        document.setdefault("updated_at", now)

        with self._errors():
            await self._database[collection].insert_one(document, session=session)
        return self._serialize(document)

    async def get_by_id(
        self,
        collection: str,
        id: str,
        *,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Optional[Record]:
        if not self.is_valid_id(id):
            return None
        return await self.find_one(collection, {"id": id}, session=session)

    async def find_one(
        self,
        collection: str,
        filters: Dict[str, Any],
        *,
        session: Optional[AsyncIOMotorClientSession] = None,
        for_update: bool = False,
    ) -> Optional[Record]:
        # Writes in the same transaction surface conflicts; no row locks here
        query = self._build_query(filters)
        with self._errors():
            document = await self._database[collection].find_one(query, session=session)
        return self._serialize(document)

    async def find(
        self,
        collection: str,
        query: QuerySpec,
        *,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> List[Record]:
        mongo_query = self._build_spec_query(query)

        with self._errors():
            cursor = self._database[collection].find(mongo_query, session=session)
            if query.sort:
                cursor = cursor.sort([
                    ("_id" if name == "id" else name, direction)
                    for name, direction in query.sort
                ])
            if query.skip:
                cursor = cursor.skip(query.skip)
            if query.limit is not None:
                cursor = cursor.limit(query.limit)
            documents = await cursor.to_list(length=None)
        return [self._serialize(doc) for doc in documents]

    async def count(
        self,
        collection: str,
        query: QuerySpec,
        *,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> int:
        mongo_query = self._build_spec_query(query)
        with self._errors():
            return await self._database[collection].count_documents(mongo_query, session=session)

    async def update_one(
        self,
        collection: str,
        filters: Dict[str, Any],
        data: Dict[str, Any],
        *,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Optional[Record]:
        query = self._build_query(filters)
        changes = self._encode_document(data)
        changes["updated_at"] = utc_now()

        with self._errors():
            document = await self._database[collection].find_one_and_update(
                query,
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
                session=session,
            )
        return self._serialize(document)

    async def delete_one(
        self,
        collection: str,
        filters: Dict[str, Any],
        *,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Optional[Record]:
        query = self._build_query(filters)
        with self._errors():
            document = await self._database[collection].find_one_and_delete(
                query,
                session=session,
            )
        return self._serialize(document)

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
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Optional[Record]:
        query = self._build_query(filters)
        with self._errors():
            document = await self._database[collection].find_one_and_update(
                query,
                {
                    "$inc": {field: self._encode(amount)},
                    "$set": {"updated_at": utc_now()},
                },
                return_document=ReturnDocument.AFTER,
                session=session,
            )
        return self._serialize(document)

    async def sum_by(
        self,
        collection: str,
        filters: Dict[str, Any],
        field: str,
        group_by: str,
        *,
        session: Optional[AsyncIOMotorClientSession] = None,
    ) -> Dict[Any, Decimal]:
        pipeline = [
            {"$match": self._build_query(filters)},
            {"$group": {"_id": f"${group_by}", "total": {"$sum": f"${field}"}}},
        ]
        with self._errors():
            cursor = self._database[collection].aggregate(pipeline, session=session)
            results = await cursor.to_list(length=None)
        return {
            row["_id"]: quantize_money(
                row["total"].to_decimal() if isinstance(row["total"], Decimal128) else row["total"]
            )
            for row in results
        }
