# Document store access (MongoDB)

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pymongo import ASCENDING, DESCENDING, AsyncMongoClient, IndexModel, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from swipehire.core.settings import Settings

logger = logging.getLogger(__name__)

Sort = Sequence[Tuple[str, int]]


class DocumentStoreError(Exception):
    """A document store operation failed (network, server or driver error)."""


class DocumentStoreTimeout(DocumentStoreError):
    """A document store operation did not finish within its timeout."""


class DocumentStoreConflict(DocumentStoreError):
    """A write collided with a unique index (duplicate review, match, email ...)."""


# Index set the API queries rely on, keyed by collection
INDEXES: Dict[str, List[IndexModel]] = {
    "users": [
        IndexModel([("firebaseUid", ASCENDING)], unique=True, sparse=True),
        IndexModel([("email", ASCENDING)], unique=True, sparse=True),
        IndexModel([("selectedRole", ASCENDING), ("createdAt", DESCENDING)]),
        IndexModel([("createdAt", DESCENDING)]),
    ],
    "jobs": [
        IndexModel([("userId", ASCENDING), ("createdAt", DESCENDING)]),
        IndexModel([("isPublic", ASCENDING), ("createdAt", DESCENDING)]),
        IndexModel([("location", ASCENDING), ("isPublic", ASCENDING)]),
        IndexModel([("jobType", ASCENDING), ("isPublic", ASCENDING)]),
    ],
    "matches": [
        IndexModel([("userId1", ASCENDING), ("createdAt", DESCENDING)]),
        IndexModel([("userId2", ASCENDING), ("createdAt", DESCENDING)]),
        IndexModel([("userId1", ASCENDING), ("userId2", ASCENDING)], unique=True),
    ],
    "notifications": [
        IndexModel([("userId", ASCENDING), ("createdAt", DESCENDING)]),
        IndexModel([("userId", ASCENDING), ("isRead", ASCENDING), ("createdAt", DESCENDING)]),
    ],
    "companyreviews": [
        IndexModel([("companyUserId", ASCENDING), ("createdAt", DESCENDING)]),
        IndexModel([("reviewerId", ASCENDING), ("companyUserId", ASCENDING)], unique=True),
    ],
    "chatmessages": [
        IndexModel([("matchId", ASCENDING), ("createdAt", ASCENDING)]),
    ],
    "diaryposts": [
        IndexModel([("userId", ASCENDING), ("createdAt", DESCENDING)]),
    ],
    "industryevents": [
        IndexModel([("isActive", ASCENDING), ("date", ASCENDING)]),
    ],
    "followupreminders": [
        IndexModel([("userId", ASCENDING), ("scheduledDate", ASCENDING)]),
    ],
}


class MongoDocumentStore:
    """
    Thin async wrapper over a MongoDB database.

    Every operation is bounded by ``timeout_seconds``; timeouts surface as
    DocumentStoreTimeout and driver failures as DocumentStoreError. The
    client is created on first use so constructing the store never touches
    the network.
    """

    def __init__(self, uri: str, db_name: str, timeout_seconds: float = 10.0, **client_options: Any):
        self.uri = uri
        self.db_name = db_name
        self.timeout_seconds = timeout_seconds
        self.client_options = client_options
        self._client: Optional[AsyncMongoClient] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoDocumentStore":
        return cls(
            settings.mongodb_uri,
            settings.mongodb_db_name,
            timeout_seconds=settings.db_operation_timeout_seconds,
            maxPoolSize=settings.mongodb_max_pool_size,
            minPoolSize=settings.mongodb_min_pool_size,
            maxIdleTimeMS=settings.mongodb_max_idle_time_ms,
            serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
            connectTimeoutMS=settings.mongodb_connect_timeout_ms,
            socketTimeoutMS=settings.mongodb_socket_timeout_ms,
            retryWrites=True,
            retryReads=True,
            appName=settings.app_name,
        )

    @property
    def db(self):
        if self._client is None:
            logger.info(f"Initializing MongoDB client for database {self.db_name}")
            self._client = AsyncMongoClient(self.uri, **self.client_options)
        return self._client[self.db_name]

    async def _run(self, collection: str, operation: str, awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error(f"Database query timeout on {collection}.{operation}")
            raise DocumentStoreTimeout(f"{collection}.{operation} timed out after {self.timeout_seconds}s") from e
        except DuplicateKeyError as e:
            logger.warning(f"Duplicate key on {collection}.{operation}: {e}")
            raise DocumentStoreConflict(f"{collection}.{operation} violates a unique index") from e
        except PyMongoError as e:
            logger.error(f"Database query error on {collection}.{operation}: {e}")
            raise DocumentStoreError(f"{collection}.{operation} failed: {e}") from e

    async def find_one(self, collection: str, query: Mapping[str, Any], projection: Optional[Mapping[str, Any]] = None):
        return await self._run(collection, "find_one", self.db[collection].find_one(query, projection))

    async def find(
        self,
        collection: str,
        query: Mapping[str, Any],
        projection: Optional[Mapping[str, Any]] = None,
        sort: Optional[Sort] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        cursor = self.db[collection].find(query, projection, skip=skip, limit=limit, sort=list(sort) if sort else None)
        return await self._run(collection, "find", cursor.to_list(None))

    async def aggregate(self, collection: str, pipeline: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        async def _aggregate():
            cursor = await self.db[collection].aggregate(list(pipeline))
            return await cursor.to_list(None)

        return await self._run(collection, "aggregate", _aggregate())

    async def count_documents(self, collection: str, query: Mapping[str, Any]) -> int:
        return await self._run(collection, "count_documents", self.db[collection].count_documents(query))

    async def insert_one(self, collection: str, document: Dict[str, Any]):
        """Inserts ``document`` and returns its new ``_id``."""
        result = await self._run(collection, "insert_one", self.db[collection].insert_one(document))
        return result.inserted_id

    async def find_one_and_update(
        self,
        collection: str,
        query: Mapping[str, Any],
        update: Mapping[str, Any],
        projection: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Applies ``update`` and returns the post-update document, or None."""
        return await self._run(
            collection,
            "find_one_and_update",
            self.db[collection].find_one_and_update(
                query, update, projection=projection, return_document=ReturnDocument.AFTER
            ),
        )

    async def update_many(self, collection: str, query: Mapping[str, Any], update: Mapping[str, Any]) -> int:
        result = await self._run(collection, "update_many", self.db[collection].update_many(query, update))
        return result.modified_count

    async def delete_one(self, collection: str, query: Mapping[str, Any]) -> int:
        result = await self._run(collection, "delete_one", self.db[collection].delete_one(query))
        return result.deleted_count

    async def ping(self) -> None:
        await self._run("admin", "ping", self.db.client.admin.command("ping"))

    async def create_indexes(self) -> None:
        for collection, models in INDEXES.items():
            try:
                await self._run(collection, "create_indexes", self.db[collection].create_indexes(models))
            except DocumentStoreError as e:
                # Index creation is best effort; queries still work without them
                logger.warning(f"Index creation failed for {collection}: {e}")
        logger.info("Database indexes created/checked.")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("Database connection closed")
