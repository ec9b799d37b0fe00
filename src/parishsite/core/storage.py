"""Expiring key-value storage shared by sessions, trusted devices and rate limits.

Every record has an absolute ``expires_at``. Reads never return expired
records and drop them when they see them. Two backends are provided:
``MemoryStorage`` for tests and single-process deployments, and
``MongoStorage`` which relies on a TTL index and server-side upserts so
several server processes can share state.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

import structlog
from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from parishsite import utils
from parishsite.errors import StorageUnavailableError

logger = structlog.get_logger(__name__)


class KeyValueStore(ABC):
    """A named collection of expiring records."""

    @abstractmethod
    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the value stored under key, or None when missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: dict[str, Any], expires_at: datetime) -> None:
        """Insert or replace the record under key."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the record under key if present."""

    @abstractmethod
    async def expire(self, key: str, expires_at: datetime, value: dict[str, Any] | None = None) -> bool:
        """Move the expiry of a live record, optionally replacing its value.

        Returns False when the record is missing or already expired.
        """

    @abstractmethod
    async def increment(self, key: str, expires_at: datetime) -> tuple[int, datetime]:
        """Atomically increment a counter, creating it with the given expiry.

        The expiry of an existing live counter is left untouched. Returns the
        new count and the counter's expiry.
        """

    @abstractmethod
    async def purge_expired(self) -> int:
        """Delete every expired record and return how many were removed."""


class Storage(ABC):
    """Factory for named key-value collections."""

    @abstractmethod
    def collection(self, name: str) -> KeyValueStore: ...

    async def on_start(self) -> None:
        """Prepare the backend on application startup."""

    async def on_stop(self) -> None:
        """Release backend resources on application shutdown."""


class MemoryStore(KeyValueStore):
    """Dict-backed store. Safe for a single process only."""

    def __init__(self) -> None:
        self._records: dict[str, tuple[dict[str, Any], datetime]] = {}

    def _live(self, key: str) -> tuple[dict[str, Any], datetime] | None:
        record = self._records.get(key)
        if record is None:
            return None
        if record[1] <= utils.now():
            del self._records[key]
            return None
        return record

    async def get(self, key: str) -> dict[str, Any] | None:
        record = self._live(key)
        return dict(record[0]) if record else None

    async def set(self, key: str, value: dict[str, Any], expires_at: datetime) -> None:
        self._records[key] = (dict(value), expires_at)

    async def delete(self, key: str) -> None:
        self._records.pop(key, None)

    async def expire(self, key: str, expires_at: datetime, value: dict[str, Any] | None = None) -> bool:
        record = self._live(key)
        if record is None:
            return False
        self._records[key] = (dict(value) if value is not None else record[0], expires_at)
        return True

    async def increment(self, key: str, expires_at: datetime) -> tuple[int, datetime]:
        record = self._live(key)
        if record is None:
            self._records[key] = ({"count": 1}, expires_at)
            return 1, expires_at
        count = int(record[0].get("count", 0)) + 1
        self._records[key] = ({"count": count}, record[1])
        return count, record[1]

    async def purge_expired(self) -> int:
        current = utils.now()
        expired = [key for key, (_, expires_at) in self._records.items() if expires_at <= current]
        for key in expired:
            del self._records[key]
        return len(expired)

    def keys(self) -> list[str]:
        """Raw keys currently held, including expired ones not yet purged."""
        return list(self._records)


class MemoryStorage(Storage):
    def __init__(self) -> None:
        self._collections: dict[str, MemoryStore] = {}

    def collection(self, name: str) -> MemoryStore:
        if name not in self._collections:
            self._collections[name] = MemoryStore()
        return self._collections[name]


class MongoStore(KeyValueStore):
    """Store backed by one MongoDB collection.

    Documents look like ``{"_id": key, "value": {...}, "expires_at": datetime}``.
    A TTL index removes expired documents in the background; reads also
    filter on ``expires_at`` because the TTL monitor only runs once a minute.
    """

    def __init__(self, collection: AsyncCollection[dict[str, Any]]) -> None:
        self._collection = collection

    async def create_indexes(self) -> None:
        try:
            await self._collection.create_index([("expires_at", 1)], expireAfterSeconds=0)
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e

    async def get(self, key: str) -> dict[str, Any] | None:
        try:
            doc = await self._collection.find_one({"_id": key})
            if doc is None:
                return None
            if doc["expires_at"] <= utils.now():
                await self._collection.delete_one({"_id": key, "expires_at": doc["expires_at"]})
                return None
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e
        return dict(doc["value"])

    async def set(self, key: str, value: dict[str, Any], expires_at: datetime) -> None:
        try:
            await self._collection.replace_one({"_id": key}, {"value": value, "expires_at": expires_at}, upsert=True)
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e

    async def delete(self, key: str) -> None:
        try:
            await self._collection.delete_one({"_id": key})
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e

    async def expire(self, key: str, expires_at: datetime, value: dict[str, Any] | None = None) -> bool:
        update: dict[str, Any] = {"expires_at": expires_at}
        if value is not None:
            update["value"] = value
        try:
            res = await self._collection.update_one({"_id": key, "expires_at": {"$gt": utils.now()}}, {"$set": update})
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e
        return res.matched_count == 1

    async def increment(self, key: str, expires_at: datetime) -> tuple[int, datetime]:
        try:
            # A stale counter must not survive into a new window
            await self._collection.delete_one({"_id": key, "expires_at": {"$lte": utils.now()}})
            doc = await self._collection.find_one_and_update(
                {"_id": key},
                {"$inc": {"value.count": 1}, "$setOnInsert": {"expires_at": expires_at}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e
        return int(doc["value"]["count"]), doc["expires_at"]

    async def purge_expired(self) -> int:
        try:
            res = await self._collection.delete_many({"expires_at": {"$lte": utils.now()}})
        except PyMongoError as e:
            raise StorageUnavailableError(str(e)) from e
        return res.deleted_count


class MongoStorage(Storage):
    def __init__(self, database_url: str) -> None:
        self._client: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(database_url, tz_aware=True)
        self._database = self._client.get_database(urlparse(database_url).path[1:] or "parishsite")
        self._collections: dict[str, MongoStore] = {}

    def collection(self, name: str) -> MongoStore:
        if name not in self._collections:
            self._collections[name] = MongoStore(self._database.get_collection(name))
        return self._collections[name]

    async def on_start(self) -> None:
        for store in self._collections.values():
            await store.create_indexes()

    async def on_stop(self) -> None:
        await self._client.aclose()


def create_storage(database_url: str | None) -> Storage:
    """Pick the storage backend for the configured database URL."""
    if not database_url:
        logger.warning("memory_storage_enabled", detail="sessions and trusted devices are lost on restart")
        return MemoryStorage()
    return MongoStorage(database_url)
