"""Tests for the MongoDB key-value store against an in-memory collection."""

from datetime import timedelta
from types import SimpleNamespace
from typing import Any

import pytest
from pymongo import ReturnDocument
from pymongo.errors import ServerSelectionTimeoutError

from parishsite.core.storage import MongoStore
from parishsite.errors import StorageUnavailableError


def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    for field, condition in query.items():
        value = doc.get(field)
        if isinstance(condition, dict):
            if "$gt" in condition and not (value is not None and value > condition["$gt"]):
                return False
            if "$lte" in condition and not (value is not None and value <= condition["$lte"]):
                return False
        elif value != condition:
            return False
    return True


class FakeCollection:
    """Just enough of AsyncCollection for MongoStore, keyed by _id."""

    def __init__(self) -> None:
        self.docs: dict[str, dict[str, Any]] = {}
        self.indexes: list[tuple[Any, dict[str, Any]]] = []

    def _find(self, query: dict[str, Any]) -> list[dict[str, Any]]:
        return [doc for doc in self.docs.values() if _matches(doc, query)]

    async def create_index(self, keys: Any, **kwargs: Any) -> str:
        self.indexes.append((keys, kwargs))
        return "expires_at_1"

    async def find_one(self, query: dict[str, Any]) -> dict[str, Any] | None:
        found = self._find(query)
        return dict(found[0]) if found else None

    async def replace_one(self, query: dict[str, Any], replacement: dict[str, Any], upsert: bool = False) -> SimpleNamespace:
        self.docs[query["_id"]] = {"_id": query["_id"], **replacement}
        return SimpleNamespace(matched_count=1)

    async def delete_one(self, query: dict[str, Any]) -> SimpleNamespace:
        found = self._find(query)
        if found:
            del self.docs[found[0]["_id"]]
        return SimpleNamespace(deleted_count=len(found[:1]))

    async def delete_many(self, query: dict[str, Any]) -> SimpleNamespace:
        found = self._find(query)
        for doc in found:
            del self.docs[doc["_id"]]
        return SimpleNamespace(deleted_count=len(found))

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> SimpleNamespace:
        found = self._find(query)
        if found:
            found[0].update(update["$set"])
        return SimpleNamespace(matched_count=len(found[:1]))

    async def find_one_and_update(
        self, query: dict[str, Any], update: dict[str, Any], upsert: bool = False, return_document: Any = None
    ) -> dict[str, Any]:
        assert upsert and return_document == ReturnDocument.AFTER
        doc = self.docs.get(query["_id"])
        if doc is None:
            doc = {"_id": query["_id"], "value": {}, **update["$setOnInsert"]}
            self.docs[query["_id"]] = doc
        for path, amount in update["$inc"].items():
            _, key = path.split(".")
            doc["value"][key] = doc["value"].get(key, 0) + amount
        return {**doc, "value": dict(doc["value"])}


class BrokenCollection:
    """Collection whose server cannot be reached."""

    def __getattr__(self, name: str) -> Any:
        async def fail(*args: Any, **kwargs: Any) -> Any:
            raise ServerSelectionTimeoutError("no servers")

        return fail


@pytest.fixture
def collection() -> FakeCollection:
    return FakeCollection()


@pytest.fixture
def store(collection) -> MongoStore:
    return MongoStore(collection)  # type: ignore[arg-type]


class TestMongoStoreRecords:
    """Tests for get, set, expire and purge."""

    @pytest.mark.asyncio
    async def test_create_indexes_adds_ttl_index(self, store, collection):
        await store.create_indexes()

        assert collection.indexes == [([("expires_at", 1)], {"expireAfterSeconds": 0})]

    @pytest.mark.asyncio
    async def test_set_then_get(self, store, collection, clock):
        await store.set("k", {"a": 1}, clock() + timedelta(minutes=5))

        assert await store.get("k") == {"a": 1}
        assert collection.docs["k"]["expires_at"] == clock() + timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_get_drops_expired_document(self, store, collection, clock):
        """Test that a document the TTL monitor has not removed yet is treated as gone."""
        await store.set("k", {"a": 1}, clock() + timedelta(minutes=5))

        clock.advance(minutes=5)

        assert await store.get("k") is None
        assert "k" not in collection.docs

    @pytest.mark.asyncio
    async def test_expire_moves_live_record(self, store, collection, clock):
        await store.set("k", {"a": 1}, clock() + timedelta(minutes=5))

        assert await store.expire("k", clock() + timedelta(minutes=20), {"a": 2})

        clock.advance(minutes=10)
        assert await store.get("k") == {"a": 2}

    @pytest.mark.asyncio
    async def test_expire_on_expired_record_fails(self, store, clock):
        await store.set("k", {"a": 1}, clock() + timedelta(minutes=5))
        clock.advance(minutes=6)

        assert not await store.expire("k", clock() + timedelta(minutes=15))
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_expire_on_missing_record_fails(self, store, clock):
        assert not await store.expire("missing", clock() + timedelta(minutes=15))

    @pytest.mark.asyncio
    async def test_purge_expired(self, store, collection, clock):
        await store.set("old", {}, clock() + timedelta(minutes=1))
        await store.set("new", {}, clock() + timedelta(minutes=10))
        clock.advance(minutes=2)

        assert await store.purge_expired() == 1
        assert list(collection.docs) == ["new"]


class TestMongoStoreCounters:
    """Tests for the windowed counter."""

    @pytest.mark.asyncio
    async def test_counter_keeps_first_window_end(self, store, clock):
        window_end = clock() + timedelta(minutes=15)

        assert await store.increment("login:a", window_end) == (1, window_end)
        clock.advance(minutes=5)
        assert await store.increment("login:a", clock() + timedelta(minutes=15)) == (2, window_end)

    @pytest.mark.asyncio
    async def test_counter_resets_after_window(self, store, clock):
        for _ in range(3):
            await store.increment("login:a", clock() + timedelta(minutes=15))

        clock.advance(minutes=15)
        new_end = clock() + timedelta(minutes=15)

        assert await store.increment("login:a", new_end) == (1, new_end)

    @pytest.mark.asyncio
    async def test_counters_are_per_key(self, store, clock):
        await store.increment("login:a", clock() + timedelta(minutes=15))

        count, _ = await store.increment("login:b", clock() + timedelta(minutes=15))

        assert count == 1


class TestMongoStoreErrors:
    """Tests for driver errors surfacing as StorageUnavailableError."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation",
        [
            lambda store, t: store.get("k"),
            lambda store, t: store.set("k", {}, t),
            lambda store, t: store.delete("k"),
            lambda store, t: store.expire("k", t),
            lambda store, t: store.increment("k", t),
            lambda store, t: store.purge_expired(),
            lambda store, t: store.create_indexes(),
        ],
    )
    async def test_driver_errors_are_wrapped(self, clock, operation):
        store = MongoStore(BrokenCollection())  # type: ignore[arg-type]

        with pytest.raises(StorageUnavailableError):
            await operation(store, clock() + timedelta(minutes=1))
