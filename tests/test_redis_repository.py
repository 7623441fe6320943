"""
Tests for the Redis cache repository.
"""

import asyncio
import json

import pytest

from cached_rag.entities import CacheEntryEntity
from cached_rag.exceptions import CacheStoreError
from cached_rag.repositories import RedisCacheRepository, derive_query_key

from .conftest import START_TIME, BrokenRedis


def make_entry(collection_id="handbook", query="What is the refund policy?", response="Within 30 days."):
    return CacheEntryEntity(
        collection_id=collection_id,
        query=query,
        response=response,
        embedding=[0.1, 0.2, 0.3],
        embedding_model="fake-embed",
        created_at=START_TIME,
        ttl=3600,
    )


def test_derive_query_key():
    """Keys are a stable 16 character hex digest of the literal query."""
    key = derive_query_key("What is the refund policy?")
    assert len(key) == 16
    assert int(key, 16) >= 0
    assert key == derive_query_key("What is the refund policy?")
    assert key != derive_query_key("what is the refund policy?")


def test_key_for(repository):
    """Keys are namespaced by prefix and collection."""
    key = repository.key_for("handbook", "What is the refund policy?")
    assert key == f"cache:handbook:{derive_query_key('What is the refund policy?')}"


async def test_store_and_find(repository):
    """A stored entry round-trips through find_by_collection."""
    entry = make_entry()
    key = await repository.store(entry)

    found = await repository.find_by_collection("handbook")
    assert found == [(key, entry)]

    raw = json.loads(await repository.client.get(key))
    assert raw["collection_id"] == "handbook"
    assert raw["embedding_model"] == "fake-embed"


async def test_find_returns_keys_sorted(repository):
    """Entries come back in key order."""
    for i in range(5):
        await repository.store(make_entry(query=f"question {i}"))

    keys = [key for key, _ in await repository.find_by_collection("handbook")]
    assert len(keys) == 5
    assert keys == sorted(keys)


async def test_malformed_entries_are_skipped(repository):
    """Undecodable documents are ignored."""
    await repository.store(make_entry())
    await repository.client.set("cache:handbook:deadbeefdeadbeef", "not json")
    await repository.client.set("cache:handbook:0123456789abcdef", json.dumps({"query": "q"}))

    found = await repository.find_by_collection("handbook")
    assert len(found) == 1


async def test_entries_claiming_another_collection_are_skipped(repository):
    """A document under one namespace that names another collection is ignored."""
    document = {
        "collection_id": "contracts",
        "query": "q",
        "response": "r",
        "embedding": [1.0],
        "embedding_model": "fake-embed",
        "created_at": START_TIME,
        "ttl": 60,
    }
    await repository.client.set("cache:handbook:deadbeefdeadbeef", json.dumps(document))

    assert await repository.find_by_collection("handbook") == []


async def test_glob_characters_in_collection_id(repository):
    """Collection ids containing glob metacharacters only match themselves."""
    await repository.store(make_entry(collection_id="docs*", response="star"))
    await repository.store(make_entry(collection_id="docsX", response="x"))
    await repository.store(make_entry(collection_id="doc?", response="question"))
    await repository.store(make_entry(collection_id="docs", response="plain"))

    star = await repository.find_by_collection("docs*")
    assert [entry.response for _, entry in star] == ["star"]

    question = await repository.find_by_collection("doc?")
    assert [entry.response for _, entry in question] == ["question"]

    assert await repository.delete_collection("docs*") == 1
    assert await repository.count("docsX") == 1
    assert await repository.count("docs") == 1


async def test_delete_and_count(repository):
    """Deleting a namespace leaves others alone."""
    await repository.store(make_entry(query="q1"))
    await repository.store(make_entry(query="q2"))
    await repository.store(make_entry(collection_id="contracts"))

    assert await repository.count() == 3
    assert await repository.count("handbook") == 2
    assert await repository.delete_collection("handbook") == 2
    assert await repository.delete_collection("handbook") == 0
    assert await repository.count() == 1


async def test_reconnects_once_after_connection_loss(redis_factory):
    """A dropped connection is replaced and the command retried."""
    clients = []

    def factory():
        client = BrokenRedis() if not clients else redis_factory()
        clients.append(client)
        return client

    repository = RedisCacheRepository(client_factory=factory, key_prefix="cache")
    key = await repository.store(make_entry())

    assert len(clients) == 2
    assert clients[0].closed
    assert await repository.count("handbook") == 1
    assert key == repository.key_for("handbook", "What is the refund policy?")


async def test_persistent_failure_raises(broken_repository):
    """A second connection failure surfaces as CacheStoreError."""
    with pytest.raises(CacheStoreError):
        await broken_repository.store(make_entry())
    with pytest.raises(CacheStoreError):
        await broken_repository.find_by_collection("handbook")
    with pytest.raises(CacheStoreError):
        await broken_repository.count()


async def test_health_check(repository, broken_repository):
    """Health check reports reachability without raising."""
    assert await repository.health_check() is True
    assert await broken_repository.health_check() is False


async def test_close_resets_client(repository):
    """Closing drops the client; the next call builds a new one."""
    await repository.store(make_entry())
    first = repository.client
    await repository.close()

    assert await repository.count() == 1
    assert repository.client is not first


def test_get_stats(repository):
    """Stats describe the backend."""
    assert repository.get_stats() == {"backend": "redis", "key_prefix": "cache"}


def bad_url_factory():
    raise ValueError("Redis URL must specify one of the following schemes (redis://, rediss://, unix://)")


async def test_client_factory_failure_is_wrapped():
    """A client that cannot be built surfaces as CacheStoreError."""
    repository = RedisCacheRepository(client_factory=bad_url_factory, key_prefix="cache")

    with pytest.raises(CacheStoreError, match="Could not create Redis client"):
        await repository.store(make_entry())
    with pytest.raises(CacheStoreError):
        await repository.delete_collection("handbook")
    assert await repository.health_check() is False


class StallingBrokenRedis(BrokenRedis):
    """Fails only after ``gate`` opens, so several commands fail together."""

    def __init__(self, gate: asyncio.Event) -> None:
        super().__init__()
        self.gate = gate

    async def set(self, *args, **kwargs):
        await self.gate.wait()
        return await super().set(*args, **kwargs)


async def test_concurrent_failures_reconnect_once(redis_factory):
    """Commands failing on the same client share one replacement client."""
    gate = asyncio.Event()
    clients = []

    def factory():
        client = StallingBrokenRedis(gate) if not clients else redis_factory()
        clients.append(client)
        return client

    repository = RedisCacheRepository(client_factory=factory, key_prefix="cache")

    async def open_gate():
        await asyncio.sleep(0)
        gate.set()

    keys = await asyncio.gather(
        repository.store(make_entry(query="q1")),
        repository.store(make_entry(query="q2")),
        open_gate(),
    )

    assert len(clients) == 2
    assert clients[0].closed
    assert keys[0] != keys[1]
    assert await repository.count("handbook") == 2
