"""Redis implementation of CacheStore.

Each entry is a JSON document stored under
``{prefix}:{collection_id}:{sha256(query)[:16]}`` with a Redis expiry.
Similarity scoring is done by the service layer over the entries returned
by ``find_by_collection``.
"""

import hashlib
import json
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from cached_rag.config import get_redis_client, settings
from cached_rag.entities import CacheEntryEntity
from cached_rag.exceptions import CacheStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Redis glob metacharacters that must be escaped in SCAN MATCH patterns
_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def derive_query_key(query: str) -> str:
    """Stable short hash of the exact query text."""
    return hashlib.sha256(query.encode("utf-8")).hexdigest()[:16]


class RedisCacheRepository:
    """Redis implementation of the CacheStore protocol.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.

    The Redis client is created lazily by ``client_factory`` on first use.
    When a command fails with a connection or timeout error, the client is
    discarded, a fresh one is built and the command is retried once.
    """

    def __init__(
        self,
        client_factory: Callable[[], Redis] | None = None,
        key_prefix: str | None = None,
        scan_count: int = 500,
    ) -> None:
        """Initialize the Redis cache repository.

        Args:
            client_factory: Builds a Redis client. Defaults to config.get_redis_client.
            key_prefix: Namespace prefix for all keys. Defaults to settings.
            scan_count: SCAN batch size hint.
        """
        self._client_factory = client_factory or get_redis_client
        self._prefix = key_prefix or settings.cache_key_prefix
        self._scan_count = scan_count
        self._client: Redis | None = None

    @classmethod
    def create(
        cls,
        client_factory: Callable[[], Redis] | None = None,
        key_prefix: str | None = None,
    ) -> "RedisCacheRepository":
        """Factory method to create RedisCacheRepository with defaults.

        Args:
            client_factory: Redis client factory. If None, uses settings.
            key_prefix: Key prefix. If None, uses settings.

        Returns:
            Configured RedisCacheRepository
        """
        return cls(client_factory=client_factory, key_prefix=key_prefix)

    @property
    def client(self) -> Redis:
        """Lazy-create the Redis client."""
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    def _connect(self) -> Redis:
        try:
            return self.client
        except Exception as e:  # factory errors such as a malformed REDIS_URL
            raise CacheStoreError(f"Could not create Redis client: {e}") from e

    async def _reset_client(self, stale: Redis | None = None) -> None:
        """Drop the current client and close it.

        With ``stale`` given, only drop the client if it is still current, so a
        late failure on an old client never discards a fresh one.
        """
        if stale is not None and self._client is not stale:
            return
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.aclose()
        except RedisError as e:
            logger.debug("Ignoring error while closing stale Redis client: %s", e)

    async def _execute(self, operation: Callable[[Redis], Awaitable[T]]) -> T:
        """Run a Redis operation, reconnecting once on connection loss.

        Raises:
            CacheStoreError: If the operation fails
        """
        client = self._connect()
        try:
            return await operation(client)
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.warning("Redis connection lost (%s), reconnecting", e)
            await self._reset_client(stale=client)
        except RedisError as e:
            raise CacheStoreError(f"Redis operation failed: {e}") from e

        client = self._connect()
        try:
            return await operation(client)
        except RedisError as e:
            raise CacheStoreError(f"Redis operation failed after reconnect: {e}") from e

    def _namespace(self, collection_id: str) -> str:
        return f"{self._prefix}:{collection_id}:"

    def _match_pattern(self, collection_id: str | None) -> str:
        if collection_id is None:
            return f"{self._prefix}:*"
        escaped = _GLOB_SPECIAL.sub(r"\\\1", self._namespace(collection_id))
        return f"{escaped}*"

    def key_for(self, collection_id: str, query: str) -> str:
        """Derive the storage key for a query in a collection."""
        return f"{self._namespace(collection_id)}{derive_query_key(query)}"

    async def _scan_keys(self, client: Redis, collection_id: str | None) -> list[str]:
        pattern = self._match_pattern(collection_id)
        keys = [key async for key in client.scan_iter(match=pattern, count=self._scan_count)]
        if collection_id is None:
            return keys
        # A namespace ending in ":" can still prefix-match a longer collection
        # id such as "a:b", so keep only keys with a bare hash after it.
        namespace = self._namespace(collection_id)
        return [key for key in keys if ":" not in key[len(namespace):]]

    async def store(self, entry: CacheEntryEntity) -> str:
        """Store a cache entry in Redis.

        Args:
            entry: The entry to persist

        Returns:
            The storage key for the entry
        """
        key = self.key_for(entry.collection_id, entry.query)
        document = json.dumps(
            {
                "collection_id": entry.collection_id,
                "query": entry.query,
                "response": entry.response,
                "embedding": entry.embedding,
                "embedding_model": entry.embedding_model,
                "created_at": entry.created_at,
                "ttl": entry.ttl,
            }
        )

        async def _set(client: Redis) -> Any:
            return await client.set(key, document, ex=entry.ttl)

        await self._execute(_set)
        return key

    async def find_by_collection(self, collection_id: str) -> list[tuple[str, CacheEntryEntity]]:
        """Return all entries of a collection namespace, sorted by key.

        Malformed documents and documents belonging to another collection
        are skipped.
        """

        async def _fetch(client: Redis) -> list[tuple[str, str | None]]:
            keys = sorted(await self._scan_keys(client, collection_id))
            if not keys:
                return []
            values = await client.mget(keys)
            return list(zip(keys, values))

        entries = []
        for key, raw in await self._execute(_fetch):
            if raw is None:
                # Expired between SCAN and MGET
                continue
            entry = self._decode(key, raw)
            if entry is None:
                continue
            if entry.collection_id != collection_id:
                logger.warning("Skipping cache entry %s stored for collection %r", key, entry.collection_id)
                continue
            entries.append((key, entry))
        return entries

    def _decode(self, key: str, raw: str) -> CacheEntryEntity | None:
        try:
            data = json.loads(raw)
            return CacheEntryEntity(
                collection_id=str(data["collection_id"]),
                query=str(data["query"]),
                response=str(data["response"]),
                embedding=[float(x) for x in data["embedding"]],
                embedding_model=str(data.get("embedding_model", "")),
                created_at=float(data["created_at"]),
                ttl=int(data["ttl"]),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Skipping malformed cache entry %s: %s", key, e)
            return None

    async def delete_collection(self, collection_id: str) -> int:
        """Delete every entry in a collection namespace.

        Returns:
            Number of entries deleted
        """

        async def _delete(client: Redis) -> int:
            keys = await self._scan_keys(client, collection_id)
            if not keys:
                return 0
            return int(await client.delete(*keys))

        return await self._execute(_delete)

    async def count(self, collection_id: str | None = None) -> int:
        """Count entries in one namespace, or under the whole prefix."""

        async def _count(client: Redis) -> int:
            return len(await self._scan_keys(client, collection_id))

        return await self._execute(_count)

    async def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(await self._execute(lambda client: client.ping()))
        except CacheStoreError as e:
            logger.warning("Redis health check failed: %s", e)
            return False

    async def close(self) -> None:
        """Close the Redis client, if one was created."""
        await self._reset_client()

    def get_stats(self) -> dict:
        """Get repository configuration.

        Returns:
            Dictionary with stats
        """
        return {
            "backend": "redis",
            "key_prefix": self._prefix,
        }
