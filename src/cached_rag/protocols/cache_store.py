"""Cache storage protocol.

Defines the interface for any backend that persists cache entries in
per-collection namespaces. Similarity scoring happens in the service layer,
so a backend only needs keyed writes with expiry and namespace enumeration.

Implementations can include:
- Redis (default)
- Any key-value store with per-key expiry
"""

from typing import Protocol, runtime_checkable

from cached_rag.entities import CacheEntryEntity


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache storage backends.

    Any type that implements these methods satisfies the protocol,
    no explicit inheritance needed.
    """

    def key_for(self, collection_id: str, query: str) -> str:
        """Derive the storage key for a query in a collection.

        The key is a stable function of the exact query text, so storing the
        same literal query twice overwrites the earlier entry.
        """
        ...

    async def store(self, entry: CacheEntryEntity) -> str:
        """Persist an entry with expiry set to ``entry.ttl``.

        Returns:
            The storage key for the entry

        Raises:
            CacheStoreError: If the backend cannot be written
        """
        ...

    async def find_by_collection(self, collection_id: str) -> list[tuple[str, CacheEntryEntity]]:
        """Return every readable entry in a collection namespace.

        Returns:
            List of (key, entry) pairs

        Raises:
            CacheStoreError: If the backend cannot be read
        """
        ...

    async def delete_collection(self, collection_id: str) -> int:
        """Delete every entry in a collection namespace.

        Returns:
            Number of entries deleted (0 for an empty namespace)
        """
        ...

    async def count(self, collection_id: str | None = None) -> int:
        """Count entries in one namespace, or across all namespaces."""
        ...

    async def health_check(self) -> bool:
        """Check if the backend is reachable. Never raises."""
        ...
