"""Similarity cache service.

This service implements the semantic cache on top of a plain keyed store:
it embeds queries, scans a collection's live entries and applies the
admission rule (similarity >= threshold, highest similarity wins).
"""

import logging
import time
from collections.abc import Callable

from cached_rag.config import settings
from cached_rag.entities import (
    CacheEntryEntity,
    CacheLookupResult,
    CacheMatchEntity,
    CacheWriteResult,
)
from cached_rag.protocols import CacheStore, EmbeddingProvider
from cached_rag.similarity import cosine_similarity

logger = logging.getLogger(__name__)


class CacheService:
    """Core semantic cache service.

    This service depends on PROTOCOLS, not concrete implementations:
    - CacheStore: Redis by default
    - EmbeddingProvider: OpenAI, Ollama, local, etc.

    Lookup cost is linear in the number of entries of the collection; cache
    namespaces are expected to stay small (bounded by the distinct questions
    asked about one document set).

    Example:
        ```python
        cache = CacheService.create(
            repository=RedisCacheRepository.create(),
            embedding_provider=OpenAIEmbeddingProvider.create(),
        )
        match = await cache.lookup("What is the refund policy?", "handbook")
        ```
    """

    def __init__(
        self,
        repository: CacheStore,
        embedding_provider: EmbeddingProvider,
        similarity_threshold: float | None = None,
        ttl: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache service.

        Args:
            repository: Cache storage backend (required).
            embedding_provider: Embedding generation service (required).
            similarity_threshold: Minimum cosine similarity for a hit (0-1]. Defaults to settings.
            ttl: Time-to-live for cache entries in seconds. Defaults to settings.
            clock: Source of the current Unix time.
        """
        self._repository = repository
        self._embeddings = embedding_provider
        self._threshold = (
            settings.similarity_threshold if similarity_threshold is None else similarity_threshold
        )
        self._ttl = settings.cache_ttl if ttl is None else ttl
        if self._ttl <= 0:
            raise ValueError(f"ttl must be positive, got {self._ttl}")
        self._clock = clock

    @classmethod
    def create(
        cls,
        repository: CacheStore,
        embedding_provider: EmbeddingProvider,
        similarity_threshold: float | None = None,
        ttl: int | None = None,
    ) -> "CacheService":
        """Factory method to create CacheService with sensible defaults.

        Args:
            repository: Cache storage backend (required).
            embedding_provider: Embedding generation service (required).
            similarity_threshold: Min similarity for cache hits. If None, uses settings.
            ttl: Time-to-live in seconds. If None, uses settings.

        Returns:
            Configured CacheService instance
        """
        return cls(
            repository=repository,
            embedding_provider=embedding_provider,
            similarity_threshold=similarity_threshold,
            ttl=ttl,
        )

    async def lookup(self, query: str, collection_id: str) -> CacheMatchEntity | None:
        """Find the cached answer most similar to ``query``.

        Business logic:
        1. Generate embedding for the query
        2. Load every entry of the collection
        3. Skip expired entries and entries from another embedding model
        4. Keep entries with similarity >= threshold; the highest wins,
           ties go to the most recently created entry, then the smallest key

        Args:
            query: The question to look up
            collection_id: The collection namespace to search

        Returns:
            CacheMatchEntity if an entry qualifies, None otherwise

        Raises:
            EmbeddingError: If the query cannot be embedded
            CacheStoreError: If the backend cannot be read
        """
        vector = await self._embeddings.encode(query)
        entries = await self._repository.find_by_collection(collection_id)
        now = self._clock()
        model = self._embeddings.model_name

        best: CacheMatchEntity | None = None
        for key, entry in entries:
            if entry.is_expired(now):
                continue
            if entry.embedding_model != model or len(entry.embedding) != len(vector):
                logger.debug(
                    "Skipping cache entry %s from incompatible embedding model %r (%d dims)",
                    key,
                    entry.embedding_model,
                    len(entry.embedding),
                )
                continue

            similarity = cosine_similarity(vector, entry.embedding)
            if similarity < self._threshold:
                continue

            if best is None or _outranks(similarity, entry.created_at, key, best):
                best = CacheMatchEntity(
                    key=key,
                    query=entry.query,
                    response=entry.response,
                    similarity=similarity,
                    cached_at=entry.created_at,
                )

        if best is not None:
            logger.info("Cache hit in %s (similarity %.4f)", collection_id, best.similarity)
        return best

    async def try_lookup(self, query: str, collection_id: str) -> CacheLookupResult:
        """Look up ``query`` without ever raising.

        Returns:
            CacheLookupResult with status hit, miss or degraded
        """
        try:
            match = await self.lookup(query, collection_id)
        except Exception as e:  # any cache failure degrades to a miss
            logger.warning("Cache lookup degraded for collection %s: %s", collection_id, e)
            return CacheLookupResult.degraded(e)

        if match is None:
            return CacheLookupResult.miss()
        return CacheLookupResult.hit(match)

    async def store(
        self,
        query: str,
        response: str,
        collection_id: str,
        ttl: int | None = None,
    ) -> CacheWriteResult:
        """Store a query-response pair in the cache. Best effort, never raises.

        Business logic:
        1. Generate embedding for the query
        2. Create domain entity
        3. Delegate to repository; the key depends only on the literal
           query text, so re-storing a query overwrites its previous entry

        Args:
            query: The original question
            response: The synthesized answer
            collection_id: The collection namespace
            ttl: Override the default time-to-live in seconds (must be positive)

        Returns:
            CacheWriteResult telling whether the entry was written
        """
        try:
            if ttl is not None and ttl <= 0:
                raise ValueError(f"ttl must be positive, got {ttl}")
            vector = await self._embeddings.encode(query)
            entry = CacheEntryEntity(
                collection_id=collection_id,
                query=query,
                response=response,
                embedding=list(vector),
                embedding_model=self._embeddings.model_name,
                created_at=self._clock(),
                ttl=self._ttl if ttl is None else ttl,
            )
            key = await self._repository.store(entry)
        except Exception as e:  # cache writes must never fail the caller
            logger.warning("Cache write failed for collection %s: %s", collection_id, e)
            return CacheWriteResult(written=False, error=e)

        logger.info("Cached response under %s", key)
        return CacheWriteResult(written=True, key=key)

    async def clear(self, collection_id: str) -> int:
        """Clear all cache entries of a collection.

        Returns:
            Number of entries deleted

        Raises:
            CacheStoreError: If the backend cannot be reached
        """
        count = await self._repository.delete_collection(collection_id)
        logger.info("Cleared %d cache entries for collection %s", count, collection_id)
        return count

    async def health(self) -> bool:
        """Check that the cache backend is reachable."""
        return await self._repository.health_check()

    async def get_stats(self, collection_id: str | None = None) -> dict:
        """Get cache statistics.

        Args:
            collection_id: Count only this collection's entries.

        Returns:
            Dictionary with cache statistics
        """
        stats = {
            "total_entries": await self._repository.count(collection_id),
            "similarity_threshold": self._threshold,
            "ttl": self._ttl,
            "embedding_model": self._embeddings.model_name,
            "embedding_dimension": self._embeddings.dimension,
        }
        if collection_id is not None:
            stats["collection_id"] = collection_id
        return stats

    def set_threshold(self, threshold: float) -> None:
        """Update the similarity threshold.

        Args:
            threshold: New threshold value (0-1], higher = more strict
        """
        if not 0 < threshold <= 1:
            raise ValueError("Threshold must be in (0, 1]")
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        """Get current similarity threshold."""
        return self._threshold

    @property
    def ttl(self) -> int:
        return self._ttl

    @property
    def repository(self) -> CacheStore:
        """Get the underlying repository (for testing)."""
        return self._repository

    @property
    def embedding_provider(self) -> EmbeddingProvider:
        """Get the underlying embedding provider (for testing)."""
        return self._embeddings


def _outranks(similarity: float, created_at: float, key: str, current: CacheMatchEntity) -> bool:
    if similarity != current.similarity:
        return similarity > current.similarity
    if created_at != current.cached_at:
        return created_at > current.cached_at
    return key < current.key
