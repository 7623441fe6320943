"""Query orchestration service.

Answers a question about a document collection: semantic cache first, then
retrieval + synthesis, then best-effort write-back to the cache.

Architecture:
    Handler -> QueryService -> CacheService -> CacheStore
                            -> EmbeddingProvider
                            -> VectorRetriever
                            -> AnswerSynthesizer
"""

import asyncio
import logging
import time

from cached_rag.config import settings
from cached_rag.entities import (
    AnswerEntity,
    AnswerOrigin,
    CacheLookupResult,
    QueryMetrics,
    QueryState,
)
from cached_rag.protocols import AnswerSynthesizer, EmbeddingProvider, VectorRetriever

from .cache_service import CacheService
from .prompts import NO_RELEVANT_INFORMATION, build_context, build_prompt, collect_sources

logger = logging.getLogger(__name__)


class QueryService:
    """Single entry point for answering questions.

    Each call to ``answer`` is an independent unit of work. Concurrent misses
    for the same question may both synthesize and both write; the last write
    wins under the shared cache key.

    Example:
        ```python
        service = QueryService.create(
            cache=cache_service,
            embedding_provider=embedding_provider,
            retriever=QdrantRetriever.create(),
            synthesizer=OpenAIChatSynthesizer.create(),
        )
        answer = await service.answer("What is the refund policy?", "handbook")
        ```
    """

    def __init__(
        self,
        cache: CacheService,
        embedding_provider: EmbeddingProvider,
        retriever: VectorRetriever,
        synthesizer: AnswerSynthesizer,
        top_k: int | None = None,
        metrics: QueryMetrics | None = None,
    ) -> None:
        """Initialize the query service.

        Args:
            cache: Semantic cache (required).
            embedding_provider: Embeds queries for retrieval (required).
            retriever: Vector store search (required).
            synthesizer: Answer generation (required).
            top_k: Number of chunks to retrieve. Defaults to settings.
            metrics: Counters to update. A fresh instance is created if None.
        """
        self._cache = cache
        self._embeddings = embedding_provider
        self._retriever = retriever
        self._synthesizer = synthesizer
        self._top_k = top_k or settings.retrieval_top_k
        self._metrics = metrics or QueryMetrics()
        self._pending_writes: set[asyncio.Task] = set()

    @classmethod
    def create(
        cls,
        cache: CacheService,
        embedding_provider: EmbeddingProvider,
        retriever: VectorRetriever,
        synthesizer: AnswerSynthesizer,
        top_k: int | None = None,
    ) -> "QueryService":
        """Factory method to create QueryService with defaults from settings."""
        return cls(
            cache=cache,
            embedding_provider=embedding_provider,
            retriever=retriever,
            synthesizer=synthesizer,
            top_k=top_k,
        )

    async def answer(self, query: str, collection_id: str) -> AnswerEntity:
        """Answer a question about a collection.

        Business logic:
        1. Look the query up in the semantic cache
        2. On a hit at or above threshold, return the cached answer
        3. Otherwise embed the query and retrieve the top-k chunks
        4. No chunks: return a fixed message, do not synthesize or cache
        5. Build a numbered context and collect unique sources
        6. Synthesize the answer
        7. Write it back to the cache (best effort)
        8. Return the answer with its sources

        Args:
            query: The user's question
            collection_id: The document collection to answer from

        Returns:
            AnswerEntity tagged with its origin

        Raises:
            DependencyError: If embedding, retrieval or synthesis fails after a
                cache miss. The error propagates unmodified and nothing is cached.
        """
        trace = [QueryState.START, QueryState.CACHE_CHECK]

        lookup = await self._check_cache(query, collection_id)
        match = lookup.match
        if match is not None and match.similarity >= self._cache.threshold:
            trace.append(QueryState.CACHE_HIT)
            return AnswerEntity(
                text=match.response,
                origin=AnswerOrigin.CACHE,
                cache_status=lookup.status,
                similarity=match.similarity,
                trace=tuple(trace),
            )

        logger.info("Cache %s for %s, querying vector store", lookup.status.value, collection_id)

        trace.append(QueryState.RETRIEVE)
        try:
            vector = await self._embeddings.encode(query)
            chunks = await self._retriever.search(collection_id, vector, self._top_k)
        except Exception:
            self._fail(trace, collection_id)
            raise

        if not chunks:
            trace.append(QueryState.EMPTY_CONTEXT)
            self._metrics.record_empty_context()
            logger.info("No chunks retrieved from %s, skipping synthesis", collection_id)
            return AnswerEntity(
                text=NO_RELEVANT_INFORMATION,
                origin=AnswerOrigin.VECTORDB,
                cache_status=lookup.status,
                cited_sources=[],
                trace=tuple(trace),
            )

        context = build_context(chunks)
        sources = collect_sources(chunks)

        trace.append(QueryState.SYNTHESIZE)
        start_time = time.perf_counter()
        try:
            response = await self._synthesizer.generate(build_prompt(context, query))
        except Exception:
            self._fail(trace, collection_id)
            raise
        self._metrics.record_llm_call((time.perf_counter() - start_time) * 1000)

        trace.append(QueryState.CACHE_WRITE)
        # Shielded: if the caller goes away, an issued write still completes
        write = asyncio.ensure_future(self._cache.store(query, response, collection_id))
        self._pending_writes.add(write)
        write.add_done_callback(self._pending_writes.discard)
        written = await asyncio.shield(write)

        trace.append(QueryState.DONE)
        return AnswerEntity(
            text=response,
            origin=AnswerOrigin.VECTORDB,
            cache_status=lookup.status,
            cited_sources=sources,
            cached=written.written,
            trace=tuple(trace),
        )

    async def _check_cache(self, query: str, collection_id: str) -> CacheLookupResult:
        start_time = time.perf_counter()
        lookup = await self._cache.try_lookup(query, collection_id)
        self._metrics.record_lookup(
            hit=lookup.is_hit,
            degraded=lookup.error is not None,
            lookup_time_ms=(time.perf_counter() - start_time) * 1000,
        )
        return lookup

    def _fail(self, trace: list[QueryState], collection_id: str) -> None:
        failed_in = trace[-1]
        trace.append(QueryState.FAILED)
        self._metrics.record_failure()
        logger.exception("Query against %s failed during %s", collection_id, failed_in.value)

    async def wait_for_pending_writes(self) -> None:
        """Wait for cache writes that outlived their cancelled queries."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    def get_metrics(self) -> dict[str, float | int]:
        """Get current query metrics."""
        return self._metrics.to_dict()

    @property
    def metrics(self) -> QueryMetrics:
        return self._metrics

    @property
    def pending_writes(self) -> frozenset[asyncio.Task]:
        return frozenset(self._pending_writes)

    @property
    def cache(self) -> CacheService:
        return self._cache

    @property
    def retriever(self) -> VectorRetriever:
        return self._retriever

    @property
    def synthesizer(self) -> AnswerSynthesizer:
        return self._synthesizer

    @property
    def top_k(self) -> int:
        return self._top_k
