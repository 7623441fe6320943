"""
Tests for query orchestration.
"""

import asyncio

import pytest

from cached_rag.entities import AnswerOrigin, LookupStatus, QueryState, RetrievedChunk
from cached_rag.exceptions import EmbeddingError, GenerationError, RetrievalError
from cached_rag.services import NO_RELEVANT_INFORMATION, CacheService, QueryService

from .conftest import FakeRetriever, FakeSynthesizer, at_similarity, unit

QUESTION = "What is the refund policy?"


async def test_miss_then_hit(query_service, retriever, synthesizer):
    """First question goes to the vector store, the repeat is served from cache."""
    first = await query_service.answer(QUESTION, "handbook")

    assert first.origin is AnswerOrigin.VECTORDB
    assert first.text == synthesizer.answer
    assert first.cited_sources == ["policy.pdf"]
    assert first.cached is True
    assert first.similarity is None
    assert first.cache_status is LookupStatus.MISS
    assert len(synthesizer.prompts) == 1
    assert "[1] Refunds are issued within 30 days" in synthesizer.prompts[0]
    assert QUESTION in synthesizer.prompts[0]
    assert retriever.calls[0][0] == "handbook"
    assert retriever.calls[0][2] == 4

    second = await query_service.answer(QUESTION, "handbook")

    assert second.origin is AnswerOrigin.CACHE
    assert second.from_cache
    assert second.text == first.text
    assert second.similarity == pytest.approx(1.0)
    assert second.cited_sources is None
    assert len(retriever.calls) == 1
    assert len(synthesizer.prompts) == 1


async def test_trace_states(query_service):
    """Traces record the path through the pipeline."""
    miss = await query_service.answer(QUESTION, "handbook")
    assert miss.trace == (
        QueryState.START,
        QueryState.CACHE_CHECK,
        QueryState.RETRIEVE,
        QueryState.SYNTHESIZE,
        QueryState.CACHE_WRITE,
        QueryState.DONE,
    )

    hit = await query_service.answer(QUESTION, "handbook")
    assert hit.trace == (QueryState.START, QueryState.CACHE_CHECK, QueryState.CACHE_HIT)


async def test_empty_context_is_not_synthesized_or_cached(query_service, cache_service, synthesizer):
    """No chunks means a fixed reply, no generation and no cache write."""
    answer = await query_service.answer(QUESTION, "empty-collection")

    assert answer.text == NO_RELEVANT_INFORMATION
    assert answer.origin is AnswerOrigin.VECTORDB
    assert answer.cited_sources == []
    assert answer.cached is False
    assert answer.trace[-1] is QueryState.EMPTY_CONTEXT
    assert synthesizer.prompts == []
    assert await cache_service.lookup(QUESTION, "empty-collection") is None
    assert query_service.metrics.empty_context == 1


async def test_context_numbering_and_source_order(cache_service, embeddings, synthesizer):
    """Chunks are numbered in retriever order; sources are unique in first-seen order."""
    retriever = FakeRetriever(
        {
            "handbook": [
                RetrievedChunk(score=0.9, text="Alpha", source="a.pdf"),
                RetrievedChunk(score=0.8, text="Beta", source="b.pdf"),
                RetrievedChunk(score=0.7, text="Gamma", source="a.pdf"),
            ]
        }
    )
    service = QueryService(cache_service, embeddings, retriever, synthesizer, top_k=4)

    answer = await service.answer(QUESTION, "handbook")

    assert "[1] Alpha\n\n[2] Beta\n\n[3] Gamma" in synthesizer.prompts[0]
    assert answer.cited_sources == ["a.pdf", "b.pdf"]


async def test_top_k_is_passed_to_retriever(cache_service, embeddings, retriever, synthesizer):
    """The configured k reaches the vector store."""
    service = QueryService(cache_service, embeddings, retriever, synthesizer, top_k=2)
    await service.answer(QUESTION, "handbook")
    assert retriever.calls[0][2] == 2


async def test_retrieval_failure_propagates(query_service, cache_service, retriever, synthesizer):
    """Retrieval errors surface unchanged and nothing is cached."""
    retriever.fail = True

    with pytest.raises(RetrievalError):
        await query_service.answer(QUESTION, "handbook")

    assert synthesizer.prompts == []
    assert await cache_service.repository.count() == 0
    assert query_service.metrics.failures == 1


async def test_generation_failure_propagates(query_service, cache_service, synthesizer):
    """Generation errors surface unchanged and nothing is cached."""
    synthesizer.fail = True

    with pytest.raises(GenerationError):
        await query_service.answer(QUESTION, "handbook")

    assert await cache_service.repository.count() == 0
    assert query_service.metrics.failures == 1
    assert query_service.metrics.llm_calls == 0


async def test_embedding_failure_after_degraded_lookup(query_service, embeddings, retriever):
    """An embedder outage degrades the lookup, then fails retrieval."""
    embeddings.fail = True

    with pytest.raises(EmbeddingError):
        await query_service.answer(QUESTION, "handbook")

    assert retriever.calls == []
    assert query_service.metrics.degraded_lookups == 1


async def test_cache_outage_falls_through(broken_repository, embeddings, retriever, synthesizer):
    """With the cache down, answers still come from the vector store."""
    cache = CacheService(broken_repository, embeddings, similarity_threshold=0.85, ttl=60)
    service = QueryService(cache, embeddings, retriever, synthesizer, top_k=4)

    answer = await service.answer(QUESTION, "handbook")

    assert answer.origin is AnswerOrigin.VECTORDB
    assert answer.text == synthesizer.answer
    assert answer.cache_status is LookupStatus.DEGRADED
    assert answer.cached is False
    assert answer.cited_sources == ["policy.pdf"]
    assert service.metrics.degraded_lookups == 1


async def test_similar_question_hits_cache(cache_service, embeddings, retriever):
    """A paraphrase close enough to a cached question is a hit."""
    embeddings.vectors.update({QUESTION: unit(0), "How do refunds work?": at_similarity(0.93)})
    synthesizer = FakeSynthesizer("Within 30 days.")
    service = QueryService(cache_service, embeddings, retriever, synthesizer, top_k=4)

    await service.answer(QUESTION, "handbook")
    answer = await service.answer("How do refunds work?", "handbook")

    assert answer.origin is AnswerOrigin.CACHE
    assert answer.text == "Within 30 days."
    assert answer.similarity == pytest.approx(0.93)
    assert len(retriever.calls) == 1


async def test_cache_is_per_collection(query_service, retriever):
    """The same question in another collection is not served from cache."""
    retriever.chunks["contracts"] = [RetrievedChunk(score=0.8, text="Net 30 payment", source="msa.pdf")]

    await query_service.answer(QUESTION, "handbook")
    answer = await query_service.answer(QUESTION, "contracts")

    assert answer.origin is AnswerOrigin.VECTORDB
    assert answer.cited_sources == ["msa.pdf"]
    assert len(retriever.calls) == 2


async def test_metrics(query_service):
    """Hits, misses and LLM calls are counted."""
    await query_service.answer(QUESTION, "handbook")
    await query_service.answer(QUESTION, "handbook")

    metrics = query_service.get_metrics()
    assert metrics["total_queries"] == 2
    assert metrics["cache_hits"] == 1
    assert metrics["cache_misses"] == 1
    assert metrics["llm_calls"] == 1
    assert metrics["hit_rate"] == 0.5
    assert metrics["failures"] == 0


class SlowWriteCache(CacheService):
    """Holds every write until ``release`` is set."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.write_started = asyncio.Event()
        self.release = asyncio.Event()

    async def store(self, *args, **kwargs):
        self.write_started.set()
        await self.release.wait()
        return await super().store(*args, **kwargs)


async def test_cache_write_survives_cancelled_query(repository, embeddings, clock, retriever, synthesizer):
    """Cancelling a query mid-write leaves the write tracked until it completes."""
    cache = SlowWriteCache(repository, embeddings, similarity_threshold=0.85, ttl=3600, clock=clock)
    service = QueryService(cache, embeddings, retriever, synthesizer, top_k=4)

    query = asyncio.create_task(service.answer(QUESTION, "handbook"))
    await cache.write_started.wait()
    query.cancel()
    with pytest.raises(asyncio.CancelledError):
        await query

    assert len(service.pending_writes) == 1

    cache.release.set()
    await service.wait_for_pending_writes()

    assert service.pending_writes == frozenset()
    match = await cache.lookup(QUESTION, "handbook")
    assert match is not None
    assert match.response == synthesizer.answer


async def test_wait_for_pending_writes_without_writes(query_service):
    """Nothing in flight returns immediately."""
    await query_service.wait_for_pending_writes()
    assert query_service.pending_writes == frozenset()
