"""Service layer for business logic.

This layer contains the semantic cache and the query orchestration.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from cached_rag.services import CacheService, QueryService

    cache = CacheService.create(repository=repo, embedding_provider=provider)
    service = QueryService.create(
        cache=cache,
        embedding_provider=provider,
        retriever=retriever,
        synthesizer=synthesizer,
    )
    answer = await service.answer("What is the refund policy?", "handbook")
    ```
"""

from .cache_service import CacheService
from .prompts import NO_RELEVANT_INFORMATION, build_context, build_prompt, collect_sources
from .query_service import QueryService

__all__ = [
    "CacheService",
    "QueryService",
    "NO_RELEVANT_INFORMATION",
    "build_context",
    "build_prompt",
    "collect_sources",
]
