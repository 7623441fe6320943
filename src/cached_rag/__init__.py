"""Cached RAG - document question answering with a semantic answer cache.

This package provides a layered architecture:

Layers:
    - protocols: Interface contracts (CacheStore, EmbeddingProvider,
      VectorRetriever, AnswerSynthesizer)
    - repositories: Redis cache store and HTTP/local collaborators
    - services: Semantic cache and query orchestration
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from cached_rag.api.dependencies import build_query_service
    from cached_rag.config import settings

    service = build_query_service(settings)
    answer = await service.answer("What is the refund policy?", "handbook")
    ```

For HTTP API:
    ```python
    from cached_rag.api.app import app
    ```
"""

from cached_rag.config import get_redis_client, settings
from cached_rag.dto import ChatRequest, ChatResponse
from cached_rag.entities import (
    AnswerEntity,
    AnswerOrigin,
    CacheEntryEntity,
    CacheLookupResult,
    CacheMatchEntity,
    CacheWriteResult,
    LookupStatus,
    QueryState,
    RetrievedChunk,
)
from cached_rag.exceptions import (
    CachedRagError,
    CacheStoreError,
    ConfigurationError,
    DependencyError,
    EmbeddingError,
    GenerationError,
    RetrievalError,
)
from cached_rag.handlers import QueryHandler
from cached_rag.protocols import AnswerSynthesizer, CacheStore, EmbeddingProvider, VectorRetriever
from cached_rag.repositories import QdrantRetriever, RedisCacheRepository
from cached_rag.services import CacheService, QueryService
from cached_rag.similarity import cosine_similarity

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    # Protocols (interfaces)
    "AnswerSynthesizer",
    "CacheStore",
    "EmbeddingProvider",
    "VectorRetriever",
    # Services (business logic)
    "CacheService",
    "QueryService",
    # Handlers (HTTP)
    "QueryHandler",
    # Repositories (data access)
    "QdrantRetriever",
    "RedisCacheRepository",
    # Entities (domain models)
    "AnswerEntity",
    "AnswerOrigin",
    "CacheEntryEntity",
    "CacheLookupResult",
    "CacheMatchEntity",
    "CacheWriteResult",
    "LookupStatus",
    "QueryState",
    "RetrievedChunk",
    # DTOs (API contracts)
    "ChatRequest",
    "ChatResponse",
    # Errors
    "CachedRagError",
    "CacheStoreError",
    "ConfigurationError",
    "DependencyError",
    "EmbeddingError",
    "GenerationError",
    "RetrievalError",
    # Math
    "cosine_similarity",
]
