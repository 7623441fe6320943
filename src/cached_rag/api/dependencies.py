"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services built during lifespan (or injected for tests)
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from cached_rag.config import Settings, get_settings
from cached_rag.handlers import QueryHandler
from cached_rag.repositories import (
    QdrantRetriever,
    RedisCacheRepository,
    create_embedding_provider,
    create_synthesizer,
)
from cached_rag.services import CacheService, QueryService

logger = logging.getLogger(__name__)


def get_query_service(request: Request) -> QueryService:
    """Dependency injection for QueryService from app.state.

    Raises:
        RuntimeError: If service is not initialized
    """
    service = getattr(request.app.state, "query_service", None)
    if service is None:
        raise RuntimeError("QueryService not initialized. Check lifespan setup.")
    return service


def get_handler(request: Request) -> QueryHandler:
    """Dependency injection for QueryHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "query_handler", None)
    if handler is None:
        raise RuntimeError("QueryHandler not initialized. Check lifespan setup.")
    return handler


def build_query_service(settings: Settings) -> QueryService:
    """Wire every layer from settings.

    1. Embedding provider (shared by the cache and retrieval)
    2. Repository (data access), connects lazily
    3. Cache service and query service (business logic)
    """
    embedding_provider = create_embedding_provider(settings)
    repository = RedisCacheRepository.create(key_prefix=settings.cache_key_prefix)

    cache_service = CacheService(
        repository=repository,
        embedding_provider=embedding_provider,
        similarity_threshold=settings.similarity_threshold,
        ttl=settings.cache_ttl,
    )
    return QueryService(
        cache=cache_service,
        embedding_provider=embedding_provider,
        retriever=QdrantRetriever(
            base_url=settings.qdrant_url,
            api_key=settings.qdrant_api_key,
            timeout=settings.http_timeout,
        ),
        synthesizer=create_synthesizer(settings),
        top_k=settings.retrieval_top_k,
    )


async def close_query_service(service: QueryService) -> None:
    """Finish in-flight cache writes, then close every collaborator that holds a client."""
    await service.wait_for_pending_writes()
    collaborators = (
        service.cache.repository,
        service.cache.embedding_provider,
        service.retriever,
        service.synthesizer,
    )
    for collaborator in collaborators:
        close = getattr(collaborator, "close", None)
        if close is not None:
            await close()


def make_lifespan(query_service: QueryService | None = None):
    """Create the lifespan context manager for the FastAPI app.

    Args:
        query_service: Pre-built service (tests). If None, the service is
            built from settings, after checking that credentials are present.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = get_settings()
        logging.basicConfig(
            level=settings.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        service = query_service
        owns_service = service is None
        if service is None:
            # ConfigurationError here aborts startup before any query is accepted
            settings.require_credentials()
            service = build_query_service(settings)

        app.state.query_service = service
        app.state.query_handler = QueryHandler(query_service=service)

        logger.info("Query service initialized")
        logger.info("Similarity threshold: %s", service.cache.threshold)
        logger.info("Retrieval top-k: %s", service.top_k)

        try:
            yield
        finally:
            del app.state.query_handler
            del app.state.query_service
            if owns_service:
                await close_query_service(service)
            logger.info("Query service shut down")

    return lifespan


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[QueryHandler, Depends(get_handler)]
ServiceDep = Annotated[QueryService, Depends(get_query_service)]
