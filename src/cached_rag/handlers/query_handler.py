"""HTTP handlers for query and cache operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes and error mapping.
"""

import logging

from fastapi import HTTPException, status

from cached_rag.dto import (
    CacheClearResponse,
    ChatRequest,
    ChatResponse,
    HealthCheckResponse,
    StatsResponse,
)
from cached_rag.exceptions import CacheStoreError, DependencyError
from cached_rag.services import QueryService

logger = logging.getLogger(__name__)


class QueryHandler:
    """HTTP handlers for the query pipeline.

    This handler delegates business logic to QueryService
    and handles HTTP-specific concerns like:
    - Converting entities to DTOs
    - Setting appropriate status codes
    - Error handling and responses

    Example:
        ```python
        handler = QueryHandler(query_service=query_service)

        @app.post("/api/chat", response_model=ChatResponse)
        async def chat(request: ChatRequest):
            return await handler.chat(request)
        ```
    """

    def __init__(self, query_service: QueryService) -> None:
        """Initialize the query handler.

        Args:
            query_service: The query service for business logic (required).
        """
        self._service = query_service

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Handle POST /api/chat requests.

        Raises:
            HTTPException: 503 if a dependency failed, 500 otherwise
        """
        logger.info("Processing query for collection: %s", request.collection_id)

        try:
            answer = await self._service.answer(request.query, request.collection_id)
        except DependencyError as e:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Failed to process query: {e}",
            ) from e
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to process query: {e}",
            ) from e

        logger.info("Response source: %s", answer.origin.value)
        return ChatResponse.from_entity(answer)

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /api/health requests."""
        redis_healthy = await self._service.cache.health()
        qdrant_healthy = await self._service.retriever.is_available()
        all_healthy = redis_healthy and qdrant_healthy

        return HealthCheckResponse(
            status="healthy" if all_healthy else "unhealthy",
            redis=redis_healthy,
            qdrant=qdrant_healthy,
            message="All systems operational" if all_healthy else "Some services are down",
        )

    async def clear_cache(self, collection_id: str) -> CacheClearResponse:
        """Handle DELETE /api/cache/{collection_id} requests.

        Raises:
            HTTPException: 503 if the cache backend is unreachable
        """
        try:
            count = await self._service.cache.clear(collection_id)
        except CacheStoreError as e:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Failed to clear cache: {e}",
            ) from e

        return CacheClearResponse(
            success=True,
            deleted_count=count,
            message=f"Cleared {count} cache entries for collection {collection_id}",
        )

    async def get_stats(self, collection_id: str | None = None) -> StatsResponse:
        """Handle GET /api/stats requests.

        Raises:
            HTTPException: 503 if the cache backend is unreachable
        """
        try:
            cache_stats = await self._service.cache.get_stats(collection_id)
        except CacheStoreError as e:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Failed to get stats: {e}",
            ) from e

        return StatsResponse(cache=cache_stats, performance=self._service.get_metrics())
