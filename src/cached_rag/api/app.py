from typing import Any

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cached_rag.api.dependencies import HandlerDep, ServiceDep, make_lifespan
from cached_rag.config import settings
from cached_rag.dto import (
    CacheClearResponse,
    ChatRequest,
    ChatResponse,
    HealthCheckResponse,
    StatsResponse,
)
from cached_rag.services import QueryService

API_TITLE = "Cached RAG API"
API_VERSION = "0.1.0"
API_DESCRIPTION = "Document question answering with a semantic answer cache"


def create_app(query_service: QueryService | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        query_service: Pre-built query service. If None, one is built from
            settings when the app starts.
    """
    app = FastAPI(
        title=API_TITLE,
        description=API_DESCRIPTION,
        version=API_VERSION,
        lifespan=make_lifespan(query_service),
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root(service: ServiceDep) -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": API_TITLE,
            "version": API_VERSION,
            "description": API_DESCRIPTION,
            "similarity_threshold": service.cache.threshold,
            "top_k": service.top_k,
            "endpoints": {
                "chat": "/api/chat",
                "health": "/api/health",
                "cache": "/api/cache/{collection_id}",
                "stats": "/api/stats",
                "docs": "/docs",
            },
        }

    @app.post("/api/chat", response_model=ChatResponse, response_model_exclude_none=True)
    async def chat(request: ChatRequest, handler: HandlerDep) -> ChatResponse:
        """Answer a question about an ingested collection."""
        return await handler.chat(request)

    @app.get("/api/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> JSONResponse:
        """Health check endpoint. Returns 503 when any backend is down."""
        result = await handler.health_check()
        code = status.HTTP_200_OK if result.status == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE
        return JSONResponse(status_code=code, content=result.model_dump())

    @app.delete("/api/cache/{collection_id}", response_model=CacheClearResponse)
    async def clear_cache(collection_id: str, handler: HandlerDep) -> CacheClearResponse:
        """Clear every cached answer of a collection."""
        return await handler.clear_cache(collection_id)

    @app.get("/api/stats", response_model=StatsResponse)
    async def stats(handler: HandlerDep, collection_id: str | None = None) -> StatsResponse:
        """Get cache statistics and query metrics."""
        return await handler.get_stats(collection_id)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "cached_rag.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
