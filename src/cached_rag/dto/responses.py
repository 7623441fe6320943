"""Response DTOs for API endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, Field

from cached_rag.entities import AnswerEntity, AnswerOrigin


class ChatResponse(BaseModel):
    """Response DTO for a chat query.

    ``similarity`` is set only for cache answers and ``sources`` only for
    vector store answers; unset fields are dropped from the JSON body.
    """

    response: str = Field(..., description="The answer text")
    source: Literal["cache", "vectordb"] = Field(..., description="Where the answer came from")
    similarity: float | None = Field(
        None,
        description="Cosine similarity of the cached question (cache answers only)",
        ge=-1.0,
        le=1.0,
    )
    sources: list[str] | None = Field(
        None,
        description="Source documents cited in the context (vectordb answers only)",
    )

    @classmethod
    def from_entity(cls, answer: AnswerEntity) -> "ChatResponse":
        if answer.origin is AnswerOrigin.CACHE:
            return cls(response=answer.text, source="cache", similarity=answer.similarity)
        return cls(response=answer.text, source="vectordb", sources=list(answer.cited_sources or []))


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    redis: bool = Field(..., description="Whether the cache backend is reachable")
    qdrant: bool = Field(..., description="Whether the vector store is reachable")
    message: str | None = Field(None, description="Human-readable summary")


class CacheClearResponse(BaseModel):
    """Response DTO for clearing a collection's cache."""

    success: bool = Field(..., description="Whether the operation succeeded")
    deleted_count: int = Field(..., description="Number of entries removed", ge=0)
    message: str = Field(..., description="Human-readable status message")


class StatsResponse(BaseModel):
    """Response DTO for cache and query statistics."""

    cache: dict[str, Any] = Field(..., description="Cache statistics")
    performance: dict[str, float | int] = Field(..., description="Query pipeline metrics")
