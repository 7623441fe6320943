"""Request DTOs for API endpoints."""

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Request DTO for asking a question about a collection.

    Accepts ``collectionId`` (wire name) or ``collection_id``.
    """

    model_config = ConfigDict(populate_by_name=True)

    query: str = Field(..., description="The question to answer", min_length=1)
    collection_id: str = Field(
        ...,
        alias="collectionId",
        description="Identifier of the ingested document collection",
        min_length=1,
    )
