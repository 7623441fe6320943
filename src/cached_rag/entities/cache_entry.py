"""Cache entry domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CacheEntryEntity:
    """Domain entity for a cached query-response pair.

    This is an internal representation used by services and repositories.
    For API contracts, use the DTO classes from the dto package.

    Attributes:
        collection_id: Namespace of the document collection this entry belongs to
        query: The original question text
        response: The synthesized answer
        embedding: The embedding vector for the query
        embedding_model: Identifier of the model that produced the embedding
        created_at: When this entry was created (Unix timestamp)
        ttl: Seconds after created_at during which the entry is readable
    """

    collection_id: str
    query: str
    response: str
    embedding: list[float]
    embedding_model: str
    created_at: float
    ttl: int

    @property
    def expires_at(self) -> float:
        """Unix timestamp after which the entry is no longer readable."""
        return self.created_at + self.ttl

    def is_expired(self, now: float) -> bool:
        """Check whether the entry has outlived its TTL at ``now``."""
        return now >= self.expires_at
