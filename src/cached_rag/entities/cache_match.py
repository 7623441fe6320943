"""Cache match domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CacheMatchEntity:
    """Domain entity for a cache lookup hit.

    Attributes:
        key: Storage key of the matched entry
        query: The cached question that matched
        response: The cached answer
        similarity: Cosine similarity to the incoming query (1 = identical)
        cached_at: Timestamp when the entry was created (Unix timestamp)
    """

    key: str
    query: str
    response: str
    similarity: float
    cached_at: float
