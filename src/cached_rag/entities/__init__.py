"""Domain entities for internal representation.

These are pure dataclasses (mostly frozen) used internally by services
and repositories. They are NOT used for API contracts - use DTOs
from the dto package for that.

Entities should have:
- No JSON serialization logic
- No Pydantic validation
- No external dependencies
- Pure domain logic only
"""

from .answer import AnswerEntity, AnswerOrigin, QueryState
from .cache_entry import CacheEntryEntity
from .cache_match import CacheMatchEntity
from .cache_result import CacheLookupResult, CacheWriteResult, LookupStatus
from .query_metrics import QueryMetrics
from .retrieved_chunk import RetrievedChunk

__all__ = [
    "AnswerEntity",
    "AnswerOrigin",
    "CacheEntryEntity",
    "CacheLookupResult",
    "CacheMatchEntity",
    "CacheWriteResult",
    "LookupStatus",
    "QueryMetrics",
    "QueryState",
    "RetrievedChunk",
]
