"""Answer domain entity and the per-query pipeline states."""

from dataclasses import dataclass, field
from enum import Enum

from .cache_result import LookupStatus


class AnswerOrigin(str, Enum):
    CACHE = "cache"
    VECTORDB = "vectordb"


class QueryState(str, Enum):
    """States a single query moves through in the orchestrator.

    START -> CACHE_CHECK -> CACHE_HIT
                         -> RETRIEVE -> EMPTY_CONTEXT
                                     -> SYNTHESIZE -> CACHE_WRITE -> DONE

    Any error raised while in RETRIEVE or SYNTHESIZE moves to FAILED.
    """

    START = "start"
    CACHE_CHECK = "cache_check"
    CACHE_HIT = "cache_hit"
    RETRIEVE = "retrieve"
    EMPTY_CONTEXT = "empty_context"
    SYNTHESIZE = "synthesize"
    CACHE_WRITE = "cache_write"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class AnswerEntity:
    """Result of answering one query.

    Attributes:
        text: The answer text
        origin: Whether the answer came from the cache or from retrieval + synthesis
        cache_status: Outcome of the cache lookup that preceded this answer
        similarity: Similarity of the cache match (cache answers only)
        cited_sources: Deduplicated source labels (vectordb answers only)
        cached: Whether a vectordb answer was written back to the cache
        trace: Pipeline states visited, in order
    """

    text: str
    origin: AnswerOrigin
    cache_status: LookupStatus
    similarity: float | None = None
    cited_sources: list[str] | None = None
    cached: bool = False
    trace: tuple[QueryState, ...] = field(default_factory=tuple)

    @property
    def from_cache(self) -> bool:
        return self.origin is AnswerOrigin.CACHE
