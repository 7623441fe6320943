"""Query pipeline performance counters."""

from dataclasses import dataclass


@dataclass
class QueryMetrics:
    """Track performance metrics for answered queries."""

    total_queries: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    degraded_lookups: int = 0
    empty_context: int = 0
    failures: int = 0
    llm_calls: int = 0
    total_lookup_time_ms: float = 0.0
    total_llm_time_ms: float = 0.0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        if self.total_queries == 0:
            return 0.0
        return self.cache_hits / self.total_queries

    @property
    def avg_lookup_time_ms(self) -> float:
        """Calculate average lookup time."""
        if self.total_queries == 0:
            return 0.0
        return self.total_lookup_time_ms / self.total_queries

    def record_lookup(self, hit: bool, degraded: bool, lookup_time_ms: float) -> None:
        """Record the outcome of a cache lookup."""
        self.total_queries += 1
        self.total_lookup_time_ms += lookup_time_ms
        if hit:
            self.cache_hits += 1
        else:
            self.cache_misses += 1
        if degraded:
            self.degraded_lookups += 1

    def record_llm_call(self, duration_ms: float) -> None:
        """Record an answer synthesizer call."""
        self.llm_calls += 1
        self.total_llm_time_ms += duration_ms

    def record_empty_context(self) -> None:
        self.empty_context += 1

    def record_failure(self) -> None:
        self.failures += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "total_queries": self.total_queries,
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
            "degraded_lookups": self.degraded_lookups,
            "empty_context": self.empty_context,
            "failures": self.failures,
            "hit_rate": self.hit_rate,
            "avg_lookup_time_ms": self.avg_lookup_time_ms,
            "llm_calls": self.llm_calls,
            "total_llm_time_ms": self.total_llm_time_ms,
        }
