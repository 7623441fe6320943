"""Outcomes of cache reads and writes.

Cache failures never fail a query. Instead of swallowing them silently,
the cache service reports them here so callers and tests can tell a
genuine semantic miss apart from a miss caused by a broken backend.
"""

from dataclasses import dataclass
from enum import Enum

from .cache_match import CacheMatchEntity


class LookupStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class CacheLookupResult:
    status: LookupStatus
    match: CacheMatchEntity | None = None
    error: Exception | None = None

    @classmethod
    def hit(cls, match: CacheMatchEntity) -> "CacheLookupResult":
        return cls(status=LookupStatus.HIT, match=match)

    @classmethod
    def miss(cls) -> "CacheLookupResult":
        return cls(status=LookupStatus.MISS)

    @classmethod
    def degraded(cls, error: Exception) -> "CacheLookupResult":
        return cls(status=LookupStatus.DEGRADED, error=error)

    @property
    def is_hit(self) -> bool:
        return self.status is LookupStatus.HIT


@dataclass(frozen=True)
class CacheWriteResult:
    written: bool
    key: str | None = None
    error: Exception | None = None

    @property
    def is_degraded(self) -> bool:
        return not self.written
