"""Exception hierarchy.

Dependency errors are fatal to the query that raised them and are never
retried here. Cache failures are absorbed by the cache service and reported
through result objects instead (see ``entities.cache_result``).
"""


class CachedRagError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(CachedRagError, ValueError):
    """Invalid settings or missing credentials, detected at startup."""


class DependencyError(CachedRagError):
    """An external collaborator failed or could not be reached."""


class EmbeddingError(DependencyError):
    """The embedding provider failed to produce a vector."""


class RetrievalError(DependencyError):
    """The vector store search failed."""


class GenerationError(DependencyError):
    """The answer synthesizer failed to produce text."""


class CacheStoreError(DependencyError):
    """The cache backend could not be read or written."""
