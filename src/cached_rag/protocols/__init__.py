"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (Redis → PostgreSQL, OpenAI → Ollama, etc.)
- Unit testing with fake implementations
- Clear separation of concerns

Usage:
    ```python
    from cached_rag.protocols import CacheStore, VectorRetriever

    repo: CacheStore = RedisCacheRepository.create()
    retriever: VectorRetriever = QdrantRetriever.create()
    ```
"""

from .answer_synthesizer import AnswerSynthesizer
from .cache_store import CacheStore
from .embedding_provider import EmbeddingProvider
from .vector_retriever import VectorRetriever

__all__ = [
    "AnswerSynthesizer",
    "CacheStore",
    "EmbeddingProvider",
    "VectorRetriever",
]
