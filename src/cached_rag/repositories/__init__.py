"""Repository layer for data access and external collaborators.

This layer wraps external dependencies (Redis, Qdrant, embedding and
generation APIs) behind the protocols in ``cached_rag.protocols``. This enables:
- Easy swapping of implementations (OpenAI → Ollama, Redis → another store)
- Unit testing with fake implementations
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.

``LocalEmbeddingProvider`` pulls in sentence-transformers, so it is only
imported on demand (see ``factory.create_embedding_provider``).
"""

from cached_rag.protocols import AnswerSynthesizer, CacheStore, EmbeddingProvider, VectorRetriever

from .factory import create_embedding_provider, create_synthesizer
from .ollama_embedding_provider import OllamaEmbeddingProvider
from .ollama_synthesizer import OllamaSynthesizer
from .openai_embedding_provider import OpenAIEmbeddingProvider
from .openai_synthesizer import OpenAIChatSynthesizer
from .qdrant_retriever import QdrantRetriever
from .redis_repository import RedisCacheRepository, derive_query_key

__all__ = [
    "AnswerSynthesizer",
    "CacheStore",
    "EmbeddingProvider",
    "VectorRetriever",
    "OllamaEmbeddingProvider",
    "OllamaSynthesizer",
    "OpenAIChatSynthesizer",
    "OpenAIEmbeddingProvider",
    "QdrantRetriever",
    "RedisCacheRepository",
    "create_embedding_provider",
    "create_synthesizer",
    "derive_query_key",
]
