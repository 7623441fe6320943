"""Embedding provider protocol.

Defines the interface for any embedding generation service that can
convert text to vector embeddings.

Implementations can include:
- OpenAI-compatible embeddings API (default)
- Ollama (local HTTP API)
- sentence-transformers (local, in-process)
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding generation services.

    Any type that implements these methods satisfies the protocol,
    no explicit inheritance needed.

    Example:
        ```python
        provider: EmbeddingProvider = OpenAIEmbeddingProvider.create()
        provider: EmbeddingProvider = OllamaEmbeddingProvider.create()
        ```
    """

    @property
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors.

        Returns:
            The vector dimension (e.g., 1536 for text-embedding-3-small)
        """
        ...

    @property
    def model_name(self) -> str:
        """Return the name/identifier of the model.

        Entries embedded by different models are never compared, so this
        must change whenever the vector space changes.
        """
        ...

    async def encode(self, text: str) -> list[float]:
        """Generate embedding vector for a single text.

        Raises:
            EmbeddingError: If the provider fails
        """
        ...

    async def encode_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts efficiently.

        Raises:
            EmbeddingError: If the provider fails
        """
        ...

    async def is_available(self) -> bool:
        """Check if the embedding provider is available. Never raises."""
        ...
