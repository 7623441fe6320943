"""Local sentence-transformers embedding provider.

Runs a sentence-transformers model in-process. No API calls required.
Encoding is CPU/GPU bound, so it is pushed to a worker thread to keep the
event loop responsive.
"""

import asyncio
import logging
import time

import numpy as np
from sentence_transformers import SentenceTransformer

from cached_rag.config import settings
from cached_rag.exceptions import EmbeddingError

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_MODEL = "paraphrase-multilingual-MiniLM-L12-v2"


class LocalEmbeddingProvider:
    """Local sentence-transformers implementation of EmbeddingProvider.

    This class satisfies the EmbeddingProvider protocol through structural
    typing - no explicit inheritance needed.

    Default model: paraphrase-multilingual-MiniLM-L12-v2 (384 dimensions)
    """

    def __init__(self, model_name: str | None = None) -> None:
        """Initialize the local embedding provider.

        Args:
            model_name: Name of the sentence-transformers model.
                       Defaults to settings.embedding_model.
        """
        self._model_name = model_name or settings.embedding_model
        self._model: SentenceTransformer | None = None
        self._dimension: int | None = None

    @classmethod
    def create(cls, model_name: str | None = None) -> "LocalEmbeddingProvider":
        """Factory method to create LocalEmbeddingProvider with defaults."""
        return cls(model_name=model_name)

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the embedding model."""
        if self._model is None:
            logger.info("Loading embedding model: %s", self._model_name)
            start_time = time.time()
            self._model = SentenceTransformer(self._model_name)
            logger.info("Model loaded in %.2fs", time.time() - start_time)
        return self._model

    @property
    def dimension(self) -> int:
        """Get the embedding vector dimension."""
        if self._dimension is None:
            sample_embedding = self.model.encode(["test"], show_progress_bar=False)
            self._dimension = len(sample_embedding[0])
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    def _encode_sync(self, texts: list[str]) -> list[list[float]]:
        embeddings = self.model.encode(
            texts,
            show_progress_bar=False,
            normalize_embeddings=True,
        )
        return np.asarray(embeddings).tolist()

    async def encode(self, text: str) -> list[float]:
        """Generate embedding vector for a single text."""
        embeddings = await self.encode_batch([text])
        return embeddings[0]

    async def encode_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts efficiently.

        Raises:
            EmbeddingError: If the model fails to load or encode
        """
        if not texts:
            return []
        try:
            return await asyncio.to_thread(self._encode_sync, texts)
        except (OSError, RuntimeError, ValueError) as e:
            raise EmbeddingError(f"Local embedding model {self._model_name!r} failed: {e}") from e

    async def is_available(self) -> bool:
        """Check if the embedding model can be loaded."""
        try:
            await asyncio.to_thread(lambda: self.model)
            return True
        except (OSError, RuntimeError, ValueError) as e:
            logger.warning("Local embedding model unavailable: %s", e)
            return False
