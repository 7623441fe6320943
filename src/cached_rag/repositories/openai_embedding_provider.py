"""OpenAI-compatible embedding provider.

Talks to ``POST {base_url}/embeddings``. Works with the OpenAI API and with
any server exposing the same endpoint (set OPENAI_BASE_URL).
"""

import logging

import httpx

from cached_rag.config import settings
from cached_rag.exceptions import EmbeddingError

logger = logging.getLogger(__name__)


class OpenAIEmbeddingProvider:
    """OpenAI embeddings implementation of EmbeddingProvider protocol.

    This class satisfies the EmbeddingProvider protocol through structural
    typing - no explicit inheritance needed.

    Default model: text-embedding-3-small (1536 dimensions)
    """

    MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        model_name: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the OpenAI embedding provider.

        Args:
            model_name: Embedding model. Defaults to settings.embedding_model.
            api_key: API key. Defaults to settings.openai_api_key.
            base_url: API base URL. Defaults to settings.openai_base_url.
            timeout: Request timeout in seconds. Defaults to settings.http_timeout.
            client: Pre-built HTTP client (mainly for tests).
        """
        self._model_name = model_name or settings.embedding_model
        self._api_key = api_key or settings.openai_api_key
        self._base_url = (base_url or settings.openai_base_url).rstrip("/")
        self._timeout = timeout or settings.http_timeout
        self._dimension: int | None = None
        self._client = client

    @classmethod
    def create(
        cls,
        model_name: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
    ) -> "OpenAIEmbeddingProvider":
        """Factory method to create OpenAIEmbeddingProvider with defaults."""
        return cls(model_name=model_name, api_key=api_key, base_url=base_url)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
            self._client = httpx.AsyncClient(timeout=self._timeout, headers=headers)
        return self._client

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            return self.MODEL_DIMENSIONS.get(self._model_name, 1536)
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    async def encode_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts in one request.

        Raises:
            EmbeddingError: If the API request fails or the payload is malformed
        """
        if not texts:
            return []

        try:
            response = await self.client.post(
                f"{self._base_url}/embeddings",
                json={"model": self._model_name, "input": texts},
            )
            response.raise_for_status()
            data = response.json()["data"]
            # The API may return items out of order; "index" is authoritative
            embeddings = [item["embedding"] for item in sorted(data, key=lambda d: d["index"])]
        except httpx.HTTPError as e:
            raise EmbeddingError(f"OpenAI embeddings request failed: {e}") from e
        except (ValueError, KeyError, TypeError) as e:
            raise EmbeddingError(f"Unexpected OpenAI embeddings response: {e}") from e

        if len(embeddings) != len(texts):
            raise EmbeddingError(
                f"OpenAI returned {len(embeddings)} embeddings for {len(texts)} inputs"
            )

        self._dimension = len(embeddings[0])
        return embeddings

    async def encode(self, text: str) -> list[float]:
        """Generate embedding vector for a single text."""
        embeddings = await self.encode_batch([text])
        return embeddings[0]

    async def is_available(self) -> bool:
        try:
            await self.encode("test")
            return True
        except EmbeddingError as e:
            logger.warning("OpenAI embeddings unavailable: %s", e)
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
