"""Qdrant implementation of VectorRetriever.

Uses Qdrant's REST API directly. Each document collection is a Qdrant
collection whose points carry ``{"text": ..., "source": ...}`` payloads.
"""

import logging
from urllib.parse import quote

import httpx

from cached_rag.config import settings
from cached_rag.entities import RetrievedChunk
from cached_rag.exceptions import RetrievalError

logger = logging.getLogger(__name__)


class QdrantRetriever:
    """Qdrant REST implementation of the VectorRetriever protocol.

    This class satisfies the VectorRetriever protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        retriever = QdrantRetriever.create()
        chunks = await retriever.search("handbook", vector, k=4)
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Qdrant retriever.

        Args:
            base_url: Qdrant URL. Defaults to settings.qdrant_url.
            api_key: Qdrant API key. Defaults to settings.qdrant_api_key.
            timeout: Request timeout in seconds. Defaults to settings.http_timeout.
            client: Pre-built HTTP client (mainly for tests).
        """
        self._base_url = (base_url or settings.qdrant_url).rstrip("/")
        self._api_key = api_key or settings.qdrant_api_key
        self._timeout = timeout or settings.http_timeout
        self._client = client

    @classmethod
    def create(cls, base_url: str | None = None, api_key: str | None = None) -> "QdrantRetriever":
        """Factory method to create QdrantRetriever with defaults."""
        return cls(base_url=base_url, api_key=api_key)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            headers = {"api-key": self._api_key} if self._api_key else {}
            self._client = httpx.AsyncClient(timeout=self._timeout, headers=headers)
        return self._client

    async def search(
        self,
        collection_id: str,
        vector: list[float],
        k: int,
    ) -> list[RetrievedChunk]:
        """Find the k nearest chunks in a collection.

        Args:
            collection_id: The Qdrant collection to search
            vector: The query embedding
            k: Maximum number of chunks to return

        Returns:
            Chunks in the order Qdrant returned them (descending score)

        Raises:
            RetrievalError: If the search request fails or the payload is malformed
        """
        url = f"{self._base_url}/collections/{quote(collection_id, safe='')}/points/search"
        payload = {"vector": vector, "limit": k, "with_payload": True}

        try:
            response = await self.client.post(url, json=payload)
            response.raise_for_status()
            points = response.json().get("result") or []
        except httpx.HTTPError as e:
            raise RetrievalError(f"Qdrant search in {collection_id!r} failed: {e}") from e
        except ValueError as e:
            raise RetrievalError(f"Qdrant returned invalid JSON: {e}") from e

        chunks = []
        for point in points[:k]:
            point_payload = point.get("payload") or {}
            text = point_payload.get("text")
            if not text:
                logger.warning("Skipping Qdrant point %s without text payload", point.get("id"))
                continue
            chunks.append(
                RetrievedChunk(
                    score=float(point.get("score", 0.0)),
                    text=text,
                    source=str(point_payload.get("source", "unknown")),
                )
            )

        logger.debug("Qdrant returned %d chunks for collection %s", len(chunks), collection_id)
        return chunks

    async def is_available(self) -> bool:
        """Check if Qdrant is reachable."""
        try:
            response = await self.client.get(f"{self._base_url}/healthz")
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning("Qdrant health check failed: %s", e)
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
