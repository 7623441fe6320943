"""Vector retriever protocol.

Nearest-neighbour search over the chunk embeddings of a document collection.
"""

from typing import Protocol, runtime_checkable

from cached_rag.entities import RetrievedChunk


@runtime_checkable
class VectorRetriever(Protocol):
    """Protocol for vector store search backends."""

    async def search(
        self,
        collection_id: str,
        vector: list[float],
        k: int,
    ) -> list[RetrievedChunk]:
        """Find the chunks closest to ``vector`` in a collection.

        Args:
            collection_id: The collection to search
            vector: The query embedding
            k: Maximum number of chunks to return

        Returns:
            At most k chunks, ordered by descending score

        Raises:
            RetrievalError: If the search fails
        """
        ...

    async def is_available(self) -> bool:
        """Check if the vector store is reachable. Never raises."""
        ...
