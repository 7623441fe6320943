"""Retrieved document chunk."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RetrievedChunk:
    """A single nearest-neighbour hit returned by a vector retriever.

    Attributes:
        score: Similarity score reported by the vector store
        text: Chunk text
        source: Label of the document the chunk came from
    """

    score: float
    text: str
    source: str
