"""Vector similarity helpers shared by the cache service and tests."""

from collections.abc import Sequence

import numpy as np


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity between two vectors of equal length.

    A zero-magnitude vector yields 0.0 so it can never clear a positive
    threshold. The result is clamped to [-1, 1].

    Args:
        a: First vector
        b: Second vector

    Returns:
        dot(a, b) / (|a| * |b|)

    Raises:
        ValueError: If the vectors are empty or differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)

    if va.ndim != 1 or vb.ndim != 1:
        raise ValueError("cosine_similarity expects one-dimensional vectors")
    if va.size == 0 or va.size != vb.size:
        raise ValueError(
            f"Vectors must have equal, nonzero length (got {va.size} and {vb.size})"
        )

    dot = float(np.dot(va, vb))
    # sqrt(|a|^2 * |b|^2) keeps cosine_similarity(a, a) exactly 1.0
    denominator = float(np.sqrt(np.dot(va, va) * np.dot(vb, vb)))
    if denominator == 0.0:
        return 0.0

    return max(-1.0, min(1.0, dot / denominator))
