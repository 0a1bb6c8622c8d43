"""
Descriptor comparison metrics.

    sum_squared_difference   distance, lower = closer, 0 for identical
    histogram_intersection   similarity, higher = closer
    cosine_distance          distance, lower = closer, 0 for parallel
    cosine_similarity        similarity, 1 - cosine_distance

Descriptors must have identical shapes. Every metric checks this and
raises ShapeMismatchError rather than broadcasting or truncating.
"""

import numpy as np

from .errors import ShapeMismatchError


def _check_shapes(a, b):
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ShapeMismatchError(
            f"Descriptor shape {a.shape} doesn't match {b.shape}"
        )
    return a, b


def sum_squared_difference(v1, v2) -> float:
    """Sum of squared element-wise differences."""
    a, b = _check_shapes(v1, v2)
    diff = a - b
    return float(np.sum(diff * diff))


def histogram_intersection(h1, h2) -> float:
    """Sum of the bin-wise minimum of two histograms."""
    a, b = _check_shapes(h1, h2)
    return float(np.sum(np.minimum(a, b)))


def cosine_distance(v1, v2) -> float:
    """
    1 - cos(angle) between two vectors.

    A zero-magnitude vector has no direction; it is treated as maximally
    distant and scores 1.0.
    """
    a, b = _check_shapes(v1, v2)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 1.0
    return float(1.0 - np.dot(a.ravel(), b.ravel()) / (norm_a * norm_b))


def cosine_similarity(v1, v2) -> float:
    """Cosine of the angle between two vectors (0.0 for zero vectors)."""
    return 1.0 - cosine_distance(v1, v2)
