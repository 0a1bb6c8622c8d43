"""
Vector descriptors: the baseline center patch and stored deep embeddings.

Histogram descriptors live in histograms.py.
"""

import os
import logging

import numpy as np

from .preprocessing import to_grayscale, extract_center_patch

logger = logging.getLogger(__name__)


def extract_center_patch_vector(image_np: np.ndarray,
                                patch_size: int = None) -> np.ndarray:
    """
    Flatten the intensity values of the center patch into a vector.

    Args:
        image_np: RGB or grayscale uint8 image.
        patch_size: Side length of the patch (defaults to PATCH_SIZE, 7).

    Returns:
        Float32 vector of length patch_size ** 2, row-major.

    Raises:
        DecodeError: If the image is unreadable or smaller than the patch.
    """
    gray = to_grayscale(image_np)
    patch = extract_center_patch(gray, patch_size)
    return patch.reshape(-1).astype(np.float32)


def embedding_key(identifier: str) -> str:
    """
    Key used to find an identifier's stored embedding: its base filename.

    Two images with the same basename in different directories map to the
    same key and share one embedding.
    """
    return os.path.basename(identifier)


def extract_embedding(identifier: str, store) -> np.ndarray:
    """
    Return the precomputed embedding for an image identifier.

    Args:
        identifier: Image path or name.
        store: EmbeddingStore loaded before retrieval.

    Raises:
        NotFoundError: If the store has no entry for the base filename.
    """
    return store.lookup(embedding_key(identifier))
