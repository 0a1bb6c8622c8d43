"""
Directory candidate source.

Finds image files by extension and decodes them into RGB arrays. Files
that cannot be decoded are still yielded (with image None) so the engine
records them as per-candidate DecodeErrors instead of dropping them here.
"""

import os
import logging
from typing import Iterator, List, Optional, Tuple

import cv2
import numpy as np

from .errors import DecodeError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.ppm', '.tif', '.tiff',
                    '.bmp', '.webp'}


def is_image_file(filename: str) -> bool:
    """True if the filename has a supported image extension."""
    return os.path.splitext(filename)[1].lower() in IMAGE_EXTENSIONS


def list_image_files(image_dir: str) -> List[str]:
    """
    List image files directly inside a directory, sorted by name.

    Sorting keeps candidate traversal order, and therefore tie order in
    the ranking, reproducible across runs.

    Raises:
        FileNotFoundError: If image_dir is not a directory.
    """
    if not os.path.isdir(image_dir):
        raise FileNotFoundError(f"Cannot open directory {image_dir}")

    return [
        os.path.realpath(os.path.join(image_dir, f))
        for f in sorted(os.listdir(image_dir))
        if is_image_file(f) and os.path.isfile(os.path.join(image_dir, f))
    ]


def load_image(path: str) -> Optional[np.ndarray]:
    """Read an image file as RGB uint8, or None if it cannot be decoded."""
    image = cv2.imread(path)
    if image is None:
        logger.debug(f"Could not read: {path}")
        return None
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def read_image(path: str) -> np.ndarray:
    """
    Read an image file as RGB uint8.

    Raises:
        DecodeError: If the file is missing or cannot be decoded.
    """
    image = load_image(path)
    if image is None:
        raise DecodeError(f"Could not read image: {path}")
    return image


def iter_directory_candidates(image_dir: str
                              ) -> Iterator[Tuple[str, Optional[np.ndarray]]]:
    """
    Lazily yield (path, image) for every image file in a directory.

    Images are decoded one at a time as the engine consumes them.
    """
    paths = list_image_files(image_dir)
    logger.info(f"Found {len(paths)} image files in {image_dir}")
    for path in paths:
        yield path, load_image(path)
