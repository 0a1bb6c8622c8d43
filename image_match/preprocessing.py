"""
Image validation and conversion helpers shared by the descriptor extractors.

Every extractor funnels its input through validate_image() so that an
unreadable or zero-sized raster surfaces as a DecodeError instead of a
silently defaulted descriptor.
"""

import os
import logging

import cv2
import numpy as np

from .errors import DecodeError

logger = logging.getLogger(__name__)

# Side length of the square center patch used by the baseline descriptor.
PATCH_SIZE = int(os.environ.get("PATCH_SIZE", "7"))


def normalize_image(image_np: np.ndarray) -> np.ndarray:
    """Ensure image is uint8 format."""
    if image_np.dtype != np.uint8:
        if image_np.size and image_np.max() <= 1.0:
            image_np = (image_np * 255).astype(np.uint8)
        else:
            image_np = np.clip(image_np, 0, 255).astype(np.uint8)
    return image_np


def validate_image(image_np) -> np.ndarray:
    """
    Check that an image is a decodable raster and return it as uint8.

    Accepts (H, W) grayscale or (H, W, 3) RGB arrays.

    Raises:
        DecodeError: If the image is None, empty, has a zero dimension,
            or an unsupported channel layout.
    """
    if image_np is None:
        raise DecodeError("No image data")

    image_np = np.asarray(image_np)
    if image_np.ndim not in (2, 3):
        raise DecodeError(f"Unsupported image shape {image_np.shape}")
    if image_np.ndim == 3 and image_np.shape[2] != 3:
        raise DecodeError(f"Expected 3 color channels, got {image_np.shape[2]}")

    h, w = image_np.shape[:2]
    if h == 0 or w == 0:
        raise DecodeError(f"Image has zero dimension ({w}x{h})")

    return normalize_image(image_np)


def to_grayscale(image_np: np.ndarray) -> np.ndarray:
    """Return a single-channel intensity image."""
    image_np = validate_image(image_np)
    if image_np.ndim == 3:
        return cv2.cvtColor(image_np, cv2.COLOR_RGB2GRAY)
    return image_np


def to_rgb(image_np: np.ndarray) -> np.ndarray:
    """Return a three-channel RGB image, expanding grayscale input."""
    image_np = validate_image(image_np)
    if image_np.ndim == 2:
        return cv2.cvtColor(image_np, cv2.COLOR_GRAY2RGB)
    return image_np


def extract_center_patch(image_np: np.ndarray,
                         patch_size: int = None) -> np.ndarray:
    """
    Crop a fixed-size square patch centered on the image.

    The patch's top-left corner is (w // 2 - patch_size // 2,
    h // 2 - patch_size // 2). Unlike an adaptive crop, the patch is
    never shrunk or shifted to fit.

    Args:
        image_np: Grayscale or RGB uint8 image.
        patch_size: Side length in pixels (defaults to PATCH_SIZE).

    Returns:
        Copy of the patch, shape (patch_size, patch_size[, 3]).

    Raises:
        DecodeError: If the patch would extend past the image bounds.
    """
    image_np = validate_image(image_np)
    if patch_size is None:
        patch_size = PATCH_SIZE

    h, w = image_np.shape[:2]
    x1 = w // 2 - patch_size // 2
    y1 = h // 2 - patch_size // 2
    x2 = x1 + patch_size
    y2 = y1 + patch_size

    if x1 < 0 or y1 < 0 or x2 > w or y2 > h:
        raise DecodeError(
            f"Image {w}x{h} is too small for a {patch_size}x{patch_size} "
            f"center patch"
        )

    return image_np[y1:y2, x1:x2].copy()


def gradient_magnitude(image_np: np.ndarray) -> np.ndarray:
    """
    Compute the Sobel gradient magnitude of an image.

    Horizontal and vertical 3x3 Sobel responses are combined as
    sqrt(gx^2 + gy^2), saturated to the 8-bit range and scaled to [0, 1].

    Returns:
        Float32 single-channel magnitude image in [0, 1].
    """
    gray = to_grayscale(image_np).astype(np.float32)

    gx = cv2.Sobel(gray, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(gray, cv2.CV_32F, 0, 1, ksize=3)
    magnitude = cv2.magnitude(gx, gy)

    return np.clip(magnitude, 0, 255).astype(np.float32) / 255.0
