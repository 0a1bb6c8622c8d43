"""
Color and texture histogram extraction.

Three histogram descriptors, each with its own normalization:

    rg chromaticity   2D r×g grid, divided by pixel count (sums to 1)
    hsv               2D hue×saturation grid, divided by the max bin
    texture           1D gradient-magnitude histogram, divided by the max bin

The conventions are not interchangeable. Fused scores add intersections
computed on these scales, so each extractor keeps its own.

Bin counts are configurable via environment variables (RG_HIST_SIZE,
HSV_H_BINS, HSV_S_BINS, TEXTURE_BINS) or per call.
"""

import os
import logging

import cv2
import numpy as np

from .preprocessing import to_rgb, gradient_magnitude

logger = logging.getLogger(__name__)

RG_HIST_SIZE = int(os.environ.get("RG_HIST_SIZE", "30"))
H_BINS = int(os.environ.get("HSV_H_BINS", "30"))
S_BINS = int(os.environ.get("HSV_S_BINS", "30"))
TEXTURE_BINS = int(os.environ.get("TEXTURE_BINS", "256"))


def _min_max_normalize(hist: np.ndarray) -> np.ndarray:
    """Scale so the largest bin equals 1. All-zero histograms are unchanged."""
    peak = hist.max()
    if peak > 0:
        hist = hist / peak
    return hist.astype(np.float32)


def extract_rg_histogram(image_np: np.ndarray,
                         hist_size: int = None) -> np.ndarray:
    """
    Extract an RG-chromaticity histogram.

    Each pixel maps to r = R / (R+G+B), g = G / (R+G+B), with the divisor
    forced to 1 for black pixels. Both coordinates are quantized with
    round(value * (hist_size - 1)) and the histogram is divided by the
    number of pixels.

    Args:
        image_np: RGB (or grayscale) uint8 image.
        hist_size: Bins per axis (defaults to RG_HIST_SIZE).

    Returns:
        Float32 array of shape (hist_size, hist_size), rows indexed by r,
        columns by g, summing to 1.

    Raises:
        DecodeError: If the image cannot be interpreted.
    """
    if hist_size is None:
        hist_size = RG_HIST_SIZE

    rgb = to_rgb(image_np).astype(np.float64)
    red, green, blue = rgb[:, :, 0], rgb[:, :, 1], rgb[:, :, 2]

    divisor = red + green + blue
    divisor[divisor == 0] = 1.0
    r = red / divisor
    g = green / divisor

    r_idx = np.clip(np.floor(r * (hist_size - 1) + 0.5), 0, hist_size - 1).astype(np.intp)
    g_idx = np.clip(np.floor(g * (hist_size - 1) + 0.5), 0, hist_size - 1).astype(np.intp)

    flat = np.bincount((r_idx * hist_size + g_idx).ravel(),
                       minlength=hist_size * hist_size)
    hist = flat.reshape(hist_size, hist_size).astype(np.float64)
    hist /= r_idx.size

    return hist.astype(np.float32)


def extract_hsv_histogram(image_np: np.ndarray,
                          h_bins: int = None,
                          s_bins: int = None) -> np.ndarray:
    """
    Extract a min-max normalized hue×saturation histogram.

    Hue (0-180) and saturation (0-256) are binned uniformly, i.e.
    floor(value * bins / range).

    Args:
        image_np: RGB (or grayscale) uint8 image.
        h_bins: Hue bins (defaults to H_BINS).
        s_bins: Saturation bins (defaults to S_BINS).

    Returns:
        Float32 array of shape (h_bins, s_bins) with maximum bin 1.

    Raises:
        DecodeError: If the image cannot be interpreted.
    """
    if h_bins is None:
        h_bins = H_BINS
    if s_bins is None:
        s_bins = S_BINS

    hsv = cv2.cvtColor(to_rgb(image_np), cv2.COLOR_RGB2HSV)

    # 2D histogram: Hue (0-180) × Saturation (0-256)
    hist = cv2.calcHist([hsv], [0, 1], None,
                        [h_bins, s_bins], [0, 180, 0, 256])

    return _min_max_normalize(hist)


def extract_texture_histogram(image_np: np.ndarray,
                              bins: int = None) -> np.ndarray:
    """
    Extract a min-max normalized gradient-magnitude histogram.

    Magnitudes in [0, 1] are binned with
    floor((value - min) / ((max - min) / bins)); the maximum value lands in
    the last bin. A flat image (max == min) puts every pixel in bin 0.

    Args:
        image_np: RGB or grayscale uint8 image.
        bins: Number of buckets (defaults to TEXTURE_BINS).

    Returns:
        Float32 vector of length bins with maximum bin 1.

    Raises:
        DecodeError: If the image cannot be interpreted.
    """
    if bins is None:
        bins = TEXTURE_BINS

    magnitude = gradient_magnitude(image_np).astype(np.float64)
    low = magnitude.min()
    high = magnitude.max()

    if high > low:
        bin_width = (high - low) / bins
        idx = np.floor((magnitude - low) / bin_width)
        idx = np.clip(idx, 0, bins - 1).astype(np.intp)
    else:
        idx = np.zeros(magnitude.shape, dtype=np.intp)

    hist = np.bincount(idx.ravel(), minlength=bins).astype(np.float64)
    return _min_max_normalize(hist)
