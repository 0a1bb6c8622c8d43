"""Tests for descriptor comparison metrics."""

import numpy as np
import pytest

from image_match.errors import ShapeMismatchError
from image_match.histograms import extract_rg_histogram, extract_hsv_histogram
from image_match.metrics import (
    sum_squared_difference, histogram_intersection, cosine_distance,
    cosine_similarity,
)

ALL_METRICS = [sum_squared_difference, histogram_intersection,
               cosine_distance, cosine_similarity]


class TestSumSquaredDifference:
    """Tests for SSD."""

    def test_self_distance_zero(self):
        v = np.arange(49, dtype=np.float32)
        assert sum_squared_difference(v, v) == 0.0

    def test_known_value(self):
        assert sum_squared_difference([1, 2, 3], [1, 4, 6]) == pytest.approx(13.0)

    def test_symmetric(self):
        a = np.array([3.0, 1.0, 0.5])
        b = np.array([0.0, 2.0, 2.5])
        assert sum_squared_difference(a, b) == sum_squared_difference(b, a)

    def test_no_uint8_overflow(self):
        a = np.zeros(4, dtype=np.uint8)
        b = np.full(4, 255, dtype=np.uint8)
        assert sum_squared_difference(a, b) == pytest.approx(4 * 255 ** 2)


class TestHistogramIntersection:
    """Tests for histogram intersection."""

    def test_self_intersection_is_sum(self, noise_image):
        hist = extract_hsv_histogram(noise_image)
        assert histogram_intersection(hist, hist) == pytest.approx(float(hist.sum()), rel=1e-6)

    def test_probability_histogram_self_intersection_is_one(self, red_square_image):
        hist = extract_rg_histogram(red_square_image)
        assert histogram_intersection(hist, hist) == pytest.approx(1.0, abs=1e-6)

    def test_known_value(self):
        h1 = np.array([[0.5, 0.2], [0.3, 0.0]])
        h2 = np.array([[0.1, 0.4], [0.3, 0.2]])
        assert histogram_intersection(h1, h2) == pytest.approx(0.6)

    def test_disjoint_histograms_zero(self):
        h1 = np.array([[1.0, 0.0]])
        h2 = np.array([[0.0, 1.0]])
        assert histogram_intersection(h1, h2) == 0.0

    def test_similar_beats_different(self, red_square_image, blue_circle_image):
        query = extract_rg_histogram(red_square_image)
        shifted = np.clip(red_square_image.astype(int) + 1, 0, 255).astype(np.uint8)
        near = histogram_intersection(query, extract_rg_histogram(shifted))
        far = histogram_intersection(query, extract_rg_histogram(blue_circle_image))
        assert near > far


class TestCosineDistance:
    """Tests for cosine distance and similarity."""

    def test_self_distance_zero(self):
        v = np.array([0.3, 1.2, -0.7, 4.0])
        assert cosine_distance(v, v) == pytest.approx(0.0, abs=1e-9)

    def test_scale_invariant(self):
        v = np.array([1.0, 2.0, 3.0])
        assert cosine_distance(v, 10 * v) == pytest.approx(0.0, abs=1e-9)

    def test_orthogonal_is_one(self):
        assert cosine_distance([1, 0], [0, 1]) == pytest.approx(1.0)

    def test_opposite_is_two(self):
        assert cosine_distance([1, 2], [-1, -2]) == pytest.approx(2.0)

    def test_zero_vector_is_maximal(self):
        assert cosine_distance([0, 0, 0], [1, 2, 3]) == 1.0
        assert cosine_distance([1, 2, 3], [0, 0, 0]) == 1.0

    def test_similarity_complements_distance(self):
        a = np.array([1.0, 2.0, 0.5])
        b = np.array([0.5, 1.0, 3.0])
        assert cosine_similarity(a, b) == pytest.approx(1.0 - cosine_distance(a, b))


class TestShapeMismatch:
    """Every metric refuses descriptors of different shapes."""

    @pytest.mark.parametrize("metric", ALL_METRICS)
    def test_length_mismatch(self, metric):
        with pytest.raises(ShapeMismatchError):
            metric(np.ones(49), np.ones(48))

    @pytest.mark.parametrize("metric", ALL_METRICS)
    def test_grid_mismatch(self, metric):
        with pytest.raises(ShapeMismatchError, match="shape"):
            metric(np.ones((30, 30)), np.ones((16, 16)))

    @pytest.mark.parametrize("metric", ALL_METRICS)
    def test_same_size_different_layout(self, metric):
        with pytest.raises(ShapeMismatchError):
            metric(np.ones((4, 4)), np.ones(16))

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            histogram_intersection(np.ones(3), np.ones(4))
