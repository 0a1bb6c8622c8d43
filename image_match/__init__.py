"""
image_match — Content-based image retrieval experiments.

Ranks a directory of images against a target image using center-patch
vectors, color and texture histograms, or precomputed deep embeddings,
alone or fused.

Modules:
    engine          RetrievalEngine, modes, retrieve()
    descriptors     Center-patch vectors and embedding lookup
    histograms      RG-chromaticity, HSV and texture histograms
    metrics         SSD, histogram intersection, cosine distance
    scoring         Score fusion and stable ranking
    preprocessing   Image validation, patch cropping, gradients
    candidates      Directory scanning and image decoding
    feature_store   Feature vector CSVs and the embedding store
    cli             Command-line interface
"""

from .engine import Mode, RetrievalEngine, RetrievalRequest, retrieve
from .errors import (
    RetrievalError, DecodeError, NotFoundError, ShapeMismatchError,
    InvalidModeError,
)
from .scoring import MatchResult, Orientation

__version__ = "1.0.0"
