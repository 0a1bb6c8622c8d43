"""
Image retrieval engine.

Ranks a stream of candidate images against a query image:
    1. Resolve the mode to its fixed descriptor families
    2. Extract the query descriptor for each family
    3. Score every candidate (skipping the query itself) per family
    4. Fuse per-family scores when the mode has more than one family
    5. Stable-sort by the mode's orientation and keep the top N

A candidate that cannot be decoded, or has no stored embedding, is skipped
and traversal continues. A descriptor shape mismatch is a configuration
error that affects every comparison, so it aborts the call.
"""

import os
import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from .descriptors import extract_center_patch_vector, extract_embedding, embedding_key
from .errors import DecodeError, InvalidModeError, NotFoundError, ShapeMismatchError
from .feature_store import EmbeddingStore
from .histograms import (
    extract_rg_histogram, extract_hsv_histogram, extract_texture_histogram,
)
from .metrics import (
    sum_squared_difference, histogram_intersection, cosine_distance,
    cosine_similarity,
)
from .scoring import (
    MatchResult, Orientation, check_fusable, fuse_score_lists, rank_results,
)

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = int(os.environ.get("DEFAULT_TOP_N", "3"))


class Mode(str, enum.Enum):
    """Retrieval modes. Each selects a fixed set of descriptor families."""

    BASELINE_PATCH = "baseline-patch"
    RG_CHROMATICITY = "rg-chromaticity"
    HSV = "hsv"
    RG_HSV = "rg+hsv"
    COLOR_TEXTURE = "color+texture"
    DEEP_EMBEDDING = "deep-embedding"
    COLOR_TEXTURE_DEEP = "color+texture+deep-embedding"


@dataclass(frozen=True)
class Family:
    """One extractor + metric pairing contributing a score to a mode."""

    name: str
    extract: Callable[[str, Any, Optional[EmbeddingStore]], np.ndarray]
    metric: Callable[[np.ndarray, np.ndarray], float]
    orientation: Orientation
    needs_embeddings: bool = False


def _patch(identifier, image, store):
    return extract_center_patch_vector(image)


def _rg(identifier, image, store):
    return extract_rg_histogram(image)


def _hsv(identifier, image, store):
    return extract_hsv_histogram(image)


def _texture(identifier, image, store):
    return extract_texture_histogram(image)


def _embedding(identifier, image, store):
    return extract_embedding(identifier, store)


PATCH_SSD = Family("center-patch", _patch, sum_squared_difference,
                   Orientation.ASCENDING)
RG_INTERSECTION = Family("rg-histogram", _rg, histogram_intersection,
                         Orientation.DESCENDING)
HSV_INTERSECTION = Family("hsv-histogram", _hsv, histogram_intersection,
                          Orientation.DESCENDING)
TEXTURE_INTERSECTION = Family("texture-histogram", _texture,
                              histogram_intersection, Orientation.DESCENDING)
EMBEDDING_DISTANCE = Family("embedding", _embedding, cosine_distance,
                            Orientation.ASCENDING, needs_embeddings=True)
# Fused with histogram intersections, so it must also be higher-is-better.
EMBEDDING_SIMILARITY = Family("embedding", _embedding, cosine_similarity,
                              Orientation.DESCENDING, needs_embeddings=True)

MODE_FAMILIES: Dict[Mode, Tuple[Family, ...]] = {
    Mode.BASELINE_PATCH: (PATCH_SSD,),
    Mode.RG_CHROMATICITY: (RG_INTERSECTION,),
    Mode.HSV: (HSV_INTERSECTION,),
    Mode.RG_HSV: (RG_INTERSECTION, HSV_INTERSECTION),
    Mode.COLOR_TEXTURE: (RG_INTERSECTION, TEXTURE_INTERSECTION),
    Mode.DEEP_EMBEDDING: (EMBEDDING_DISTANCE,),
    Mode.COLOR_TEXTURE_DEEP: (RG_INTERSECTION, TEXTURE_INTERSECTION,
                              EMBEDDING_SIMILARITY),
}


def parse_mode(mode) -> Mode:
    """
    Resolve a mode name (or Mode) to a Mode.

    Raises:
        InvalidModeError: If the name is not a known mode.
    """
    if isinstance(mode, Mode):
        return mode
    try:
        return Mode(mode)
    except ValueError:
        known = ", ".join(m.value for m in Mode)
        raise InvalidModeError(f"Unknown mode '{mode}' (expected one of: {known})") from None


def mode_orientation(mode) -> Orientation:
    """Sort orientation of a mode's (fused) score."""
    families = MODE_FAMILIES[parse_mode(mode)]
    return check_fusable([f.orientation for f in families])


@dataclass(frozen=True)
class RetrievalRequest:
    """A single query: validated on construction, immutable afterwards."""

    query_identifier: str
    query_image: Any
    mode: Mode
    top_n: int = DEFAULT_TOP_N

    def __post_init__(self):
        object.__setattr__(self, "mode", parse_mode(self.mode))
        if isinstance(self.top_n, bool) or not isinstance(self.top_n, (int, np.integer)):
            raise TypeError(f"top_n must be an int, got {type(self.top_n).__name__}")
        if self.top_n < 0:
            raise ValueError(f"top_n must be non-negative, got {self.top_n}")


class RetrievalEngine:
    """
    Content-based image retrieval over a stream of candidate images.

    Holds the read-only embedding store (if any) used by the
    deep-embedding modes. Nothing else is kept between calls.
    """

    def __init__(self, embeddings: Optional[EmbeddingStore] = None):
        """
        Args:
            embeddings: Precomputed embeddings for the deep-embedding
                modes. Other modes don't need it.
        """
        self.embeddings = embeddings

    @classmethod
    def from_embeddings_csv(cls, path: str) -> "RetrievalEngine":
        """Create an engine with an embedding store loaded from CSV."""
        return cls(EmbeddingStore.from_csv(path))

    def search(self,
               query_identifier: str,
               query_image,
               candidates: Iterable[Tuple[str, Any]],
               mode=Mode.BASELINE_PATCH,
               top_n: int = DEFAULT_TOP_N) -> List[MatchResult]:
        """Build a RetrievalRequest and run it. See retrieve()."""
        request = RetrievalRequest(query_identifier, query_image, mode, top_n)
        return self.retrieve(request, candidates)

    def retrieve(self,
                 request: RetrievalRequest,
                 candidates: Iterable[Tuple[str, Any]]) -> List[MatchResult]:
        """
        Rank candidates against the query.

        Args:
            request: Query identifier, image, mode and top_n.
            candidates: Iterable of (identifier, image) pairs. image may be
                None for files that failed to decode.

        Returns:
            Up to top_n MatchResults, best first. Ties keep candidate
            traversal order.

        Raises:
            InvalidModeError: If the mode needs embeddings and none are loaded.
            DecodeError, NotFoundError: If the query itself can't be described.
            ShapeMismatchError: If query and candidate descriptors differ
                in shape.
        """
        families = MODE_FAMILIES[request.mode]
        if any(f.needs_embeddings for f in families) and self.embeddings is None:
            raise InvalidModeError(
                f"Mode '{request.mode.value}' requires an embedding store"
            )
        orientation = check_fusable([f.orientation for f in families])

        if request.top_n == 0:
            logger.debug("top_n is 0, nothing to retrieve")
            return []

        query_descriptors = [
            f.extract(request.query_identifier, request.query_image, self.embeddings)
            for f in families
        ]

        identifiers = []
        score_lists = [[] for _ in families]
        skipped = 0

        for identifier, image in candidates:
            if identifier == request.query_identifier:
                continue

            try:
                scores = self._score_candidate(families, query_descriptors,
                                               identifier, image)
            except (DecodeError, NotFoundError) as e:
                logger.warning(f"Skipping {identifier}: {e}")
                skipped += 1
                continue
            except ShapeMismatchError as e:
                logger.error(f"Aborting retrieval at {identifier}: {e}")
                raise

            # Append only after every family scored, keeping lists aligned.
            identifiers.append(identifier)
            for family_scores, score in zip(score_lists, scores):
                family_scores.append(score)

        if len(families) == 1:
            totals = score_lists[0]
        else:
            totals = fuse_score_lists(score_lists)

        results = [MatchResult(i, s) for i, s in zip(identifiers, totals)]
        ranked = rank_results(results, orientation, request.top_n)

        logger.info(
            f"Retrieval complete ({request.mode.value}): {len(results)} scored, "
            f"{skipped} skipped → {len(ranked)} results"
        )
        return ranked

    def _score_candidate(self, families, query_descriptors, identifier, image):
        scores = []
        for family, query_descriptor in zip(families, query_descriptors):
            descriptor = family.extract(identifier, image, self.embeddings)
            score = family.metric(query_descriptor, descriptor)
            logger.debug(f"{identifier} {family.name}: {score:.6f}")
            scores.append(score)
        return scores


def retrieve(query_identifier: str,
             query_image,
             candidates: Iterable[Tuple[str, Any]],
             mode=Mode.BASELINE_PATCH,
             top_n: int = DEFAULT_TOP_N,
             embeddings: Optional[EmbeddingStore] = None) -> List[MatchResult]:
    """Rank candidate images against a query. See RetrievalEngine.retrieve()."""
    return RetrievalEngine(embeddings).search(
        query_identifier, query_image, candidates, mode, top_n
    )


def rank_records(query_identifier: str,
                 query_descriptor: np.ndarray,
                 records: Iterable[Tuple[str, np.ndarray]],
                 metric: Callable[[np.ndarray, np.ndarray], float] = sum_squared_difference,
                 orientation: Orientation = Orientation.ASCENDING,
                 top_n: int = DEFAULT_TOP_N) -> List[MatchResult]:
    """
    Rank precomputed (identifier, descriptor) records against a query vector.

    Used for descriptors read back from a feature file. The record whose
    identifier equals query_identifier is excluded.

    Raises:
        ShapeMismatchError: If a record's descriptor shape differs from
            the query's.
        ValueError: If top_n is negative.
    """
    if top_n < 0:
        raise ValueError(f"top_n must be non-negative, got {top_n}")

    results = [
        MatchResult(identifier, metric(query_descriptor, descriptor))
        for identifier, descriptor in records
        if identifier != query_identifier
    ]
    ranked = rank_results(results, orientation, top_n)
    logger.info(f"Ranked {len(results)} records → {len(ranked)} results")
    return ranked


def match_embeddings(query_identifier: str,
                     store: EmbeddingStore,
                     top_n: int = DEFAULT_TOP_N) -> List[MatchResult]:
    """
    Rank every stored embedding by cosine distance to the query's.

    Raises:
        NotFoundError: If the query has no stored embedding.
    """
    key = embedding_key(query_identifier)
    query_vector = store.lookup(key)
    return rank_records(key, query_vector, store.items(),
                        cosine_distance, Orientation.ASCENDING, top_n)
