"""
Score fusion and result ranking.

Multi-descriptor modes compute one score list per descriptor family over
the same candidate traversal, then add the lists element-wise. Only
families with the same orientation may be added: a distance and a
similarity pull the ranking in opposite directions.
"""

import enum
import logging
from dataclasses import dataclass
from typing import List, Sequence

logger = logging.getLogger(__name__)


class Orientation(enum.Enum):
    """Which end of the score range is the better match."""

    ASCENDING = "ascending"     # distance: lower is closer
    DESCENDING = "descending"   # similarity: higher is closer


@dataclass(frozen=True)
class MatchResult:
    """A ranked candidate: its identifier and (possibly fused) score."""

    identifier: str
    score: float


def fuse_score_lists(score_lists: Sequence[Sequence[float]]) -> List[float]:
    """
    Add aligned per-family score lists element-wise.

    Position i of every list must refer to the same candidate. Scores are
    summed in family order, without weights.

    Args:
        score_lists: One list of scores per descriptor family.

    Returns:
        Composite scores, one per candidate.

    Raises:
        ValueError: If no lists are given or their lengths differ.
    """
    if not score_lists:
        raise ValueError("No score lists to fuse")

    length = len(score_lists[0])
    for i, scores in enumerate(score_lists[1:], start=1):
        if len(scores) != length:
            raise ValueError(
                f"Score list {i} has {len(scores)} entries, expected {length}"
            )

    fused = []
    for position in range(length):
        total = 0.0
        for scores in score_lists:
            total += scores[position]
        fused.append(total)
    return fused


def check_fusable(orientations: Sequence[Orientation]) -> Orientation:
    """
    Return the common orientation of the families being fused.

    Raises:
        ValueError: If the families mix distances and similarities.
    """
    distinct = set(orientations)
    if len(distinct) != 1:
        raise ValueError(
            "Cannot fuse scores with mixed orientations: "
            + ", ".join(sorted(o.value for o in distinct))
        )
    return orientations[0]


def rank_results(results: List[MatchResult],
                 orientation: Orientation,
                 top_n: int = None) -> List[MatchResult]:
    """
    Sort results best-first and keep the first top_n.

    The sort is stable: candidates with equal scores stay in traversal
    order, so rankings are reproducible.

    Args:
        results: Results in candidate traversal order.
        orientation: ASCENDING for distances, DESCENDING for similarities.
        top_n: Number of results to keep (all when None).

    Returns:
        New sorted list of at most top_n results.
    """
    if orientation is Orientation.ASCENDING:
        ranked = sorted(results, key=lambda r: r.score)
    else:
        ranked = sorted(results, key=lambda r: -r.score)

    if top_n is not None:
        ranked = ranked[:top_n]
    return ranked
