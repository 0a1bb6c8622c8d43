"""
Command-line entry point.

    image-match query TARGET IMAGE_DIR [--mode MODE] [--top-n N] [--embeddings CSV]
    image-match extract IMAGE_DIR [--output CSV]
    image-match match-vectors TARGET FEATURE_CSV [--top-n N] [--metric ssd|cosine]
"""

import os
import sys
import argparse
import logging
from typing import List, Optional

from .candidates import iter_directory_candidates, read_image
from .descriptors import extract_center_patch_vector
from .engine import DEFAULT_TOP_N, Mode, RetrievalEngine, rank_records
from .errors import RetrievalError
from .feature_store import EmbeddingStore, build_feature_file, read_feature_vectors
from .metrics import cosine_distance, sum_squared_difference
from .scoring import MatchResult, Orientation

logger = logging.getLogger(__name__)

LOG_LEVEL = os.environ.get("IMAGE_MATCH_LOG_LEVEL", "INFO")
DEFAULT_FEATURE_FILE = os.path.join("feature_vectors", "feature_vectors.csv")

VECTOR_METRICS = {
    "ssd": sum_squared_difference,
    "cosine": cosine_distance,
}


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {value}") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative: {value}")
    return number


def _log_level(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-match",
        description="Find the images in a directory most similar to a target image",
    )
    parser.add_argument("--log-level", default=LOG_LEVEL,
                        help="Logging level (default: %(default)s)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_query = sub.add_parser("query", help="Rank a directory of images against a target")
    p_query.add_argument("target", help="Target image path")
    p_query.add_argument("image_dir", help="Directory of candidate images")
    p_query.add_argument("--mode", default=Mode.BASELINE_PATCH.value,
                         choices=[m.value for m in Mode],
                         help="Descriptor/metric combination (default: %(default)s)")
    p_query.add_argument("--top-n", type=_non_negative_int, default=DEFAULT_TOP_N,
                         help="Number of matches to report (default: %(default)s)")
    p_query.add_argument("--embeddings",
                         help="CSV of precomputed embeddings (deep-embedding modes)")

    p_extract = sub.add_parser("extract", help="Write baseline feature vectors to CSV")
    p_extract.add_argument("image_dir", help="Directory of images")
    p_extract.add_argument("--output", default=DEFAULT_FEATURE_FILE,
                           help="Output CSV (default: %(default)s)")

    p_vectors = sub.add_parser("match-vectors",
                               help="Rank precomputed vectors against a target")
    p_vectors.add_argument("target", help="Target image path")
    p_vectors.add_argument("feature_csv", nargs="?", default=DEFAULT_FEATURE_FILE,
                           help="Feature vector CSV (default: %(default)s)")
    p_vectors.add_argument("--top-n", type=_non_negative_int, default=DEFAULT_TOP_N,
                           help="Number of matches to report (default: %(default)s)")
    p_vectors.add_argument("--metric", default="ssd", choices=sorted(VECTOR_METRICS),
                           help="Distance between vectors (default: %(default)s)")

    return parser


def print_matches(matches: List[MatchResult]) -> None:
    print("Top matches:")
    for match in matches:
        print(f"Image: {match.identifier}, Score: {match.score:.6f}")


def run_query(args) -> List[MatchResult]:
    target = os.path.realpath(args.target)
    query_image = read_image(target)

    embeddings = EmbeddingStore.from_csv(args.embeddings) if args.embeddings else None
    engine = RetrievalEngine(embeddings)

    return engine.search(target, query_image,
                         iter_directory_candidates(args.image_dir),
                         mode=args.mode, top_n=args.top_n)


def run_extract(args) -> dict:
    summary = build_feature_file(args.image_dir, args.output)
    print(f"Wrote {summary['processed']} vectors ({summary['errors']} errors) "
          f"to {summary['path']}")
    return summary


def run_match_vectors(args) -> List[MatchResult]:
    records = read_feature_vectors(args.feature_csv)
    name = os.path.basename(args.target)

    stored = dict(records)
    if name in stored:
        query_vector = stored[name]
    else:
        logger.info(f"{name} not in {args.feature_csv}, extracting from image")
        query_vector = extract_center_patch_vector(read_image(args.target))

    return rank_records(name, query_vector, records,
                        VECTOR_METRICS[args.metric], Orientation.ASCENDING,
                        args.top_n)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        logging.basicConfig(
            level=_log_level(args.log_level),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        if args.command == "query":
            print_matches(run_query(args))
        elif args.command == "extract":
            run_extract(args)
        elif args.command == "match-vectors":
            print_matches(run_match_vectors(args))
    except (RetrievalError, FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
