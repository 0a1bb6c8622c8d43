"""
CSV persistence for descriptor vectors and the deep-embedding store.

Each row is ``filename,v1,v2,...,vn``. The same format holds baseline
center-patch vectors written by build_feature_file() and externally
computed deep-network embeddings loaded through EmbeddingStore.
"""

import os
import csv
import logging
from typing import Dict, Iterable, List, Tuple

import numpy as np

from .candidates import list_image_files, load_image
from .descriptors import extract_center_patch_vector
from .errors import DecodeError, NotFoundError

logger = logging.getLogger(__name__)


def _format_row(name: str, vector) -> list:
    return [name] + [repr(float(v)) for v in np.asarray(vector).ravel()]


def write_feature_vectors(path: str,
                          records: Iterable[Tuple[str, np.ndarray]]) -> int:
    """
    Write (name, vector) records to a CSV file, replacing it.

    Returns:
        Number of rows written.
    """
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)

    count = 0
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        for name, vector in records:
            writer.writerow(_format_row(name, vector))
            count += 1
    return count


def append_feature_vector(path: str, name: str, vector) -> None:
    """Append one (name, vector) row to a CSV file, creating it if needed."""
    with open(path, 'a', newline='', encoding='utf-8') as f:
        csv.writer(f).writerow(_format_row(name, vector))


def read_feature_vectors(path: str) -> List[Tuple[str, np.ndarray]]:
    """
    Read (name, vector) records from a CSV file in file order.

    Blank lines are skipped.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a row has no values or a non-numeric value.
    """
    records = []
    with open(path, 'r', newline='', encoding='utf-8') as f:
        for line_no, row in enumerate(csv.reader(f), start=1):
            if not row or not any(cell.strip() for cell in row):
                continue
            name = row[0].strip()
            values = [cell for cell in row[1:] if cell.strip()]
            if not values:
                raise ValueError(f"{path}:{line_no}: no values for '{name}'")
            try:
                vector = np.array([float(v) for v in values], dtype=np.float32)
            except ValueError as e:
                raise ValueError(f"{path}:{line_no}: {e}") from e
            records.append((name, vector))

    logger.info(f"Read {len(records)} feature vectors from {path}")
    return records


def build_feature_file(image_dir: str, output_path: str) -> dict:
    """
    Extract the center-patch vector of every image in a directory.

    Undecodable or undersized images are logged and skipped.

    Args:
        image_dir: Directory containing images.
        output_path: CSV file to write (replaced if present).

    Returns:
        Dict with 'processed', 'errors', 'dimensions' and 'path'.
    """
    paths = list_image_files(image_dir)
    logger.info(f"Extracting features from {len(paths)} images in {image_dir}")

    records = []
    errors = 0
    for path in paths:
        try:
            vector = extract_center_patch_vector(load_image(path))
        except DecodeError as e:
            logger.warning(f"Skipping {path}: {e}")
            errors += 1
            continue
        records.append((os.path.basename(path), vector))

    write_feature_vectors(output_path, records)
    dim = len(records[0][1]) if records else 0

    logger.info(
        f"Feature file built: {len(records)} vectors, {dim}d, "
        f"{errors} errors -> {output_path}"
    )

    return {
        "processed": len(records),
        "errors": errors,
        "dimensions": dim,
        "path": output_path,
    }


class EmbeddingStore:
    """
    Read-only mapping from base filename to a precomputed embedding.

    Loaded in full before retrieval. Keys are unique and all vectors are
    non-empty with the same length; vectors are marked non-writeable so
    concurrent readers share them safely.
    """

    def __init__(self, vectors: Dict[str, np.ndarray]):
        """
        Args:
            vectors: Mapping of base filename to 1-D float vector.

        Raises:
            ValueError: If the mapping is empty or a vector is empty,
                multi-dimensional, or a different length from the rest.
        """
        if not vectors:
            raise ValueError("Embedding store is empty")

        self._vectors = {}
        dim = None
        for name, vector in vectors.items():
            arr = np.array(vector, dtype=np.float32)
            if arr.ndim != 1 or arr.size == 0:
                raise ValueError(f"Embedding for '{name}' must be a non-empty vector")
            if dim is None:
                dim = arr.size
            elif arr.size != dim:
                raise ValueError(
                    f"Embedding for '{name}' has {arr.size} values, expected {dim}"
                )
            arr.flags.writeable = False
            self._vectors[name] = arr

        self.dim = dim

    @classmethod
    def from_records(cls, records: Iterable[Tuple[str, np.ndarray]]) -> "EmbeddingStore":
        """
        Build a store from (name, vector) records.

        Raises:
            ValueError: On duplicate names or invalid vectors.
        """
        vectors = {}
        for name, vector in records:
            if name in vectors:
                raise ValueError(f"Duplicate embedding entry '{name}'")
            vectors[name] = vector
        return cls(vectors)

    @classmethod
    def from_csv(cls, path: str) -> "EmbeddingStore":
        """Load a store from a ``filename,v1,...,vn`` CSV file."""
        store = cls.from_records(read_feature_vectors(path))
        logger.info(f"Loaded {len(store)} embeddings ({store.dim}d) from {path}")
        return store

    def lookup(self, name: str) -> np.ndarray:
        """
        Return the embedding stored under name.

        Raises:
            NotFoundError: If there is no entry for name.
        """
        try:
            return self._vectors[name]
        except KeyError:
            raise NotFoundError(f"No embedding for '{name}'") from None

    def names(self) -> List[str]:
        """Stored names in load order."""
        return list(self._vectors)

    def items(self):
        """(name, vector) pairs in load order."""
        return self._vectors.items()

    def __contains__(self, name) -> bool:
        return name in self._vectors

    def __len__(self) -> int:
        return len(self._vectors)
