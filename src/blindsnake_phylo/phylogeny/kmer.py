"""
Alignment-free distances from k-mer frequency profiles.

Each sequence is summarised by the relative frequencies of its overlapping
A/C/G/T k-mers; distances are Euclidean between profiles, so sequences of very
different length remain comparable.
"""

import logging
from collections.abc import Mapping

import numpy as np
from numpy.typing import NDArray
from scipy.spatial.distance import pdist, squareform

from ..errors import DistanceError
from .distances import BASE_CODES, INVALID
from .models import DistanceMatrix

logger = logging.getLogger(__name__)


def kmer_frequencies(sequence: str, k: int = 5) -> NDArray[np.float64]:
    """
    Normalized k-mer frequency vector of length ``4**k``.

    k-mers containing gaps or ambiguity codes are skipped. A sequence with no
    valid k-mer yields an all-zero vector.
    """
    if k < 1:
        raise ValueError(f"k must be positive, got {k}")

    counts = np.zeros(4**k, dtype=np.float64)
    codes = BASE_CODES[np.frombuffer(sequence.encode("ascii", errors="replace"), dtype=np.uint8)]
    if len(codes) < k:
        return counts

    windows = np.lib.stride_tricks.sliding_window_view(codes, k)
    windows = windows[np.all(windows != INVALID, axis=1)]
    if len(windows) == 0:
        return counts

    # Base-4 index of each k-mer, first base most significant
    weights = 4 ** np.arange(k - 1, -1, -1, dtype=np.int64)
    indices = windows.astype(np.int64) @ weights
    np.add.at(counts, indices, 1.0)
    return counts / counts.sum()


def kmer_distance_matrix(sequences: Mapping[str, str], k: int = 5) -> DistanceMatrix:
    """
    Euclidean distances between k-mer frequency profiles.

    Args:
        sequences: Ordered mapping of {label: raw (unaligned) sequence}
        k: k-mer length

    Returns:
        DistanceMatrix over the sequence labels
    """
    labels = tuple(sequences)
    if not labels:
        raise DistanceError("k-mer distances require at least one sequence")

    profiles = np.vstack([kmer_frequencies(sequences[label].upper(), k) for label in labels])
    empty = [label for label, row in zip(labels, profiles, strict=True) if not row.any()]
    if empty:
        logger.warning(f"{len(empty)} sequences have no valid {k}-mers: {empty}")

    values = squareform(pdist(profiles, metric="euclidean")) if len(labels) > 1 else np.zeros((1, 1))
    logger.info(f"Computed {k}-mer distances for {len(labels)} sequences")
    return DistanceMatrix(labels=labels, values=values, method=f"kmer{k}-euclidean")
