"""
Alignment-based pairwise distances under nucleotide substitution models.

Supported models: ``raw`` (p-distance), ``JC69``, ``K80``, ``F81`` and
``TN93``. Only unambiguous A/C/G/T positions are compared; gaps and IUPAC
ambiguity codes are excluded either per pair (pairwise deletion) or for the
whole alignment.
"""

import itertools
import logging
import math

import numpy as np
from numpy.typing import NDArray
from tqdm import tqdm

from ..alignment import Alignment
from ..errors import DistanceError
from .models import DistanceMatrix

logger = logging.getLogger(__name__)

SUPPORTED_MODELS = ("RAW", "JC69", "K80", "F81", "TN93")
INVALID = 4

# A=0, C=1, G=2, T/U=3, anything else = INVALID
BASE_CODES = np.full(256, INVALID, dtype=np.uint8)
for _code, _bases in enumerate(("Aa", "Cc", "Gg", "TtUu")):
    for _base in _bases:
        BASE_CODES[ord(_base)] = _code


class _SaturatedError(ArithmeticError):
    pass


def encode_alignment(alignment: Alignment) -> NDArray[np.uint8]:
    """Integer-encode aligned sequences as an ``n x L`` array."""
    rows = [
        BASE_CODES[np.frombuffer(seq.encode("ascii", errors="replace"), dtype=np.uint8)]
        for seq in alignment.sequences
    ]
    return np.vstack(rows) if rows else np.empty((0, 0), dtype=np.uint8)


def base_frequencies(codes: NDArray[np.uint8]) -> NDArray[np.float64]:
    """Empirical A/C/G/T frequencies over the valid positions of ``codes``."""
    counts = np.bincount(codes[codes != INVALID].ravel(), minlength=4)[:4].astype(np.float64)
    total = counts.sum()
    if total == 0:
        raise DistanceError("alignment has no unambiguous nucleotide positions")
    return counts / total


def _substitution_proportions(
    x: NDArray[np.uint8], y: NDArray[np.uint8]
) -> tuple[int, float, float, float]:
    """
    Proportions of A<->G transitions, C<->T transitions and transversions.

    Returns:
        Tuple of (compared sites, P1, P2, Q)
    """
    valid = (x != INVALID) & (y != INVALID)
    x, y = x[valid], y[valid]
    n_sites = int(valid.sum())
    if n_sites == 0:
        return 0, 0.0, 0.0, 0.0

    diff = x != y
    purine_x = (x % 2) == 0
    purine_y = (y % 2) == 0
    ag = np.count_nonzero(diff & purine_x & purine_y)
    ct = np.count_nonzero(diff & ~purine_x & ~purine_y)
    tv = np.count_nonzero(diff & (purine_x != purine_y))
    return n_sites, ag / n_sites, ct / n_sites, tv / n_sites


def _log(w: float) -> float:
    if w <= 0:
        raise _SaturatedError(w)
    return math.log(w)


def _model_distance(
    model: str, p1: float, p2: float, q: float, freqs: NDArray[np.float64]
) -> float:
    p = p1 + p2 + q
    if p == 0:
        return 0.0

    if model == "RAW":
        return p

    if model == "JC69":
        return -0.75 * _log(1 - 4 * p / 3)

    if model == "K80":
        transitions = p1 + p2
        return -0.5 * _log(1 - 2 * transitions - q) - 0.25 * _log(1 - 2 * q)

    if model == "F81":
        b = 1 - float(np.sum(freqs**2))
        return -b * _log(1 - p / b)

    # TN93
    pi_a, pi_c, pi_g, pi_t = (float(f) for f in freqs)
    if min(freqs) == 0:
        raise DistanceError("TN93 requires all four bases to be present in the alignment")
    pi_r = pi_a + pi_g
    pi_y = pi_c + pi_t
    k1 = 2 * pi_a * pi_g / pi_r
    k2 = 2 * pi_c * pi_t / pi_y
    k3 = 2 * (pi_r * pi_y - pi_a * pi_g * pi_y / pi_r - pi_c * pi_t * pi_r / pi_y)
    w1 = 1 - p1 / k1 - q / (2 * pi_r)
    w2 = 1 - p2 / k2 - q / (2 * pi_y)
    w3 = 1 - q / (2 * pi_r * pi_y)
    return -k1 * _log(w1) - k2 * _log(w2) - k3 * _log(w3)


def model_distance_matrix(
    alignment: Alignment,
    model: str = "TN93",
    pairwise_deletion: bool = True,
) -> DistanceMatrix:
    """
    Pairwise evolutionary distances under a substitution model.

    Args:
        alignment: Aligned sequences
        model: One of ``raw``, ``JC69``, ``K80``, ``F81``, ``TN93`` (case-insensitive)
        pairwise_deletion: Skip gap/ambiguous sites per pair instead of dropping
            every column that contains one anywhere

    Returns:
        DistanceMatrix over the alignment labels

    Raises:
        ValueError: If the model is not supported
        DistanceError: If a pair shares no comparable site or is saturated
    """
    model = model.upper()
    if model not in SUPPORTED_MODELS:
        raise ValueError(f"Unsupported substitution model {model!r}; choose from {SUPPORTED_MODELS}")

    codes = encode_alignment(alignment)
    if not pairwise_deletion:
        complete = np.all(codes != INVALID, axis=0)
        logger.info(f"Complete deletion keeps {int(complete.sum())}/{codes.shape[1]} columns")
        codes = codes[:, complete]

    freqs = base_frequencies(codes)
    n = len(alignment)
    values = np.zeros((n, n), dtype=np.float64)

    pairs = list(itertools.combinations(range(n), 2))
    for i, j in tqdm(pairs, desc=f"{model} distances", unit="pair", leave=False):
        n_sites, p1, p2, q = _substitution_proportions(codes[i], codes[j])
        a, b = alignment.labels[i], alignment.labels[j]
        if n_sites == 0:
            raise DistanceError(f"no comparable sites between {a!r} and {b!r}")
        try:
            d = _model_distance(model, p1, p2, q, freqs)
        except _SaturatedError as e:
            raise DistanceError(
                f"{model} distance between {a!r} and {b!r} is saturated"
            ) from e
        values[i, j] = values[j, i] = max(d, 0.0)

    logger.info(f"Computed {model} distances for {n} sequences ({len(pairs)} pairs)")
    return DistanceMatrix(labels=alignment.labels, values=values, method=model)
