import math

import numpy as np
import pytest

from blindsnake_phylo.phylogeny import kmer_distance_matrix, kmer_frequencies


def test_frequencies_normalized():
    freqs = kmer_frequencies("ACGTACGT", k=2)
    assert freqs.shape == (16,)
    assert freqs.sum() == pytest.approx(1.0)
    # AC is index 0*4 + 1 and occurs twice in seven 2-mers
    assert freqs[1] == pytest.approx(2 / 7)


def test_windows_with_ambiguity_are_skipped():
    freqs = kmer_frequencies("AAN-AA", k=2)
    assert freqs[0] == pytest.approx(1.0)


def test_short_sequence_gives_zero_profile():
    assert not kmer_frequencies("ACG", k=5).any()


def test_invalid_k():
    with pytest.raises(ValueError):
        kmer_frequencies("ACGT", k=0)


def test_identical_sequences_zero_distance():
    seq = "ATGACCAACATTCGAAAATCACACCC"
    matrix = kmer_distance_matrix({"x": seq, "y": seq.lower()})
    assert matrix.distance("x", "y") == 0.0


def test_disjoint_composition_positive():
    matrix = kmer_distance_matrix({"x": "A" * 20, "y": "C" * 20}, k=5)
    assert matrix.distance("x", "y") == pytest.approx(math.sqrt(2))


def test_differing_lengths():
    matrix = kmer_distance_matrix(
        {"short": "ACGTTGCA" * 5, "long": "ACGTTGCA" * 50, "other": "ATATATATGCGC" * 10}
    )
    values = matrix.values
    assert np.all(np.diag(values) == 0)
    assert np.array_equal(values, values.T)
    assert matrix.distance("short", "long") < matrix.distance("short", "other")
    assert matrix.method == "kmer5-euclidean"
