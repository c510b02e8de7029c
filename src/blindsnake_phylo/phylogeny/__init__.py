"""Phylogeny module exports."""

from .compare import TreeComparison, compare_trees, robinson_foulds_distance
from .distances import SUPPORTED_MODELS, model_distance_matrix
from .kmer import kmer_distance_matrix, kmer_frequencies
from .models import DistanceMatrix, TreeResult
from .tree_builder import (
    TreeSearchParams,
    attach_tip_labels,
    cluster_tips,
    ml_cluster_tree,
    neighbor_joining,
)

__all__ = [
    "SUPPORTED_MODELS",
    "DistanceMatrix",
    "TreeComparison",
    "TreeResult",
    "TreeSearchParams",
    "attach_tip_labels",
    "cluster_tips",
    "compare_trees",
    "kmer_distance_matrix",
    "kmer_frequencies",
    "ml_cluster_tree",
    "model_distance_matrix",
    "neighbor_joining",
    "robinson_foulds_distance",
]
