"""Topological comparison of two trees over the same taxa.

Both trees are read into one dendropy ``TaxonNamespace`` as unrooted trees, so
the arbitrary rooting of NJ and ML output never shows up as conflict.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from io import StringIO

import dendropy
from Bio import Phylo
from Bio.Phylo.BaseTree import Tree
from dendropy.calculate import treecompare

from ..errors import TipSetMismatchError
from .models import TreeResult

logger = logging.getLogger(__name__)

Split = frozenset[str]


def canonical_split(tips: Iterable[str], taxa: Iterable[str]) -> Split:
    """
    Key for the split ``tips | taxa - tips``: the side without the smallest taxon name.

    A drawn clade and its complement get the same key, whichever way the
    tree is rooted.
    """
    tips, taxa = frozenset(tips), frozenset(taxa)
    if not taxa:
        return frozenset()
    return taxa - tips if min(taxa) in tips else tips


@dataclass
class TreeComparison:
    """Shared and conflicting unrooted splits between two trees.

    Attributes:
        left: First tree.
        right: Second tree.
        taxa: Tip labels common to both trees.
        shared_splits: Non-trivial splits present in both trees.
        left_only: Splits found only in ``left``.
        right_only: Splits found only in ``right``.
        robinson_foulds: Symmetric difference of the split sets.
        normalized_rf: ``robinson_foulds`` divided by its maximum ``2 * (n - 3)``.
    """

    left: TreeResult
    right: TreeResult
    taxa: frozenset[str] = frozenset()
    shared_splits: set[Split] = field(default_factory=set)
    left_only: set[Split] = field(default_factory=set)
    right_only: set[Split] = field(default_factory=set)
    robinson_foulds: int = 0
    normalized_rf: float = 0.0

    def split_key(self, tips: Iterable[str]) -> Split:
        return canonical_split(tips, self.taxa)

    def is_shared(self, tips: Iterable[str]) -> bool:
        """Whether the edge above a clade with these tips exists in both trees."""
        return self.split_key(tips) in self.shared_splits


def _as_unrooted(tree: Tree, namespace: dendropy.TaxonNamespace) -> dendropy.Tree:
    handle = StringIO()
    Phylo.write(tree, handle, "newick")
    return dendropy.Tree.get(
        data=handle.getvalue(),
        schema="newick",
        taxon_namespace=namespace,
        rooting="force-unrooted",
        preserve_underscores=True,
    )


def _read_pair(
    left: Tree, right: Tree
) -> tuple[dendropy.TaxonNamespace, dendropy.Tree, dendropy.Tree]:
    namespace = dendropy.TaxonNamespace()
    left_tree = _as_unrooted(left, namespace)
    right_tree = _as_unrooted(right, namespace)
    return namespace, left_tree, right_tree


def bipartitions(tree: dendropy.Tree) -> set[Split]:
    """Non-trivial splits of an unrooted dendropy tree, keyed by :func:`canonical_split`."""
    taxa = frozenset(leaf.taxon.label for leaf in tree.leaf_node_iter())
    tree.encode_bipartitions()
    splits: set[Split] = set()
    for bipartition in tree.bipartition_encoding:
        tips = frozenset(
            taxon.label
            for taxon in tree.taxon_namespace.bitmask_taxa_list(bipartition.leafset_bitmask)
        )
        if 1 < len(tips) < len(taxa) - 1:
            splits.add(canonical_split(tips, taxa))
    return splits


def robinson_foulds_distance(left: Tree, right: Tree) -> int:
    """Number of bipartitions present in exactly one of the two trees."""
    _, left_tree, right_tree = _read_pair(left, right)
    return treecompare.symmetric_difference(left_tree, right_tree)


def compare_trees(left: TreeResult, right: TreeResult) -> TreeComparison:
    """
    Compare two trees built from the same taxon set.

    Raises:
        TipSetMismatchError: If the trees do not have identical tip labels
    """
    left_tips, right_tips = left.tip_labels, right.tip_labels
    if left_tips != right_tips:
        raise TipSetMismatchError(left_tips - right_tips, right_tips - left_tips)

    _, left_tree, right_tree = _read_pair(left.tree, right.tree)
    left_splits, right_splits = bipartitions(left_tree), bipartitions(right_tree)
    rf = treecompare.symmetric_difference(left_tree, right_tree)
    n = len(left_tips)
    max_rf = 2 * (n - 3)
    normalized = rf / max_rf if max_rf > 0 else 0.0

    comparison = TreeComparison(
        left=left,
        right=right,
        taxa=frozenset(left_tips),
        shared_splits=left_splits & right_splits,
        left_only=left_splits - right_splits,
        right_only=right_splits - left_splits,
        robinson_foulds=rf,
        normalized_rf=normalized,
    )
    logger.info(
        f"{left.method} vs {right.method}: RF={rf} (normalized {normalized:.3f}), "
        f"{len(comparison.shared_splits)} shared splits"
    )
    return comparison
