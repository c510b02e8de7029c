"""
Tree inference service.

Build phylogenetic trees either from a distance matrix (neighbor-joining) or
from an alignment (maximum-likelihood search followed by cutoff clustering).
"""

import itertools
import logging
import subprocess
import tempfile
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from Bio import Phylo
from Bio.Phylo.BaseTree import Clade, Tree
from Bio.Phylo.TreeConstruction import DistanceTreeConstructor

from ..alignment import Alignment
from ..alignment.utils import placeholder_ids
from ..errors import TreeBuildError
from .models import DistanceMatrix, TreeResult

logger = logging.getLogger(__name__)

MIN_TAXA = 3
TIP_PREFIX = "t"

# Substitution model names as IQ-TREE spells them
IQTREE_MODELS: dict[str, str] = {
    "JC69": "JC",
    "K80": "K2P",
    "F81": "F81",
    "TN93": "TN",
    "HKY85": "HKY",
    "GTR": "GTR",
}


@dataclass(frozen=True)
class TreeSearchParams:
    """Parameters for the IQ-TREE run."""

    executable: str = "iqtree2"
    seed: int = 1
    threads: int = 1
    extra_args: tuple[str, ...] = ()


def attach_tip_labels(tree: Tree, labels: Sequence[str], prefix: str = TIP_PREFIX) -> Tree:
    """
    Rename placeholder tips ``<prefix>0, <prefix>1, ...`` to ``labels`` in order.

    Args:
        tree: Tree whose tips carry positional placeholder names
        labels: Original labels, index ``i`` belonging to placeholder ``i``
        prefix: Placeholder prefix used when the tree was built

    Returns:
        The same tree, relabelled in place

    Raises:
        TreeBuildError: If the relabelled tips are not exactly ``labels``
    """
    lookup = dict(zip(placeholder_ids(len(labels), prefix), labels, strict=True))
    terminals = tree.get_terminals()
    for tip in terminals:
        if tip.name in lookup:
            tip.name = lookup[tip.name]

    tip_names = sorted(str(tip.name) for tip in terminals)
    if tip_names != sorted(labels):
        missing = sorted(set(labels) - set(tip_names))
        unexpected = sorted(set(tip_names) - set(labels))
        raise TreeBuildError(
            f"tree tips do not match input labels: missing {missing}, unexpected {unexpected}"
        )
    return tree


def _clamp_negative_branches(tree: Tree) -> None:
    for clade in tree.find_clades():
        if clade.branch_length is not None and clade.branch_length < 0:
            clade.branch_length = 0.0


def neighbor_joining(matrix: DistanceMatrix) -> TreeResult:
    """
    Neighbor-joining tree from a distance matrix.

    The tree is built on placeholder names and the matrix labels are attached
    afterwards, so it works for any matrix regardless of label characters or
    whether an alignment exists behind it.

    Args:
        matrix: Pairwise distances over at least three taxa

    Returns:
        Unrooted binary tree with ``N`` tips and ``N - 2`` internal nodes
    """
    n = len(matrix)
    if n < MIN_TAXA:
        raise TreeBuildError(f"neighbor-joining requires >={MIN_TAXA} taxa, got {n}")

    ids = placeholder_ids(n, TIP_PREFIX)
    tree = DistanceTreeConstructor().nj(matrix.to_biopython(ids))
    _clamp_negative_branches(tree)
    attach_tip_labels(tree, matrix.labels)

    logger.info(
        f"NJ tree ({matrix.method or 'distances'}): {tree.count_terminals()} tips, "
        f"{len(tree.get_nonterminals())} internal nodes"
    )
    method = f"nj-{matrix.method}" if matrix.method else "nj"
    return TreeResult(tree=tree, method=method, labels=matrix.labels)


def _clade_diameter(clade: Clade) -> float:
    """Largest patristic distance between two tips of ``clade``."""
    tips = clade.get_terminals()
    return max(
        (clade.distance(a, b) for a, b in itertools.combinations(tips, 2)),
        default=0.0,
    )


def cluster_tips(tree: Tree, cutoff: float) -> dict[str, int]:
    """
    Partition tips into clusters no wider than ``cutoff``.

    Starting at the root, a clade whose tips are all within ``cutoff`` of one
    another becomes one cluster; otherwise each child clade is examined.
    Cluster ids are numbered from 1 in pre-order.
    """
    clusters: dict[str, int] = {}
    next_id = 1
    stack = [tree.root]
    while stack:
        clade = stack.pop()
        if clade.is_terminal() or _clade_diameter(clade) <= cutoff:
            for tip in clade.get_terminals():
                clusters[tip.name] = next_id
            next_id += 1
        else:
            stack.extend(reversed(clade.clades))
    return clusters


def ml_cluster_tree(
    alignment: Alignment,
    model: str = "TN93",
    cutoff: float = 0.05,
    output_dir: Path | None = None,
    params: TreeSearchParams | None = None,
) -> TreeResult:
    """
    Maximum-likelihood tree with cutoff-based clustering of the tips.

    Args:
        alignment: Aligned sequences (at least three)
        model: Substitution model (``JC69``, ``K80``, ``F81``, ``TN93``, ``HKY85``, ``GTR``)
        cutoff: Maximum within-cluster patristic distance
        output_dir: Where IQ-TREE writes its files; temporary when omitted
        params: IQ-TREE executable, seed and threads

    Returns:
        TreeResult with ``clusters`` populated

    Raises:
        TreeBuildError: If there are too few sequences or IQ-TREE fails
        ValueError: If the model has no IQ-TREE equivalent
    """
    if len(alignment) < MIN_TAXA:
        raise TreeBuildError(f"ML tree requires >={MIN_TAXA} sequences, got {len(alignment)}")
    iqtree_model = IQTREE_MODELS.get(model.upper())
    if iqtree_model is None:
        raise ValueError(f"Model {model!r} is not available for ML search: {sorted(IQTREE_MODELS)}")
    if params is None:
        params = TreeSearchParams()

    if output_dir is None:
        with tempfile.TemporaryDirectory(prefix="iqtree_") as tmp:
            tree = _search_ml_tree(Path(tmp), alignment, iqtree_model, params)
    else:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        tree = _search_ml_tree(output_dir, alignment, iqtree_model, params)

    attach_tip_labels(tree, alignment.labels)
    clusters = cluster_tips(tree, cutoff)
    logger.info(
        f"ML tree ({iqtree_model}): {tree.count_terminals()} tips, "
        f"{len(set(clusters.values()))} clusters at cutoff {cutoff}"
    )
    return TreeResult(
        tree=tree, method=f"ml-{model.upper()}", labels=alignment.labels, clusters=clusters
    )


def _search_ml_tree(
    work_dir: Path, alignment: Alignment, iqtree_model: str, params: TreeSearchParams
) -> Tree:
    """Run IQ-TREE on placeholder-named sequences and read the best tree."""
    ids = placeholder_ids(len(alignment), TIP_PREFIX)
    placeholder_alignment = Alignment(labels=tuple(ids), sequences=alignment.sequences)
    aln_path = placeholder_alignment.write(work_dir / "ml_input.fasta")
    prefix = work_dir / "ml"

    cmd = [
        params.executable,
        "-s",
        str(aln_path),
        "-m",
        iqtree_model,
        "-seed",
        str(params.seed),
        "-nt",
        str(params.threads),
        "-pre",
        str(prefix),
        "-quiet",
        "-redo",
        *params.extra_args,
    ]

    logger.info(f"Running ML tree search on {len(alignment)} sequences")
    try:
        start_time = time.perf_counter()
        subprocess.run(cmd, check=True, capture_output=True, text=True)
        logger.info(f"IQ-TREE finished in {time.perf_counter() - start_time:.2f}s")
    except subprocess.CalledProcessError as e:
        raise TreeBuildError(f"IQ-TREE failed: {e.stderr}") from e
    except FileNotFoundError as e:
        raise FileNotFoundError("IQ-TREE not found. Please install IQ-TREE 2.") from e

    treefile = prefix.with_suffix(".treefile")
    if not treefile.exists():
        raise TreeBuildError(f"IQ-TREE did not produce {treefile}")
    return Phylo.read(treefile, "newick")
