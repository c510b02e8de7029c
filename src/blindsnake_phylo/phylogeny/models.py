"""Data classes for distance matrices and inferred trees."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from io import StringIO
from pathlib import Path

import numpy as np
import pandas as pd
from Bio import Phylo
from Bio.Phylo.BaseTree import Tree
from Bio.Phylo.TreeConstruction import DistanceMatrix as BioDistanceMatrix
from numpy.typing import NDArray

from ..errors import DistanceError

SYMMETRY_TOLERANCE: float = 1e-9


@dataclass(frozen=True, eq=False)
class DistanceMatrix:
    """Square, symmetric, zero-diagonal matrix of pairwise distances.

    Attributes:
        labels: Taxon labels in row/column order.
        values: ``len(labels) x len(labels)`` array of distances.
        method: Short description of how the distances were computed.
    """

    labels: tuple[str, ...]
    values: NDArray[np.float64]
    method: str = ""

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=np.float64)
        n = len(self.labels)
        if values.shape != (n, n):
            raise DistanceError(f"matrix shape {values.shape} does not match {n} labels")
        if len(set(self.labels)) != n:
            raise DistanceError("distance matrix labels must be unique")
        if not np.all(np.isfinite(values)):
            raise DistanceError("distance matrix contains non-finite entries")
        if not np.allclose(values, values.T, atol=SYMMETRY_TOLERANCE):
            raise DistanceError("distance matrix is not symmetric")
        if np.any(values < 0):
            raise DistanceError("distance matrix has negative entries")

        values = (values + values.T) / 2
        np.fill_diagonal(values, 0.0)
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    def __len__(self) -> int:
        return len(self.labels)

    def distance(self, a: str, b: str) -> float:
        return float(self.values[self.labels.index(a), self.labels.index(b)])

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.values, index=list(self.labels), columns=list(self.labels))

    def to_biopython(self, names: Sequence[str] | None = None) -> BioDistanceMatrix:
        """Lower-triangular Biopython matrix, optionally under substitute names."""
        names = list(self.labels if names is None else names)
        if len(names) != len(self.labels):
            raise DistanceError(f"{len(names)} names for {len(self.labels)} taxa")
        lower = [[float(self.values[i, j]) for j in range(i + 1)] for i in range(len(names))]
        return BioDistanceMatrix(names=names, matrix=lower)

    def write_tsv(self, tsv_path: Path) -> Path:
        tsv_path = Path(tsv_path)
        tsv_path.parent.mkdir(parents=True, exist_ok=True)
        self.to_frame().to_csv(tsv_path, sep="\t")
        return tsv_path


@dataclass
class TreeResult:
    """An inferred tree together with how it was built.

    Attributes:
        tree: Biopython tree with tips named by the input labels.
        method: Inference method (e.g. ``"nj"``, ``"ml"``).
        labels: Label set the tree was built from.
        clusters: Optional {label: cluster_id} from cutoff-based clustering.
    """

    tree: Tree
    method: str
    labels: tuple[str, ...]
    clusters: dict[str, int] = field(default_factory=dict)

    @property
    def tip_labels(self) -> set[str]:
        return {tip.name for tip in self.tree.get_terminals()}

    def newick(self) -> str:
        handle = StringIO()
        Phylo.write(self.tree, handle, "newick")
        return handle.getvalue().strip()

    def write(self, newick_path: Path) -> Path:
        newick_path = Path(newick_path)
        newick_path.parent.mkdir(parents=True, exist_ok=True)
        Phylo.write(self.tree, newick_path, "newick")
        return newick_path
