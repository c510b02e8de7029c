"""Plotting functions for trees, tree comparisons and diet composition.

This module renders the report figures: family-coloured phylograms, a
tanglegram juxtaposing two trees over the same taxa, and a grouped bar chart
of prey counts per family.
"""

import copy
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from Bio import Phylo
from Bio.Phylo.BaseTree import Clade, Tree
from matplotlib.axes import Axes
from matplotlib.patches import Patch

from ..phylogeny.compare import Split, TreeComparison
from ..phylogeny.models import TreeResult

logger = logging.getLogger(__name__)

sns.set_style("whitegrid")
plt.rcParams["font.size"] = 10

UNSHARED_COLOR = "lightgray"
TIP_GAP = 0.4


def family_palette(families: Iterable[str]) -> dict[str, tuple[float, float, float]]:
    """Stable colour per family (sorted order, so reruns keep the same colours)."""
    names = sorted(set(families))
    colors = sns.color_palette("tab10" if len(names) <= 10 else "husl", len(names))
    return dict(zip(names, colors, strict=True))


def plot_tree(
    result: TreeResult,
    families: Mapping[str, str],
    output_path: Path,
    title: str | None = None,
) -> Path:
    """Draw a phylogram with tip labels coloured by family.

    Args:
        result: Tree to draw.
        families: Mapping of {tip label: family}.
        output_path: Destination file (format from the suffix).
        title: Figure title; defaults to the tree's method.

    Returns:
        Path to the saved plot file.
    """
    palette = family_palette(families.values())
    n_tips = result.tree.count_terminals()

    fig, ax = plt.subplots(figsize=(10, max(4.0, 0.3 * n_tips)))
    Phylo.draw(
        result.tree,
        axes=ax,
        do_show=False,
        label_func=lambda clade: clade.name if clade.is_terminal() else None,
        label_colors=lambda label: palette.get(families.get(label, ""), "black"),
    )
    handles = [Patch(color=color, label=family) for family, color in palette.items()]
    ax.legend(handles=handles, title="Family", loc="lower left", fontsize=8)
    ax.set_title(title or result.method, fontsize=14, fontweight="bold")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=300, bbox_inches="tight")
    logger.info("Saved tree plot to %s", output_path)
    plt.close(fig)
    return output_path


def _layout(tree: Tree) -> dict[Clade, tuple[float, float]]:
    """Rectangular layout: x = distance from root scaled to [0, 1], y = tip order."""
    depths: dict[Clade, float] = {tree.root: 0.0}
    for clade in tree.find_clades(order="preorder"):
        for child in clade.clades:
            depths[child] = depths[clade] + (child.branch_length or 0.0)

    max_depth = max(depths.values()) or 1.0
    ys: dict[Clade, float] = {tip: float(i) for i, tip in enumerate(tree.get_terminals())}
    for clade in tree.find_clades(order="postorder"):
        if clade.clades:
            ys[clade] = sum(ys[child] for child in clade.clades) / len(clade.clades)

    return {clade: (depths[clade] / max_depth, ys[clade]) for clade in depths}


def _split_colors(comparison: TreeComparison) -> dict[Split, tuple[float, float, float]]:
    """Stable colour for each split shared by both trees."""
    shared = sorted(comparison.shared_splits, key=lambda tips: (-len(tips), sorted(tips)))
    colors = sns.color_palette("husl", max(len(shared), 1))
    return dict(zip(shared, colors, strict=False))


def _clade_colors(
    tree: Tree,
    comparison: TreeComparison,
    split_colors: Mapping[Split, tuple[float, float, float]],
) -> dict[Clade, object]:
    """Colour of every clade; the topmost shared clade colours its whole subtree.

    A drawn clade matches a shared split through either side of the split,
    so trees rooted differently still colour the same edges.
    """
    clade_color: dict[Clade, object] = {}
    for clade in tree.find_clades(order="preorder"):
        if clade not in clade_color:
            key = comparison.split_key(tip.name for tip in clade.get_terminals())
            clade_color[clade] = split_colors.get(key, UNSHARED_COLOR)
        if clade_color[clade] != UNSHARED_COLOR:
            for child in clade.clades:
                clade_color[child] = clade_color[clade]
    return clade_color


def _draw_dendrogram(
    ax: Axes,
    tree: Tree,
    layout: Mapping[Clade, tuple[float, float]],
    to_x,
    clade_color: Mapping[Clade, object],
) -> None:
    """Draw one side of the tanglegram; ``to_x`` maps layout x to axis x."""
    for clade in tree.find_clades(order="preorder"):
        x, y = layout[clade]
        color = clade_color[clade]
        if clade.clades:
            child_ys = [layout[child][1] for child in clade.clades]
            ax.plot([to_x(x), to_x(x)], [min(child_ys), max(child_ys)], color=color, lw=1.5)
        for child in clade.clades:
            cx, cy = layout[child]
            ax.plot([to_x(x), to_x(cx)], [cy, cy], color=clade_color[child], lw=1.5)


def plot_tanglegram(
    comparison: TreeComparison,
    output_path: Path,
    titles: tuple[str, str] | None = None,
) -> Path:
    """Draw two trees facing each other with tips connected across the gap.

    Clades present in both trees share a colour; conflicting structure is grey.
    Connectors are solid for tips inside a shared clade and dashed otherwise.

    Args:
        comparison: Result of :func:`compare_trees`.
        output_path: Destination file.
        titles: Left and right panel titles; default to the tree methods.

    Returns:
        Path to the saved plot file.
    """
    left = copy.deepcopy(comparison.left.tree)
    right = copy.deepcopy(comparison.right.tree)
    left.ladderize()
    right.ladderize()

    left_layout, right_layout = _layout(left), _layout(right)
    split_colors = _split_colors(comparison)
    left_colors = _clade_colors(left, comparison, split_colors)
    right_colors = _clade_colors(right, comparison, split_colors)
    tip_colors = {
        tip.name: left_colors[tip]
        for tip in left.get_terminals()
        if left_colors[tip] != UNSHARED_COLOR
    }

    n_tips = left.count_terminals()
    fig, ax = plt.subplots(figsize=(14, max(5.0, 0.35 * n_tips)))

    right_start = 2.0 + 2 * TIP_GAP
    _draw_dendrogram(ax, left, left_layout, lambda x: x, left_colors)
    _draw_dendrogram(ax, right, right_layout, lambda x: right_start + 1.0 - x, right_colors)

    left_y = {tip.name: left_layout[tip][1] for tip in left.get_terminals()}
    right_y = {tip.name: right_layout[tip][1] for tip in right.get_terminals()}
    for name, y_left in left_y.items():
        y_right = right_y[name]
        shared = name in tip_colors
        ax.plot(
            [1.0 + TIP_GAP, right_start - TIP_GAP],
            [y_left, y_right],
            color=tip_colors.get(name, "gray"),
            linestyle="-" if shared else "--",
            lw=1.0,
        )
        ax.text(1.02, y_left, name, va="center", ha="left", fontsize=7)
        ax.text(right_start - 0.02, y_right, name, va="center", ha="right", fontsize=7)

    left_title, right_title = titles or (comparison.left.method, comparison.right.method)
    ax.text(0.5, n_tips + 0.5, left_title, ha="center", fontsize=12, fontweight="bold")
    ax.text(
        right_start + 0.5, n_tips + 0.5, right_title, ha="center", fontsize=12, fontweight="bold"
    )
    ax.set_title(
        f"RF distance = {comparison.robinson_foulds} "
        f"(normalized {comparison.normalized_rf:.3f})",
        fontsize=12,
    )
    ax.invert_yaxis()
    ax.axis("off")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=300, bbox_inches="tight")
    logger.info("Saved tanglegram to %s", output_path)
    plt.close(fig)
    return output_path


def plot_prey_counts(summary: pd.DataFrame, output_path: Path) -> Path:
    """Grouped bar chart of prey counts, one colour per predator family.

    Args:
        summary: Output of :func:`summarize_prey_counts`.
        output_path: Destination file.

    Returns:
        Path to the saved plot file.
    """
    n_prey = max(summary["prey"].nunique(), 1)
    fig, ax = plt.subplots(figsize=(max(8.0, 0.5 * n_prey), 6))
    sns.barplot(
        data=summary,
        x="prey",
        y="count",
        hue="family",
        palette=family_palette(summary["family"]),
        ax=ax,
    )
    ax.set_xlabel("Prey", fontsize=12)
    ax.set_ylabel("Count", fontsize=12)
    ax.set_title("Prey items by predator family", fontsize=14, fontweight="bold")
    ax.tick_params(axis="x", labelrotation=60)
    ax.grid(True, alpha=0.3)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=300, bbox_inches="tight")
    logger.info("Saved prey-count chart to %s", output_path)
    plt.close(fig)
    return output_path
