"""Prey-count aggregation per predator family."""

import logging

import pandas as pd

logger = logging.getLogger(__name__)


def summarize_prey_counts(diet: pd.DataFrame, min_count: int = 1) -> pd.DataFrame:
    """
    Count predation events per (family, prey) and drop rare combinations.

    ``min_count=1`` keeps anything observed at least twice; higher values can
    eliminate the smallest-sample family entirely.

    Args:
        diet: Filtered diet records with ``family`` and ``prey`` columns
        min_count: Groups with ``count <= min_count`` are dropped

    Returns:
        DataFrame with columns ``family``, ``prey``, ``count`` sorted by family
        and descending count
    """
    labelled = diet.dropna(subset=["family", "prey"])
    counts = labelled.groupby(["family", "prey"]).size().reset_index(name="count")
    kept = counts[counts["count"] > min_count]

    dropped_families = sorted(set(counts["family"]) - set(kept["family"]))
    if dropped_families:
        logger.warning(f"No prey above count {min_count} for families: {dropped_families}")

    logger.info(f"Kept {len(kept)}/{len(counts)} family-prey groups with count > {min_count}")
    return kept.sort_values(
        ["family", "count", "prey"], ascending=[True, False, True]
    ).reset_index(drop=True)


def prey_count_table(summary: pd.DataFrame) -> pd.DataFrame:
    """Wide prey x family table of counts (0 where a family never took a prey)."""
    return summary.pivot_table(
        index="prey", columns="family", values="count", fill_value=0, aggfunc="sum"
    )
