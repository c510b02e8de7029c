"""
Report outputs: diet summaries and figures.
"""

from .summary import prey_count_table, summarize_prey_counts
from .visualization import family_palette, plot_prey_counts, plot_tanglegram, plot_tree

__all__ = [
    "family_palette",
    "plot_prey_counts",
    "plot_tanglegram",
    "plot_tree",
    "prey_count_table",
    "summarize_prey_counts",
]
