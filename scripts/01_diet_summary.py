import argparse
import logging
import sys
from pathlib import Path

from blindsnake_phylo.config import BLIND_SNAKE_FAMILIES, DEFAULT_CORRECTIONS
from blindsnake_phylo.errors import PhyloPipelineError
from blindsnake_phylo.preprocessing import filter_diet_records, load_diet_table
from blindsnake_phylo.reporting import plot_prey_counts, prey_count_table, summarize_prey_counts


def main():
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    parser = argparse.ArgumentParser(description="Summarize prey counts per blind-snake family.")
    parser.add_argument("diet_table", type=Path, help="Diet database (csv, tsv or xlsx)")
    parser.add_argument("--output", type=Path, default=Path("diet_summary"))
    parser.add_argument("--min-count", type=int, default=1)
    parser.add_argument("--rank", type=int, default=3, help="1-based family rank (default: 3)")
    args = parser.parse_args()

    try:
        diet = load_diet_table(args.diet_table)
        diet = filter_diet_records(
            diet, BLIND_SNAKE_FAMILIES, corrections=DEFAULT_CORRECTIONS, rank=args.rank
        )
        summary = summarize_prey_counts(diet, min_count=args.min_count)
    except (FileNotFoundError, PhyloPipelineError) as e:
        logging.error(f"Diet summary failed: {e}", exc_info=True)
        sys.exit(1)

    args.output.mkdir(parents=True, exist_ok=True)
    summary.to_csv(args.output / "prey_counts.tsv", sep="\t", index=False)
    prey_count_table(summary).to_csv(args.output / "prey_counts_wide.tsv", sep="\t")
    if not summary.empty:
        plot_prey_counts(summary, args.output / "prey_counts.pdf")
    print(f"Diet summary written to {args.output}")


if __name__ == "__main__":
    main()
