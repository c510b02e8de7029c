import argparse
import logging
import os
import sys
from pathlib import Path

import dotenv

from blindsnake_phylo.config import OUTGROUP_ORGANISMS
from blindsnake_phylo.data_fetching import fetch_outgroups

dotenv.load_dotenv()


def main():
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    root = Path(__file__).parents[1] / "datasets/blindsnakes"

    parser = argparse.ArgumentParser(description="Fetch outgroup marker-gene sequences from NCBI.")
    parser.add_argument(
        "--output",
        type=Path,
        default=root / "outgroups_cytb.fasta",
        help="FASTA file used as cache and output",
    )
    parser.add_argument("--gene", default="cytb", help="Marker gene (default: cytb)")
    parser.add_argument(
        "organisms",
        nargs="*",
        default=list(OUTGROUP_ORGANISMS),
        help="Organisms to fetch (default: the reference outgroups)",
    )
    args = parser.parse_args()

    report = fetch_outgroups(
        organisms=args.organisms,
        gene=args.gene,
        cache_path=args.output,
        email=os.getenv("NCBI_EMAIL"),
        api_key=os.getenv("NCBI_API_KEY"),
    )
    if report.fasta_path is None:
        logging.error("No outgroup sequences fetched and no cache available")
        sys.exit(1)
    print(f"Outgroup sequences in {report.fasta_path}")


if __name__ == "__main__":
    main()
