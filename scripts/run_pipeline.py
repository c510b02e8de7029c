import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from blindsnake_phylo.config import AnalysisConfig
from blindsnake_phylo.pipeline import PhylogenyPipeline


def main():
    # Default root path
    default_root = Path(__file__).parents[1] / "datasets/blindsnakes"

    parser = argparse.ArgumentParser(description="Run the blind-snake phylogeny pipeline.")
    parser.add_argument(
        "dataset_path",
        nargs="?",
        type=Path,
        default=default_root,
        help=f"Directory holding the diet table and FASTA inputs (default: {default_root})",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON config file; overrides dataset_path",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output directory (default: <dataset_path>/results)",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Distance model: RAW, JC69, K80, F81 or TN93 (default: TN93)",
    )
    parser.add_argument(
        "--ml-model",
        default=None,
        help="ML search model: JC69, K80, F81, TN93, HKY85 or GTR (default: the distance model)",
    )
    parser.add_argument(
        "--complete-deletion",
        action="store_true",
        help="Drop alignment columns with a gap or ambiguity in any sequence",
    )
    parser.add_argument("--kmer-size", type=int, default=None, help="k-mer length (default: 5)")
    parser.add_argument(
        "--cutoff",
        type=float,
        default=None,
        help="Patristic diameter cutoff for ML clusters (default: 0.05)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Do not contact NCBI; use the cached outgroup FASTA only",
    )

    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logger = logging.getLogger(__name__)

    try:
        if args.config is not None:
            config = AnalysisConfig.from_json(args.config)
        else:
            config = AnalysisConfig.for_reference_analysis(
                data_dir=args.dataset_path,
                output_dir=args.output or args.dataset_path / "results",
            )

        overrides = {}
        if args.output is not None:
            overrides["output_dir"] = args.output
        if args.model is not None:
            overrides["substitution_model"] = args.model.upper()
        if args.ml_model is not None:
            overrides["ml_model"] = args.ml_model
        if args.complete_deletion:
            overrides["pairwise_deletion"] = False
        if args.kmer_size is not None:
            overrides["kmer_size"] = args.kmer_size
        if args.cutoff is not None:
            overrides["ml_cutoff"] = args.cutoff
        if args.offline:
            overrides["fetch_outgroups"] = False
        config = replace(config, **overrides)

        PhylogenyPipeline(config).run()
    except Exception as e:
        logger.error(f"Pipeline failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
