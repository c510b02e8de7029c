import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import dotenv
import pandas as pd

from blindsnake_phylo.alignment import Alignment, AlignmentParams, align_sequences
from blindsnake_phylo.config import AnalysisConfig
from blindsnake_phylo.data_fetching import REPOSITORY_ERRORS, FetchReport, OutgroupFetcher
from blindsnake_phylo.errors import PhyloPipelineError, PipelineStageError
from blindsnake_phylo.phylogeny import (
    DistanceMatrix,
    TreeComparison,
    TreeResult,
    TreeSearchParams,
    compare_trees,
    kmer_distance_matrix,
    ml_cluster_tree,
    model_distance_matrix,
    neighbor_joining,
)
from blindsnake_phylo.preprocessing import (
    annotate_families,
    filter_diet_records,
    load_diet_table,
    load_sequences,
)
from blindsnake_phylo.reporting import (
    plot_prey_counts,
    plot_tanglegram,
    plot_tree,
    prey_count_table,
    summarize_prey_counts,
)

dotenv.load_dotenv()

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class DatasetResult:
    """Everything produced for one taxon set."""

    name: str
    annotated: pd.DataFrame
    alignment: Alignment
    model_distances: DistanceMatrix
    kmer_distances: DistanceMatrix
    trees: dict[str, TreeResult] = field(default_factory=dict)
    comparisons: dict[str, TreeComparison] = field(default_factory=dict)


class PhylogenyPipeline:
    """
    Orchestrates the diet / sequence / tree analysis.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        alignment_params: AlignmentParams | None = None,
        tree_params: TreeSearchParams | None = None,
        fetcher: OutgroupFetcher | None = None,
    ) -> None:
        self.config = config
        self.alignment_params = alignment_params or AlignmentParams(max_iterate=config.max_iterate)
        self.tree_params = tree_params or TreeSearchParams(seed=config.seed)
        self.fetcher = fetcher

        output_dir = config.output_dir
        self.dirs = {
            "diet": output_dir / "01_diet",
            "sequences": output_dir / "02_sequences",
            "alignment": output_dir / "03_alignment",
            "distances": output_dir / "04_distances",
            "trees": output_dir / "05_trees",
            "comparison": output_dir / "06_comparison",
            "diet_summary": output_dir / "07_diet_summary",
        }
        self.timings: dict[str, float] = {}
        self.distance_rows: list[dict[str, Any]] = []

    def run(self) -> dict[str, DatasetResult]:
        """Execute the full pipeline."""
        logger.info(f"Starting pipeline, outputs in {self.config.output_dir}")
        start_time = time.perf_counter()
        for path in self.dirs.values():
            path.mkdir(parents=True, exist_ok=True)
        self.distance_rows = []

        diet = self._stage("Diet loading", self._step_1_load_diet)
        blind_diet = self._stage(
            "Diet filtering", self._step_1_filter_diet, diet, self.config.blind_families
        )
        sequences = self._stage("Sequence loading", load_sequences, self.config.sequences_fasta)
        outgroups = self._step_2_outgroups()

        results: dict[str, DatasetResult] = {}
        results["blind"] = self._analyze_dataset("blind", blind_diet, sequences)

        if outgroups is not None and not outgroups.empty:
            expanded_diet = self._stage(
                "Diet filtering (expanded)",
                self._step_1_filter_diet,
                diet,
                self.config.all_families,
            )
            expanded_sequences = pd.concat([sequences, outgroups], ignore_index=True)
            results["expanded"] = self._analyze_dataset(
                "expanded", expanded_diet, expanded_sequences
            )
        else:
            logger.warning("No outgroup sequences available, skipping the expanded dataset")

        self._stage("Diet summary", self._step_8_diet_summary, blind_diet)
        self._write_tree_distances()

        total_elapsed = time.perf_counter() - start_time
        logger.info(f"Pipeline completed in {total_elapsed:.2f} seconds")
        self._print_timings()
        return results

    def _stage(self, name: str, func: Callable[..., T], *args: Any) -> T:
        """Run and time one stage; failures are re-raised naming the stage."""
        start_time = time.perf_counter()
        try:
            result = func(*args)
        except PipelineStageError:
            raise
        except (PhyloPipelineError, FileNotFoundError, ValueError) as e:
            logger.error(f"Stage '{name}' failed: {e}")
            raise PipelineStageError(name, e) from e
        self.timings[name] = self.timings.get(name, 0.0) + time.perf_counter() - start_time
        return result

    def _print_timings(self) -> None:
        """Print table of computation times."""
        print("\n" + "=" * 50)
        print(f"{'Step':<35} | {'Time (s)':<10}")
        print("-" * 50)
        total = 0.0
        for step, duration in self.timings.items():
            print(f"{step:<35} | {duration:<10.3f}")
            total += duration
        print("-" * 50)
        print(f"{'Total':<35} | {total:<10.3f}")
        print("=" * 50 + "\n")

    def _step_1_load_diet(self) -> pd.DataFrame:
        return load_diet_table(self.config.diet_table)

    def _step_1_filter_diet(self, diet: pd.DataFrame, families: tuple[str, ...]) -> pd.DataFrame:
        filtered = filter_diet_records(
            diet,
            families=families,
            corrections=self.config.corrections,
            rank=self.config.family_rank,
        )
        suffix = "expanded" if set(families) != set(self.config.blind_families) else "blind"
        filtered.to_csv(self.dirs["diet"] / f"diet_{suffix}.tsv", sep="\t", index=False)
        return filtered

    def _step_2_outgroups(self) -> pd.DataFrame | None:
        """Outgroup sequences from NCBI or the cached FASTA; never fatal."""
        cache_path = self.config.outgroup_fasta
        if cache_path is None:
            return None

        if self.config.fetch_outgroups:
            fetcher = self.fetcher or OutgroupFetcher(
                cache_path=cache_path,
                email=os.getenv("NCBI_EMAIL"),
                api_key=os.getenv("NCBI_API_KEY"),
            )
            start_time = time.perf_counter()
            try:
                report = fetcher.fetch(self.config.outgroup_organisms, self.config.marker_gene)
            except REPOSITORY_ERRORS as e:
                logger.warning(f"Outgroup fetch failed: {e}")
                report = FetchReport(
                    fasta_path=cache_path if cache_path.exists() else None,
                    failed=list(self.config.outgroup_organisms),
                )
            self.timings["Outgroup fetch"] = time.perf_counter() - start_time
            if report.failed:
                logger.warning(f"Could not fetch outgroups: {report.failed}")
            if report.fasta_path is None:
                return None
            cache_path = report.fasta_path
        elif not cache_path.exists():
            logger.warning(f"Outgroup FASTA not found: {cache_path}")
            return None

        return self._stage("Sequence loading (outgroups)", load_sequences, cache_path)

    def _analyze_dataset(
        self, name: str, diet: pd.DataFrame, sequences: pd.DataFrame
    ) -> DatasetResult:
        """Stages 3-7 for one taxon set."""
        logger.info(f"=== Dataset: {name} ===")
        cfg = self.config

        annotated = self._stage(
            f"Annotation ({name})", annotate_families, sequences, diet, cfg.corrections
        )
        annotated.to_csv(self.dirs["sequences"] / f"{name}_annotated.tsv", sep="\t", index=False)
        labelled = dict(zip(annotated["family_name"], annotated["sequence"], strict=True))
        families = dict(zip(annotated["family_name"], annotated["family"], strict=True))

        alignment = self._stage(
            f"Alignment ({name})",
            align_sequences,
            labelled,
            self.dirs["alignment"] / name,
            self.alignment_params,
        )

        model_dm = self._stage(
            f"Model distances ({name})",
            model_distance_matrix,
            alignment,
            cfg.substitution_model,
            cfg.pairwise_deletion,
        )
        model_dm.write_tsv(self.dirs["distances"] / f"{name}_{cfg.substitution_model}.tsv")

        kmer_dm = self._stage(
            f"k-mer distances ({name})", kmer_distance_matrix, labelled, cfg.kmer_size
        )
        kmer_dm.write_tsv(self.dirs["distances"] / f"{name}_kmer{cfg.kmer_size}.tsv")

        result = DatasetResult(
            name=name,
            annotated=annotated,
            alignment=alignment,
            model_distances=model_dm,
            kmer_distances=kmer_dm,
        )

        tree_dir = self.dirs["trees"] / name
        result.trees["ml"] = self._stage(
            f"ML tree ({name})",
            ml_cluster_tree,
            alignment,
            cfg.tree_model,
            cfg.ml_cutoff,
            tree_dir / "iqtree",
            self.tree_params,
        )
        result.trees["nj_model"] = self._stage(f"NJ tree ({name})", neighbor_joining, model_dm)
        result.trees["nj_kmer"] = self._stage(
            f"NJ k-mer tree ({name})", neighbor_joining, kmer_dm
        )

        for key, tree in result.trees.items():
            tree.write(tree_dir / f"{key}.nwk")
            plot_tree(tree, families, tree_dir / f"{key}.pdf", title=f"{name}: {tree.method}")

        pd.DataFrame(
            sorted(result.trees["ml"].clusters.items()), columns=["family_name", "cluster"]
        ).to_csv(tree_dir / "ml_clusters.tsv", sep="\t", index=False)

        self._step_7_compare(result, "ml_vs_nj", "ml", "nj_model")
        self._step_7_compare(result, "model_vs_kmer", "nj_model", "nj_kmer")
        return result

    def _step_7_compare(self, result: DatasetResult, key: str, left: str, right: str) -> None:
        comparison = self._stage(
            f"Tree comparison {key} ({result.name})",
            compare_trees,
            result.trees[left],
            result.trees[right],
        )
        result.comparisons[key] = comparison
        out_dir = self.dirs["comparison"]
        plot_tanglegram(comparison, out_dir / f"{result.name}_{key}_tanglegram.pdf")

        self.distance_rows.append(
            {
                "dataset": result.name,
                "comparison": key,
                "robinson_foulds": comparison.robinson_foulds,
                "normalized_rf": comparison.normalized_rf,
            }
        )

    def _write_tree_distances(self) -> None:
        columns = ["dataset", "comparison", "robinson_foulds", "normalized_rf"]
        pd.DataFrame(self.distance_rows, columns=columns).to_csv(
            self.dirs["comparison"] / "tree_distances.tsv", sep="\t", index=False
        )

    def _step_8_diet_summary(self, diet: pd.DataFrame) -> pd.DataFrame:
        out_dir = self.dirs["diet_summary"]
        summary = summarize_prey_counts(diet, min_count=self.config.min_prey_count)
        summary.to_csv(out_dir / "prey_counts.tsv", sep="\t", index=False)
        prey_count_table(summary).to_csv(out_dir / "prey_counts_wide.tsv", sep="\t")
        if not summary.empty:
            plot_prey_counts(summary, out_dir / "prey_counts.pdf")
        return summary
