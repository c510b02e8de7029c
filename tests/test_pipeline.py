import pandas as pd
import pytest

from blindsnake_phylo.config import AnalysisConfig
from blindsnake_phylo.data_fetching import FetchReport
from blindsnake_phylo.errors import PipelineStageError
from blindsnake_phylo.pipeline import PhylogenyPipeline


@pytest.fixture
def config(tmp_path, diet_csv, sequences_fasta, outgroups_fasta) -> AnalysisConfig:
    return AnalysisConfig(
        diet_table=diet_csv,
        sequences_fasta=sequences_fasta,
        outgroup_fasta=outgroups_fasta,
        output_dir=tmp_path / "results",
        substitution_model="JC69",
        fetch_outgroups=False,
    )


def test_full_run(config, fake_tools):
    pipeline = PhylogenyPipeline(config)
    results = pipeline.run()

    assert set(results) == {"blind", "expanded"}
    blind, expanded = results["blind"], results["expanded"]
    assert len(blind.alignment) == 5
    assert len(expanded.alignment) == 6
    assert "Boidae Boa constrictor" in expanded.alignment.labels

    for result in results.values():
        assert set(result.trees) == {"ml", "nj_model", "nj_kmer"}
        for tree in result.trees.values():
            assert tree.tip_labels == set(result.alignment.labels)
        assert set(result.comparisons) == {"ml_vs_nj", "model_vs_kmer"}

    out = config.output_dir
    assert (out / "03_alignment" / "blind" / "alignment.fasta").exists()
    assert (out / "04_distances" / "blind_JC69.tsv").exists()
    assert (out / "04_distances" / "expanded_kmer5.tsv").exists()
    assert (out / "05_trees" / "blind" / "nj_model.nwk").exists()
    assert (out / "05_trees" / "expanded" / "ml.pdf").exists()
    assert (out / "06_comparison" / "blind_ml_vs_nj_tanglegram.pdf").exists()
    assert (out / "07_diet_summary" / "prey_counts.pdf").exists()

    distances = pd.read_csv(out / "06_comparison" / "tree_distances.tsv", sep="\t")
    assert len(distances) == 4
    assert "Diet summary" in pipeline.timings


def test_run_without_outgroups(config, fake_tools):
    config.outgroup_fasta = None
    results = PhylogenyPipeline(config).run()
    assert set(results) == {"blind"}


def test_fetcher_is_used_when_enabled(config, fake_tools, outgroups_fasta):
    class StubFetcher:
        def fetch(self, organisms, gene):
            self.request = (tuple(organisms), gene)
            return FetchReport(fasta_path=outgroups_fasta, cached=["Boa constrictor"])

    fetcher = StubFetcher()
    config.fetch_outgroups = True
    results = PhylogenyPipeline(config, fetcher=fetcher).run()

    assert fetcher.request == (config.outgroup_organisms, "cytb")
    assert "expanded" in results


def test_rerun_overwrites_tree_distances(config, fake_tools):
    PhylogenyPipeline(config).run()
    PhylogenyPipeline(config).run()

    distances = pd.read_csv(
        config.output_dir / "06_comparison" / "tree_distances.tsv", sep="\t"
    )
    assert len(distances) == 4
    assert list(distances["dataset"]) == ["blind", "blind", "expanded", "expanded"]


def test_repository_error_does_not_abort_the_run(config, fake_tools):
    class FailingFetcher:
        def fetch(self, organisms, gene):
            raise RuntimeError("Search Backend failed: Database is not supported")

    config.fetch_outgroups = True
    results = PhylogenyPipeline(config, fetcher=FailingFetcher()).run()

    # The cached outgroup FASTA still feeds the expanded dataset
    assert set(results) == {"blind", "expanded"}


def test_stage_failure_names_the_stage(config):
    config.sequences_fasta = config.sequences_fasta.with_name("missing.fasta")
    with pytest.raises(PipelineStageError, match="Sequence loading") as excinfo:
        PhylogenyPipeline(config).run()
    assert isinstance(excinfo.value.cause, FileNotFoundError)
