import json

import pytest

from blindsnake_phylo.config import (
    BLIND_SNAKE_FAMILIES,
    DEFAULT_CORRECTIONS,
    OUTGROUP_FAMILIES,
    AnalysisConfig,
    FamilyCorrections,
)


def test_default_corrections_are_not_chained():
    aliases = DEFAULT_CORRECTIONS.family_aliases
    assert not set(aliases.values()) & set(aliases)


def test_chained_aliases_rejected():
    with pytest.raises(ValueError, match="Anomalepidae"):
        FamilyCorrections(
            version="bad",
            family_aliases={"Liotyphlops": "Anomalepidae", "Anomalepidae": "Anomalepididae"},
        )


def test_corrections_json_round_trip(tmp_path):
    path = DEFAULT_CORRECTIONS.to_json(tmp_path / "corrections.json")
    loaded = FamilyCorrections.from_json(path)
    assert loaded.version == DEFAULT_CORRECTIONS.version
    assert dict(loaded.family_aliases) == dict(DEFAULT_CORRECTIONS.family_aliases)
    assert dict(loaded.species_families) == dict(DEFAULT_CORRECTIONS.species_families)


def test_reference_analysis_paths(tmp_path):
    config = AnalysisConfig.for_reference_analysis(tmp_path, tmp_path / "out")
    assert config.diet_table == tmp_path / "diet_database.csv"
    assert config.outgroup_fasta == tmp_path / "outgroups_cytb.fasta"
    assert config.substitution_model == "TN93"
    assert config.kmer_size == 5
    assert config.all_families == BLIND_SNAKE_FAMILIES + OUTGROUP_FAMILIES


def test_from_json_resolves_relative_paths(tmp_path):
    config_path = tmp_path / "analysis.json"
    config_path.write_text(
        json.dumps(
            {
                "diet_table": "data/diet.tsv",
                "sequences_fasta": "data/seqs.fasta",
                "output_dir": "results",
                "blind_families": ["Typhlopidae"],
                "substitution_model": "K80",
                "corrections": {"version": "test", "family_aliases": {"Rena": "Leptotyphlopidae"}},
            }
        )
    )

    config = AnalysisConfig.from_json(config_path)

    assert config.diet_table == tmp_path / "data/diet.tsv"
    assert config.output_dir == tmp_path / "results"
    assert config.outgroup_fasta is None
    assert config.blind_families == ("Typhlopidae",)
    assert config.substitution_model == "K80"
    assert config.corrections.version == "test"


def test_from_json_loads_corrections_file(tmp_path):
    FamilyCorrections(version="v2", family_aliases={"Epictia": "Leptotyphlopidae"}).to_json(
        tmp_path / "corr.json"
    )
    config_path = tmp_path / "analysis.json"
    config_path.write_text(
        json.dumps(
            {
                "diet_table": "diet.csv",
                "sequences_fasta": "seqs.fasta",
                "output_dir": "out",
                "corrections": "corr.json",
            }
        )
    )
    assert AnalysisConfig.from_json(config_path).corrections.version == "v2"


@pytest.mark.parametrize(
    "field, value",
    [("family_rank", 0), ("kmer_size", 0), ("substitution_model", "HKY85"), ("ml_model", "RAW")],
)
def test_invalid_parameters_rejected(tmp_path, field, value):
    with pytest.raises(ValueError):
        AnalysisConfig(
            diet_table=tmp_path / "d.csv",
            sequences_fasta=tmp_path / "s.fasta",
            output_dir=tmp_path,
            **{field: value},
        )


def test_ml_model_follows_distance_model(tmp_path):
    paths = dict(
        diet_table=tmp_path / "d.csv", sequences_fasta=tmp_path / "s.fasta", output_dir=tmp_path
    )

    assert AnalysisConfig(**paths, substitution_model="k80").tree_model == "K80"
    assert AnalysisConfig(**paths, substitution_model="RAW").tree_model == "JC69"

    config = AnalysisConfig(**paths, substitution_model="TN93", ml_model="gtr")
    assert config.substitution_model == "TN93"
    assert config.tree_model == "GTR"
