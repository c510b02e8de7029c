import pandas as pd

from blindsnake_phylo.config import BLIND_SNAKE_FAMILIES, DEFAULT_CORRECTIONS, FamilyCorrections
from blindsnake_phylo.preprocessing import (
    annotate_families,
    filter_diet_records,
    find_family,
    load_sequences,
)


def _blind_diet(diet_df):
    return filter_diet_records(diet_df, BLIND_SNAKE_FAMILIES, DEFAULT_CORRECTIONS)


def test_annotate_all_sequences(diet_df, sequences_fasta):
    annotated = annotate_families(load_sequences(sequences_fasta), _blind_diet(diet_df))

    assert annotated["family"].notna().all()
    assert annotated["name"].is_unique
    assert dict(zip(annotated["name"], annotated["family"])) == {
        "Rena dulcis": "Leptotyphlopidae",
        "Rena humilis": "Leptotyphlopidae",
        "Indotyphlops braminus": "Typhlopidae",
        "Afrotyphlops schlegelii": "Typhlopidae",
        "Liotyphlops albirostris": "Anomalepididae",
    }
    assert annotated.loc[0, "family_name"] == "Leptotyphlopidae Rena dulcis"


def test_unmatched_and_duplicate_rows_dropped(diet_df):
    sequences = pd.DataFrame(
        {
            "header": ["a Rena dulcis", "b Natrix natrix", "c Rena dulcis", "d"],
            "sequence": ["ACGT", "ACGA", "TTTT", "ACGT"],
            "name": ["Rena dulcis", "Natrix natrix", "Rena dulcis", None],
        }
    )
    annotated = annotate_families(sequences, _blind_diet(diet_df))

    assert annotated["header"].tolist() == ["a Rena dulcis"]
    assert annotated["sequence"].tolist() == ["ACGT"]
    assert annotated.index.tolist() == [0]


def test_first_match_wins():
    diet = pd.DataFrame(
        {
            "predator_taxon": ["x;y;Typhlopidae;Rena dulcisoides", "x;y;Leptotyphlopidae;Rena dulcis"],
            "prey": ["a", "b"],
            "family": ["Typhlopidae", "Leptotyphlopidae"],
        }
    )
    assert find_family("Rena dulcis", diet) == "Typhlopidae"
    assert find_family("Rena", diet) == "Typhlopidae"
    assert find_family("Boa constrictor", diet) is None
    assert find_family(None, diet) is None


def test_unlabelled_diet_rows_never_match():
    diet = pd.DataFrame(
        {
            "predator_taxon": ["Squamata;Rena dulcis", "x;y;Leptotyphlopidae;Rena dulcis"],
            "prey": ["a", "b"],
            "family": [None, "Leptotyphlopidae"],
        }
    )
    assert find_family("Rena dulcis", diet) == "Leptotyphlopidae"


def test_species_override_applied(diet_df):
    corrections = FamilyCorrections(
        version="t", species_families={"Liotyphlops albirostris": "Typhlopidae"}
    )
    sequences = pd.DataFrame(
        {
            "header": ["a Liotyphlops albirostris"],
            "sequence": ["ACGT"],
            "name": ["Liotyphlops albirostris"],
        }
    )
    annotated = annotate_families(sequences, _blind_diet(diet_df), corrections)
    assert annotated["family"].tolist() == ["Typhlopidae"]
