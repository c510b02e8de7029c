import pandas as pd

from blindsnake_phylo.config import BLIND_SNAKE_FAMILIES, DEFAULT_CORRECTIONS
from blindsnake_phylo.preprocessing import filter_diet_records
from blindsnake_phylo.reporting import prey_count_table, summarize_prey_counts


def _events(family: str, counts: dict[str, int]) -> pd.DataFrame:
    rows = [(family, prey) for prey, n in counts.items() for _ in range(n)]
    return pd.DataFrame(rows, columns=["family", "prey"])


def test_threshold_keeps_counts_above_one():
    diet = _events("Typhlopidae", {"Formicidae": 3, "Termitidae": 1, "Isoptera": 1, "Araneae": 2})
    summary = summarize_prey_counts(diet, min_count=1)
    assert summary["count"].tolist() == [3, 2]
    assert summary["prey"].tolist() == ["Formicidae", "Araneae"]


def test_higher_threshold_can_drop_a_family():
    diet = pd.concat(
        [_events("Typhlopidae", {"Formicidae": 4}), _events("Gerrhopilidae", {"Formicidae": 2})]
    )
    summary = summarize_prey_counts(diet, min_count=2)
    assert set(summary["family"]) == {"Typhlopidae"}


def test_summary_from_filtered_diet(diet_df):
    diet = filter_diet_records(diet_df, BLIND_SNAKE_FAMILIES, DEFAULT_CORRECTIONS)
    summary = summarize_prey_counts(diet)

    assert list(summary.columns) == ["family", "prey", "count"]
    assert summary.values.tolist() == [
        ["Leptotyphlopidae", "Formicidae", 3],
        ["Typhlopidae", "Formicidae", 2],
        ["Typhlopidae", "Termitidae", 2],
    ]

    wide = prey_count_table(summary)
    assert wide.loc["Termitidae", "Leptotyphlopidae"] == 0
    assert wide.loc["Formicidae", "Leptotyphlopidae"] == 3
