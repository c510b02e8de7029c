"""
Family assignment for sequences by matching species names against diet records.

Matching is a literal substring test of the species binomial against each
``predator_taxon`` string, scanned in table order; the first record with a
family wins. Iteration order of both tables is preserved so results are
reproducible.
"""

import logging

import pandas as pd

from ..config import FamilyCorrections
from .diet import normalize_family

logger = logging.getLogger(__name__)


def find_family(name: str | None, diet: pd.DataFrame) -> str | None:
    """
    Family of the first diet record whose predator taxonomy contains ``name``.

    Args:
        name: Species binomial, or ``None`` for an unparseable header
        diet: Filtered diet records with ``predator_taxon`` and ``family``

    Returns:
        The matched family, or ``None`` when nothing matches
    """
    if not isinstance(name, str) or not name:
        return None

    labelled = diet[diet["family"].notna()]
    hits = labelled["predator_taxon"].str.contains(name, regex=False, na=False)
    if not hits.any():
        return None
    return labelled.loc[hits, "family"].iloc[0]


def annotate_families(
    sequences: pd.DataFrame,
    diet: pd.DataFrame,
    corrections: FamilyCorrections | None = None,
) -> pd.DataFrame:
    """
    Attach ``family`` and ``family_name`` to each sequence and drop unusable rows.

    Rows without a family are dropped, then rows repeating an earlier ``name``
    (first occurrence kept).

    Args:
        sequences: Output of :func:`load_sequences`
        diet: Output of :func:`filter_diet_records`
        corrections: Optional species overrides and aliases applied after matching

    Returns:
        New DataFrame with unique names and non-null families
    """
    annotated = sequences.copy()
    annotated["family"] = [find_family(name, diet) for name in annotated["name"]]

    if corrections is not None:
        overrides = corrections.species_families
        annotated["family"] = [
            overrides.get(name, family) if name else family
            for name, family in zip(annotated["name"], annotated["family"], strict=True)
        ]
        annotated["family"] = annotated["family"].map(
            lambda family: normalize_family(family, corrections.family_aliases)
        )

    n_total = len(annotated)
    annotated = annotated[annotated["family"].notna()]
    n_unmatched = n_total - len(annotated)

    annotated = annotated.drop_duplicates(subset="name", keep="first")
    n_duplicates = n_total - n_unmatched - len(annotated)

    annotated = annotated.reset_index(drop=True)
    annotated["family_name"] = annotated["family"] + " " + annotated["name"]

    logger.info(
        f"Annotated {len(annotated)}/{n_total} sequences "
        f"({n_unmatched} without a family, {n_duplicates} duplicate species dropped)"
    )
    return annotated
