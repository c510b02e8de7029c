"""
Diet database loading and predator-family filtering.

Each row of the diet table is one observed or attempted predation event with a
semicolon-delimited predator taxonomy (``predator_taxon``) and a prey taxon.
"""

import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path

import pandas as pd

from ..config import FamilyCorrections
from ..errors import DataFormatError

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("predator_taxon", "prey")
TAB_SUFFIXES = {".tsv", ".tab", ".txt"}


def load_diet_table(table_path: Path, sep: str | None = None) -> pd.DataFrame:
    """
    Load the diet-event table.

    Args:
        table_path: CSV, TSV or Excel file
        sep: Column separator; inferred from the suffix when omitted

    Returns:
        DataFrame with at least the ``predator_taxon`` and ``prey`` columns

    Raises:
        FileNotFoundError: If the table does not exist
        DataFormatError: If a required column is missing
    """
    table_path = Path(table_path)
    if not table_path.exists():
        raise FileNotFoundError(f"Diet table not found: {table_path}")

    suffix = table_path.suffix.lower()
    if suffix in (".xlsx", ".xls"):
        df = pd.read_excel(table_path)
    else:
        if sep is None:
            sep = "\t" if suffix in TAB_SUFFIXES else ","
        df = pd.read_csv(table_path, sep=sep)

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise DataFormatError(f"Diet table {table_path.name} is missing columns: {missing}")

    logger.info(f"Loaded {len(df)} diet records from {table_path.name}")
    return df


def build_family_pattern(families: Iterable[str]) -> str:
    """Alternation pattern matching any of the target family names."""
    names = [re.escape(name) for name in families if name]
    if not names:
        raise ValueError("At least one target family is required")
    return "|".join(names)


def extract_family(predator_taxon: object, rank: int = 3) -> str | None:
    """
    Return the 1-based ``rank`` token of a semicolon-delimited taxonomy.

    Records with fewer tokens (or an empty token at that rank) yield ``None``.
    """
    if not isinstance(predator_taxon, str):
        return None
    tokens = [token.strip() for token in predator_taxon.split(";")]
    if len(tokens) < rank:
        return None
    return tokens[rank - 1] or None


def normalize_family(label: str | None, aliases: Mapping[str, str]) -> str | None:
    """Collapse known synonyms; labels not in the table pass through unchanged."""
    if label is None:
        return None
    return aliases.get(label, label)


def filter_diet_records(
    diet: pd.DataFrame,
    families: Iterable[str],
    corrections: FamilyCorrections,
    rank: int = 3,
) -> pd.DataFrame:
    """
    Keep records whose predator belongs to one of ``families`` and label them.

    Args:
        diet: Raw diet table
        families: Target family names
        corrections: Alias table applied after rank extraction
        rank: 1-based taxonomy rank holding the family

    Returns:
        New DataFrame with an added ``family`` column (``None`` where the
        taxonomy is too short to hold a family)
    """
    families = list(families)
    pattern = build_family_pattern(families)

    mask = diet["predator_taxon"].str.contains(pattern, regex=True, na=False)
    filtered = diet.loc[mask].copy().reset_index(drop=True)

    raw = filtered["predator_taxon"].map(lambda taxon: extract_family(taxon, rank))
    filtered["family"] = raw.map(
        lambda label: normalize_family(label, corrections.family_aliases)
    )

    n_null = int(filtered["family"].isna().sum())
    if n_null:
        logger.warning(f"{n_null} diet records have fewer than {rank} taxonomy ranks")

    stray = sorted(set(filtered["family"].dropna()) - set(families))
    if stray:
        logger.warning(f"Family labels outside the target list after normalization: {stray}")

    logger.info(
        f"Kept {len(filtered)}/{len(diet)} diet records for {len(families)} families "
        f"(corrections {corrections.version})"
    )
    return filtered
