"""
FASTA loading into one-row-per-sequence tables.
"""

import logging
from pathlib import Path

import pandas as pd
from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

logger = logging.getLogger(__name__)

SEQUENCE_COLUMNS = ["header", "sequence", "name"]
MIN_HEADER_TOKENS = 3


def parse_species_name(header: str) -> str | None:
    """
    Species binomial from a FASTA description line.

    ``"MN123456.1 Rena dulcis cytochrome b"`` -> ``"Rena dulcis"``. Headers with
    fewer than three tokens have no usable binomial and return ``None``.
    """
    tokens = header.split()
    if len(tokens) < MIN_HEADER_TOKENS:
        return None
    return f"{tokens[1]} {tokens[2]}"


def load_sequences(fasta_path: Path) -> pd.DataFrame:
    """
    Read a FASTA file into a table.

    Args:
        fasta_path: Path to a nucleotide FASTA file

    Returns:
        DataFrame with columns ``header``, ``sequence`` (upper case) and ``name``

    Raises:
        FileNotFoundError: If the FASTA file does not exist
    """
    fasta_path = Path(fasta_path)
    if not fasta_path.exists():
        raise FileNotFoundError(f"FASTA file not found: {fasta_path}")

    rows = []
    with open(fasta_path, encoding="utf-8") as handle:
        for record in SeqIO.parse(handle, "fasta"):
            rows.append(
                {
                    "header": record.description,
                    "sequence": str(record.seq).upper(),
                    "name": parse_species_name(record.description),
                }
            )

    df = pd.DataFrame(rows, columns=SEQUENCE_COLUMNS)
    n_unnamed = int(df["name"].isna().sum())
    if n_unnamed:
        logger.warning(f"{n_unnamed} headers in {fasta_path.name} lack a species binomial")
    logger.info(f"Loaded {len(df)} sequences from {fasta_path.name}")
    return df


def write_sequences(sequences: pd.DataFrame, fasta_path: Path, label_column: str = "header") -> Path:
    """Write the ``sequence`` column to FASTA using ``label_column`` as description."""
    fasta_path = Path(fasta_path)
    fasta_path.parent.mkdir(parents=True, exist_ok=True)

    records = [
        SeqRecord(Seq(row["sequence"]), id=str(row[label_column]), description="")
        for _, row in sequences.iterrows()
    ]
    with open(fasta_path, "w", encoding="utf-8") as handle:
        SeqIO.write(records, handle, "fasta")
    logger.info(f"Wrote {len(records)} sequences to {fasta_path}")
    return fasta_path
