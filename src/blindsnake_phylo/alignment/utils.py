import logging
from collections.abc import Mapping
from io import StringIO
from pathlib import Path

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from ..errors import AlignmentError

logger = logging.getLogger(__name__)


def placeholder_ids(n: int, prefix: str = "s") -> list[str]:
    """Positional ids safe for any external tool (no spaces or punctuation)."""
    return [f"{prefix}{i}" for i in range(n)]


def _write_placeholder_fasta(sequences: Mapping[str, str], fasta_path: Path) -> dict[str, str]:
    """
    Write sequences under placeholder ids.

    Returns:
        Mapping of {placeholder_id: original_label}
    """
    labels = list(sequences)
    ids = placeholder_ids(len(labels))
    records = [
        SeqRecord(Seq(str(sequences[label]).upper()), id=seq_id, description="")
        for seq_id, label in zip(ids, labels, strict=True)
    ]
    with open(fasta_path, "w", encoding="utf-8") as handle:
        SeqIO.write(records, handle, "fasta")
    return dict(zip(ids, labels, strict=True))


def _parse_aligned_fasta(fasta_text: str, id_to_label: Mapping[str, str]) -> dict[str, str]:
    """
    Parse aligner output and restore original labels.

    Raises:
        AlignmentError: If the output does not contain exactly the submitted ids
    """
    aligned = {
        record.id: str(record.seq).upper()
        for record in SeqIO.parse(StringIO(fasta_text), "fasta")
    }

    missing = sorted(set(id_to_label) - set(aligned))
    unexpected = sorted(set(aligned) - set(id_to_label))
    if missing or unexpected:
        raise AlignmentError(
            f"aligner output does not match input: missing {missing}, unexpected {unexpected}"
        )

    # Restore submission order
    return {id_to_label[seq_id]: aligned[seq_id] for seq_id in id_to_label}
