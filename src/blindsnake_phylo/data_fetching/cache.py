"""
Local FASTA cache for sequences fetched from the repository.

Checks which organisms are already stored before fetching, and is the
fallback source when the repository cannot be reached.
"""

import logging
from pathlib import Path

from Bio import SeqIO
from Bio.SeqRecord import SeqRecord

from ..preprocessing.sequences import parse_species_name

logger = logging.getLogger(__name__)


class SequenceCache:
    """Manages a single FASTA file of previously fetched sequences."""

    def __init__(self, fasta_path: Path):
        """
        Initialize cache manager.

        Args:
            fasta_path: FASTA file holding cached records
        """
        self.fasta_path = Path(fasta_path)
        logger.info(f"SequenceCache initialized for {self.fasta_path}")

    def exists(self) -> bool:
        return self.fasta_path.exists() and self.fasta_path.stat().st_size > 0

    def read(self) -> list[SeqRecord]:
        """Cached records in file order (empty when there is no cache)."""
        if not self.exists():
            return []
        with open(self.fasta_path, encoding="utf-8") as handle:
            return list(SeqIO.parse(handle, "fasta"))

    def cached_organisms(self) -> set[str]:
        """Species binomials present in the cache."""
        names = {parse_species_name(record.description) for record in self.read()}
        names.discard(None)
        return names  # type: ignore[return-value]

    def write(self, records: list[SeqRecord]) -> Path:
        """Replace the cache contents with ``records``."""
        self.fasta_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.fasta_path, "w", encoding="utf-8") as handle:
            SeqIO.write(records, handle, "fasta")
        logger.info(f"Cached {len(records)} sequences in {self.fasta_path}")
        return self.fasta_path
