"""Data classes for multiple sequence alignments."""

from dataclasses import dataclass
from pathlib import Path

from Bio import SeqIO
from Bio.Align import MultipleSeqAlignment
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from ..errors import AlignmentError


@dataclass(frozen=True)
class AlignmentParams:
    """Parameters for the MAFFT run.

    Attributes:
        max_iterate: Upper bound on iterative refinement cycles.
        executable: MAFFT binary name or path.
        extra_args: Additional command-line arguments passed through verbatim.
    """

    max_iterate: int = 1000
    executable: str = "mafft"
    extra_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class Alignment:
    """Gapped, equal-length sequences with their display labels.

    Attributes:
        labels: Tip labels, one per sequence.
        sequences: Aligned sequences in the same order as ``labels``.
    """

    labels: tuple[str, ...]
    sequences: tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.labels) != len(self.sequences):
            raise AlignmentError(
                f"{len(self.labels)} labels for {len(self.sequences)} aligned sequences"
            )
        if len(set(self.labels)) != len(self.labels):
            raise AlignmentError("alignment labels must be unique")
        lengths = {len(seq) for seq in self.sequences}
        if len(lengths) > 1:
            raise AlignmentError(f"aligned sequences differ in length: {sorted(lengths)}")

    def __len__(self) -> int:
        return len(self.labels)

    @property
    def length(self) -> int:
        """Number of alignment columns."""
        return len(self.sequences[0]) if self.sequences else 0

    def as_dict(self) -> dict[str, str]:
        return dict(zip(self.labels, self.sequences, strict=True))

    def to_biopython(self) -> MultipleSeqAlignment:
        return MultipleSeqAlignment(
            [
                SeqRecord(Seq(seq), id=label, description="")
                for label, seq in zip(self.labels, self.sequences, strict=True)
            ]
        )

    def write(self, fasta_path: Path) -> Path:
        """Write the alignment as FASTA, one label per header line."""
        fasta_path = Path(fasta_path)
        fasta_path.parent.mkdir(parents=True, exist_ok=True)
        with open(fasta_path, "w", encoding="utf-8") as handle:
            SeqIO.write(self.to_biopython(), handle, "fasta")
        return fasta_path

    @classmethod
    def from_fasta(cls, fasta_path: Path) -> "Alignment":
        """Read an alignment written by :meth:`write`."""
        with open(fasta_path, encoding="utf-8") as handle:
            records = list(SeqIO.parse(handle, "fasta"))
        return cls(
            labels=tuple(record.description for record in records),
            sequences=tuple(str(record.seq).upper() for record in records),
        )
