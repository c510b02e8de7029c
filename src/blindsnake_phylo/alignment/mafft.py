"""MAFFT multiple sequence alignment for labelled nucleotide sequences."""

import logging
import subprocess
import tempfile
import time
from collections.abc import Mapping
from pathlib import Path

from ..errors import AlignmentError
from .models import Alignment, AlignmentParams
from .utils import _parse_aligned_fasta, _write_placeholder_fasta

logger = logging.getLogger(__name__)

MIN_SEQUENCES = 2


def align_sequences(
    sequences: Mapping[str, str],
    output_dir: Path | None = None,
    params: AlignmentParams | None = None,
) -> Alignment:
    """
    Align sequences with MAFFT iterative refinement.

    Labels are swapped for placeholder ids before the external call and put
    back afterwards, so any label survives the round trip unchanged.

    Args:
        sequences: Ordered mapping of {label: raw nucleotide sequence}
        output_dir: Where to keep the input/output FASTA files; a temporary
            directory is used when omitted
        params: MAFFT parameters (iteration bound, executable)

    Returns:
        Alignment with labels in input order

    Raises:
        AlignmentError: If fewer than two sequences are given or MAFFT fails
        FileNotFoundError: If MAFFT is not installed
    """
    if len(sequences) < MIN_SEQUENCES:
        raise AlignmentError(
            f"alignment requires >={MIN_SEQUENCES} sequences, got {len(sequences)}"
        )
    if params is None:
        params = AlignmentParams()

    if output_dir is None:
        with tempfile.TemporaryDirectory(prefix="mafft_") as tmp:
            return _align_in(Path(tmp), sequences, params)

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    alignment = _align_in(output_dir, sequences, params)
    alignment.write(output_dir / "alignment.fasta")
    return alignment


def _align_in(work_dir: Path, sequences: Mapping[str, str], params: AlignmentParams) -> Alignment:
    input_fasta = work_dir / "unaligned.fasta"
    id_to_label = _write_placeholder_fasta(sequences, input_fasta)

    logger.info(f"Aligning {len(sequences)} sequences (maxiterate={params.max_iterate})")
    start_time = time.perf_counter()
    stdout = _run_mafft(input_fasta, params)
    logger.info(f"MAFFT finished in {time.perf_counter() - start_time:.2f}s")

    aligned = _parse_aligned_fasta(stdout, id_to_label)
    alignment = Alignment(labels=tuple(aligned), sequences=tuple(aligned.values()))

    longest = max(len(seq) for seq in sequences.values())
    if alignment.length < longest:
        raise AlignmentError(
            f"alignment length {alignment.length} is shorter than the longest input ({longest})"
        )
    logger.info(f"Alignment: {len(alignment)} sequences x {alignment.length} columns")
    return alignment


def _run_mafft(input_fasta: Path, params: AlignmentParams) -> str:
    """Execute MAFFT and return the aligned FASTA text."""
    cmd = [
        params.executable,
        "--maxiterate",
        str(params.max_iterate),
        "--quiet",
        *params.extra_args,
        str(input_fasta),
    ]

    try:
        result = subprocess.run(cmd, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as e:
        raise AlignmentError(f"MAFFT failed: {e.stderr}") from e
    except FileNotFoundError as e:
        raise FileNotFoundError("MAFFT not found. Please install MAFFT.") from e
    return result.stdout
