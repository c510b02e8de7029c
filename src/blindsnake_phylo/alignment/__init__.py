"""MAFFT module for nucleotide multiple sequence alignment."""

from .mafft import align_sequences
from .models import Alignment, AlignmentParams

__all__ = [
    "Alignment",
    "AlignmentParams",
    "align_sequences",
]
