"""
Preprocessing of the diet database and sequence files.

This module loads the raw inputs, filters diet records to the target
families and assigns each sequence a family label.
"""

from .annotation import annotate_families, find_family
from .diet import (
    build_family_pattern,
    extract_family,
    filter_diet_records,
    load_diet_table,
    normalize_family,
)
from .sequences import load_sequences, parse_species_name, write_sequences

__all__ = [
    "annotate_families",
    "build_family_pattern",
    "extract_family",
    "filter_diet_records",
    "find_family",
    "load_diet_table",
    "load_sequences",
    "normalize_family",
    "parse_species_name",
    "write_sequences",
]
