"""
Analysis configuration and versioned family-correction tables.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .phylogeny.distances import SUPPORTED_MODELS
from .phylogeny.tree_builder import IQTREE_MODELS

logger = logging.getLogger(__name__)

BLIND_SNAKE_FAMILIES: tuple[str, ...] = (
    "Leptotyphlopidae",
    "Typhlopidae",
    "Anomalepididae",
    "Gerrhopilidae",
    "Xenotyphlopidae",
)

OUTGROUP_FAMILIES: tuple[str, ...] = (
    "Aniliidae",
    "Cylindrophiidae",
    "Boidae",
    "Pythonidae",
)

OUTGROUP_ORGANISMS: tuple[str, ...] = (
    "Anilius scytale",
    "Cylindrophis ruffus",
    "Boa constrictor",
    "Python regius",
)


@dataclass(frozen=True)
class FamilyCorrections:
    """Versioned lookup tables used to patch family labels.

    ``family_aliases`` maps raw rank tokens (synonyms, genus-level labels) to a
    canonical family. ``species_families`` pins a species binomial to a family
    regardless of what the diet table says.
    """

    version: str
    family_aliases: Mapping[str, str] = field(default_factory=dict)
    species_families: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # A value that is also a key would make normalization order-dependent
        chained = sorted(set(self.family_aliases.values()) & set(self.family_aliases))
        if chained:
            raise ValueError(
                f"Alias table {self.version} maps onto other aliases: {chained}"
            )

    @classmethod
    def from_json(cls, json_path: Path) -> "FamilyCorrections":
        """Load a correction table written by :meth:`to_json`."""
        with open(json_path, encoding="utf-8") as f:
            data = json.load(f)
        corrections = cls(
            version=str(data["version"]),
            family_aliases=dict(data.get("family_aliases", {})),
            species_families=dict(data.get("species_families", {})),
        )
        logger.info(
            f"Loaded corrections {corrections.version}: "
            f"{len(corrections.family_aliases)} aliases, "
            f"{len(corrections.species_families)} species overrides"
        )
        return corrections

    def to_json(self, json_path: Path) -> Path:
        json_path = Path(json_path)
        json_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "version": self.version,
            "family_aliases": dict(sorted(self.family_aliases.items())),
            "species_families": dict(sorted(self.species_families.items())),
        }
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        return json_path


DEFAULT_CORRECTIONS = FamilyCorrections(
    version="2024.1",
    family_aliases={
        "Rena": "Leptotyphlopidae",
        "Leptotyphlops": "Leptotyphlopidae",
        "Epictia": "Leptotyphlopidae",
        "Myriopholis": "Leptotyphlopidae",
        "Tricheilostoma": "Leptotyphlopidae",
        "Leptotyphlopinae": "Leptotyphlopidae",
        "Epictinae": "Leptotyphlopidae",
        "Typhlops": "Typhlopidae",
        "Amerotyphlops": "Typhlopidae",
        "Anilios": "Typhlopidae",
        "Indotyphlops": "Typhlopidae",
        "Ramphotyphlops": "Typhlopidae",
        "Afrotyphlopinae": "Typhlopidae",
        "Liotyphlops": "Anomalepididae",
        "Anomalepidae": "Anomalepididae",
        "Gerrhopilus": "Gerrhopilidae",
        "Xenotyphlops": "Xenotyphlopidae",
    },
    species_families={
        "Indotyphlops braminus": "Typhlopidae",
        "Rena dulcis": "Leptotyphlopidae",
    },
)


@dataclass
class AnalysisConfig:
    """Paths and parameters for one pipeline run."""

    # Inputs and outputs
    diet_table: Path
    sequences_fasta: Path
    output_dir: Path
    outgroup_fasta: Path | None = None

    # Taxon selection
    blind_families: tuple[str, ...] = BLIND_SNAKE_FAMILIES
    outgroup_families: tuple[str, ...] = OUTGROUP_FAMILIES
    outgroup_organisms: tuple[str, ...] = OUTGROUP_ORGANISMS
    marker_gene: str = "cytb"
    family_rank: int = 3

    # Alignment / distances / trees
    max_iterate: int = 1000
    substitution_model: str = "TN93"
    ml_model: str | None = None
    pairwise_deletion: bool = True
    kmer_size: int = 5
    ml_cutoff: float = 0.05
    seed: int = 1

    # Diet summary
    min_prey_count: int = 1

    corrections: FamilyCorrections = DEFAULT_CORRECTIONS
    fetch_outgroups: bool = True

    def __post_init__(self) -> None:
        self.diet_table = Path(self.diet_table)
        self.sequences_fasta = Path(self.sequences_fasta)
        self.output_dir = Path(self.output_dir)
        if self.outgroup_fasta is not None:
            self.outgroup_fasta = Path(self.outgroup_fasta)
        if self.family_rank < 1:
            raise ValueError(f"family_rank is 1-based, got {self.family_rank}")
        if self.kmer_size < 1:
            raise ValueError(f"kmer_size must be positive, got {self.kmer_size}")

        self.substitution_model = self.substitution_model.upper()
        if self.substitution_model not in SUPPORTED_MODELS:
            raise ValueError(
                f"Distance model {self.substitution_model!r} is not supported; "
                f"choose from {SUPPORTED_MODELS}"
            )
        if self.ml_model is not None:
            self.ml_model = self.ml_model.upper()
        elif self.substitution_model == "RAW":
            logger.warning("RAW has no ML counterpart, the ML search will use JC69")
        if self.tree_model not in IQTREE_MODELS:
            raise ValueError(
                f"Model {self.tree_model!r} is not available for ML search: {sorted(IQTREE_MODELS)}"
            )

    @property
    def tree_model(self) -> str:
        """Model for the ML search: ``ml_model`` or the distance model, JC69 standing in for RAW."""
        if self.ml_model is not None:
            return self.ml_model
        return "JC69" if self.substitution_model == "RAW" else self.substitution_model

    @property
    def all_families(self) -> tuple[str, ...]:
        return self.blind_families + self.outgroup_families

    @classmethod
    def for_reference_analysis(cls, data_dir: Path, output_dir: Path) -> "AnalysisConfig":
        """Create config for the blind-snake vs. outgroup analysis."""
        data_dir = Path(data_dir)
        return cls(
            diet_table=data_dir / "diet_database.csv",
            sequences_fasta=data_dir / "blindsnakes_cytb.fasta",
            outgroup_fasta=data_dir / "outgroups_cytb.fasta",
            output_dir=output_dir,
            marker_gene="cytb",
            substitution_model="TN93",
            kmer_size=5,
            min_prey_count=1,
        )

    @classmethod
    def from_json(cls, json_path: Path) -> "AnalysisConfig":
        """Load config from JSON; relative paths resolve against the file's folder."""
        json_path = Path(json_path)
        with open(json_path, encoding="utf-8") as f:
            data: dict[str, Any] = json.load(f)

        base = json_path.parent
        for key in ("diet_table", "sequences_fasta", "output_dir", "outgroup_fasta"):
            if data.get(key) is not None:
                data[key] = base / data[key]

        for key in ("blind_families", "outgroup_families", "outgroup_organisms"):
            if key in data:
                data[key] = tuple(data[key])

        corrections = data.pop("corrections", None)
        if isinstance(corrections, str):
            data["corrections"] = FamilyCorrections.from_json(base / corrections)
        elif isinstance(corrections, dict):
            data["corrections"] = FamilyCorrections(**corrections)

        return cls(**data)
