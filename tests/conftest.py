import subprocess
from pathlib import Path

import matplotlib
import pandas as pd
import pytest
from Bio import SeqIO

matplotlib.use("Agg")


DIET_ROWS = [
    ("Squamata;Serpentes;Leptotyphlopidae;Rena dulcis", "Formicidae"),
    ("Squamata;Serpentes;Leptotyphlopidae;Rena dulcis", "Formicidae"),
    ("Squamata;Serpentes;Leptotyphlopidae;Rena dulcis", "Termitidae"),
    # Suborder missing, so rank 3 holds the genus
    ("Squamata;Leptotyphlopidae;Rena;Rena humilis", "Formicidae"),
    ("Squamata;Serpentes;Typhlopidae;Indotyphlops braminus", "Formicidae"),
    ("Squamata;Serpentes;Typhlopidae;Indotyphlops braminus", "Formicidae"),
    ("Squamata;Serpentes;Typhlopidae;Afrotyphlops schlegelii", "Termitidae"),
    ("Squamata;Serpentes;Typhlopidae;Afrotyphlops schlegelii", "Termitidae"),
    ("Squamata;Serpentes;Anomalepididae;Liotyphlops albirostris", "Formicidae"),
    ("Squamata;Serpentes;Boidae;Boa constrictor", "Rodentia"),
    ("Squamata;Typhlopidae", "Formicidae"),
    ("Squamata;Serpentes;Colubridae;Natrix natrix", "Anura"),
]

SEQUENCES = {
    "AB001.1 Rena dulcis cytb": "ATGACCAACATTCGAAAATCACACCCACTACTAAAAATTATCAACCACTCA",
    "AB002.1 Rena humilis cytb": "ATGACCAACATTCGAAAATCACACCCGCTACTAAAAATTATCAACCACTCA",
    "AB003.1 Indotyphlops braminus cytb": "ATGACTAATATCCGCAAATCTCACCCAATTCTAAAAATCATTAACCATTCA",
    "AB004.1 Afrotyphlops schlegelii cytb": "ATGACTAATATCCGTAAATCTCACCCAATTCTAAAGATCATTAACCACTCG",
    "AB005.1 Liotyphlops albirostris cytb": "ATGACCAACATCCGAAAAACCCACCCACTAATTAAAATTATCAATAGCTCA",
}

OUTGROUP_SEQUENCES = {
    "OG001.1 Boa constrictor cytb": "ATGCCCCACCTCCGAAAATCCCACCCACTAATCAAAATTATCAATAACTCC",
}


def write_fasta(path: Path, sequences: dict[str, str]) -> Path:
    path.write_text("".join(f">{header}\n{seq}\n" for header, seq in sequences.items()))
    return path


@pytest.fixture
def diet_df() -> pd.DataFrame:
    return pd.DataFrame(DIET_ROWS, columns=["predator_taxon", "prey"])


@pytest.fixture
def diet_csv(tmp_path: Path, diet_df: pd.DataFrame) -> Path:
    path = tmp_path / "diet.csv"
    diet_df.to_csv(path, index=False)
    return path


@pytest.fixture
def sequences_fasta(tmp_path: Path) -> Path:
    return write_fasta(tmp_path / "blindsnakes.fasta", SEQUENCES)


@pytest.fixture
def outgroups_fasta(tmp_path: Path) -> Path:
    return write_fasta(tmp_path / "outgroups.fasta", OUTGROUP_SEQUENCES)


def _fake_mafft(cmd: list[str]) -> str:
    """Right-pad every input sequence with gaps to the longest length."""
    records = list(SeqIO.parse(cmd[-1], "fasta"))
    width = max(len(record.seq) for record in records)
    return "".join(f">{record.id}\n{str(record.seq).ljust(width, '-')}\n" for record in records)


def _fake_iqtree(cmd: list[str]) -> None:
    """Write a caterpillar tree over the placeholder ids IQ-TREE was given."""
    aln_path = cmd[cmd.index("-s") + 1]
    prefix = Path(cmd[cmd.index("-pre") + 1])
    ids = [record.id for record in SeqIO.parse(aln_path, "fasta")]
    newick = f"{ids[0]}:0.01"
    for i, tip in enumerate(ids[1:], start=1):
        newick = f"({newick},{tip}:{0.01 * i:.2f}):0.01"
    prefix.with_suffix(".treefile").write_text(newick + ";\n")


@pytest.fixture
def fake_tools(monkeypatch):
    """Stand in for the MAFFT and IQ-TREE executables; records every command."""
    calls: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        calls.append(list(cmd))
        stdout = ""
        if cmd[0] == "mafft":
            stdout = _fake_mafft(cmd)
        elif cmd[0] == "iqtree2":
            _fake_iqtree(cmd)
        else:
            raise FileNotFoundError(cmd[0])
        return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    return calls
