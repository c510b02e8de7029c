from io import StringIO

import dendropy
import pytest
from Bio import Phylo

from blindsnake_phylo.errors import TipSetMismatchError
from blindsnake_phylo.phylogeny import TreeResult, compare_trees, robinson_foulds_distance
from blindsnake_phylo.phylogeny.compare import bipartitions, canonical_split


def _result(newick: str, method: str = "test") -> TreeResult:
    tree = Phylo.read(StringIO(newick), "newick")
    labels = tuple(sorted(tip.name for tip in tree.get_terminals()))
    return TreeResult(tree=tree, method=method, labels=labels)


def test_identical_topology_under_different_rooting():
    left = _result("(A,(B,(C,(D,E))));")
    right = _result("((A,B),C,(D,E));")
    assert robinson_foulds_distance(left.tree, right.tree) == 0

    comparison = compare_trees(left, right)
    assert comparison.robinson_foulds == 0
    assert comparison.normalized_rf == 0.0
    assert comparison.left_only == comparison.right_only == set()
    assert comparison.shared_splits == {frozenset({"C", "D", "E"}), frozenset({"D", "E"})}
    # A clade and its complement are the same edge
    assert comparison.is_shared({"A", "B"})
    assert comparison.is_shared({"C", "D", "E"})


@pytest.mark.parametrize(
    "left, right",
    [
        ("((A,B),(C,(D,(E,F))));", "(((((A,B),C),D),E),F);"),
        ("(A,(B,(C,(D,(E,F)))));", "((E,F),(D,(C,(A,B))));"),
        ("((Typhlopidae_x,B),(C,D),E);", "(E,(C,D),(B,Typhlopidae_x));"),
    ],
)
def test_rerooted_trees_have_no_conflicts(left, right):
    comparison = compare_trees(_result(left), _result(right))
    assert comparison.robinson_foulds == 0
    assert comparison.left_only == comparison.right_only == set()


def test_conflicting_topologies():
    comparison = compare_trees(_result("((A,B),(C,D),E);"), _result("((A,C),(B,D),E);"))

    assert comparison.robinson_foulds == 4
    assert comparison.normalized_rf == pytest.approx(1.0)
    assert comparison.shared_splits == set()
    assert comparison.left_only == {frozenset({"C", "D", "E"}), frozenset({"C", "D"})}
    assert comparison.is_shared({"A", "B"}) is False
    assert len(comparison.left_only ^ comparison.right_only) == comparison.robinson_foulds


def test_labels_with_spaces_and_punctuation():
    tree = Phylo.read(StringIO("((A,B),(C,D),E);"), "newick")
    names = {
        "A": "Leptotyphlopidae Rena dulcis",
        "B": "Leptotyphlopidae Rena (humilis)",
        "C": "Typhlopidae Indotyphlops_braminus",
        "D": "Typhlopidae Afrotyphlops schlegelii",
        "E": "Boidae Boa constrictor",
    }
    for tip in tree.get_terminals():
        tip.name = names[tip.name]
    result = TreeResult(tree=tree, method="nj", labels=tuple(names.values()))

    comparison = compare_trees(result, result)
    assert comparison.robinson_foulds == 0
    assert comparison.is_shared({names["C"], names["D"]})


def test_bipartitions_skip_trivial_splits():
    tree = dendropy.Tree.get(data="((A,B),(C,D),E);", schema="newick", rooting="force-unrooted")
    assert bipartitions(tree) == {frozenset({"C", "D", "E"}), frozenset({"C", "D"})}


def test_canonical_split():
    taxa = {"A", "B", "C", "D"}
    assert canonical_split({"A", "B"}, taxa) == frozenset({"C", "D"})
    assert canonical_split({"C", "D"}, taxa) == frozenset({"C", "D"})


def test_tip_set_mismatch():
    with pytest.raises(TipSetMismatchError) as excinfo:
        compare_trees(_result("((A,B),C,D);"), _result("((A,B),C,X);"))
    assert excinfo.value.only_left == {"D"}
    assert excinfo.value.only_right == {"X"}
