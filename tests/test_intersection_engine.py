"""Unit tests for the gene-set intersection engine."""

import pandas as pd
import pytest

from degviz.errors import InvalidInputError, InvariantViolationError
from degviz.intersection import (
    IncidenceMatrix,
    analyze_directions,
    analyze_intersections,
    build_incidence_matrix,
    comparison_gene_set,
    compute_subset_frequencies,
    parse_direction,
)
from degviz.results.model import ComparisonResults, GeneRecord, Regulation


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _rec(gene_id, regulation=Regulation.UP, lfc=None, padj=0.001):
    if lfc is None:
        lfc = -2.0 if regulation is Regulation.DOWN else 2.0
    return GeneRecord(gene_id=gene_id, log2_fold_change=lfc,
                      pvalue_adjusted=padj, regulation=regulation)


def _up(*genes):
    return [_rec(g, Regulation.UP) for g in genes]


def _down(*genes):
    return [_rec(g, Regulation.DOWN) for g in genes]


def _patterns(frequencies):
    return [(f.subset, f.count) for f in frequencies]


# ---------------------------------------------------------------------------
# Direction parsing
# ---------------------------------------------------------------------------

class TestParseDirection:

    @pytest.mark.parametrize("value", ["up", "Up", "UP", " up ", Regulation.UP])
    def test_up(self, value):
        assert parse_direction(value) is Regulation.UP

    @pytest.mark.parametrize("value", ["down", "Down", Regulation.DOWN])
    def test_down(self, value):
        assert parse_direction(value) is Regulation.DOWN

    @pytest.mark.parametrize("value", ["sideways", "", "ns", Regulation.NOT_SIGNIFICANT, None, 1])
    def test_rejects_other_values(self, value):
        with pytest.raises(InvalidInputError):
            parse_direction(value)


# ---------------------------------------------------------------------------
# Gene sets
# ---------------------------------------------------------------------------

class TestComparisonGeneSet:

    def test_filters_by_direction(self):
        records = _up("A", "B") + _down("C")
        gs = comparison_gene_set("KO1", records, "up")
        assert gs.genes == frozenset({"A", "B"})
        assert gs.size == 2

    def test_drops_missing_labels(self):
        records = _up("A") + [GeneRecord("B", 3.0, None, None)]
        gs = comparison_gene_set("KO1", records, Regulation.UP)
        assert gs.genes == frozenset({"A"})

    def test_not_significant_never_counted(self):
        records = [_rec("A", Regulation.NOT_SIGNIFICANT)]
        assert comparison_gene_set("KO1", records, "up").size == 0
        assert comparison_gene_set("KO1", records, "down").size == 0

    def test_duplicates_collapse(self):
        gs = comparison_gene_set("KO1", _up("A", "A", "B"), "up")
        assert gs.size == 2


# ---------------------------------------------------------------------------
# Incidence matrix
# ---------------------------------------------------------------------------

class TestBuildIncidenceMatrix:

    def test_single_comparison(self):
        matrix = build_incidence_matrix([("C1", _up("g1", "g2", "g3"))], "up")

        assert matrix.table.shape == (3, 1)
        assert matrix.comparisons == ["C1"]
        assert (matrix.table.to_numpy() == 1).all()

    def test_two_overlapping_comparisons(self):
        matrix = build_incidence_matrix(
            [("C1", _up("g1", "g2")), ("C2", _up("g2", "g3"))], "up"
        )

        assert matrix.genes == ["g1", "g2", "g3"]
        assert matrix.table.loc["g1"].tolist() == [1, 0]
        assert matrix.table.loc["g2"].tolist() == [1, 1]
        assert matrix.table.loc["g3"].tolist() == [0, 1]

    def test_columns_follow_input_order(self):
        matrix = build_incidence_matrix(
            [("KO3", _up("a")), ("KO1", _up("b")), ("KO2", _up("c"))], "up"
        )
        assert matrix.comparisons == ["KO3", "KO1", "KO2"]

    def test_every_row_has_a_membership(self):
        matrix = build_incidence_matrix(
            [("C1", _up("a", "b") + _down("x")), ("C2", _down("b", "c"))], "down"
        )
        assert (matrix.table.sum(axis=1) >= 1).all()
        assert matrix.genes == ["b", "c", "x"]

    def test_empty_union_has_all_columns(self):
        matrix = build_incidence_matrix([("C1", _down("a")), ("C2", [])], "up")

        assert matrix.n_genes == 0
        assert matrix.comparisons == ["C1", "C2"]

    def test_empty_comparison_is_all_zero_column(self):
        matrix = build_incidence_matrix([("C1", _up("a", "b")), ("C2", [])], "up")
        assert matrix.genes_per_comparison() == {"C1": 2, "C2": 0}

    def test_accepts_mapping(self):
        matrix = build_incidence_matrix({"C1": _up("a"), "C2": _up("b")}, "up")
        assert matrix.comparisons == ["C1", "C2"]

    def test_accepts_comparison_results(self):
        comparisons = [
            ComparisonResults(name="KO1", records=_up("a")),
            ComparisonResults(name="KO2", records=_up("a", "b")),
        ]
        matrix = build_incidence_matrix(comparisons, "up")
        assert matrix.genes_per_comparison() == {"KO1": 1, "KO2": 2}

    def test_empty_comparisons_rejected(self):
        with pytest.raises(InvalidInputError):
            build_incidence_matrix([], "up")
        with pytest.raises(InvalidInputError):
            build_incidence_matrix({}, "up")

    def test_duplicate_names_rejected(self):
        with pytest.raises(InvalidInputError, match="Duplicate"):
            build_incidence_matrix([("C1", _up("a")), ("C1", _up("b"))], "up")

    def test_bad_direction_rejected(self):
        with pytest.raises(InvalidInputError):
            build_incidence_matrix([("C1", _up("a"))], "both")

    def test_direction_label(self):
        matrix = build_incidence_matrix([("C1", _down("a"))], Regulation.DOWN)
        assert matrix.direction == "down"


# ---------------------------------------------------------------------------
# Subset frequencies
# ---------------------------------------------------------------------------

class TestComputeSubsetFrequencies:

    def test_single_comparison_single_bucket(self):
        matrix = build_incidence_matrix([("C1", _up("g1", "g2", "g3"))], "up")
        assert _patterns(compute_subset_frequencies(matrix)) == [(("C1",), 3)]

    def test_two_comparisons_ordered_by_degree_then_column(self):
        matrix = build_incidence_matrix(
            [("C1", _up("g1", "g2")), ("C2", _up("g2", "g3"))], "up"
        )
        assert _patterns(compute_subset_frequencies(matrix)) == [
            (("C1",), 1),
            (("C2",), 1),
            (("C1", "C2"), 1),
        ]

    def test_count_then_degree_then_column_order(self):
        comparisons = [
            ("A", _up("a1", "a2", "ab1", "ab2", "abc1", "abc2", "abc3")),
            ("B", _up("b1", "b2", "ab1", "ab2", "abc1", "abc2", "abc3")),
            ("C", _up("c1", "abc1", "abc2", "abc3")),
        ]
        frequencies = compute_subset_frequencies(build_incidence_matrix(comparisons, "up"))

        assert _patterns(frequencies) == [
            (("A", "B", "C"), 3),
            (("A",), 2),
            (("B",), 2),
            (("A", "B"), 2),
            (("C",), 1),
        ]

    def test_same_degree_ties_use_column_indices(self):
        comparisons = [
            ("X", _up("xz")),
            ("Y", _up("yz")),
            ("Z", _up("xz", "yz")),
        ]
        frequencies = compute_subset_frequencies(build_incidence_matrix(comparisons, "up"))
        assert [f.subset for f in frequencies] == [("X", "Z"), ("Y", "Z")]

    def test_exclusive_buckets(self):
        # g2 is in both; it must not be counted in either singleton
        matrix = build_incidence_matrix([("C1", _up("g1", "g2")), ("C2", _up("g2"))], "up")
        counts = {f.subset: f.count for f in compute_subset_frequencies(matrix)}
        assert counts == {("C1",): 1, ("C1", "C2"): 1}

    def test_counts_partition_the_genes(self):
        comparisons = [
            ("KO1", _up(*[f"g{i}" for i in range(0, 40)])),
            ("KO2", _up(*[f"g{i}" for i in range(20, 70)])),
            ("KO3", _up(*[f"g{i}" for i in range(35, 50)] + ["solo"])),
            ("KO4", []),
            ("KO5", _up(*[f"g{i}" for i in range(0, 70, 7)])),
        ]
        result = analyze_intersections(comparisons, "up")

        assert sum(f.count for f in result.frequencies) == result.total_distinct_genes
        assert all(f.degree >= 1 for f in result.frequencies)
        assert all("KO4" not in f.subset for f in result.frequencies)

    def test_empty_matrix_has_no_buckets(self):
        matrix = build_incidence_matrix([("C1", []), ("C2", [])], "up")
        assert compute_subset_frequencies(matrix) == []

    def test_all_zero_row_is_invariant_violation(self):
        table = pd.DataFrame(
            [[1, 0], [0, 0]],
            index=pd.Index(["g1", "g2"], name="gene_id"),
            columns=["C1", "C2"],
        )
        with pytest.raises(InvariantViolationError, match="g2"):
            compute_subset_frequencies(IncidenceMatrix(table=table, direction="up"))


# ---------------------------------------------------------------------------
# Full analysis
# ---------------------------------------------------------------------------

class TestAnalyzeIntersections:

    def _comparisons(self):
        return [
            ("KO1", _up("A", "B", "C") + _down("X", "Y")),
            ("KO2", _up("B", "C", "D") + _down("Y")),
            ("KO3", _up("C") + _down("Z") + [GeneRecord("Q", 5.0, None, None)]),
        ]

    def test_summary_statistics(self):
        result = analyze_intersections(self._comparisons(), "up")

        assert result.direction == "up"
        assert result.total_distinct_genes == 4
        assert result.genes_per_comparison == {"KO1": 3, "KO2": 3, "KO3": 1}
        assert result.genes_per_comparison == {
            name: int(result.matrix.table[name].sum()) for name in result.comparisons
        }

    def test_repeatable(self):
        first = analyze_intersections(self._comparisons(), "up")
        second = analyze_intersections(self._comparisons(), "up")

        assert first.to_dict() == second.to_dict()
        assert first.matrix.table.equals(second.matrix.table)

    def test_directions_are_independent(self):
        comparisons = self._comparisons()
        up_only = analyze_intersections(comparisons, "up")
        down_only = analyze_intersections(comparisons, "down")
        both = analyze_directions(comparisons)

        assert set(both) == {"up", "down"}
        assert both["up"].to_dict() == up_only.to_dict()
        assert both["down"].to_dict() == down_only.to_dict()
        assert down_only.genes_per_comparison == {"KO1": 2, "KO2": 1, "KO3": 1}

    def test_to_dict(self):
        d = analyze_intersections(self._comparisons(), "down").to_dict()

        assert d["direction"] == "down"
        assert d["comparisons"] == ["KO1", "KO2", "KO3"]
        assert d["summary"]["total_distinct_genes"] == 3
        assert d["intersections"][0] == {"subset": ["KO1"], "degree": 1, "count": 1}
