"""Unit tests for intersection report generation."""

import json

import pandas as pd

from degviz.intersection import analyze_intersections
from degviz.report import IntersectionReport
from degviz.results.model import GeneRecord, Regulation


def _result(direction="up"):
    def recs(*genes):
        return [GeneRecord(g, 2.0, 0.001, Regulation.UP) for g in genes]

    return analyze_intersections(
        [("KO1", recs("A", "B", "C")), ("KO2", recs("B", "C")), ("KO3", recs("C", "D"))],
        direction,
    )


class TestIntersectionReport:

    def test_tsv_string(self):
        text = IntersectionReport().to_tsv_string(_result())
        lines = text.strip().split("\n")

        assert lines[0] == "subset\tdegree\tcount"
        assert lines[1:] == [
            "KO1\t1\t1",
            "KO3\t1\t1",
            "KO1&KO2\t2\t1",
            "KO1&KO2&KO3\t3\t1",
        ]

    def test_to_tsv_file(self, tmp_path):
        path = IntersectionReport().to_tsv(_result(), tmp_path / "nested" / "up.tsv")
        df = pd.read_csv(path, sep="\t")

        assert list(df.columns) == ["subset", "degree", "count"]
        assert df["count"].sum() == 4

    def test_to_json(self, tmp_path):
        path = IntersectionReport().to_json(_result(), tmp_path / "up.json")
        payload = json.loads(path.read_text())

        assert payload["direction"] == "up"
        assert payload["summary"]["total_distinct_genes"] == 4
        assert payload["summary"]["genes_per_comparison"] == {"KO1": 3, "KO2": 2, "KO3": 2}
        assert len(payload["intersections"]) == 4

    def test_json_string_matches_file(self, tmp_path):
        report = IntersectionReport()
        result = _result()
        path = report.to_json(result, tmp_path / "up.json")
        assert json.loads(report.to_json_string(result)) == json.loads(path.read_text())

    def test_matrix_to_tsv(self, tmp_path):
        path = IntersectionReport().matrix_to_tsv(_result(), tmp_path / "incidence.tsv")
        df = pd.read_csv(path, sep="\t", index_col="gene_id")

        assert list(df.columns) == ["KO1", "KO2", "KO3"]
        assert df.loc["C"].tolist() == [1, 1, 1]
        assert df.loc["D"].tolist() == [0, 0, 1]

    def test_console_summary(self):
        text = IntersectionReport().to_console_summary(_result(), top_n=2)

        assert "UP-REGULATED GENE SET INTERSECTIONS" in text
        assert "Distinct genes: 4" in text
        assert "TOP 2 INTERSECTIONS" in text
        assert "KO1 & KO2 & KO3" not in text

    def test_console_summary_empty(self):
        text = IntersectionReport().to_console_summary(_result("down"))
        assert "Distinct genes: 0" in text
        assert "TOP" not in text
