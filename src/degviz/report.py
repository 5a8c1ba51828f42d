"""
Report generation for gene-set intersection results.

Supports multiple output formats:
- JSON: Full summary and ordered intersections for programmatic use
- TSV: Intersection frequency table and incidence matrix
- Console: Human-readable summary
"""

import csv
import json
from io import StringIO
from pathlib import Path
from typing import Union

from degviz.intersection.model import IntersectionResult


class IntersectionReport:
    """
    Generates reports from intersection analysis results.

    Example:
        report = IntersectionReport()
        report.to_json(result, "intersections_up.json")
        print(report.to_console_summary(result))
    """

    FREQUENCY_HEADER = ["subset", "degree", "count"]

    def to_json(
        self,
        result: IntersectionResult,
        path: Union[str, Path],
        indent: int = 2,
    ) -> Path:
        """
        Write full results to JSON file.

        Args:
            result: Intersection result for one direction
            path: Output file path
            indent: JSON indentation level
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(result.to_dict(), f, indent=indent)
        return path

    def to_json_string(self, result: IntersectionResult, indent: int = 2) -> str:
        return json.dumps(result.to_dict(), indent=indent)

    def _write_frequencies(self, handle, result: IntersectionResult) -> None:
        writer = csv.writer(handle, delimiter="\t", lineterminator="\n")
        writer.writerow(self.FREQUENCY_HEADER)
        for bucket in result.frequencies:
            writer.writerow([bucket.label, bucket.degree, bucket.count])

    def to_tsv(self, result: IntersectionResult, path: Union[str, Path]) -> Path:
        """
        Write the ordered intersection frequencies to a TSV file.

        Subsets are written as comparison names joined with "&".
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", newline="") as f:
            self._write_frequencies(f, result)
        return path

    def to_tsv_string(self, result: IntersectionResult) -> str:
        output = StringIO()
        self._write_frequencies(output, result)
        return output.getvalue()

    def matrix_to_tsv(self, result: IntersectionResult, path: Union[str, Path]) -> Path:
        """Write the gene x comparison incidence matrix (0/1) to a TSV file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        result.matrix.table.to_csv(path, sep="\t", index_label="gene_id")
        return path

    def to_console_summary(self, result: IntersectionResult, top_n: int = 10) -> str:
        """
        Generate human-readable console summary.

        Args:
            result: Intersection result
            top_n: Number of largest intersections to list

        Returns:
            Formatted string report
        """
        lines = []

        lines.append("=" * 70)
        lines.append(f"{result.direction.upper()}-REGULATED GENE SET INTERSECTIONS")
        lines.append("=" * 70)

        lines.append("")
        lines.append("COMPARISONS")
        for name, size in result.genes_per_comparison.items():
            lines.append(f"  {name:<30} {size:>8,} genes")
        lines.append("")
        lines.append(f"  Distinct genes: {result.total_distinct_genes:,}")
        lines.append(f"  Non-empty intersections: {len(result.frequencies):,}")

        if result.frequencies:
            shown = result.top_intersections(top_n)
            lines.append("")
            lines.append("-" * 70)
            lines.append(f"TOP {len(shown)} INTERSECTIONS")
            lines.append("-" * 70)
            lines.append(f"  {'Count':>8}  {'Degree':>6}  Comparisons")
            lines.append("  " + "-" * 58)
            for bucket in shown:
                lines.append(f"  {bucket.count:>8,}  {bucket.degree:>6}  {' & '.join(bucket.subset)}")

        lines.append("")
        lines.append("=" * 70)
        return "\n".join(lines)

    def print_summary(self, result: IntersectionResult, top_n: int = 10) -> None:
        print(self.to_console_summary(result, top_n=top_n))
