"""Loading of per-comparison differential expression result tables.

Usage::

    from degviz.results import discover_comparisons, load_comparisons

    paths = discover_comparisons("data/deseq2", pattern="*_results.csv")
    comparisons = load_comparisons(paths)
"""

from degviz.results.model import ComparisonResults, GeneRecord, Regulation, parse_regulation
from degviz.results.parser import (
    assign_regulation,
    comparison_name_from_path,
    discover_comparisons,
    load_comparisons,
    parse_results_table,
    records_from_frame,
    standardize_columns,
)

__all__ = [
    "ComparisonResults",
    "GeneRecord",
    "Regulation",
    "parse_regulation",
    "assign_regulation",
    "comparison_name_from_path",
    "discover_comparisons",
    "load_comparisons",
    "parse_results_table",
    "records_from_frame",
    "standardize_columns",
]
