"""Differential expression visualization for knockout-vs-control RNA-seq studies.

Loads per-comparison DE result tables, intersects Up/Down gene sets
across comparisons (UpSet semantics) and renders volcano, PCA and UpSet
figures.

Usage::

    from degviz import analyze_intersections, load_comparisons, render_upset

    comparisons = load_comparisons({"KO1": "ko1_results.csv", "KO2": "ko2_results.csv"})
    result = analyze_intersections(comparisons, "up")
    render_upset(result, "results/figures")
"""

from degviz.config import AnalysisConfig, load_config
from degviz.errors import (
    DegvizError,
    InvalidInputError,
    InvariantViolationError,
    ResultsFormatError,
)
from degviz.intersection import (
    IncidenceMatrix,
    IntersectionResult,
    SubsetFrequency,
    analyze_intersections,
    build_incidence_matrix,
    compute_subset_frequencies,
)
from degviz.plots.upset import render_upset
from degviz.results import ComparisonResults, GeneRecord, Regulation, load_comparisons

__version__ = "0.1.0"

__all__ = [
    "AnalysisConfig",
    "load_config",
    "DegvizError",
    "InvalidInputError",
    "InvariantViolationError",
    "ResultsFormatError",
    "IncidenceMatrix",
    "IntersectionResult",
    "SubsetFrequency",
    "analyze_intersections",
    "build_incidence_matrix",
    "compute_subset_frequencies",
    "render_upset",
    "ComparisonResults",
    "GeneRecord",
    "Regulation",
    "load_comparisons",
]
