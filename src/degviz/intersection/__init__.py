"""UpSet-style intersection analysis of differentially expressed gene sets.

Usage::

    from degviz.intersection import analyze_intersections

    result = analyze_intersections([("KO1", records_1), ("KO2", records_2)], "up")
    result.frequencies[0].label, result.frequencies[0].count
"""

from degviz.intersection.engine import (
    analyze_directions,
    analyze_intersections,
    build_incidence_matrix,
    comparison_gene_set,
    compute_subset_frequencies,
    parse_direction,
)
from degviz.intersection.model import (
    ComparisonGeneSet,
    IncidenceMatrix,
    IntersectionResult,
    SubsetFrequency,
)

__all__ = [
    "analyze_directions",
    "analyze_intersections",
    "build_incidence_matrix",
    "comparison_gene_set",
    "compute_subset_frequencies",
    "parse_direction",
    "ComparisonGeneSet",
    "IncidenceMatrix",
    "IntersectionResult",
    "SubsetFrequency",
]
