"""
Gene-set intersection engine.

Builds a gene x comparison incidence matrix from per-comparison DE
results and derives UpSet-style exclusive-intersection counts: a gene
present in comparisons {A, B} only is counted in the {A, B} bucket, never
in {A}, {B} or {A, B, C}.

Every function here is pure; Up and Down analyses can run independently.

Example:
    result = analyze_intersections(
        [("KO1", ko1_records), ("KO2", ko2_records)],
        direction="up",
    )
    for bucket in result.frequencies:
        print(bucket.label, bucket.count)
"""

import logging
from collections import Counter
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from degviz.errors import InvalidInputError, InvariantViolationError
from degviz.intersection.model import (
    ComparisonGeneSet,
    IncidenceMatrix,
    IntersectionResult,
    SubsetFrequency,
)
from degviz.results.model import ComparisonResults, GeneRecord, Regulation

logger = logging.getLogger(__name__)

DirectionLike = Union[str, Regulation]
ComparisonsLike = Union[
    Mapping[str, Iterable[GeneRecord]],
    Sequence[Tuple[str, Iterable[GeneRecord]]],
    Sequence[ComparisonResults],
]

DIRECTIONS = (Regulation.UP, Regulation.DOWN)


def parse_direction(direction: DirectionLike) -> Regulation:
    """
    Resolve a regulation direction; only Up and Down are accepted.

    Strings are matched case-insensitively against "up" and "down".
    """
    if isinstance(direction, Regulation):
        if direction in DIRECTIONS:
            return direction
    elif isinstance(direction, str):
        text = direction.strip().lower()
        for candidate in DIRECTIONS:
            if text == candidate.label:
                return candidate
    raise InvalidInputError(f"Unrecognized direction {direction!r}; expected 'up' or 'down'")


def _normalize_comparisons(comparisons: ComparisonsLike) -> List[Tuple[str, List[GeneRecord]]]:
    if isinstance(comparisons, Mapping):
        items = list(comparisons.items())
    else:
        items = []
        for entry in comparisons:
            if isinstance(entry, ComparisonResults):
                items.append((entry.name, entry.records))
            else:
                name, records = entry
                items.append((name, records))

    if not items:
        raise InvalidInputError("At least one comparison is required")

    names = [str(name) for name, _ in items]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise InvalidInputError(f"Duplicate comparison names: {', '.join(duplicates)}")

    return [(str(name), list(records or [])) for name, records in items]


def comparison_gene_set(
    name: str,
    records: Iterable[GeneRecord],
    direction: DirectionLike,
) -> ComparisonGeneSet:
    """
    Collect the unique genes of one comparison regulated in ``direction``.

    Records without a regulation label are dropped; duplicate identifiers
    collapse to a single membership.
    """
    regulation = parse_direction(direction)
    genes = frozenset(
        record.gene_id
        for record in records
        if record.regulation is not None and record.regulation is regulation
    )
    return ComparisonGeneSet(name=name, genes=genes)


def build_incidence_matrix(
    comparisons: ComparisonsLike,
    direction: DirectionLike,
) -> IncidenceMatrix:
    """
    Build the gene x comparison 0/1 membership matrix.

    Args:
        comparisons: Ordered (name, records) pairs, a name -> records
            mapping, or ComparisonResults objects
        direction: "up"/"down" or Regulation.UP/Regulation.DOWN

    Returns:
        IncidenceMatrix whose rows are the sorted union of gene sets and
        whose columns follow the input order

    Raises:
        InvalidInputError: empty comparison list, duplicate names or an
            unrecognized direction
    """
    regulation = parse_direction(direction)
    gene_sets = [
        comparison_gene_set(name, records, regulation)
        for name, records in _normalize_comparisons(comparisons)
    ]

    universe = sorted(set().union(*(gs.genes for gs in gene_sets)))
    position = {gene: i for i, gene in enumerate(universe)}

    values = np.zeros((len(universe), len(gene_sets)), dtype=np.int8)
    for j, gene_set in enumerate(gene_sets):
        rows = [position[gene] for gene in gene_set.genes]
        if rows:
            values[rows, j] = 1

    table = pd.DataFrame(
        values,
        index=pd.Index(universe, name="gene_id", dtype=object),
        columns=pd.Index([gs.name for gs in gene_sets], name="comparison", dtype=object),
    )
    logger.debug(
        "Built %s incidence matrix: %d genes x %d comparisons",
        regulation.label, len(universe), len(gene_sets),
    )
    return IncidenceMatrix(table=table, direction=regulation.label)


def compute_subset_frequencies(matrix: IncidenceMatrix) -> List[SubsetFrequency]:
    """
    Count genes per exact membership pattern.

    Ordering is count descending, then subset size ascending, then the
    column indices of the subset compared lexicographically.

    Raises:
        InvariantViolationError: a row with no membership reached this point
    """
    columns = matrix.comparisons
    values = matrix.table.to_numpy(dtype=bool)

    if values.shape[0]:
        empty_rows = np.flatnonzero(~values.any(axis=1))
        if empty_rows.size:
            genes = matrix.genes
            sample = ", ".join(genes[i] for i in empty_rows[:5])
            raise InvariantViolationError(
                f"{empty_rows.size} genes belong to no comparison (e.g. {sample})"
            )

    patterns: Counter = Counter(
        tuple(np.flatnonzero(row).tolist()) for row in values
    )
    ordered = sorted(patterns.items(), key=lambda item: (-item[1], len(item[0]), item[0]))

    return [
        SubsetFrequency(subset=tuple(columns[i] for i in pattern), count=count)
        for pattern, count in ordered
    ]


def analyze_intersections(
    comparisons: ComparisonsLike,
    direction: DirectionLike,
) -> IntersectionResult:
    """Build the incidence matrix and its subset frequencies for one direction."""
    matrix = build_incidence_matrix(comparisons, direction)
    frequencies = compute_subset_frequencies(matrix)
    result = IntersectionResult(
        matrix=matrix,
        frequencies=frequencies,
        total_distinct_genes=matrix.n_genes,
        genes_per_comparison=matrix.genes_per_comparison(),
    )
    logger.info(
        "%s-regulated: %d distinct genes in %d intersections across %d comparisons",
        matrix.direction, result.total_distinct_genes, len(frequencies), len(matrix.comparisons),
    )
    return result


def analyze_directions(
    comparisons: ComparisonsLike,
    directions: Sequence[DirectionLike] = ("up", "down"),
) -> Dict[str, IntersectionResult]:
    """Run one independent analysis per direction, keyed by direction label."""
    if not isinstance(comparisons, Mapping):
        comparisons = list(comparisons)
    results: Dict[str, IntersectionResult] = {}
    for direction in directions:
        result = analyze_intersections(comparisons, direction)
        results[result.direction] = result
    return results
