"""
Result dataclasses for gene-set intersection analysis.

An IncidenceMatrix records which comparisons each gene belongs to; the
SubsetFrequency list holds exclusive-intersection counts derived from it.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Tuple

import pandas as pd


@dataclass(frozen=True)
class ComparisonGeneSet:
    """Unique gene identifiers regulated in one direction for one comparison."""

    name: str
    genes: FrozenSet[str] = frozenset()

    @property
    def size(self) -> int:
        return len(self.genes)


@dataclass
class IncidenceMatrix:
    """
    Gene x comparison membership table.

    ``table`` is indexed by gene identifier with one 0/1 column per
    comparison, in the caller-supplied order.
    """

    table: pd.DataFrame
    direction: str  # "up" | "down"

    @property
    def comparisons(self) -> List[str]:
        return [str(c) for c in self.table.columns]

    @property
    def genes(self) -> List[str]:
        return [str(g) for g in self.table.index]

    @property
    def n_genes(self) -> int:
        return len(self.table.index)

    def genes_per_comparison(self) -> Dict[str, int]:
        """Column sums, equal to each comparison's filtered gene-set size."""
        sums = self.table.sum(axis=0)
        return {str(name): int(sums[name]) for name in self.table.columns}

    def as_bool(self) -> pd.DataFrame:
        return self.table.astype(bool)

    def __repr__(self) -> str:
        return (
            f"IncidenceMatrix({self.direction}, genes={self.n_genes}, "
            f"comparisons={len(self.table.columns)})"
        )


@dataclass(frozen=True)
class SubsetFrequency:
    """Number of genes whose membership pattern is exactly ``subset``."""

    subset: Tuple[str, ...]  # comparison names, in matrix column order
    count: int

    @property
    def degree(self) -> int:
        return len(self.subset)

    @property
    def members(self) -> FrozenSet[str]:
        return frozenset(self.subset)

    @property
    def label(self) -> str:
        return "&".join(self.subset)

    def to_dict(self) -> dict:
        return {"subset": list(self.subset), "degree": self.degree, "count": self.count}


@dataclass
class IntersectionResult:
    """
    Complete intersection analysis for one regulation direction.

    Carries everything the rendering/export layer needs: the matrix, the
    ordered exclusive-intersection counts and the summary statistics.
    """

    matrix: IncidenceMatrix
    frequencies: List[SubsetFrequency]
    total_distinct_genes: int
    genes_per_comparison: Dict[str, int] = field(default_factory=dict)

    @property
    def direction(self) -> str:
        return self.matrix.direction

    @property
    def comparisons(self) -> List[str]:
        return self.matrix.comparisons

    def top_intersections(self, n: int = 10) -> List[SubsetFrequency]:
        return self.frequencies[:n]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "direction": self.direction,
            "comparisons": self.comparisons,
            "summary": {
                "total_distinct_genes": self.total_distinct_genes,
                "genes_per_comparison": dict(self.genes_per_comparison),
                "n_intersections": len(self.frequencies),
            },
            "intersections": [f.to_dict() for f in self.frequencies],
        }

    def __repr__(self) -> str:
        return (
            f"IntersectionResult({self.direction}, genes={self.total_distinct_genes}, "
            f"intersections={len(self.frequencies)})"
        )
