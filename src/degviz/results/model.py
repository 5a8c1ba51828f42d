"""Data model for per-comparison differential expression results.

These dataclasses are the intermediate representation that every loader
converts a DE results table into before gene sets are intersected or
volcano plots are drawn.  Pure dataclasses with no external imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union


class Regulation(Enum):
    """Regulation label assigned to a gene by the upstream DE tool."""

    UP = "Up"
    DOWN = "Down"
    NOT_SIGNIFICANT = "NotSignificant"

    @property
    def label(self) -> str:
        """Lower-case label used for titles and file names."""
        return {"Up": "up", "Down": "down"}.get(self.value, "ns")


# Spellings seen across DESeq2/edgeR/limma notebooks
_REGULATION_ALIASES = {
    "up": Regulation.UP,
    "upregulated": Regulation.UP,
    "up-regulated": Regulation.UP,
    "down": Regulation.DOWN,
    "downregulated": Regulation.DOWN,
    "down-regulated": Regulation.DOWN,
    "notsignificant": Regulation.NOT_SIGNIFICANT,
    "not significant": Regulation.NOT_SIGNIFICANT,
    "not_significant": Regulation.NOT_SIGNIFICANT,
    "ns": Regulation.NOT_SIGNIFICANT,
    "no": Regulation.NOT_SIGNIFICANT,
    "none": Regulation.NOT_SIGNIFICANT,
    "unchanged": Regulation.NOT_SIGNIFICANT,
}

_MISSING_STRINGS = {"", "na", "nan", "n/a", "null"}


def parse_regulation(value: Union[str, Regulation, None]) -> Optional[Regulation]:
    """
    Normalise a regulation label.

    Returns None for missing labels (None, NaN, blank, "NA").  Unknown
    non-missing labels are treated as not significant.
    """
    if value is None or isinstance(value, Regulation):
        return value
    if isinstance(value, float) and value != value:  # NaN
        return None
    text = str(value).strip().lower()
    if text in _MISSING_STRINGS:
        return None
    return _REGULATION_ALIASES.get(text, Regulation.NOT_SIGNIFICANT)


@dataclass(frozen=True)
class GeneRecord:
    """A single gene row from a differential expression results table."""

    gene_id: str
    log2_fold_change: float
    pvalue_adjusted: Optional[float] = None
    regulation: Optional[Regulation] = None

    @property
    def has_label(self) -> bool:
        return self.regulation is not None

    def __repr__(self) -> str:
        adj_p = f"{self.pvalue_adjusted:.2e}" if self.pvalue_adjusted is not None else "N/A"
        label = self.regulation.value if self.regulation else "NA"
        return (
            f"GeneRecord({self.gene_id}, log2FC={self.log2_fold_change:.2f}, "
            f"p_adj={adj_p}, {label})"
        )


@dataclass
class ComparisonResults:
    """DE results for one knockout-vs-control comparison."""

    name: str
    records: List[GeneRecord] = field(default_factory=list)
    source_path: Optional[Path] = None

    @property
    def n_records(self) -> int:
        return len(self.records)

    def count(self, regulation: Regulation) -> int:
        """Number of records carrying the given regulation label."""
        return sum(1 for r in self.records if r.regulation is regulation)

    def __repr__(self) -> str:
        return (
            f"ComparisonResults({self.name!r}, records={self.n_records}, "
            f"up={self.count(Regulation.UP)}, down={self.count(Regulation.DOWN)})"
        )
