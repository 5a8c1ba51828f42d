"""
DE results table parser.

Reads the per-comparison tables exported by DESeq2, edgeR or limma
notebooks and converts them into GeneRecord lists:
- column aliases are standardised to gene_id / log2_fold_change /
  pvalue_adjusted / regulation
- a regulation label is derived from thresholds when the table has none
- result files for a study are discovered by glob pattern
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

import pandas as pd

from degviz.config import AnalysisConfig
from degviz.errors import ResultsFormatError
from degviz.results.model import ComparisonResults, GeneRecord, Regulation, parse_regulation

logger = logging.getLogger(__name__)

COLUMN_ALIASES: Dict[str, str] = {
    # Gene identifier
    "gene": "gene_id",
    "gene_id": "gene_id",
    "geneid": "gene_id",
    "gene_name": "gene_id",
    "gene_symbol": "gene_id",
    "symbol": "gene_id",
    "unnamed: 0": "gene_id",
    # Effect size
    "log2foldchange": "log2_fold_change",
    "log2_fold_change": "log2_fold_change",
    "log2fc": "log2_fold_change",
    "logfc": "log2_fold_change",
    # Adjusted p-value
    "padj": "pvalue_adjusted",
    "p_adj": "pvalue_adjusted",
    "pvalue_adjusted": "pvalue_adjusted",
    "fdr": "pvalue_adjusted",
    "adj.p.val": "pvalue_adjusted",
    "qvalue": "pvalue_adjusted",
    # Regulation label
    "regulation": "regulation",
    "diffexpressed": "regulation",
    "direction": "regulation",
    "de": "regulation",
}

STANDARD_COLUMNS = frozenset(COLUMN_ALIASES.values())
REQUIRED_COLUMNS = ("gene_id", "log2_fold_change")

RESULTS_SUFFIX = "_results"


def _read_table(path: Path) -> pd.DataFrame:
    sep = "\t" if path.suffix.lower() in (".tsv", ".txt", ".tab") else ","
    try:
        return pd.read_csv(path, sep=sep, low_memory=False)
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as exc:
        raise ResultsFormatError(f"{path.name}: cannot read table ({exc})") from exc


def standardize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename known DE-tool columns to the standard names.

    A column already carrying a standard name keeps it. Otherwise the first
    alias of a standard name wins; later aliases of the same name are left
    untouched.
    """
    taken = {column for column in df.columns if column in STANDARD_COLUMNS}
    renames: Dict[str, str] = {}
    for column in df.columns:
        if column in STANDARD_COLUMNS:
            continue
        target = COLUMN_ALIASES.get(str(column).strip().lower())
        if target and target not in taken:
            renames[column] = target
            taken.add(target)
    return df.rename(columns=renames)


def assign_regulation(
    df: pd.DataFrame,
    fdr_threshold: float = 0.05,
    log2fc_threshold: float = 1.0,
) -> pd.Series:
    """
    Derive Up/Down/NotSignificant labels from padj and log2FC.

    Rows with a missing adjusted p-value get a missing label.

    Args:
        df: Standardised results table
        fdr_threshold: Maximum adjusted p-value for significance
        log2fc_threshold: Minimum absolute log2 fold change

    Returns:
        Series of Regulation members (or None) aligned with df
    """
    if "pvalue_adjusted" not in df.columns:
        raise ResultsFormatError(
            "Cannot derive regulation labels without an adjusted p-value column"
        )
    padj = pd.to_numeric(df["pvalue_adjusted"], errors="coerce")
    lfc = pd.to_numeric(df["log2_fold_change"], errors="coerce")

    significant = padj < fdr_threshold
    labels = pd.Series([Regulation.NOT_SIGNIFICANT] * len(df), index=df.index, dtype=object)
    labels.loc[significant & (lfc > log2fc_threshold)] = Regulation.UP
    labels.loc[significant & (lfc < -log2fc_threshold)] = Regulation.DOWN
    labels.loc[padj.isna()] = None
    return labels


def _optional_float(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def records_from_frame(df: pd.DataFrame) -> List[GeneRecord]:
    """Convert a standardised results table into GeneRecords."""
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ResultsFormatError(f"Results table missing columns: {', '.join(missing)}")

    records: List[GeneRecord] = []
    skipped = 0
    has_padj = "pvalue_adjusted" in df.columns
    has_label = "regulation" in df.columns

    for row in df.itertuples(index=False):
        gene_id = getattr(row, "gene_id")
        if gene_id is None or pd.isna(gene_id) or str(gene_id).strip() == "":
            skipped += 1
            continue
        lfc = _optional_float(getattr(row, "log2_fold_change"))
        records.append(GeneRecord(
            gene_id=str(gene_id).strip(),
            log2_fold_change=lfc if lfc is not None else float("nan"),
            pvalue_adjusted=_optional_float(getattr(row, "pvalue_adjusted")) if has_padj else None,
            regulation=parse_regulation(getattr(row, "regulation")) if has_label else None,
        ))

    if skipped:
        logger.warning("Dropped %d rows without a gene identifier", skipped)
    return records


def parse_results_table(
    path: Union[str, Path],
    config: Optional[AnalysisConfig] = None,
) -> List[GeneRecord]:
    """
    Parse a DE results CSV/TSV file into GeneRecords.

    Args:
        path: Path to the results table
        config: Thresholds used when the table has no regulation column

    Returns:
        List of GeneRecord, one per row with a gene identifier
    """
    config = config or AnalysisConfig()
    path = Path(path)
    df = standardize_columns(_read_table(path))

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ResultsFormatError(f"{path.name}: missing columns {', '.join(missing)}")

    if "regulation" not in df.columns:
        logger.debug("%s has no regulation column; deriving labels from thresholds", path.name)
        df["regulation"] = assign_regulation(
            df,
            fdr_threshold=config.fdr_threshold,
            log2fc_threshold=config.log2fc_threshold,
        )

    records = records_from_frame(df)
    logger.info("Parsed %d gene records from %s", len(records), path.name)
    return records


def comparison_name_from_path(path: Path) -> str:
    """Derive a comparison name from a results file name (e.g. KO1_results.csv -> KO1)."""
    stem = path.stem
    if stem.endswith(RESULTS_SUFFIX) and len(stem) > len(RESULTS_SUFFIX):
        stem = stem[: -len(RESULTS_SUFFIX)]
    return stem


def discover_comparisons(
    results_dir: Union[str, Path],
    pattern: str = "*_results.csv",
) -> Dict[str, Path]:
    """
    Find per-comparison results tables in a directory.

    Args:
        results_dir: Directory holding the tables
        pattern: Glob matched against file names

    Returns:
        Mapping of comparison name to file path, sorted by name
    """
    results_dir = Path(results_dir)
    if not results_dir.is_dir():
        raise FileNotFoundError(f"Results directory not found: {results_dir}")

    found: Dict[str, Path] = {}
    for path in sorted(results_dir.glob(pattern)):
        if not path.is_file():
            continue
        name = comparison_name_from_path(path)
        if name in found:
            logger.warning("Skipping %s: comparison %r already loaded from %s",
                           path.name, name, found[name].name)
            continue
        found[name] = path

    logger.info("Found %d result tables matching '%s' in %s", len(found), pattern, results_dir)
    return dict(sorted(found.items()))


def load_comparisons(
    paths: Union[Mapping[str, Path], Iterable[Path]],
    config: Optional[AnalysisConfig] = None,
) -> List[ComparisonResults]:
    """
    Load several results tables, preserving the caller's order.

    Args:
        paths: Mapping of name -> path, or an iterable of paths (names are
            derived from the file names)
        config: Thresholds used when a table has no regulation column

    Returns:
        List of ComparisonResults in input order
    """
    if not isinstance(paths, Mapping):
        paths = {comparison_name_from_path(Path(p)): Path(p) for p in paths}

    loaded = []
    for name, path in paths.items():
        records = parse_results_table(path, config)
        loaded.append(ComparisonResults(name=name, records=records, source_path=Path(path)))
    return loaded
