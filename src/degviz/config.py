"""
Shared configuration for degviz.

Loads environment variables from .env and provides analysis thresholds,
input discovery settings and output paths.

Usage:
    from degviz.config import load_config

    cfg = load_config()
    results_dir = cfg.results_dir
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_PATTERN = "*_results.csv"
DEFAULT_IMAGE_FORMATS = ("png", "pdf")


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for loading DE results and exporting figures."""

    results_dir: Optional[Path] = None
    results_pattern: str = DEFAULT_RESULTS_PATTERN
    output_dir: Path = Path("results/figures")

    # Used only when a results table carries no regulation column
    fdr_threshold: float = 0.05
    log2fc_threshold: float = 1.0

    image_formats: Tuple[str, ...] = field(default=DEFAULT_IMAGE_FORMATS)
    dpi: int = 300

    def with_overrides(self, **overrides) -> "AnalysisConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def load_config(env_file: Optional[Path] = None) -> AnalysisConfig:
    """
    Load .env and build an AnalysisConfig from the environment.

    Recognised variables:
        - DEGVIZ_RESULTS_DIR: directory holding per-comparison DE tables
        - DEGVIZ_RESULTS_PATTERN: glob used to discover result tables
        - DEGVIZ_OUTPUT_DIR: figure/report output directory
        - DEGVIZ_FDR_THRESHOLD, DEGVIZ_LOG2FC_THRESHOLD: labelling thresholds

    Args:
        env_file: Optional explicit .env path (defaults to dotenv's search)

    Returns:
        AnalysisConfig populated from the environment
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()

    results_dir = os.environ.get("DEGVIZ_RESULTS_DIR")
    config = AnalysisConfig(
        results_dir=Path(results_dir) if results_dir else None,
        results_pattern=os.environ.get("DEGVIZ_RESULTS_PATTERN", DEFAULT_RESULTS_PATTERN),
        output_dir=Path(os.environ.get("DEGVIZ_OUTPUT_DIR", "results/figures")),
        fdr_threshold=_env_float("DEGVIZ_FDR_THRESHOLD", 0.05),
        log2fc_threshold=_env_float("DEGVIZ_LOG2FC_THRESHOLD", 1.0),
    )
    logger.debug("Loaded configuration: %s", config)
    return config
