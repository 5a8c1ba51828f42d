"""
UpSet combination-matrix rendering for intersection results.

Drawing is delegated to upsetplot on a headless matplotlib backend; this
module only prepares the membership series, styles the figure and names
the exported files.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
from upsetplot import UpSet  # noqa: E402

from degviz.intersection.model import IntersectionResult  # noqa: E402

logger = logging.getLogger(__name__)

# Expression direction colours, shared with the volcano plot
DIRECTION_COLORS = {
    "up": "#e74c3c",
    "down": "#3498db",
}

DEFAULT_NAME_TEMPLATE = "upset_{direction}"


def upset_output_paths(
    output_dir: Union[str, Path],
    direction: str,
    formats: Sequence[str] = ("png", "pdf"),
    name_template: str = DEFAULT_NAME_TEMPLATE,
) -> List[Path]:
    """Deterministic output file paths for one direction, one per format."""
    stem = name_template.format(direction=direction)
    return [Path(output_dir) / f"{stem}.{fmt.lstrip('.').lower()}" for fmt in formats]


def membership_series(result: IntersectionResult) -> pd.Series:
    """
    Gene count per exclusive membership pattern, in the result's order.

    The index has one boolean level per comparison, so upsetplot draws the
    bars exactly as ``result.frequencies`` orders them.
    """
    comparisons = result.comparisons
    patterns = [
        tuple(name in bucket.members for name in comparisons)
        for bucket in result.frequencies
    ]
    index = pd.MultiIndex.from_tuples(patterns, names=comparisons)
    return pd.Series([bucket.count for bucket in result.frequencies], index=index, name="count")


def _single_comparison_figure(result: IntersectionResult, color: str, figsize):
    # upsetplot needs at least two categories; one comparison is a single bar
    bucket = result.frequencies[0]
    fig, ax = plt.subplots(figsize=figsize)
    bars = ax.bar([bucket.label], [bucket.count], color=color, width=0.5)
    ax.bar_label(bars, fmt="%d")
    ax.set_ylabel("Intersection size")
    ax.spines[["top", "right"]].set_visible(False)
    return fig


def upset_figure(
    result: IntersectionResult,
    title: Optional[str] = None,
    figsize=(10, 6),
):
    """
    Build the UpSet figure for an intersection result.

    Args:
        result: Intersection analysis for one direction
        title: Figure title (defaults to the direction label)
        figsize: Matplotlib figure size

    Returns:
        Matplotlib Figure, or None when the result holds no genes
    """
    if result.total_distinct_genes == 0:
        logger.warning("No %s-regulated genes; skipping UpSet figure", result.direction)
        return None

    color = DIRECTION_COLORS.get(result.direction, "#7f7f7f")
    if len(result.comparisons) == 1:
        fig = _single_comparison_figure(result, color, figsize)
    else:
        upset = UpSet(
            membership_series(result),
            subset_size="sum",
            show_counts="%d",
            sort_by="input",
            sort_categories_by="input",
            facecolor=color,
        )
        fig = plt.figure(figsize=figsize)
        upset.plot(fig=fig)

    fig.suptitle(title or f"{result.direction.capitalize()}-regulated genes across comparisons")
    return fig


def render_upset(
    result: IntersectionResult,
    output_dir: Union[str, Path],
    formats: Sequence[str] = ("png", "pdf"),
    name_template: str = DEFAULT_NAME_TEMPLATE,
    dpi: int = 300,
    title: Optional[str] = None,
) -> List[Path]:
    """
    Render and save the UpSet figure in every requested format.

    Existing files are overwritten. Returns the written paths (empty when
    there was nothing to draw).
    """
    fig = upset_figure(result, title=title)
    if fig is None:
        return []

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written = []
    try:
        for path in upset_output_paths(output_dir, result.direction, formats, name_template):
            fig.savefig(path, dpi=dpi, bbox_inches="tight")
            logger.info("Saved: %s", path)
            written.append(path)
    finally:
        plt.close(fig)
    return written
