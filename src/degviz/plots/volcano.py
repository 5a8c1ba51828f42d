"""
Interactive volcano plots for per-comparison DE results.

Usage:
    from degviz.plots.volcano import volcano_frame, volcano_figure, save_html

    frame = volcano_frame(comparison.records)
    fig = volcano_figure(frame, title="KO1 vs control")
    save_html(fig, "volcano_KO1.html")
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from degviz.config import AnalysisConfig
from degviz.plots.upset import DIRECTION_COLORS
from degviz.results.model import GeneRecord

logger = logging.getLogger(__name__)

# Avoid log(0)
MIN_PVALUE = 1e-300

CATEGORY_COLORS = {
    "up": DIRECTION_COLORS["up"],
    "down": DIRECTION_COLORS["down"],
    "ns": "#95a5a6",
    "unlabeled": "#d5d8dc",
}

CATEGORY_NAMES = {
    "up": "Up",
    "down": "Down",
    "ns": "Not significant",
    "unlabeled": "No label",
}


def volcano_frame(records: Iterable[GeneRecord]) -> pd.DataFrame:
    """
    Tidy table of volcano coordinates.

    Columns: gene_id, log2_fold_change, pvalue_adjusted, neg_log10_padj,
    category ("up" | "down" | "ns" | "unlabeled").
    """
    rows = []
    for record in records:
        pvalue = record.pvalue_adjusted if record.pvalue_adjusted is not None else 1.0
        if np.isnan(pvalue):
            pvalue = 1.0
        pvalue = max(pvalue, MIN_PVALUE)
        category = record.regulation.label if record.regulation is not None else "unlabeled"
        rows.append({
            "gene_id": record.gene_id,
            "log2_fold_change": record.log2_fold_change,
            "pvalue_adjusted": record.pvalue_adjusted,
            "neg_log10_padj": -np.log10(pvalue),
            "category": category,
        })
    columns = ["gene_id", "log2_fold_change", "pvalue_adjusted", "neg_log10_padj", "category"]
    return pd.DataFrame(rows, columns=columns)


def top_genes(frame: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    """Most significant Up/Down genes, ranked by |log2FC| * -log10(padj)."""
    significant = frame[frame["category"].isin(["up", "down"])].copy()
    significant["score"] = significant["log2_fold_change"].abs() * significant["neg_log10_padj"]
    return significant.sort_values("score", ascending=False).head(n)


def volcano_figure(
    frame: pd.DataFrame,
    title: str = "Volcano plot",
    config: Optional[AnalysisConfig] = None,
    label_top: int = 10,
    template: str = "plotly_white",
    height: int = 600,
    width: int = 800,
) -> go.Figure:
    """
    Create an interactive volcano plot.

    Args:
        frame: Output of volcano_frame
        title: Chart title
        config: Thresholds drawn as guide lines
        label_top: Annotate this many top significant genes
        template: Plotly template
        height: Figure height in pixels
        width: Figure width in pixels

    Returns:
        Plotly Figure object
    """
    config = config or AnalysisConfig()
    fig = go.Figure()

    for category in ("ns", "unlabeled", "down", "up"):
        subset = frame[frame["category"] == category]
        if subset.empty:
            continue
        fig.add_trace(go.Scattergl(
            x=subset["log2_fold_change"],
            y=subset["neg_log10_padj"],
            mode="markers",
            name=f"{CATEGORY_NAMES[category]} ({len(subset)})",
            marker=dict(color=CATEGORY_COLORS[category], size=5, opacity=0.7),
            text=subset["gene_id"],
            hovertemplate="%{text}<br>log2FC=%{x:.2f}<br>-log10(padj)=%{y:.2f}<extra></extra>",
        ))

    threshold_y = -np.log10(max(config.fdr_threshold, MIN_PVALUE))
    fig.add_hline(y=threshold_y, line=dict(dash="dash", color="gray", width=1))
    for x in (-config.log2fc_threshold, config.log2fc_threshold):
        fig.add_vline(x=x, line=dict(dash="dash", color="gray", width=1))

    for _, row in top_genes(frame, label_top).iterrows():
        fig.add_annotation(
            x=row["log2_fold_change"],
            y=row["neg_log10_padj"],
            text=row["gene_id"],
            showarrow=True,
            arrowhead=0,
            ax=0,
            ay=-20,
            font=dict(size=10),
        )

    fig.update_layout(
        title=dict(text=title, x=0.5),
        xaxis_title="log2 fold change",
        yaxis_title="-log10 adjusted p-value",
        template=template,
        height=height,
        width=width,
    )
    return fig


def save_html(fig: go.Figure, filepath: Union[str, Path], include_plotlyjs: Union[bool, str] = True) -> Path:
    """
    Save figure to an HTML file.

    Args:
        fig: Plotly Figure object
        filepath: Output file path
        include_plotlyjs: Whether to include plotly.js in the file
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(
        str(filepath),
        include_plotlyjs=include_plotlyjs,
        full_html=True,
    )
    logger.info("Saved: %s", filepath)
    return filepath


def volcano_output_path(output_dir: Union[str, Path], comparison: str) -> Path:
    return Path(output_dir) / f"volcano_{comparison}.html"

