"""
Sample-level PCA of normalized expression.

The decomposition itself is scikit-learn's PCA; this module selects the
most variable genes, joins sample metadata and draws the scatter plot.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import pandas as pd
import plotly.graph_objects as go
from sklearn.decomposition import PCA

from degviz.errors import InvalidInputError

logger = logging.getLogger(__name__)

# Same default as DESeq2's plotPCA
DEFAULT_TOP_GENES = 500

PALETTE = [
    "#1f77b4", "#ff7f0e", "#2ca02c", "#d62728", "#9467bd",
    "#8c564b", "#e377c2", "#7f7f7f", "#bcbd22", "#17becf",
]


@dataclass
class PCAResult:
    """PC scores per sample plus explained variance."""

    scores: pd.DataFrame  # index: sample id; PC1..PCn + metadata columns
    explained_variance_ratio: List[float] = field(default_factory=list)
    n_genes_used: int = 0

    @property
    def components(self) -> List[str]:
        return [f"PC{i + 1}" for i in range(len(self.explained_variance_ratio))]

    def axis_label(self, component: str) -> str:
        idx = self.components.index(component)
        return f"{component} ({self.explained_variance_ratio[idx] * 100:.1f}%)"


def log_transform(expression: pd.DataFrame) -> pd.DataFrame:
    """log2(x + 1) of a genes x samples count matrix."""
    return np.log2(expression.astype(float).clip(lower=0) + 1)


def sample_pca(
    expression: pd.DataFrame,
    metadata: Optional[pd.DataFrame] = None,
    n_components: int = 2,
    top_genes: Optional[int] = DEFAULT_TOP_GENES,
    log: bool = True,
) -> PCAResult:
    """
    Run PCA over samples.

    Args:
        expression: Genes x samples matrix (normalized counts or VST values)
        metadata: Optional samples x covariates table, indexed by sample id
        n_components: Number of components to keep
        top_genes: Use only the most variable genes (None for all)
        log: Apply log2(x + 1) before PCA

    Returns:
        PCAResult with one row per sample
    """
    if expression.empty:
        raise InvalidInputError("Expression matrix is empty")

    values = log_transform(expression) if log else expression.astype(float)
    values = values.dropna(axis=0, how="any")

    variances = values.var(axis=1)
    values = values[variances > 0]
    if top_genes is not None and len(values) > top_genes:
        values = values.loc[variances[values.index].sort_values(ascending=False).index[:top_genes]]

    n_samples, n_genes = values.shape[1], values.shape[0]
    if n_components < 1 or n_components > min(n_samples, n_genes):
        raise InvalidInputError(
            f"n_components must be between 1 and {min(n_samples, n_genes)}, got {n_components}"
        )

    pca = PCA(n_components=n_components)
    coords = pca.fit_transform(values.T.to_numpy())

    scores = pd.DataFrame(
        coords,
        index=pd.Index(values.columns, name="sample"),
        columns=[f"PC{i + 1}" for i in range(n_components)],
    )

    if metadata is not None:
        shared = scores.index.intersection(metadata.index)
        if shared.empty:
            raise InvalidInputError("No sample ids shared between expression and metadata")
        if len(shared) < len(scores):
            logger.warning("%d samples have no metadata", len(scores) - len(shared))
        scores = scores.join(metadata, how="left")

    logger.info(
        "PCA on %d genes x %d samples; explained variance %s",
        n_genes, n_samples,
        ", ".join(f"{v:.2%}" for v in pca.explained_variance_ratio_),
    )
    return PCAResult(
        scores=scores,
        explained_variance_ratio=[float(v) for v in pca.explained_variance_ratio_],
        n_genes_used=n_genes,
    )


def pca_figure(
    result: PCAResult,
    color_by: Optional[str] = None,
    x: str = "PC1",
    y: str = "PC2",
    title: str = "Sample PCA",
    template: str = "plotly_white",
    height: int = 600,
    width: int = 750,
) -> go.Figure:
    """Scatter of two principal components, coloured by a metadata column."""
    scores = result.scores
    for component in (x, y):
        if component not in scores.columns:
            raise InvalidInputError(f"Unknown component {component!r}")
    if color_by is not None and color_by not in scores.columns:
        raise InvalidInputError(f"Unknown metadata column {color_by!r}")

    fig = go.Figure()
    if color_by is None:
        groups = [("samples", scores)]
    else:
        groups = [(str(k), g) for k, g in scores.groupby(color_by, sort=True, dropna=False)]

    for i, (name, group) in enumerate(groups):
        fig.add_trace(go.Scatter(
            x=group[x],
            y=group[y],
            mode="markers+text",
            name=name,
            text=list(group.index),
            textposition="top center",
            marker=dict(size=11, color=PALETTE[i % len(PALETTE)], line=dict(width=0.5, color="black")),
        ))

    fig.update_layout(
        title=dict(text=title, x=0.5),
        xaxis_title=result.axis_label(x),
        yaxis_title=result.axis_label(y),
        template=template,
        height=height,
        width=width,
        showlegend=color_by is not None,
    )
    return fig
