"""Figure builders: UpSet (matplotlib/upsetplot), volcano and PCA (plotly)."""

from degviz.plots.pca import PCAResult, pca_figure, sample_pca
from degviz.plots.upset import render_upset, upset_figure, upset_output_paths
from degviz.plots.volcano import save_html, volcano_figure, volcano_frame, volcano_output_path

__all__ = [
    "PCAResult",
    "pca_figure",
    "sample_pca",
    "render_upset",
    "upset_figure",
    "upset_output_paths",
    "save_html",
    "volcano_figure",
    "volcano_frame",
    "volcano_output_path",
]
