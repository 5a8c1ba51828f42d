from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import click
import pandas as pd

from degviz.config import AnalysisConfig, load_config
from degviz.errors import DegvizError
from degviz.intersection import analyze_directions
from degviz.plots.pca import pca_figure, sample_pca
from degviz.plots.upset import render_upset
from degviz.plots.volcano import save_html, volcano_figure, volcano_frame, volcano_output_path
from degviz.report import IntersectionReport
from degviz.results import ComparisonResults, discover_comparisons, load_comparisons

logger = logging.getLogger(__name__)

DIRECTION_CHOICES = ("up", "down", "both")


def parse_comparison_option(value: str) -> Tuple[str, Path]:
    """Split a NAME=PATH option value."""
    name, sep, path = value.partition("=")
    if not sep or not name.strip() or not path.strip():
        raise click.BadParameter(
            f"expected NAME=PATH, got {value!r}", param_hint="--comparison"
        )
    return name.strip(), Path(path.strip())


def resolve_comparison_paths(
    config: AnalysisConfig,
    comparisons: Iterable[str],
) -> Dict[str, Path]:
    """Explicit --comparison options win over directory discovery."""
    explicit = [parse_comparison_option(v) for v in comparisons]
    if explicit:
        paths: Dict[str, Path] = {}
        for name, path in explicit:
            if name in paths:
                raise click.BadParameter(f"comparison {name!r} given twice", param_hint="--comparison")
            if not path.is_file():
                raise click.BadParameter(f"file not found: {path}", param_hint="--comparison")
            paths[name] = path
        return paths

    if config.results_dir is None:
        raise click.UsageError(
            "No inputs: pass --results-dir, --comparison NAME=PATH, or set DEGVIZ_RESULTS_DIR."
        )
    return discover_comparisons(config.results_dir, config.results_pattern)


def _load(config: AnalysisConfig, comparisons: Iterable[str]) -> List[ComparisonResults]:
    try:
        paths = resolve_comparison_paths(config, comparisons)
        if not paths:
            raise click.UsageError(
                f"No result tables matching '{config.results_pattern}' in {config.results_dir}"
            )
        loaded = load_comparisons(paths, config)
    except (DegvizError, FileNotFoundError) as exc:
        click.echo(f"Error: {exc}", err=True)
        raise click.Abort()

    for comparison in loaded:
        click.echo(f"  {comparison.name}: {comparison.n_records:,} genes from {comparison.source_path}")
    return loaded


def _directions(direction: str) -> Tuple[str, ...]:
    return ("up", "down") if direction.lower() == "both" else (direction.lower(),)


def input_options(func):
    """Options shared by every command that reads DE result tables."""
    options = [
        click.option(
            "--results-dir",
            type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
            default=None,
            help="Directory of per-comparison DE tables (default: $DEGVIZ_RESULTS_DIR).",
        ),
        click.option(
            "--comparison",
            "comparisons",
            multiple=True,
            type=str,
            help="Explicit NAME=PATH results table (repeat for multiple, keeps order).",
        ),
        click.option(
            "--pattern",
            default=None,
            help="Glob used to discover tables in --results-dir (default: *_results.csv).",
        ),
        click.option(
            "--fdr-threshold",
            type=click.FloatRange(0, 1),
            default=None,
            help="Adjusted p-value cutoff for tables without a regulation column.",
        ),
        click.option(
            "--log2fc-threshold",
            type=click.FloatRange(min=0),
            default=None,
            help="|log2FC| cutoff for tables without a regulation column.",
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _config(
    ctx: click.Context,
    results_dir: Optional[Path],
    pattern: Optional[str],
    fdr_threshold: Optional[float],
    log2fc_threshold: Optional[float],
    output_dir: Optional[Path] = None,
) -> AnalysisConfig:
    base: AnalysisConfig = ctx.obj["config"]
    return base.with_overrides(
        results_dir=results_dir,
        results_pattern=pattern,
        fdr_threshold=fdr_threshold,
        log2fc_threshold=log2fc_threshold,
        output_dir=output_dir,
    )


@click.group()
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Load settings from this .env file.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, env_file: Optional[Path]) -> None:
    """Visualize differential expression results across knockout comparisons."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(env_file)


@cli.command("upset")
@input_options
@click.option(
    "--direction",
    type=click.Choice(DIRECTION_CHOICES, case_sensitive=False),
    default="both",
    show_default=True,
    help="Regulation direction to intersect.",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for figures and tables (default: $DEGVIZ_OUTPUT_DIR or results/figures).",
)
@click.option(
    "--format",
    "formats",
    multiple=True,
    type=click.Choice(["png", "pdf", "svg", "jpg", "tiff"], case_sensitive=False),
    help="Image format (repeat for multiple). Defaults to png and pdf.",
)
@click.option("--dpi", type=click.IntRange(50, 1200), default=None, help="Raster resolution.")
@click.pass_context
def upset_command(
    ctx: click.Context,
    results_dir: Optional[Path],
    comparisons: Tuple[str, ...],
    pattern: Optional[str],
    fdr_threshold: Optional[float],
    log2fc_threshold: Optional[float],
    direction: str,
    output_dir: Optional[Path],
    formats: Tuple[str, ...],
    dpi: Optional[int],
) -> None:
    """Intersect Up/Down gene sets across comparisons and draw UpSet plots."""
    config = _config(ctx, results_dir, pattern, fdr_threshold, log2fc_threshold, output_dir)
    config = config.with_overrides(
        image_formats=tuple(f.lower() for f in formats) or None,
        dpi=dpi,
    )
    loaded = _load(config, comparisons)

    try:
        results = analyze_directions(loaded, _directions(direction))
    except DegvizError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise click.Abort()

    report = IntersectionReport()
    for label, result in results.items():
        written = render_upset(
            result,
            config.output_dir,
            formats=config.image_formats,
            dpi=config.dpi,
        )
        if not written:
            click.echo(f"No {label}-regulated genes in any comparison; no figure written.")
        for path in written:
            click.echo(f"Saved {path}")

        json_path = report.to_json(result, config.output_dir / f"intersections_{label}.json")
        tsv_path = report.to_tsv(result, config.output_dir / f"intersections_{label}.tsv")
        matrix_path = report.matrix_to_tsv(result, config.output_dir / f"incidence_{label}.tsv")
        click.echo(f"Tables for {label}: {json_path}, {tsv_path}, {matrix_path}")


@cli.command("summary")
@input_options
@click.option(
    "--direction",
    type=click.Choice(DIRECTION_CHOICES, case_sensitive=False),
    default="both",
    show_default=True,
)
@click.option("--top", "top_n", type=click.IntRange(1, 1000), default=10, show_default=True)
@click.pass_context
def summary_command(
    ctx: click.Context,
    results_dir: Optional[Path],
    comparisons: Tuple[str, ...],
    pattern: Optional[str],
    fdr_threshold: Optional[float],
    log2fc_threshold: Optional[float],
    direction: str,
    top_n: int,
) -> None:
    """Print intersection summaries without writing any files."""
    config = _config(ctx, results_dir, pattern, fdr_threshold, log2fc_threshold)
    loaded = _load(config, comparisons)

    try:
        results = analyze_directions(loaded, _directions(direction))
    except DegvizError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise click.Abort()

    report = IntersectionReport()
    for result in results.values():
        click.echo(report.to_console_summary(result, top_n=top_n))


@cli.command("volcano")
@input_options
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for HTML figures.",
)
@click.option("--label-top", type=click.IntRange(0, 100), default=10, show_default=True,
              help="Annotate this many top significant genes.")
@click.pass_context
def volcano_command(
    ctx: click.Context,
    results_dir: Optional[Path],
    comparisons: Tuple[str, ...],
    pattern: Optional[str],
    fdr_threshold: Optional[float],
    log2fc_threshold: Optional[float],
    output_dir: Optional[Path],
    label_top: int,
) -> None:
    """Write one interactive volcano plot per comparison."""
    config = _config(ctx, results_dir, pattern, fdr_threshold, log2fc_threshold, output_dir)
    loaded = _load(config, comparisons)

    for comparison in loaded:
        frame = volcano_frame(comparison.records)
        fig = volcano_figure(
            frame,
            title=f"{comparison.name} vs control",
            config=config,
            label_top=label_top,
        )
        path = save_html(fig, volcano_output_path(config.output_dir, comparison.name))
        click.echo(f"Saved {path}")


@cli.command("pca")
@click.option(
    "--counts",
    "counts_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Genes x samples normalized count table (first column = gene id).",
)
@click.option(
    "--metadata",
    "metadata_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Samples x covariates table (first column = sample id).",
)
@click.option("--color-by", default=None, help="Metadata column used to colour samples.")
@click.option("--top-genes", type=click.IntRange(min=2), default=500, show_default=True)
@click.option("--no-log", is_flag=True, help="Input is already log-scale (e.g. VST).")
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="HTML output path (default: <output-dir>/pca.html).",
)
@click.pass_context
def pca_command(
    ctx: click.Context,
    counts_path: Path,
    metadata_path: Optional[Path],
    color_by: Optional[str],
    top_genes: int,
    no_log: bool,
    output_path: Optional[Path],
) -> None:
    """PCA of samples from a normalized count table."""
    config: AnalysisConfig = ctx.obj["config"]

    sep = "\t" if counts_path.suffix.lower() in (".tsv", ".txt") else ","
    expression = pd.read_csv(counts_path, sep=sep, index_col=0)
    metadata = None
    if metadata_path is not None:
        meta_sep = "\t" if metadata_path.suffix.lower() in (".tsv", ".txt") else ","
        metadata = pd.read_csv(metadata_path, sep=meta_sep, index_col=0)

    try:
        result = sample_pca(expression, metadata, top_genes=top_genes, log=not no_log)
        fig = pca_figure(result, color_by=color_by)
    except DegvizError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise click.Abort()

    path = save_html(fig, output_path or config.output_dir / "pca.html")
    click.echo(f"Saved {path}")


def main() -> None:  # pragma: no cover
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
