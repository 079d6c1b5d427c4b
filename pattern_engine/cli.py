# pattern_engine/cli.py

"""Typer CLI entrypoint for pattern detection and transformation."""

from dataclasses import replace
from pathlib import Path
from typing import List, Optional
import logging

import typer
from rich.console import Console
from rich.table import Table

from .core.detection_config import PatternDetectionConfig
from .core.errors import ConfigurationError, ParseFailure
from .patterns.pattern import Match
from .patterns.pattern_analyzer import DetectionReport
from .patterns.pattern_detector import PatternDetector
from .patterns.pattern_transformer import PatternTransformer
from .utils.logging_config import setup_logging

app = typer.Typer(add_completion=False, help="Detect and apply design patterns in source code.")
console = Console()

_VALID_FORMATS = {"table", "json"}


def _load_config(env_file: Optional[Path], **overrides) -> PatternDetectionConfig:
    try:
        config = PatternDetectionConfig.from_env(str(env_file) if env_file else None)
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(config, **changes) if changes else config
    except ConfigurationError as exc:
        console.print(f"[red]Invalid configuration: {exc}[/]")
        raise typer.Exit(code=2) from exc


def _matches_table(matches: List[Match], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Pattern", style="cyan")
    table.add_column("Node")
    table.add_column("Location")
    table.add_column("Confidence", justify="right")
    for match in matches:
        table.add_row(match.pattern_name, match.node.name or match.node.kind.name,
                      str(match.node.location), f"{match.confidence:.2f}")
    return table


def _report_table(report: DetectionReport) -> Table:
    table = Table(title="Pattern summary")
    table.add_column("Pattern", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Avg confidence", justify="right")
    quality = report.pattern_quality_metrics()
    for pattern, count in report.top_patterns(limit=len(report.pattern_counts)):
        table.add_row(pattern, str(count), f"{quality.get(pattern, 0.0):.2f}")
    return table


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    setup_logging(logging.DEBUG if verbose else logging.WARNING)


@app.command()
def scan(
    path: Path = typer.Argument(..., help="Project directory or file to scan"),
    min_confidence: Optional[float] = typer.Option(None, "--min-confidence", help="Global confidence floor"),
    workers: Optional[int] = typer.Option(None, "--workers", help="Worker threads"),
    format: str = typer.Option("table", "--format", help="table|json"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the JSON report to this path"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Read settings from this .env file"),
) -> None:
    """Scan a project and report the patterns found."""
    fmt = format.lower()
    if fmt not in _VALID_FORMATS:
        raise typer.BadParameter(f"Unsupported format '{format}'. Choose from {sorted(_VALID_FORMATS)}")
    if not path.exists():
        console.print(f"[red]Path not found: {path}[/]")
        raise typer.Exit(code=2)

    config = _load_config(env_file, min_confidence=min_confidence, max_workers=workers)
    detector = PatternDetector(config=config)
    report = detector.analyze_project(path)

    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(report.to_json(), encoding="utf-8")

    if fmt == "json":
        typer.echo(report.to_json())
        return

    summary = report.get_summary()
    console.print(_report_table(report))
    console.print(
        f"Files scanned: {summary['files_scanned']}  failed: {summary['files_failed']}  "
        f"patterns: {summary['total_patterns']}  "
        f"average confidence: {summary['average_confidence']:.2f}  "
        f"refactoring candidates: {summary['potential_refactorings']}"
    )
    for suggestion in report.get_pattern_suggestions():
        console.print(f"[yellow]- {suggestion}[/]")
    if out is not None:
        console.print(f"Report written to {out}")


@app.command()
def detect(
    file: Path = typer.Argument(..., help="Source file to inspect"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Read settings from this .env file"),
) -> None:
    """List the patterns detected in a single file."""
    config = _load_config(env_file)
    detector = PatternDetector(config=config)
    try:
        tree = detector.parse_file(file)
    except ParseFailure as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=2) from exc

    matches = detector.detect(tree, file_path=str(file))
    if not matches:
        console.print("No patterns detected")
        return
    console.print(_matches_table(matches, title=str(file)))


@app.command()
def apply(
    file: Path = typer.Argument(..., help="Source file to transform"),
    pattern: str = typer.Argument(..., help="Pattern whose template is applied"),
    out: Optional[Path] = typer.Option(None, "--out", help="Output path, defaults to rewriting FILE"),
    env_file: Optional[Path] = typer.Option(None, "--env-file", help="Read settings from this .env file"),
) -> None:
    """Apply a pattern template to the best match in a file."""
    if not file.is_file():
        console.print(f"[red]File not found: {file}[/]")
        raise typer.Exit(code=2)

    config = _load_config(env_file)
    transformer = PatternTransformer(PatternDetector(config=config))
    if pattern not in transformer.templates:
        console.print(f"[red]No template registered for pattern '{pattern}'. "
                      f"Available: {', '.join(sorted(transformer.templates))}[/]")
        raise typer.Exit(code=2)

    if not transformer.apply_to_file(file, pattern, out):
        console.print(f"[red]Could not apply {pattern} to {file}[/]")
        raise typer.Exit(code=1)

    console.print(f"[green]Applied {pattern} template, wrote {out or file}[/]")


if __name__ == "__main__":
    app()
