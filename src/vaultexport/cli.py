import logging
from pathlib import Path
from typing import Optional

import typer

from .config import Settings

app = typer.Typer(add_completion=False)


def _settings(vault: Optional[Path], output: Optional[Path]) -> Settings:
    return Settings.from_env(vault_root=vault, output_dir=output)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    """
    Export Obsidian notes to JSON collections and maintain book covers.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def export_all(
    vault: Optional[Path] = typer.Option(None, help="Path to Vault root"),
    output: Optional[Path] = typer.Option(None, help="Output directory for JSON files"),
):
    """
    Run every exporter; a failing exporter does not stop the others.
    """
    from .core import EXPORTERS

    settings = _settings(vault, output)
    print("=== Obsidian Data Export ===\n")

    counts = {}
    failed = []
    for name, exporter_cls in EXPORTERS.items():
        try:
            report = exporter_cls(settings).export()
            counts[name] = report.count
        except Exception as e:
            logging.getLogger(__name__).error(f"Failed to export {name}: {e}")
            failed.append(name)
            counts[name] = 0

    print("\n=== Export Complete ===")
    for name, count in counts.items():
        print(f"{name}: {count} items")
    print(f"\nOutput: {settings.output_dir}")

    if failed:
        raise typer.Exit(code=1)


@app.command()
def export_books(
    vault: Optional[Path] = typer.Option(None, help="Path to Vault root"),
    output: Optional[Path] = typer.Option(None, help="Output directory for JSON files"),
):
    """
    Export book notes (Kategorie: Bücher) to books.json.
    """
    from .core.books import BooksExporter
    BooksExporter(_settings(vault, output)).export()


@app.command()
def export_series(
    vault: Optional[Path] = typer.Option(None, help="Path to Vault root"),
    output: Optional[Path] = typer.Option(None, help="Output directory for JSON files"),
):
    """
    Export series notes (Kategorie: Serien) to series.json.
    """
    from .core.series import SeriesExporter
    SeriesExporter(_settings(vault, output)).export()


@app.command()
def export_timeline(
    vault: Optional[Path] = typer.Option(None, help="Path to Vault root"),
    output: Optional[Path] = typer.Option(None, help="Output directory for JSON files"),
):
    """
    Export timeline entries (Kategorie: Timeline) to timeline.json.
    """
    from .core.timeline import TimelineExporter
    TimelineExporter(_settings(vault, output)).export()


@app.command()
def export_garden(
    vault: Optional[Path] = typer.Option(None, help="Path to Vault root"),
    output: Optional[Path] = typer.Option(None, help="Output directory for JSON files"),
):
    """
    Export Digital Garden notes to digital-garden.json.
    """
    from .core.garden import DigitalGardenExporter
    DigitalGardenExporter(_settings(vault, output)).export()


@app.command()
def covers_download(
    vault: Optional[Path] = typer.Option(None, help="Path to Vault root"),
    dry_run: bool = typer.Option(False, help="Only report what would be downloaded"),
    limit: Optional[int] = typer.Option(None, min=1, help="Download at most N covers"),
    backup: bool = typer.Option(False, help="Keep a .bak copy of covers that get replaced"),
):
    """
    Download the Cover URL of every book note and link the local file.
    """
    from dataclasses import replace
    from .core.covers import CoverManager

    settings = _settings(vault, None)
    if backup:
        settings = replace(settings, backup_on_replace=True)
    with CoverManager(settings) as manager:
        report = manager.acquire(dry_run=dry_run, limit=limit)
    if report.failed:
        raise typer.Exit(code=1)


@app.command()
def covers_rename(
    vault: Optional[Path] = typer.Option(None, help="Path to Vault root"),
):
    """
    Rename local cover files to <title>-<author>.jpg.
    """
    from .core.covers import CoverManager
    with CoverManager(_settings(vault, None)) as manager:
        report = manager.rename_all()
    if report.conflicts or report.issues:
        raise typer.Exit(code=1)


@app.command()
def covers_cleanup(
    vault: Optional[Path] = typer.Option(None, help="Path to Vault root"),
):
    """
    Clear dangling local cover paths and give every book both cover fields.
    """
    from .core.covers import CoverManager
    with CoverManager(_settings(vault, None)) as manager:
        report = manager.repair_all()
    if report.failed:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
