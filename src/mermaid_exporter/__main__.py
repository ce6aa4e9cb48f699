"""CLI entry point for the Mermaid exporter."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import click

from .host import HostDocument, LocalVault, NoteEditor, Notifier
from .models import ExportFormat, ExportSettings, QualityTier
from .notes import render_note
from .plugin import MermaidExporterPlugin
from .render import MermaidCliEngine
from .settings import SETTINGS_FILE_NAME, load_settings


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log pipeline details")
def cli(verbose: bool) -> None:
    """Mermaid exporter - export Mermaid diagrams from notes as SVG, PNG or JPEG."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _open_note(note_file: str) -> tuple[str, str]:
    path = Path(note_file)
    return path.read_text(encoding="utf-8"), path.stem


@cli.command()
@click.argument("note_file", type=click.Path(exists=True, dir_okay=False))
def scan(note_file: str) -> None:
    """List the diagrams found in a note and their recovered source."""
    text, name = _open_note(note_file)

    async def run() -> list[tuple[int, str, Optional[str]]]:
        document = HostDocument(render_note(text, name))
        plugin = MermaidExporterPlugin(document, editor=NoteEditor(text, name))
        plugin.load()
        rows = []
        for index, node in enumerate(plugin.registry):
            source = plugin.exporter.extractor.extract(node)
            rows.append((index, source.strategy if source else "-", source.text if source else None))
        plugin.unload()
        return rows

    rows = asyncio.run(run())
    if not rows:
        click.echo("No Mermaid diagrams found")
        return

    click.echo(f"Found {len(rows)} diagram(s):")
    for index, strategy, source in rows:
        first_line = source.splitlines()[0] if source else "(no source recovered)"
        click.echo(f"  [{index}] {first_line}  ({strategy})")


@cli.command()
@click.argument("note_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--index", type=int, default=None, help="Export only the N-th diagram (0-based)")
@click.option(
    "--format", "export_format", type=click.Choice([f.value for f in ExportFormat]), default=None,
    help="Output format (default: from settings)",
)
@click.option(
    "--quality", type=click.Choice([q.value for q in QualityTier]), default=None,
    help="Raster resolution tier (default: from settings)",
)
@click.option("--dest", default=None, help="Vault folder to save into; empty means download")
@click.option("--name-format", default=None, help="Filename template, e.g. {noteName}-{date}")
@click.option("--vault", type=click.Path(file_okay=False), default=None, help="Vault root (default: note folder)")
@click.option("--settings", "settings_file", type=click.Path(dir_okay=False), default=None, help="Settings JSON")
@click.option("--downloads", type=click.Path(file_okay=False), default=None, help="Download directory")
@click.option("--mmdc", default="mmdc", help="Mermaid CLI executable")
@click.option("--timeout", type=float, default=None, help="Render timeout in seconds (default: none)")
def export(
    note_file: str,
    index: Optional[int],
    export_format: Optional[str],
    quality: Optional[str],
    dest: Optional[str],
    name_format: Optional[str],
    vault: Optional[str],
    settings_file: Optional[str],
    downloads: Optional[str],
    mmdc: str,
    timeout: Optional[float],
) -> None:
    """Export the diagrams in a note."""
    text, name = _open_note(note_file)
    vault_root = Path(vault) if vault else Path(note_file).resolve().parent

    try:
        settings = load_settings(Path(settings_file) if settings_file else vault_root / SETTINGS_FILE_NAME)
    except Exception as e:
        click.echo(f"❌ Error reading settings: {e}", err=True)
        raise SystemExit(1)

    overrides = {
        "exportFormat": export_format,
        "exportQuality": quality,
        "defaultExportLocation": dest,
        "filenameFormat": name_format,
    }
    data = settings.model_dump(by_alias=True)
    data.update({key: value for key, value in overrides.items() if value is not None})
    settings = ExportSettings.model_validate(data)

    async def run() -> list:
        document = HostDocument(render_note(text, name), download_dir=Path(downloads) if downloads else None)
        plugin = MermaidExporterPlugin(
            document,
            settings=settings,
            engine=MermaidCliEngine(executable=mmdc),
            vault=LocalVault(vault_root),
            editor=NoteEditor(text, name),
            notifier=Notifier(echo=click.echo),
            render_timeout=timeout,
        )
        plugin.load()
        controls = plugin.controls()
        if index is not None:
            controls = controls[index : index + 1]
        results = [await document.click(control) for control in controls]
        plugin.unload()
        return results

    click.echo(f"📐 Exporting from {note_file} as {settings.export_format.value}...")
    results = asyncio.run(run())

    if not results:
        click.echo("No Mermaid diagrams found")
        return

    for result in results:
        if result.ok:
            click.echo(f"✓ {result.path} ({result.destination.value})")
    failed = [result for result in results if not result.ok]
    if failed:
        click.echo(f"❌ {len(failed)} of {len(results)} export(s) failed", err=True)
        raise SystemExit(1)


@cli.command()
def example() -> None:
    """Print an example note with a Mermaid diagram."""
    example_note = """# Temperature Monitoring System

```mermaid
flowchart TD
    sensor[Temperature Sensor] -->|analog signal| processor[Microprocessor]
    processor -->|display data| display([Display])
```
"""

    click.echo(example_note)


if __name__ == "__main__":
    cli()
