"""CLI interface for noteport."""

import logging
import mimetypes
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from noteport.attachments.images import format_file_size
from noteport.attachments.storage import AttachmentStore
from noteport.config import NoteportConfig, load_config, merge_cli_overrides
from noteport.content.store import ContentStore
from noteport.errors import ValidationError
from noteport.exporter.models import ExportFilter, ExportFormat, ExportOptions
from noteport.exporter.services import ExportService
from noteport.importer.models import ConflictStrategy
from noteport.importer.services import ImportService
from noteport.reconcile.services import StorageReconciler

app = typer.Typer(
    name="noteport",
    help="Import, export and maintain a local notebook and its uploads.",
)

console = Console()

mimetypes.add_type("text/markdown", ".md")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from noteport import __version__

        console.print(f"noteport {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .noteport.toml file."),
    ] = None,
    data_dir: Annotated[
        Optional[Path],
        typer.Option("--data-dir", "-d", help="Data root (uploads, exports, store)."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """noteport - note interchange and upload storage maintenance."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    config = load_config(config_path)
    ctx.obj = merge_cli_overrides(config, data_dir=str(data_dir) if data_dir else None)


def _config(ctx: typer.Context) -> NoteportConfig:
    if isinstance(ctx.obj, NoteportConfig):
        return ctx.obj
    return load_config()


def _stores(config: NoteportConfig) -> tuple[ContentStore, AttachmentStore]:
    storage = config.storage
    store = ContentStore(storage.root)
    attachments = AttachmentStore(
        store,
        storage.uploads_dir,
        max_image_size=storage.max_image_size,
        max_file_size=storage.max_file_size,
        image_options=config.to_image_options(),
    )
    return store, attachments


def _read(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as exc:
        console.print(f"[red]Error:[/red] Cannot read {path}: {exc}")
        raise typer.Exit(1) from exc


@app.command()
def upload(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="File to upload.")],
    post_id: Annotated[
        Optional[str],
        typer.Option("--post-id", help="Attach to this note id."),
    ] = None,
    no_dedup: Annotated[
        bool,
        typer.Option("--no-dedup", help="Store even if an identical upload exists."),
    ] = False,
    mime_type: Annotated[
        Optional[str],
        typer.Option("--mime", help="Override the guessed MIME type."),
    ] = None,
) -> None:
    """Upload a file into attachment storage."""
    config = _config(ctx)
    _, attachments = _stores(config)
    data = _read(file)
    mime = mime_type or mimetypes.guess_type(file.name)[0] or "application/octet-stream"

    try:
        result = attachments.upload(data, file.name, mime, post_id=post_id, check_duplicate=not no_dedup)
    except ValidationError as exc:
        console.print(f"[red]Rejected:[/red] {exc}")
        raise typer.Exit(1) from exc

    if not result.success or result.attachment is None:
        console.print(f"[red]Upload failed:[/red] {result.error or result.message}")
        raise typer.Exit(1)

    attachment = result.attachment
    if result.is_duplicate:
        console.print(f"[yellow]Duplicate:[/yellow] already stored as {attachment.storage_path}")
        return
    console.print(f"[green]Stored[/green] {attachment.storage_path} ({format_file_size(attachment.size_bytes)})")
    if attachment.compressed_size is not None:
        console.print(f"  Compressed to {format_file_size(attachment.compressed_size)} ({result.compression_ratio}% saved)")
    if attachment.thumbnail_path:
        console.print(f"  Thumbnail: {attachment.thumbnail_path}")
    console.print(f"  Id: {attachment.id}")


@app.command(name="import")
def import_cmd(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="Markdown, text, JSON or zip file.")],
    strategy: Annotated[
        Optional[ConflictStrategy],
        typer.Option("--strategy", "-s", help="What to do when a slug already exists."),
    ] = None,
) -> None:
    """Import notes from a file."""
    config = _config(ctx)
    store, _ = _stores(config)
    service = ImportService(store, default_strategy=config.import_.default_strategy)
    data = _read(file)
    mime = mimetypes.guess_type(file.name)[0]

    result = service.import_file(data, file.name, mime, strategy)

    colour = "green" if result.success else "red"
    console.print(f"[{colour}]{result.message}[/{colour}]")
    for slug in result.created:
        console.print(f"  + {slug}")
    for slug in result.updated:
        console.print(f"  ~ {slug}")
    for slug in result.skipped:
        console.print(f"  = {slug} (exists, skipped)")
    for error in result.errors:
        console.print(f"  [red]![/red] {error}")
    if not result.success:
        raise typer.Exit(1)


@app.command()
def export(
    ctx: typer.Context,
    fmt: Annotated[
        ExportFormat,
        typer.Option("--format", "-f", help="Artifact format."),
    ] = ExportFormat.JSON,
    ids: Annotated[
        Optional[list[str]],
        typer.Option("--id", help="Export only these note ids (repeatable)."),
    ] = None,
    tag: Annotated[
        Optional[str],
        typer.Option("--tag", help="Only notes with a tag containing this text."),
    ] = None,
    date_from: Annotated[
        Optional[datetime],
        typer.Option("--from", formats=["%Y-%m-%d"], help="Created on or after (YYYY-MM-DD)."),
    ] = None,
    date_to: Annotated[
        Optional[datetime],
        typer.Option("--to", formats=["%Y-%m-%d"], help="Created on or before (YYYY-MM-DD)."),
    ] = None,
    attachments: Annotated[
        bool,
        typer.Option("--attachments", help="Bundle attachment files (zip only)."),
    ] = False,
) -> None:
    """Export notes to the exports directory."""
    config = _config(ctx)
    store, attachment_store = _stores(config)
    service = ExportService(
        store,
        config.storage.exports_dir,
        attachments=attachment_store,
        prefix=config.export.prefix,
        retention_hours=config.export.retention_hours,
        pdf_body_lines=config.export.pdf_body_lines,
    )

    options = ExportOptions(
        format=fmt,
        filter=ExportFilter(
            ids=ids or None,
            tag=tag,
            date_from=date_from.replace(tzinfo=UTC) if date_from else None,
            date_to=date_to.replace(hour=23, minute=59, second=59, microsecond=999999, tzinfo=UTC)
            if date_to
            else None,
        ),
        include_attachments=attachments,
    )
    try:
        result = service.export(options)
    finally:
        service.sweeper.shutdown(wait=True)

    if not result.success:
        console.print(f"[red]Export failed:[/red] {result.error or result.message}")
        raise typer.Exit(1)
    console.print(f"[green]{result.message}[/green] -> {result.path}")


@app.command()
def cleanup(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Report what would be removed without deleting."),
    ] = False,
    no_temp: Annotated[bool, typer.Option("--no-temp", help="Skip the temp file pass.")] = False,
    no_orphans: Annotated[bool, typer.Option("--no-orphans", help="Skip the orphaned file pass.")] = False,
    old: Annotated[bool, typer.Option("--old", help="Also remove attachments past the age limit.")] = False,
    max_age_days: Annotated[
        Optional[int],
        typer.Option("--max-age-days", help="Age limit for --old."),
    ] = None,
) -> None:
    """Reconcile the uploads tree with attachment records."""
    config = merge_cli_overrides(_config(ctx), max_file_age_days=max_age_days)
    _, attachments = _stores(config)

    options = config.to_cleanup_options(dry_run=dry_run)
    if no_temp:
        options.delete_temp_files = False
    if no_orphans:
        options.delete_orphaned_files = False
    if old:
        options.delete_old_files = True

    report = StorageReconciler(attachments).run(options)

    table = Table(title="Cleanup (dry run)" if dry_run else "Cleanup")
    table.add_column("Pass", style="cyan")
    table.add_column("Files", justify="right")
    table.add_column("Size", justify="right")
    for mode in report.modes:
        table.add_row(mode.mode.value, str(mode.count), format_file_size(mode.freed_bytes))
    console.print(table)
    console.print(report.summary)

    errors = report.all_errors
    for error in errors:
        console.print(f"  [red]![/red] {error}")
    if report.errors:
        raise typer.Exit(1)


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show attachment storage statistics."""
    config = _config(ctx)
    _, attachments = _stores(config)
    result = attachments.storage_stats()

    table = Table(title="Storage", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    table.add_row("Attachments", str(result.total_files))
    table.add_row("Total size", format_file_size(result.total_size))
    table.add_row("Images", f"{result.image_files} ({format_file_size(result.image_size)})")
    table.add_row("Documents", f"{result.document_files} ({format_file_size(result.document_size)})")
    table.add_row("Disk usage", format_file_size(result.disk_usage))
    console.print(table)


if __name__ == "__main__":
    app()
