# src/folio/cli.py
"""Command-line interface for Folio.

The CLI reads folio.yaml (searched upward from the current directory),
FOLIO_* environment variables and provider credentials from the
environment or a .env file.
"""

from __future__ import annotations

import asyncio
import os

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from folio import __version__
from folio.config import (
    ConfigError,
    FolioConfig,
    create_folio,
    get_folio_config,
    load_env_file,
)
from folio.exceptions import ProviderError
from folio.folio import DATABASE_FILE, Folio
from folio.logger import configure_logging
from folio.models import (
    ErrorEvent,
    IncrementEvent,
    ProviderKind,
    SourceReference,
    SourcesEvent,
    StatusEvent,
)
from folio.providers import ProviderGateway

app = typer.Typer(
    name="folio",
    help="Folio - ask questions of your documents.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"folio {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR).",
    ),
) -> None:
    """Folio - ask questions of your documents."""
    configure_logging(log_level)
    load_env_file()


def _load_folio_config(data_dir: str | None, config_file: str | None) -> FolioConfig:
    config = get_folio_config(data_dir, config_file)
    if isinstance(config, ConfigError):
        console.print(f"[red]Error: {escape(config.message)}[/red]")
        if config.suggestion:
            console.print(f"[dim]{config.suggestion}[/dim]")
        raise typer.Exit(1)
    for warning in config.warnings:
        err_console.print(f"[yellow]Warning: {escape(warning)}[/yellow]")
    return config


def _open_folio(config: FolioConfig, read_only: bool) -> Folio:
    if read_only and not os.path.exists(os.path.join(config.data_dir, DATABASE_FILE)):
        console.print(f"[red]Error: No database found in {config.data_dir}[/red]")
        console.print("[dim]Run 'folio ingest' first to create the database.[/dim]")
        raise typer.Exit(1)
    return create_folio(config, read_only=read_only)


def _parse_provider(value: str | None) -> ProviderKind | None:
    if value is None:
        return None
    try:
        return ProviderKind(value.lower())
    except ValueError:
        choices = ", ".join(k.value for k in ProviderKind)
        console.print(f"[red]Error: Unknown provider '{value}' (choose from {choices})[/red]")
        raise typer.Exit(1) from None


DATA_DIR_OPTION = typer.Option(
    None, "--data-dir", "-d", help="Data directory (default: from config)"
)
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to config file")


@app.command()
def ingest(
    path: str = typer.Argument(..., help="Markdown file or directory to ingest"),
    data_dir: str = DATA_DIR_OPTION,
    config_file: str = CONFIG_OPTION,
    provider: str = typer.Option(
        None, "--provider", "-p", help="Provider tried first for embeddings"
    ),
    prune: bool = typer.Option(
        True, "--prune/--keep-missing", help="Remove documents whose file is gone"
    ),
    no_progress: bool = typer.Option(False, "--no-progress", help="Disable progress bars"),
) -> None:
    """Chunk, index and embed documents."""
    if not os.path.exists(path):
        console.print(f"[red]Error: Path not found: {path}[/red]")
        raise typer.Exit(1)

    config = _load_folio_config(data_dir, config_file)
    embedding_provider = _parse_provider(provider) or config.embedding_provider
    folio = _open_folio(config, read_only=False)

    if not folio.gateway.profiles:
        console.print(
            "[yellow]No provider configured; building a keyword-only index.[/yellow]"
        )

    show_progress = not no_progress and console.is_terminal
    if show_progress:
        with Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Ingesting", total=None)

            def on_progress(event: str, current: int, total: int, message: str) -> None:
                progress.update(task, description=message, completed=current, total=total)

            result = folio.ingest_path(path, embedding_provider, on_progress, prune=prune)
    else:
        result = folio.ingest_path(path, embedding_provider, prune=prune)

    for outcome in result.documents:
        if outcome.status == "failed":
            error = escape(outcome.error or "")
            console.print(f"[red]Failed:[/red] {outcome.document_id}: {error}")

    console.print(
        f"[green]Ingested {result.ingested} documents[/green] "
        f"({result.chunks} chunks, {result.embedded} embedded), "
        f"{result.skipped} unchanged, {result.failed} failed"
    )
    if result.backfilled:
        console.print(f"Embedded missing chunks of {result.backfilled} unchanged documents")
    if result.removed:
        console.print(f"Removed {len(result.removed)} documents no longer on disk")
    if result.failed:
        raise typer.Exit(1)


def _print_sources(sources: list[SourceReference]) -> None:
    console.print()
    console.print("[bold]Sources:[/bold]")
    for i, source in enumerate(sources, 1):
        heading = f" > {source.heading_context}" if source.heading_context else ""
        label = (
            f"{source.document_title} ({source.document_id})"
            if source.document_title
            else source.document_id
        )
        console.print(f"  [{i}] [cyan]{escape(label + heading)}[/cyan]")
        console.print(f"      [dim]{source.excerpt}...[/dim]")


async def _ask(folio: Folio, question: str, provider: ProviderKind | None) -> tuple[
    StatusEvent | ErrorEvent | None, list[SourceReference]
]:
    terminal: StatusEvent | ErrorEvent | None = None
    sources: list[SourceReference] = []

    def on_event(event: IncrementEvent | SourcesEvent | StatusEvent | ErrorEvent) -> None:
        nonlocal terminal, sources
        if isinstance(event, IncrementEvent):
            console.print(event.text, end="", markup=False, highlight=False)
        elif isinstance(event, SourcesEvent):
            sources = event.sources
        else:
            terminal = event

    manager = folio.request_manager(on_event=on_event)
    request_id = manager.submit(question, provider=provider)
    try:
        await manager.wait(request_id)
    finally:
        await manager.aclose()
    return terminal, sources


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to ask"),
    data_dir: str = DATA_DIR_OPTION,
    config_file: str = CONFIG_OPTION,
    provider: str = typer.Option(None, "--provider", "-p", help="Chat provider to use"),
    show_sources: bool = typer.Option(
        True, "--sources/--no-sources", help="List the context the answer is grounded on"
    ),
) -> None:
    """Stream an answer grounded in the ingested documents."""
    config = _load_folio_config(data_dir, config_file)
    kind = _parse_provider(provider)
    folio = _open_folio(config, read_only=True)

    terminal, sources = asyncio.run(_ask(folio, question, kind))
    console.print()

    if isinstance(terminal, ErrorEvent):
        console.print(f"[red]Error ({terminal.kind}): {escape(terminal.message)}[/red]")
        raise typer.Exit(1)

    if terminal is not None and terminal.retrieval_empty:
        console.print("[yellow]No matching context was found in the documents.[/yellow]")
    elif show_sources and sources:
        _print_sources(sources)


async def _check(
    gateway: ProviderGateway, kinds: list[ProviderKind]
) -> list[tuple[ProviderKind, str, ProviderError | None]]:
    results = []
    for kind in kinds:
        try:
            results.append((kind, await gateway.check(kind), None))
        except ProviderError as e:
            results.append((kind, "", e))
    return results


@app.command()
def check(
    config_file: str = CONFIG_OPTION,
    provider: str = typer.Option(
        None, "--provider", "-p", help="Provider to check (default: every configured one)"
    ),
) -> None:
    """Verify provider credentials with a minimal request."""
    config = _load_folio_config(None, config_file)
    kind = _parse_provider(provider)
    gateway = ProviderGateway(config.profiles, config.settings, config.preferred)

    if kind is not None:
        kinds = [kind]
    else:
        kinds = sorted(gateway.profiles, key=lambda k: k.value)
    if not kinds:
        console.print("[red]Error: No provider configured[/red]")
        console.print(
            "[dim]Set OPENAI_API_KEY, ANTHROPIC_API_KEY, GEMINI_API_KEY or OLLAMA_BASE_URL.[/dim]"
        )
        raise typer.Exit(1)

    failed = False
    for kind, message, error in asyncio.run(_check(gateway, kinds)):
        if error is None:
            console.print(f"[green]OK[/green] {escape(message)}")
        else:
            failed = True
            console.print(f"[red]{kind.value}: Error ({error.kind}): {escape(str(error))}[/red]")
    if failed:
        raise typer.Exit(1)


@app.command()
def status(
    data_dir: str = DATA_DIR_OPTION,
    config_file: str = CONFIG_OPTION,
) -> None:
    """Show database statistics."""
    config = _load_folio_config(data_dir, config_file)
    if not os.path.exists(os.path.join(config.data_dir, DATABASE_FILE)):
        console.print("[dim]No database found. Run 'folio ingest' first.[/dim]")
        raise typer.Exit(0)

    stats = create_folio(config, read_only=True).status()

    table = Table(title="Database Status")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Data directory", config.data_dir)
    table.add_row("Documents", str(stats["documents"]))
    table.add_row("Chunks", str(stats["chunks"]))
    table.add_row("Embeddings", str(stats["embeddings"]))
    table.add_row("Embedding model", stats["embedding_model"] or "-")
    table.add_row("Dimension", str(stats["dimension"] or "-"))
    table.add_row("Generation", str(stats["generation"]))
    table.add_row("Providers", ", ".join(stats["providers"]) or "-")

    console.print(table)


@app.command(name="list")
def list_documents(
    data_dir: str = DATA_DIR_OPTION,
    config_file: str = CONFIG_OPTION,
) -> None:
    """List ingested documents."""
    config = _load_folio_config(data_dir, config_file)
    folio = _open_folio(config, read_only=True)

    documents = folio.registry.list_documents()
    if not documents:
        console.print("[dim]No documents ingested.[/dim]")
        return
    for document_id in documents:
        console.print(document_id)


@app.command()
def delete(
    document_id: str = typer.Argument(..., help="Document id to remove"),
    data_dir: str = DATA_DIR_OPTION,
    config_file: str = CONFIG_OPTION,
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
) -> None:
    """Remove a document from the database."""
    config = _load_folio_config(data_dir, config_file)
    folio = _open_folio(config, read_only=False)

    if folio.registry.get_hash(document_id) is None:
        console.print(f"[red]Error: Document not found: {document_id}[/red]")
        raise typer.Exit(1)

    if not force and not typer.confirm(f"Delete {document_id}?"):
        raise typer.Exit(0)

    folio.delete(document_id)
    console.print(f"[green]Deleted {document_id}[/green]")


if __name__ == "__main__":
    app()
