"""CLI interface for ContextFlow."""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from contextflow import __version__
from contextflow.config import Settings, get_settings
from contextflow.database.repository import Repository
from contextflow.errors import ChatServiceError, ExtractionError, StoreError
from contextflow.models.chat import ChatMessage, Role
from contextflow.models.extraction import FileFormat, UploadedFile
from contextflow.models.insight import Insight
from contextflow.models.note import Note, NoteType, Priority
from contextflow.services.ingestion import IngestOutcome
from contextflow.services.insight_generator import InsightGenerator, InsightOutcome
from contextflow.services.ollama_service import OllamaService
from contextflow.services.workspace import Workspace

app = typer.Typer(
    name="contextflow",
    help="Personal notes with AI-generated insights, daily summaries and context-aware chat.",
    no_args_is_help=True,
)
console = Console()

OUTCOME_STYLES = {
    IngestOutcome.SUCCESS: "green",
    IngestOutcome.PARTIAL: "yellow",
    IngestOutcome.NOTHING_PROCESSED: "red",
    IngestOutcome.STORE_FAILED: "red",
}


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings() -> Settings:
    try:
        return get_settings()
    except Exception as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        console.print("Make sure your .env file holds valid CONTEXTFLOW_* settings.")
        raise typer.Exit(1)


def get_repository(settings: Settings) -> Repository:
    """Get repository instance, ensuring data directory exists."""
    settings.database_path.parent.mkdir(parents=True, exist_ok=True)
    return Repository(settings.database_url)


def get_ollama(settings: Settings) -> OllamaService:
    return OllamaService(
        model_name=settings.ollama_model,
        host=settings.ollama_host,
        api_key=settings.ollama_api_key or None,
        require_api_key=settings.ollama_require_api_key,
        timeout=settings.request_timeout,
        max_attempts=settings.llm_max_attempts,
    )


def open_workspace(ctx: typer.Context, settings: Settings) -> Workspace:
    """Workspace for the CLI user, loaded from the store."""
    generator = InsightGenerator(
        ollama_service=get_ollama(settings),
        temperature=settings.insight_temperature,
        max_tokens=settings.insight_max_tokens,
    )
    workspace = Workspace(
        owner_id=ctx.obj["owner_id"] or settings.owner_id,
        repository=get_repository(settings),
        insight_generator=generator,
        max_workers=settings.insight_workers,
    )
    workspace.load()
    return workspace


def print_warnings(workspace: Workspace) -> None:
    for warning in workspace.drain_warnings():
        console.print(f"[yellow]Warning:[/yellow] {warning}")


def wait_for_insights(workspace: Workspace) -> None:
    """Show a spinner while insight generation is in flight."""
    if not workspace.generating:
        return
    with console.status("[yellow]Generating insights...[/yellow]"):
        workspace.wait_for_insights()


def print_outcome(outcome: InsightOutcome) -> None:
    insight = outcome.insight
    marker = "[yellow]~[/yellow]" if outcome.degraded else "[green]✓[/green]"
    kind = insight.insight_type.value
    console.print(f"  {marker} [bold]{insight.title}[/bold] [dim]({kind})[/dim]")
    console.print(f"    {insight.message}")


def notes_table(notes: list[Note], title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Type")
    table.add_column("Priority")
    table.add_column("Connections")
    table.add_column("Updated", style="dim")

    priority_styles = {Priority.HIGH: "red", Priority.MEDIUM: "yellow", Priority.LOW: "dim"}
    for note in notes:
        style = priority_styles[note.priority]
        table.add_row(
            str(note.id) if note.id is not None else "-",
            note.title,
            note.note_type.value,
            f"[{style}]{note.priority.value}[/{style}]",
            ", ".join(note.connections),
            note.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    return table


def insights_table(insights: list[Insight]) -> Table:
    table = Table(title="Insights")
    table.add_column("ID", justify="right", style="cyan")
    table.add_column("Type")
    table.add_column("Title", style="bold")
    table.add_column("Message")
    table.add_column("Action", justify="center")

    for insight in insights:
        table.add_row(
            str(insight.id) if insight.id is not None else "-",
            insight.insight_type.value,
            insight.title,
            insight.message,
            "[green]✓[/green]" if insight.actionable else "",
        )
    return table


@app.command()
def add(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Note title"),
    summary: str = typer.Option("", "--summary", "-s", help="Details about this note"),
    note_type: NoteType = typer.Option(NoteType.CUSTOM, "--type", "-t", help="Note type"),
    priority: Priority = typer.Option(Priority.MEDIUM, "--priority", "-p", help="Priority"),
    connections: Optional[list[str]] = typer.Option(
        None, "--connection", "-c", help="Related label (can repeat)"
    ),
    no_insight: bool = typer.Option(False, "--no-insight", help="Skip insight generation"),
):
    """Add a note and generate an insight for it."""
    if not title.strip():
        console.print("[red]Title must not be empty.[/red]")
        raise typer.Exit(1)

    settings = load_settings()
    with open_workspace(ctx, settings) as workspace:
        note = workspace.add_note(
            Note(
                owner_id=workspace.owner_id,
                title=title,
                summary=summary,
                note_type=note_type,
                priority=priority,
                connections=connections or [],
            )
        )
        if note.id is None:
            print_warnings(workspace)
            console.print("[yellow]Note kept locally but not saved.[/yellow]")
            raise typer.Exit(1)

        console.print(f"[green]✓[/green] Added note {note.id}: {note.title}")

        if not no_insight:
            future = workspace.request_insight(note)
            wait_for_insights(workspace)
            if future.exception() is None:
                print_outcome(future.result())
        print_warnings(workspace)


@app.command("list")
def list_notes(
    ctx: typer.Context,
    search: str = typer.Option("", "--search", "-s", help="Filter by title or summary"),
    priority: Optional[Priority] = typer.Option(
        None, "--priority", "-p", help="Only this priority"
    ),
):
    """List notes, most recently updated first."""
    settings = load_settings()
    with open_workspace(ctx, settings) as workspace:
        notes = workspace.search(search)
        if priority is not None:
            notes = [n for n in notes if n.priority == priority]
        print_warnings(workspace)

    if not notes:
        console.print("[yellow]No notes found.[/yellow]")
        return
    console.print(notes_table(notes, title=f"Notes ({len(notes)})"))


@app.command()
def edit(
    ctx: typer.Context,
    note_id: int = typer.Argument(..., help="ID of the note to edit"),
    title: Optional[str] = typer.Option(None, "--title", help="New title"),
    summary: Optional[str] = typer.Option(None, "--summary", "-s", help="New summary"),
    note_type: Optional[NoteType] = typer.Option(None, "--type", "-t", help="New type"),
    priority: Optional[Priority] = typer.Option(None, "--priority", "-p", help="New priority"),
    connections: Optional[list[str]] = typer.Option(
        None, "--connection", "-c", help="Replace connections (can repeat)"
    ),
):
    """Edit a note."""
    changes = {
        key: value
        for key, value in {
            "title": title,
            "summary": summary,
            "note_type": note_type,
            "priority": priority,
            "connections": connections,
        }.items()
        if value is not None
    }
    if not changes:
        console.print("[yellow]Nothing to change.[/yellow]")
        raise typer.Exit(0)
    if title is not None and not title.strip():
        console.print("[red]Title must not be empty.[/red]")
        raise typer.Exit(1)

    settings = load_settings()
    with open_workspace(ctx, settings) as workspace:
        try:
            note = workspace.update_note(note_id, **changes)
        except KeyError:
            console.print(f"[red]Note {note_id} not found.[/red]")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Updated note {note_id}: {note.title}")
        print_warnings(workspace)


@app.command()
def delete(
    ctx: typer.Context,
    note_id: int = typer.Argument(..., help="ID of the note to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Delete a note. Insights generated from it are kept."""
    settings = load_settings()
    with open_workspace(ctx, settings) as workspace:
        note = workspace.get_note(note_id)
        if note is None:
            console.print(f"[red]Note {note_id} not found.[/red]")
            raise typer.Exit(1)

        if not yes and not typer.confirm(f"Delete '{note.title}'?"):
            raise typer.Exit(0)

        workspace.delete_note(note_id)
        console.print(f"[green]✓[/green] Deleted note {note_id}")
        print_warnings(workspace)


@app.command()
def ingest(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True, help="Files to import"
    ),
    no_insights: bool = typer.Option(False, "--no-insights", help="Skip insight generation"),
):
    """
    Import files as notes.

    Supported formats: json, csv, txt (read locally) and docx, pdf, jpg,
    jpeg, png (sent to the extraction service). A CSV file with a
    title,summary,type,priority header becomes one note per row.
    """
    from contextflow.services.extraction_client import ExtractionClient
    from contextflow.services.extractors import ContentExtractor
    from contextflow.services.ingestion import IngestionDispatcher

    settings = load_settings()
    extractor = ContentExtractor(
        remote=ExtractionClient(url=settings.extraction_url, timeout=settings.request_timeout)
    )
    dispatcher = IngestionDispatcher(extractor, generate_insights=not no_insights)
    uploads = [UploadedFile.from_path(path) for path in files]

    with open_workspace(ctx, settings) as workspace:
        with console.status(f"[yellow]Processing {len(uploads)} file(s)...[/yellow]"):
            report = dispatcher.ingest(uploads, workspace)

        for note in report.notes:
            console.print(f"  [green]✓[/green] {note.title}")
        for failure in report.failures:
            console.print(f"  [red]✗[/red] {failure.filename}: {failure.reason}")

        style = OUTCOME_STYLES[report.outcome]
        console.print(f"\n[{style}]{report.message}[/{style}]")

        if report.insight_requests:
            wait_for_insights(workspace)
            outcomes = [f.result() for f in report.insight_requests if f.exception() is None]
            console.print(f"\n[bold]Insights ({len(outcomes)}):[/bold]")
            for outcome in outcomes:
                print_outcome(outcome)

        print_warnings(workspace)

    if report.outcome in (IngestOutcome.NOTHING_PROCESSED, IngestOutcome.STORE_FAILED):
        raise typer.Exit(1)


@app.command()
def insights(
    ctx: typer.Context,
    limit: int = typer.Option(10, "--limit", "-l", help="Max insights to show (0 for all)"),
):
    """Show generated insights, newest first."""
    settings = load_settings()
    with open_workspace(ctx, settings) as workspace:
        items = workspace.snapshot_insights()
        print_warnings(workspace)

    if not items:
        console.print("[yellow]No insights yet. Add some notes first![/yellow]")
        return
    console.print(insights_table(items[:limit] if limit > 0 else items))


@app.command()
def dismiss(
    ctx: typer.Context,
    insight_id: int = typer.Argument(..., help="ID of the insight to dismiss"),
):
    """Dismiss an insight."""
    settings = load_settings()
    with open_workspace(ctx, settings) as workspace:
        if not workspace.dismiss_insight(insight_id):
            print_warnings(workspace)
            console.print(f"[red]Insight {insight_id} not found.[/red]")
            raise typer.Exit(1)

        console.print(f"[green]✓[/green] Dismissed insight {insight_id}")
        print_warnings(workspace)


@app.command()
def insight(
    ctx: typer.Context,
    note_id: int = typer.Argument(..., help="ID of the note to analyze"),
):
    """Generate a new insight for a note."""
    settings = load_settings()
    with open_workspace(ctx, settings) as workspace:
        note = workspace.get_note(note_id)
        if note is None:
            console.print(f"[red]Note {note_id} not found.[/red]")
            raise typer.Exit(1)

        future = workspace.request_insight(note)
        wait_for_insights(workspace)
        if future.exception() is None:
            print_outcome(future.result())
        else:
            console.print("[red]Insight generation failed.[/red]")
        print_warnings(workspace)


@app.command()
def today(ctx: typer.Context):
    """Summarize the notes added today."""
    from contextflow.services.daily_summary import DailySummaryAggregator

    settings = load_settings()
    aggregator = DailySummaryAggregator(
        get_ollama(settings), max_tokens=settings.summary_max_tokens
    )
    with open_workspace(ctx, settings) as workspace:
        with console.status("[yellow]Summarizing today...[/yellow]"):
            summary = workspace.daily_summary(aggregator)
        print_warnings(workspace)

    if summary.is_empty:
        console.print("[dim]No notes added today.[/dim]")
        return
    console.print(f"[bold]{summary.day.isoformat()}[/bold] - {summary.count} note(s)")
    console.print(summary.narrative)


@app.command()
def chat(ctx: typer.Context):
    """Chat with an assistant that knows your notes. Type 'exit' to leave."""
    from contextflow.services.chat_service import ChatOrchestrator, apology_message

    settings = load_settings()
    orchestrator = ChatOrchestrator(
        get_ollama(settings),
        temperature=settings.chat_temperature,
        max_tokens=settings.chat_max_tokens,
    )
    transcript: list[ChatMessage] = []

    with open_workspace(ctx, settings) as workspace:
        print_warnings(workspace)
        console.print(
            f"[bold blue]ContextFlow chat[/bold blue] "
            f"[dim]({len(workspace.notes)} note(s) loaded, 'exit' to quit)[/dim]"
        )
        while True:
            content = typer.prompt("You", default="", show_default=False).strip()
            if content.lower() in ("exit", "quit"):
                break
            if not content:
                continue

            with console.status("[yellow]Thinking...[/yellow]"):
                try:
                    reply = orchestrator.send_message(
                        transcript, content, workspace.snapshot_notes()
                    )
                except ChatServiceError as e:
                    reply = apology_message(e)

            transcript.append(ChatMessage(role=Role.USER, content=content))
            transcript.append(reply)
            console.print(f"[cyan]ContextFlow:[/cyan] {reply.content}\n")


@app.command()
def export(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file"),
    fmt: ExportFormat = typer.Option(ExportFormat.JSON, "--format", "-f", help="json or csv"),
):
    """Export notes and insights to a file."""
    from contextflow.services.data_exporter import DataExporter

    settings = load_settings()
    exporter = DataExporter()
    path = output or Path(exporter.default_filename(fmt.value))

    with open_workspace(ctx, settings) as workspace:
        if fmt == ExportFormat.CSV:
            exporter.write_csv(workspace.snapshot_notes(), path)
        else:
            exporter.write_json(workspace, path)
        print_warnings(workspace)

    console.print(f"[green]✓[/green] Exported to {path}")


@app.command()
def restore(
    ctx: typer.Context,
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Export document (JSON)"),
):
    """Re-import the notes of a JSON export."""
    from contextflow.services.data_exporter import DataExporter

    settings = load_settings()
    exporter = DataExporter()

    with open_workspace(ctx, settings) as workspace:
        try:
            document = exporter.load_document(path)
            notes = exporter.restore(document, workspace)
        except ExtractionError as e:
            console.print(f"[red]Error importing data: {e}[/red]")
            raise typer.Exit(1)
        except StoreError:
            print_warnings(workspace)
            console.print("[red]Error importing data: notes could not be saved.[/red]")
            raise typer.Exit(1)

        console.print(f"[green]✓ Imported {len(notes)} note(s).[/green]")
        print_warnings(workspace)


@app.command()
def status(ctx: typer.Context):
    """Show note and insight statistics."""
    settings = load_settings()

    if not settings.database_path.exists():
        console.print("[yellow]Database not yet initialized. Add a note first.[/yellow]")
        raise typer.Exit(0)

    owner_id = ctx.obj["owner_id"] or settings.owner_id
    repo = get_repository(settings)
    try:
        stats = repo.get_stats(owner_id)
    except StoreError as e:
        console.print(f"[red]Could not read statistics: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"ContextFlow Status ({owner_id})")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")

    table.add_row("Active Notes", str(stats["total_notes"]))
    table.add_row("  Imported", str(stats["imported_notes"]))
    table.add_row("  High Priority", str(stats["high_priority_notes"]))
    table.add_row("Connections Made", str(stats["connections"]))
    table.add_row("", "")
    table.add_row("Insights Generated", str(stats["total_insights"]))
    table.add_row("  Actionable", str(stats["actionable_insights"]))

    console.print(table)


@app.command()
def config(
    check: bool = typer.Option(
        False, "--check", help="Test the Ollama connection and list available models"
    ),
):
    """Show current configuration."""
    settings = load_settings()

    table = Table(title="ContextFlow Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    ollama_key_masked = (
        settings.ollama_api_key[:10] + "..." if len(settings.ollama_api_key) > 10 else "***"
    ) if settings.ollama_api_key else "(from env)"

    table.add_row("Owner", settings.owner_id)
    table.add_row("Ollama Host", settings.ollama_host)
    table.add_row("Ollama Model", settings.ollama_model)
    table.add_row("Ollama API Key", ollama_key_masked)
    table.add_row("Extraction URL", settings.extraction_url)
    table.add_row("Request Timeout", f"{settings.request_timeout:g}s")
    table.add_row("LLM Attempts", str(settings.llm_max_attempts))
    table.add_row("Insight Workers", str(settings.insight_workers))
    table.add_row("Database Path", str(settings.database_path))
    table.add_row("Supported Files", ", ".join(f.value for f in FileFormat))

    console.print(table)

    ollama = get_ollama(settings)
    if not ollama.configured:
        console.print(
            "\n[yellow]Ollama API key not configured. Set CONTEXTFLOW_OLLAMA_API_KEY "
            "or OLLAMA_API_KEY, or CONTEXTFLOW_OLLAMA_REQUIRE_API_KEY=false "
            "for a local server.[/yellow]"
        )

    if check:
        with console.status("[yellow]Checking Ollama connection...[/yellow]"):
            connected = ollama.check_connection()
            models = ollama.list_models() if connected else []

        if not connected:
            console.print(f"\n[red]✗ Cannot connect to Ollama at {ollama.host}[/red]")
            raise typer.Exit(1)

        console.print(f"\n[green]✓[/green] Connected to Ollama at {ollama.host}")
        if models:
            console.print(f"  Available models: {', '.join(models)}")
        if ollama.model_name not in models:
            console.print(
                f"  [yellow]Model {ollama.model_name} is not listed by the server.[/yellow]"
            )


@app.command()
def version():
    """Show version information."""
    console.print(f"ContextFlow v{__version__}")


@app.callback()
def main(
    ctx: typer.Context,
    user: Optional[str] = typer.Option(
        None, "--user", "-u", help="Owner id (default: CONTEXTFLOW_OWNER_ID)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
):
    """
    ContextFlow - personal context assistant.

    Keeps your notes, imports files as notes, derives AI insights from them,
    summarizes your day and chats with your notes as context.
    """
    setup_logging(verbose)
    ctx.obj = {"owner_id": user}


if __name__ == "__main__":
    app()
