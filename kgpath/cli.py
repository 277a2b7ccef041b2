"""kgpath command line."""
import asyncio
import json
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
import typer
import uvicorn

from .ars import ARSClient, ARSRequestError
from .caching import clear_cache
from .config import settings
from .enrich import enrich_rows
from .export import write_export
from .flatten import MalformedResponse, flatten
from .models import FlattenResult
from .paths import analyze_paths, analyze_subject
from .rows import as_rows, rows_for_subject, subject_stats, unique_subjects
from .utils import setup_logging

app = typer.Typer(
    name="kgpath",
    help="Flatten ARS knowledge graph responses and analyze paths between result nodes.",
)
console = Console()


def load_rows(path: Path) -> list:
    """Read rows from a JSON export, a /flatten response or a bare list."""
    with open(path, "r", encoding="utf-8") as stream:
        data = json.load(stream)
    if isinstance(data, dict):
        data = data.get("data", data.get("rows", []))
    return as_rows(data)


def _report(result: FlattenResult, output_dir: Path, fmt: str):
    metadata = result.metadata
    console.print(Panel(
        f"Results: {metadata.results_count}  Nodes: {metadata.nodes_count}  "
        f"Edges: {metadata.edges_count}  Support graphs: {metadata.support_graphs_count}\n"
        f"Rows: {metadata.total_rows} ({metadata.primary_rows} primary, "
        f"{metadata.support_rows} support)  "
        f"Unresolved references: {len(metadata.unresolved_references)}",
        title="[bold green]Flattened[/bold green]",
    ))
    if not result.rows:
        console.print("[yellow]No rows to export.[/yellow]")
        return
    path = write_export(result.rows, output_dir, fmt, metadata)
    console.print(f"Wrote [bold cyan]{path}[/bold cyan]")


@app.command(name="flatten", help="Flatten a saved API response into rows.")
def flatten_file(
    response_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    pk: Optional[str] = typer.Option(None, "--pk", help="Primary key of the message."),
    environment: Optional[str] = typer.Option(None, "--environment", "-e"),
    fmt: str = typer.Option("csv", "--format", "-f", help="csv or json"),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-o"),
):
    with open(response_file, "r", encoding="utf-8") as stream:
        response = json.load(stream)
    try:
        result = flatten(response, pk, environment)
    except MalformedResponse as e:
        console.print(Panel(f"[bold red]{e}", title="[bold red]Malformed response[/bold red]"))
        raise typer.Exit(code=1)
    _report(result, output_dir, fmt)


@app.command(name="fetch", help="Fetch a message from the ARS and flatten it.")
def fetch(
    pk: str = typer.Argument(...),
    environment: str = typer.Option(settings.ars_environment, "--environment", "-e"),
    fmt: str = typer.Option("csv", "--format", "-f", help="csv or json"),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-o"),
    abstracts: bool = typer.Option(False, "--abstracts/--no-abstracts", help="Attach PubMed abstracts."),
    abstract_limit: Optional[int] = typer.Option(None, "--abstract-limit", help="Most recent abstracts per row."),
):
    async def run():
        response = await ARSClient(environment).fetch_message(pk)
        result = flatten(response, pk, environment)
        if abstracts:
            await enrich_rows(result.rows, limit=abstract_limit)
        return result

    try:
        result = asyncio.run(run())
    except (ARSRequestError, MalformedResponse) as e:
        console.print(Panel(f"[bold red]{e}", title="[bold red]Fetch failed[/bold red]"))
        raise typer.Exit(code=1)
    _report(result, output_dir, fmt)


@app.command(name="subjects", help="List result subjects in a rows file.")
def subjects(rows_file: Path = typer.Argument(..., exists=True, dir_okay=False)):
    rows = load_rows(rows_file)
    table = Table(title="Result subjects")
    table.add_column("Subject")
    table.add_column("Rows", justify="right")
    table.add_column("With publications", justify="right")
    for subject in unique_subjects(rows):
        stats = subject_stats(rows, subject)
        table.add_row(subject, str(stats["phrase_count"]), str(stats["publication_count"]))
    console.print(table)


@app.command(name="paths", help="Find paths from a result subject to its object.")
def paths(
    rows_file: Path = typer.Argument(..., exists=True, dir_okay=False),
    subject: str = typer.Argument(...),
    object_name: Optional[str] = typer.Option(None, "--object", help="Defaults to the subject's result object."),
    max_paths: Optional[int] = typer.Option(None, "--max-paths"),
    as_json: bool = typer.Option(False, "--json", help="Print the analysis as JSON."),
):
    rows = load_rows(rows_file)
    if object_name is None:
        analysis = analyze_subject(rows, subject, max_paths)
    else:
        analysis = analyze_paths(rows_for_subject(rows, subject), subject, object_name, max_paths)

    if as_json:
        console.print_json(data=analysis.model_dump(by_alias=True))
        return

    console.print(Panel(
        f"Found {len(analysis.paths)} distinct paths between "
        f"{analysis.subject} and {analysis.object}"
        + (" (truncated)" if analysis.truncated else ""),
        border_style="cyan",
    ))
    for index, path in enumerate(analysis.paths, start=1):
        console.print(f"[bold]Path {index}[/bold]")
        for number, step in enumerate(path, start=1):
            console.print(f"  {number}. {step.from_node} → {step.predicate} → {step.to_node}")

    table = Table(title="Node participation")
    table.add_column("Node")
    table.add_column("Paths", justify="right")
    table.add_column("Share", justify="right")
    table.add_column("Roles")
    for name, entry in analysis.participation.items():
        style = "bold red" if entry.is_bottleneck else None
        table.add_row(
            name,
            str(entry.count),
            f"{entry.ratio * 100:.1f}%",
            ", ".join(entry.roles),
            style=style,
        )
    console.print(table)


@app.command(name="clear-cache", help="Clear cached ARS messages.")
def clear_ars_cache():
    asyncio.run(clear_cache())
    console.print("[green]Cache cleared.[/green]")


@app.command(name="serve", help="Run the HTTP API.")
def serve(
    host: str = typer.Option("0.0.0.0", "--host"),
    port: int = typer.Option(5781, "--port"),
    reload: bool = typer.Option(False, "--reload"),
):
    uvicorn.run("kgpath.server:APP", host=host, port=port, reload=reload)


@app.callback()
def main():
    setup_logging()


if __name__ == "__main__":
    app()
