"""Typer-based CLI for CodeGraph TS single-file analysis."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__, config
from .analyzer import analysis_envelope, analyze
from .config import load_settings
from .graph_export import EDGE_KINDS, filter_graph, render_dot, render_json
from .models import AnalysisResult, CallRecord

app = typer.Typer(
    help="CodeGraph TS: imports, exports, ranked calls and a call/dataflow graph for one JS/TS file.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"CodeGraph TS v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """CodeGraph TS: static call-graph analysis of a single source file."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _read_source(file: Path) -> str:
    if not file.is_file():
        raise typer.BadParameter(f"File not found: {file}")
    try:
        return file.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read {file}: {exc}") from exc


def _run(file: Path, language_id: str) -> tuple[str, AnalysisResult]:
    text = _read_source(file)
    return text, analyze(text, str(file.resolve()), language_id, load_settings())


def _emit(text: str, output: Optional[Path]) -> None:
    if output is None:
        typer.echo(text)
        return
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]Wrote[/green] [cyan]{output}[/cyan]")


def _location(call: CallRecord) -> str:
    if call.decl_file is None or call.decl_range is None:
        return "[dim]unresolved[/dim]"
    start = call.decl_range.start
    return f"{Path(call.decl_file).name}:{start.line + 1}:{start.character + 1}"


def _calls_table(calls: List[CallRecord], title: str = "Calls") -> Table:
    table = Table(title=title, show_header=True, show_lines=False)
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Callee", style="cyan", min_width=20)
    table.add_column("Count", justify="right", width=6)
    table.add_column("Declaration", min_width=20)
    table.add_column("External", width=8)
    for i, call in enumerate(calls, 1):
        table.add_row(
            str(i),
            call.callee_name,
            str(call.count),
            _location(call),
            "yes" if call.is_external else "",
        )
    return table


@app.command("analyze")
def analyze_file(
    file: Path = typer.Argument(..., help="JavaScript / TypeScript file to analyze."),
    language_id: str = typer.Option("", "--language-id", "-l", help="Editor language id (e.g. typescriptreact)."),
    as_json: bool = typer.Option(False, "--json", help="Print the analysis envelope as JSON."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write JSON to this file."),
):
    """Analyze one file: imports, exports, ranked calls and graph summary."""
    text, result = _run(file, language_id)

    if as_json or output is not None:
        envelope = analysis_envelope(text, str(file.resolve()), language_id, result)
        _emit(json.dumps(envelope, indent=2, ensure_ascii=False), output)
        return

    console.print(Panel.fit(f"[bold]{file.name}[/bold]  {len(text)} chars", title="CodeGraph TS"))

    imports = Table(title="Imports", show_header=True)
    imports.add_column("Source", style="cyan")
    imports.add_column("Kind", width=12)
    imports.add_column("Specifiers")
    for record in result.imports:
        imports.add_row(record.source, record.kind, ", ".join(record.specifiers))
    console.print(imports)

    exports = Table(title="Exports", show_header=True)
    exports.add_column("Name", style="cyan")
    exports.add_column("Kind", width=12)
    for record in result.exports:
        exports.add_row(record.name, record.kind)
    console.print(exports)

    console.print(_calls_table(result.calls))

    by_kind = {kind: sum(1 for e in result.graph.edges if e.kind == kind) for kind in EDGE_KINDS}
    console.print(
        f"[bold]Graph:[/bold] {len(result.graph.nodes)} nodes | "
        + " | ".join(f"{kind}: {count}" for kind, count in by_kind.items())
    )


@app.command("calls")
def calls(
    file: Path = typer.Argument(..., help="JavaScript / TypeScript file to analyze."),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Number of entries to show."),
    language_id: str = typer.Option("", "--language-id", "-l", help="Editor language id."),
):
    """Show the most frequent call / construct targets."""
    _, result = _run(file, language_id)
    if not result.calls:
        console.print("[yellow]No calls found.[/yellow]")
        return
    console.print(_calls_table(result.calls[:limit], title=f"Top calls in {file.name}"))


@app.command("graph")
def graph(
    file: Path = typer.Argument(..., help="JavaScript / TypeScript file to analyze."),
    fmt: str = typer.Option("json", "--format", "-f", help="Output format: json or dot."),
    kind: Optional[List[str]] = typer.Option(None, "--kind", "-k", help="Edge kinds to keep (repeatable)."),
    focus: str = typer.Option("", "--focus", help="Keep only edges touching nodes matching this text."),
    language_id: str = typer.Option("", "--language-id", "-l", help="Editor language id."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the graph to this file."),
):
    """Export the declaration graph as JSON or Graphviz DOT."""
    fmt = fmt.lower()
    if fmt not in ("json", "dot"):
        raise typer.BadParameter("Format must be 'json' or 'dot'.")
    unknown = [k for k in (kind or []) if k not in EDGE_KINDS]
    if unknown:
        raise typer.BadParameter(f"Unknown edge kind(s): {', '.join(unknown)}. Use: {', '.join(EDGE_KINDS)}.")

    _, result = _run(file, language_id)
    selected = filter_graph(result.graph, kind, focus)
    _emit(render_dot(selected) if fmt == "dot" else render_json(selected), output)


@app.command("config")
def show_config():
    """Print the effective analysis settings."""
    settings = load_settings()
    table = Table(title="Analysis settings", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in settings.to_dict().items():
        table.add_row(key, ", ".join(value) if isinstance(value, list) else str(value))
    console.print(table)
    source = config.CONFIG_FILE if config.CONFIG_FILE.exists() else "defaults"
    console.print(f"[dim]Source: {source}[/dim]")
