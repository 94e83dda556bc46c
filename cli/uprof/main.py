from typing import Optional
import io
import logging
import os
import pathlib
import sys

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from uprof.config import DEFAULT_PATH, load_config, log_level_of, validate_config_dict
from uprof.model.snapshot import SnapshotError, load_snapshot
from uprof.model.validate import ModelValidationError, validate_model
from uprof.printers.graph import render

__version__ = "0.3.0"

app = typer.Typer(
    help="uprof: render captured call-graph profiles as text graph reports.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Profile report tools."""
    if version:
        Console().print(f"uprof v{__version__}", style="bold cyan")
        raise typer.Exit(0)
    ctx.obj = {"verbose": verbose}
    logging.basicConfig()
    _set_log_level(ctx, load_config())


def _set_log_level(ctx: typer.Context, cfg: dict):
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    logging.getLogger().setLevel(logging.DEBUG if verbose else log_level_of(cfg))


def _print_problems(console: Console, title: str, problems):
    console.print(f"[red]❌ {escape(title)}:[/red]")
    for p in problems:
        console.print(f"  - {p}", markup=False, soft_wrap=True)


def _load_or_exit(console: Console, snapshot: str):
    if not pathlib.Path(snapshot).exists():
        console.print(f"[red]❌ Error:[/red] File '{escape(snapshot)}' does not exist")
        raise typer.Exit(1)
    try:
        return load_snapshot(snapshot)
    except SnapshotError as e:
        _print_problems(console, str(e), e.errors)
        raise typer.Exit(1)
    except ModelValidationError as e:
        _print_problems(console, "Invalid call graph", e.problems)
        raise typer.Exit(1)


@app.command("render")
def render_cmd(
    ctx: typer.Context,
    snapshot: str = typer.Argument(..., help="Path to a JSON profile snapshot"),
    min_percent: Optional[float] = typer.Option(
        None, "--min-percent", "-m", help="Hide methods below this %total"
    ),
    o: Optional[str] = typer.Option(None, "--output", "-o", help="Report file, '-' for stdout"),
    config: str = typer.Option(DEFAULT_PATH, "--config", help="Config file"),
):
    """Render the graph report for a snapshot."""
    console = Console(stderr=True)
    cfg = load_config(config)
    _set_log_level(ctx, cfg)
    errors = validate_config_dict(cfg)
    if errors:
        _print_problems(console, f"Config errors in {config}", errors)
        raise typer.Exit(1)
    if min_percent is None:
        min_percent = cfg["min_percent"]
    if o is None:
        o = cfg["output"]

    graph = _load_or_exit(console, snapshot)
    problems = validate_model(graph)
    if problems:
        _print_problems(console, "Invalid call graph", problems)
        raise typer.Exit(1)
    if not 0 <= min_percent < 100:
        console.print(f"[red]❌ Error:[/red] --min-percent must be in [0, 100), got {min_percent}")
        raise typer.Exit(1)

    try:
        if o == "-":
            render(graph, min_percent, sys.stdout)
        else:
            parent = pathlib.Path(o).parent
            os.makedirs(parent, exist_ok=True)
            buf = io.StringIO()
            render(graph, min_percent, buf)
            with open(o, "w", encoding="utf-8") as f:
                f.write(buf.getvalue())
            console.print(f"[green]✅ Wrote[/green] {escape(o)}")
    except OSError as e:
        console.print(f"[red]❌ Failed to write report:[/red] {escape(str(e))}")
        raise typer.Exit(1)


@app.command()
def validate(snapshot: str = typer.Argument(..., help="Path to a JSON profile snapshot")):
    """Check a snapshot against the schema and the model invariants."""
    console = Console()
    graph = _load_or_exit(console, snapshot)
    problems = validate_model(graph)
    if problems:
        _print_problems(console, "Invalid call graph", problems)
        raise typer.Exit(1)
    console.print(
        f"[green]Snapshot OK[/green] {len(graph)} thread(s), {graph.method_count()} method(s)"
    )


@app.command()
def threads(snapshot: str = typer.Argument(..., help="Path to a JSON profile snapshot")):
    """List the threads of a snapshot in report order."""
    console = Console()
    graph = _load_or_exit(console, snapshot)

    table = Table(title="🧵 Threads", show_header=True, header_style="bold cyan")
    table.add_column("Thread ID", style="cyan")
    table.add_column("Methods", justify="right")
    table.add_column("Top-level", style="white")
    table.add_column("Total", justify="right")
    for thread in graph.sorted_threads():
        top = thread.toplevel()
        table.add_row(
            str(thread.id),
            str(len(thread.methods)),
            top.name if top else "-",
            f"{top.total_time:.2f}" if top else "0.00",
        )
    console.print(table)


@app.command()
def config_validate(path: str = typer.Option(DEFAULT_PATH, "--path")):
    """Validate a .uprof.yml file."""
    console = Console()
    if not os.path.exists(path):
        console.print(f"[yellow]No config found at {escape(path)}[/yellow]")
        raise typer.Exit(code=1)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        console.print(f"[red]YAML error:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)
    if not isinstance(data, dict):
        console.print("[red]Config errors:[/red]")
        console.print("- top level must be a mapping")
        raise typer.Exit(code=1)
    errors = validate_config_dict(data)
    if errors:
        console.print("[red]Config errors:[/red]")
        for e in errors:
            console.print(f"- {e}", markup=False, soft_wrap=True)
        raise typer.Exit(code=1)
    console.print("[green]Config OK[/green]")


if __name__ == "__main__":
    app()
