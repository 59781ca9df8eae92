import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from datamask._context import Vector
from datamask._dataset import Dataset
from datamask._errors import EvalError, RowErrors
from datamask._eval import evaluate, evaluate_rows, filter_rows
from datamask._io import RequestError, RequestFile, export_dataset_to_toml, load_request
from datamask._selector import ColumnInfo, SelectionSpec, everything, names, select

from .config import ConfigError, DatamaskConfig, get_config

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Datamask CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
    )


def _load_config() -> DatamaskConfig:
    try:
        return get_config()
    except ConfigError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


def _load(request: Path | None, config: DatamaskConfig) -> RequestFile:
    """Load the request file given on the command line, or the configured one."""
    path = request or config.input
    if path is None:
        err_console.print("[red]✗ No request file given and no input configured in pyproject.toml[/red]")
        raise typer.Exit(code=1)

    err_console.print(f"[cyan]Loading request from:[/cyan] {path}")
    try:
        loaded = load_request(path)
    except RequestError as e:
        err_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    err_console.print(
        f"[cyan]Dataset:[/cyan] {len(loaded.data.columns)} columns, {loaded.data.n_rows} rows; "
        f"[cyan]scope:[/cyan] {len(loaded.scope)} variables",
    )
    return loaded


def _fail(error: EvalError) -> typer.Exit:
    """Print an error value and return the exit to raise."""
    err_console.print(f"[red]✗ {escape(error.message)}[/red]")
    if isinstance(error, RowErrors):
        table = Table(show_header=True, header_style="bold red", box=None)
        table.add_column("Row", justify="right")
        table.add_column("Error")
        for row, row_error in error.errors:
            table.add_row(str(row), escape(row_error.message))
        err_console.print(table)
    return typer.Exit(code=1)


def _format_cell(value: Any) -> str:
    if value is None:
        return "[dim]NA[/dim]"
    return escape(str(value))


def _render_dataset(dataset: Dataset, max_rows: int, title: str) -> Panel:
    table = Table(show_header=True, header_style="bold cyan")
    for column in dataset.columns:
        justify = "right" if column.type == "numeric" else "left"
        table.add_column(f"{escape(column.name)}\n[dim]{column.type}[/dim]", justify=justify)
    for i in range(min(dataset.n_rows, max_rows)):
        table.add_row(*(_format_cell(column.values[i]) for column in dataset.columns))

    subtitle = f"[dim]{dataset.n_rows} rows[/dim]"
    if dataset.n_rows > max_rows:
        subtitle = f"[dim]showing {max_rows} of {dataset.n_rows} rows[/dim]"
    return Panel(table, title=f"[bold]{title}[/bold]", subtitle=subtitle, border_style="cyan")


@app.command("eval")
def eval_command(
    request: Annotated[
        Path | None,
        typer.Argument(help="Path to request TOML file (defaults to the configured input)"),
    ] = None,
    *,
    rowwise: Annotated[
        bool | None,
        typer.Option("--rowwise/--columnwise", help="Evaluate once per row instead of over whole columns"),
    ] = None,
) -> None:
    """Evaluate the eval expression of a request."""
    config = _load_config()
    loaded = _load(request, config)
    if loaded.eval is None:
        err_console.print("[red]✗ Request has no eval section[/red]")
        raise typer.Exit(code=1)

    row_wise = loaded.eval.rowwise if rowwise is None else rowwise
    expr = loaded.eval.expr
    err_console.print(f"[cyan]Evaluating {'row-wise' if row_wise else 'column-wise'}:[/cyan] {escape(str(expr))}")
    result = (evaluate_rows if row_wise else evaluate)(expr, loaded.data, loaded.scope)
    if result.error is not None:
        raise _fail(result.error)

    value = result.value
    if isinstance(value, (Vector, tuple)) and len(value) == loaded.data.n_rows:
        table = Table(show_header=True, header_style="bold cyan", box=None)
        table.add_column("Row", justify="right", style="dim")
        table.add_column(escape(str(expr)))
        for i, item in enumerate(value[: config.max_rows]):
            table.add_row(str(i), _format_cell(item))
        out_console.print(table)
    else:
        out_console.print(_format_cell(value))


@app.command("filter")
def filter_command(
    request: Annotated[
        Path | None,
        typer.Argument(help="Path to request TOML file (defaults to the configured input)"),
    ] = None,
    *,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to output TOML file for the kept rows"),
    ] = None,
) -> None:
    """Keep the rows matching the filter predicate of a request."""
    config = _load_config()
    loaded = _load(request, config)
    if loaded.filter is None:
        err_console.print("[red]✗ Request has no filter section[/red]")
        raise typer.Exit(code=1)

    err_console.print(f"[cyan]Filtering where:[/cyan] {escape(str(loaded.filter.where))}")
    result = filter_rows(loaded.filter.where, loaded.data, loaded.scope)
    if result.error is not None:
        raise _fail(result.error)

    dataset = result.unwrap()
    out_console.print(_render_dataset(dataset, config.max_rows, "Filtered rows"))

    if output is not None:
        err_console.print(f"[cyan]Exporting rows to:[/cyan] {output}")
        export_dataset_to_toml(dataset, output)

    err_console.print(f"[green]✓ Kept {dataset.n_rows} of {loaded.data.n_rows} rows[/green]")


@app.command("select")
def select_command(
    request: Annotated[
        Path | None,
        typer.Argument(help="Path to request TOML file (defaults to the configured input)"),
    ] = None,
    *,
    columns: Annotated[
        str | None,
        typer.Option("-c", "--columns", help="Comma-separated column names, overriding the select section"),
    ] = None,
    strict: Annotated[
        bool | None,
        typer.Option("--strict/--lenient", help="Fail on missing --columns names, or drop them"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to output TOML file for the selected columns"),
    ] = None,
) -> None:
    """Resolve a column selection and show the selected columns."""
    config = _load_config()
    loaded = _load(request, config)

    spec: SelectionSpec
    if columns is not None:
        requested = [name.strip() for name in columns.split(",") if name.strip()]
        spec = names(*requested, strict=config.strict if strict is None else strict)
    elif loaded.select is not None:
        spec = loaded.select
    else:
        spec = everything()

    result = select(spec, loaded.data)
    if result.error is not None:
        raise _fail(result.error)

    for name in result.columns:
        out_console.print(escape(name))

    if output is not None:
        err_console.print(f"[cyan]Exporting columns to:[/cyan] {output}")
        export_dataset_to_toml(loaded.data.project(result.columns), output)

    err_console.print(f"[green]✓ Selected {len(result.columns)} of {len(loaded.data.columns)} columns[/green]")


@app.command("columns")
def columns_command(
    request: Annotated[
        Path | None,
        typer.Argument(help="Path to request TOML file (defaults to the configured input)"),
    ] = None,
) -> None:
    """Show column metadata as seen by selection predicates."""
    config = _load_config()
    loaded = _load(request, config)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Column", style="bold")
    table.add_column("Type")
    table.add_column("Missing", justify="right", style="yellow")
    table.add_column("Distinct", justify="right")
    table.add_column("Min", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("Mean", justify="right")

    for name in loaded.data.column_names:
        info = ColumnInfo.of(loaded.data, name)
        mean = info.mean
        table.add_row(
            str(info.position),
            escape(name),
            str(info.type),
            str(info.n_missing),
            str(info.n_distinct),
            _format_cell(info.minimum),
            _format_cell(info.maximum),
            _format_cell(None if mean is None else round(mean, 4)),
        )

    out_console.print(Panel(table, title="[bold]Columns[/bold]", border_style="cyan"))


def main() -> None:
    app()
