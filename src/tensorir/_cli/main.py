import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tensorir._errors import IRBuilderError
from tensorir._ir import IntImm, IRModule, PrimExpr, Var
from tensorir._tasks import extract_tasks

from .config import ConfigError, TensorIRConfig, get_config
from .discover import load_module_from_import_path, load_module_from_script, load_module_from_source

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
    """TensorIR CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

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


def _load_module(path: str | None, config: TensorIRConfig, module_var: str | None) -> IRModule:
    """Load the IRModule from the CLI path, or from [tool.tensorir].module."""
    if path is not None:
        if ":" in path:
            err_console.print(f"[cyan]Loading module from:[/cyan] {path}")
            return load_module_from_import_path(path)
        script_path = Path(path)
        err_console.print(f"[cyan]Loading module from script:[/cyan] {script_path}")
        return load_module_from_script(script_path, module_var)

    if config.module is None:
        msg = "No module specified. Provide a path argument or configure [tool.tensorir].module in pyproject.toml."
        raise typer.BadParameter(msg)
    err_console.print(f"[cyan]Loading module from config:[/cyan] {escape(str(config.module))}")
    return load_module_from_source(config.module, module_var)


def _load_or_exit(path: str | None, module_var: str | None) -> tuple[IRModule, TensorIRConfig]:
    try:
        config = get_config()
    except ConfigError as e:
        err_console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    try:
        mod = _load_module(path, config, module_var)
    except (typer.BadParameter, IRBuilderError) as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e
    return mod, config


def _format_expr(expr: PrimExpr) -> str:
    match expr:
        case IntImm(value=value):
            return str(value)
        case Var(name=name):
            return name
        case _:
            return type(expr).__name__


@app.command()
def tasks(
    path: Annotated[
        str | None,
        typer.Argument(help="Path to Python script or module path (e.g., examples.matmul:mod)"),
    ] = None,
    *,
    target: Annotated[
        str | None,
        typer.Option("--target", help="Compilation target recorded on each task"),
    ] = None,
    module_var: Annotated[
        str | None,
        typer.Option("--module-var", help="Name of the IRModule variable (for script paths only)"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the task summaries as JSON"),
    ] = False,
) -> None:
    """Extract deduplicated tuning tasks from a module."""
    mod, config = _load_or_exit(path, module_var)
    effective_target = target if target is not None else config.target

    try:
        extracted = extract_tasks(mod, effective_target)
    except (TypeError, KeyError) as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e

    summaries = [task.summary() for task in extracted]
    if as_json:
        typer.echo(json.dumps([summary.model_dump() for summary in summaries], indent=2))
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Task", style="bold")
    table.add_column("Weight", justify="right", style="yellow")
    table.add_column("Params", justify="right", style="green")

    for summary in summaries:
        table.add_row(escape(summary.task_name), str(summary.weight), str(summary.num_params))

    out_console.print(
        Panel(
            table,
            title=f"[bold]Tasks for target: {escape(effective_target)}[/bold]",
            subtitle=f"[dim]{len(summaries)} tasks[/dim]",
            border_style="cyan",
        ),
    )


@app.command()
def funcs(
    path: Annotated[
        str | None,
        typer.Argument(help="Path to Python script or module path (e.g., examples.matmul:mod)"),
    ] = None,
    *,
    module_var: Annotated[
        str | None,
        typer.Option("--module-var", help="Name of the IRModule variable (for script paths only)"),
    ] = None,
) -> None:
    """List the prim functions of a module with their parameters."""
    mod, _ = _load_or_exit(path, module_var)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Function", style="bold")
    table.add_column("Parameter")
    table.add_column("Buffer", style="green")

    for global_var, func in mod.prim_funcs():
        name = global_var.name_hint
        if not func.params:
            table.add_row(escape(name), "", "")
        for param in func.params:
            buffer = func.buffer_of(param)
            if buffer is None:
                buffer_text = f"{param.dtype}"
            else:
                shape = ", ".join(_format_expr(dim) for dim in buffer.shape)
                buffer_text = f"{buffer.name}: {buffer.dtype}[{shape}]"
            table.add_row(escape(name), escape(param.name), escape(buffer_text))
            name = ""

    out_console.print(Panel(table, title="[bold]Prim functions[/bold]", border_style="cyan"))


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
