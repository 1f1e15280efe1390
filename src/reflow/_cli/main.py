import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from reflow._errors import DefinitionError, InitializationError, UnknownNodeError
from reflow._io import export_to_toml, load_input_overrides, parse_assignments
from reflow._models import Network
from reflow._node import NodeId, parse_node_id

from .config import ConfigError, get_config, run_settings
from .discover import load_network_from_module_path, load_network_from_script, load_network_from_source
from .render import render_dependencies, render_order, render_results, unit_table

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors)
err_console = Console(stderr=True)
# Console for stdout (results)
out_console = Console()

PathArgument = Annotated[
    str | None,
    typer.Argument(
        help="Path to Python script or module path (e.g., examples.running:network). "
        "Defaults to the network configured in pyproject.toml",
    ),
]
NetworkOption = Annotated[
    str | None,
    typer.Option("--network", help="Name of the network variable (for script paths only)"),
]


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """Reflow CLI."""
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


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]✗ {escape(message)}[/red]")
    err_console.print()
    return typer.Exit(code=1)


def _load_network(path: str | None, network_var: str | None) -> Network:
    """Load the network named on the command line, or the one configured in pyproject.toml."""
    err_console.print()

    if path is None:
        try:
            config = get_config()
        except ConfigError as e:
            raise _fail(str(e)) from e
        if config.network is None:
            msg = "No network given. Pass PATH or set [tool.reflow].network in pyproject.toml"
            raise _fail(msg)
        err_console.print("[cyan]Loading network from pyproject.toml[/cyan]")
        network = load_network_from_source(config.network)
    elif ":" in path:
        # Module path format
        err_console.print(f"[cyan]Loading network from module:[/cyan] {path}")
        network = load_network_from_module_path(path)
    else:
        # Script path format
        script_path = Path(path)
        err_console.print(f"[cyan]Loading network from script:[/cyan] {script_path}")
        network = load_network_from_script(script_path, network_var)

    err_console.print(f"[cyan]Network:[/cyan] [bold]{escape(network.name)}[/bold]")
    err_console.print()
    return network


def _parse_node(node: str) -> NodeId:
    try:
        return parse_node_id(node)
    except ValueError as e:
        raise _fail(str(e)) from e


@app.command()
def check(
    path: PathArgument = None,
    *,
    network_var: NetworkOption = None,
) -> None:
    """Check the validity of a network without evaluating it."""
    network = _load_network(path, network_var)

    err_console.print("[cyan]Validating dependencies...[/cyan]")
    try:
        graph_spec = network.graph_spec()
    except DefinitionError as e:
        raise _fail(str(e)) from e
    err_console.print()

    err_console.print(
        Panel(
            unit_table(graph_spec),
            title=f"[bold]Network: {escape(network.name)}[/bold]",
            subtitle=f"[dim]{len(graph_spec.unit_names)} units, {len(graph_spec)} nodes[/dim]",
            border_style="cyan",
        ),
    )

    err_console.print()
    err_console.print("[green]✓ Network is valid[/green]")
    err_console.print()


@app.command()
def order(
    path: PathArgument = None,
    *,
    network_var: NetworkOption = None,
    unit: Annotated[
        str | None,
        typer.Option("--unit", help="Only show the nodes of this unit"),
    ] = None,
) -> None:
    """Show the order in which nodes are evaluated."""
    network = _load_network(path, network_var)

    try:
        graph_spec = network.graph_spec()
    except DefinitionError as e:
        raise _fail(str(e)) from e

    if unit is not None and unit not in graph_spec.unit_names:
        available = ", ".join(graph_spec.unit_names)
        msg = f"Unknown unit '{unit}'. Available units: {available}"
        raise _fail(msg)

    node_order = graph_spec.graph.topological_order()
    if unit is not None:
        node_order = [node_id for node_id in node_order if node_id.unit == unit]

    render_order(graph_spec, node_order, out_console)


@app.command()
def deps(
    path: Annotated[
        str,
        typer.Argument(help="Path to Python script or module path (e.g., examples.running:network)"),
    ],
    node: Annotated[
        str,
        typer.Argument(help="Node to inspect, as 'Unit::member' or 'Unit.member'"),
    ],
    *,
    network_var: NetworkOption = None,
) -> None:
    """Show what a node depends on and what depends on it."""
    network = _load_network(path, network_var)
    node_id = _parse_node(node)

    try:
        graph_spec = network.graph_spec()
    except DefinitionError as e:
        raise _fail(str(e)) from e

    if node_id not in graph_spec:
        msg = f"Unknown node '{node_id}'"
        raise _fail(msg)

    render_dependencies(graph_spec, node_id, out_console)


@app.command()
def run(  # noqa: PLR0913
    path: PathArgument = None,
    *,
    network_var: NetworkOption = None,
    input: Annotated[  # noqa: A002
        Path | None,
        typer.Option("-i", "--input", help="Path to input TOML file. Defaults to the input configured in pyproject.toml"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to output TOML file. Defaults to the output configured in pyproject.toml"),
    ] = None,
    assignments: Annotated[
        list[str] | None,
        typer.Option("--set", help="Input write as 'unit.input=value' (repeatable)"),
    ] = None,
) -> None:
    """Apply input writes to a network in a single frame and report the results.

    Exits with a non-zero status if the frame could not be committed.
    """
    network = _load_network(path, network_var)

    try:
        settings = run_settings(input, output)
    except ConfigError as e:
        raise _fail(str(e)) from e

    err_console.print("[cyan]Initializing network...[/cyan]")
    try:
        executor = network.build()
    except (DefinitionError, InitializationError) as e:
        raise _fail(str(e)) from e

    writes: dict[NodeId, Any] = {}
    try:
        if settings.input is not None:
            err_console.print(f"[cyan]Loading input from:[/cyan] {settings.input}")
            writes.update(load_input_overrides(network, settings.input))
        writes.update(parse_assignments(assignments or []))
    except (ValueError, ValidationError) as e:
        raise _fail(str(e)) from e

    err_console.print(f"[cyan]Applying {len(writes)} input writes...[/cyan]")
    frame = executor.start_frame()
    try:
        for node_id, value in writes.items():
            frame.set(node_id.unit, node_id.name, value)
    except UnknownNodeError as e:
        executor.rollback_frame()
        raise _fail(str(e)) from e
    result = executor.commit_frame()
    err_console.print()

    if result.success:
        render_results(executor.graph_spec, executor.values, executor.errors, out_console)
    else:
        pending_values: dict[NodeId, Any] = {}
        pending_errors: dict[NodeId, Any] = {}
        for unit_name in executor.units:
            pending_values.update({NodeId(unit_name, k): v for k, v in executor.pending_values(unit_name).items()})
            pending_errors.update({NodeId(unit_name, k): v for k, v in executor.pending_errors(unit_name).items()})
        render_results(executor.graph_spec, pending_values, pending_errors, out_console)
    err_console.print()

    if settings.output is not None:
        err_console.print(f"[cyan]Exporting results to:[/cyan] {settings.output}")
        export_to_toml(executor, settings.output)
        err_console.print()

    if not result.success:
        for node_id in result.failures:
            cause = executor.root_cause(node_id, pending=True)
            if cause == node_id:
                err_console.print(f"[red]✗ {escape(str(node_id))}: {escape(str(result.failures[node_id]))}[/red]")
        err_console.print("[red]✗ Frame was not committed; previous values are kept[/red]")
        err_console.print()
        raise typer.Exit(code=1)

    err_console.print("[green]✓ Frame committed[/green]")
    err_console.print()


@app.command()
def schema(
    path: PathArgument = None,
    *,
    output: Annotated[
        Path,
        typer.Option("-o", "--output", help="Path to output JSON schema file"),
    ],
    network_var: NetworkOption = None,
    indent: Annotated[
        int,
        typer.Option("--indent", help="JSON indentation spaces"),
    ] = 2,
) -> None:
    """Generate JSON schema for the network input file."""
    network = _load_network(path, network_var)

    # Generate input model schema
    err_console.print("[cyan]Generating input model JSON schema...[/cyan]")
    input_model = network.input_model()
    json_schema = input_model.model_json_schema()

    # Write to file
    err_console.print(f"[cyan]Writing schema to:[/cyan] {output}")
    output.parent.mkdir(parents=True, exist_ok=True)
    with output.open("w") as f:
        json.dump(json_schema, f, indent=indent)

    err_console.print()
    err_console.print("[green]✓ Schema generation complete[/green]")
    err_console.print()


def main() -> None:
    app()
