"""Rich rendering utilities for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from reflow._ir import NodeKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from rich.console import Console

    from reflow._eval_engine import Failure
    from reflow._ir import GraphSpec
    from reflow._node import NodeId


def _get_kind_style(kind: NodeKind) -> str:
    match kind:
        case NodeKind.INPUT:
            return "blue"
        case NodeKind.DERIVED:
            return "green"


def _format_value(value: Any) -> str:
    text = repr(value)
    # Truncate long values
    if len(text) > 60:
        text = text[:57] + "..."
    return escape(text)


def unit_table(graph_spec: GraphSpec) -> Table:
    """Build a per-unit summary of inputs, derived values and connected inputs.

    Args:
        graph_spec: Graph specification of the network.

    Returns:
        A Rich table with one row per unit.

    """
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Unit", style="bold")
    table.add_column("Inputs", justify="right", style="blue")
    table.add_column("Derived", justify="right", style="green")
    table.add_column("Connected inputs", justify="right", style="yellow")

    for unit_name in graph_spec.unit_names:
        nodes = graph_spec.get_nodes_in_unit(unit_name)
        inputs = [node for node in nodes if node.is_input()]
        connected = [node for node in inputs if node.id in graph_spec.connections]
        table.add_row(unit_name, str(len(inputs)), str(len(nodes) - len(inputs)), str(len(connected)))

    return table


def render_order(graph_spec: GraphSpec, order: Iterable[NodeId], console: Console) -> None:
    """Render an evaluation order as a numbered table."""
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Node")
    table.add_column("Kind")
    table.add_column("Description", style="dim")

    for index, node_id in enumerate(order, start=1):
        node = graph_spec.get_node(node_id)
        kind_style = _get_kind_style(node.kind)
        table.add_row(
            str(index),
            escape(str(node_id)),
            f"[{kind_style}]{node.kind.upper()}[/{kind_style}]",
            escape(node.metadata.get("description", "")),
        )

    console.print(table)


def render_dependencies(graph_spec: GraphSpec, node_id: NodeId, console: Console) -> None:
    """Render the direct and transitive dependencies of a node as a tree.

    Dependents (nodes that recompute when this one changes) are listed below the tree.
    """
    graph = graph_spec.graph
    node = graph_spec.get_node(node_id)
    kind_style = _get_kind_style(node.kind)

    rich_tree = Tree(f"[bold]{escape(str(node_id))}[/bold] [{kind_style}]{node.kind.upper()}[/{kind_style}]")
    _add_tree_children(rich_tree, graph_spec, node.dependencies)
    console.print(rich_tree)
    console.print()

    if "description" in node.metadata:
        console.print(f"[cyan]Description:[/cyan] {escape(node.metadata['description'])}")
    for key, value in node.metadata.get("options", {}).items():
        console.print(f"[cyan]Option {escape(key)}:[/cyan] {_format_value(value)}")

    dependents = sorted(graph.descendants(node_id))
    if dependents:
        console.print(f"[cyan]Dependents ({len(dependents)} transitive):[/cyan]")
        for dependent in dependents:
            console.print(f"  {escape(str(dependent))}")
    else:
        console.print("[cyan]Dependents:[/cyan] [dim]None[/dim]")


def _add_tree_children(parent: Tree, graph_spec: GraphSpec, dependencies: Iterable[NodeId]) -> None:
    for dep in dependencies:
        child_tree = parent.add(escape(str(dep)))
        _add_tree_children(child_tree, graph_spec, graph_spec.get_node(dep).dependencies)


def render_results(
    graph_spec: GraphSpec,
    values: Mapping[NodeId, Any],
    errors: Mapping[NodeId, Failure],
    console: Console,
) -> None:
    """Render values and failures of every node, grouped by unit."""
    table = Table(show_header=True, header_style="bold cyan", box=None)
    table.add_column("Node", style="dim")
    table.add_column("Value")
    table.add_column("Status")

    for unit_name in graph_spec.unit_names:
        for node in graph_spec.get_nodes_in_unit(unit_name):
            failure = errors.get(node.id)
            status = "[green]✓ OK[/green]" if failure is None else f"[red]✗ {escape(str(failure))}[/red]"
            table.add_row(escape(str(node.id)), _format_value(values.get(node.id)), status)

    console.print(table)
