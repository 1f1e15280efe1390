"""Builder function to construct the global graph from unit specs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from reflow._graph import DependencyGraph

from ._graph_spec import GraphSpec
from ._node_spec import NodeKind, NodeSpec

if TYPE_CHECKING:
    from collections.abc import Iterable

    from reflow._node import NodeId

    from ._unit_spec import Connection, UnitSpec

logger = logging.getLogger(__name__)


def build_graph_spec(units: Iterable[UnitSpec], connections: Iterable[Connection] = ()) -> GraphSpec:
    """Build a GraphSpec from unit specs and cross-unit connections.

    The function:
    1. Creates an INPUT node for every input of every unit, so each input
       receives a value during initialization even if nothing depends on it
    2. Creates a DERIVED node for every derived value, with an edge from each
       declared dependency qualified by the unit name
    3. Adds an edge from each connection's source value to its target input

    No validation happens here; unknown names and cycles must be rejected
    before the graph is built.

    Args:
        units: Unit specs in registration order.
        connections: Connections between units.

    Returns:
        A GraphSpec containing all nodes, their dependencies and the global graph.

    """
    units = list(units)
    connections = list(connections)

    nodes: dict[NodeId, NodeSpec] = {}
    edges: list[tuple[NodeId, NodeId]] = []
    connection_table: dict[NodeId, NodeId] = {conn.target: conn.source for conn in connections}

    for unit in units:
        for input_name, input_spec in unit.inputs.items():
            node_id = unit.node_id(input_name)
            source = connection_table.get(node_id)
            metadata: dict[str, Any] = {}
            if input_spec.description:
                metadata["description"] = input_spec.description
            if input_spec.options:
                metadata["options"] = dict(input_spec.options)
            nodes[node_id] = NodeSpec(
                id=node_id,
                kind=NodeKind.INPUT,
                dependencies=(source,) if source is not None else (),
                initial=input_spec.initial,
                metadata=metadata,
            )

        for derived_name, derived_spec in unit.derived.items():
            node_id = unit.node_id(derived_name)
            deps = tuple(unit.node_id(dep) for dep in derived_spec.depends_on)
            edges.extend((dep, node_id) for dep in deps)
            metadata = {}
            if derived_spec.description:
                metadata["description"] = derived_spec.description
            nodes[node_id] = NodeSpec(
                id=node_id,
                kind=NodeKind.DERIVED,
                dependencies=deps,
                compute_fn=derived_spec.compute_fn,
                stateful=unit.stateful,
                metadata=metadata,
            )

    edges.extend((conn.source, conn.target) for conn in connections)

    graph = DependencyGraph.from_edges(edges, nodes=nodes.keys())
    logger.debug(
        "Built graph with %d nodes, %d edges from %d units and %d connections",
        len(graph),
        len(edges),
        len(units),
        len(connections),
    )

    return GraphSpec(
        nodes=nodes,
        unit_names=tuple(unit.name for unit in units),
        graph=graph,
        connections=connection_table,
    )
