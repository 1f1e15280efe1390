"""Graph specification containing all node specs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from reflow._graph import DependencyGraph

if TYPE_CHECKING:
    from reflow._node import NodeId

    from ._node_spec import NodeKind, NodeSpec


@dataclass(frozen=True, slots=True)
class GraphSpec:
    """Specification of the entire computation graph.

    This is an immutable collection of NodeSpecs, the global dependency
    graph built from them, and the connection table used to resolve
    connected inputs.

    Attributes:
        nodes: Mapping from node ID to NodeSpec.
        unit_names: Tuple of unit names in registration order.
        graph: Dependency graph over all node IDs.
        connections: Mapping from connected input to the derived value feeding it.

    Example:
        >>> spec = build_graph_spec([run_unit], [])
        >>> spec.get_nodes_by_kind(NodeKind.DERIVED)
        [NodeSpec(id=NodeId(unit='Run', name='pace'), ...)]

    """

    nodes: dict[NodeId, NodeSpec] = field(default_factory=dict)
    unit_names: tuple[str, ...] = field(default_factory=tuple)
    graph: DependencyGraph[NodeId] = field(default_factory=DependencyGraph)
    connections: dict[NodeId, NodeId] = field(default_factory=dict)

    def get_node(self, node_id: NodeId) -> NodeSpec:
        """Get a node by its ID.

        Raises:
            KeyError: If no node exists with the given ID.

        """
        return self.nodes[node_id]

    def get_nodes_by_kind(self, kind: NodeKind) -> list[NodeSpec]:
        """Get all nodes of a specific kind."""
        return [node for node in self.nodes.values() if node.kind == kind]

    def get_nodes_in_unit(self, unit_name: str) -> list[NodeSpec]:
        """Get all nodes in a specific unit."""
        return [node for node in self.nodes.values() if node.id.unit == unit_name]

    def connection_source(self, target: NodeId) -> NodeId | None:
        """Get the derived value connected to an input, or None if it is unconnected."""
        return self.connections.get(target)

    def __len__(self) -> int:
        """Return the number of nodes in the graph."""
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        """Check if a node exists with the given ID."""
        return node_id in self.nodes
