"""Generic dependency graph abstraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ._algorithms import CycleError, topological_sort

if TYPE_CHECKING:
    from collections.abc import Iterable


def _ordered[T](adjacency: dict[T, dict[T, None]]) -> dict[T, tuple[T, ...]]:
    return {node: tuple(neighbors) for node, neighbors in adjacency.items()}


@dataclass(frozen=True, slots=True)
class DependencyGraph[T]:
    """A directed acyclic graph representing dependencies between nodes.

    This is a pure, immutable data structure with query methods.
    It is generic over the node type T (e.g., str, int, NodeId).

    The graph represents "depends on" relationships:
    - predecessors[b] = (a,) means "b depends on a"
    - successors[a] = (b,) means "a is depended on by b"

    Adjacency is stored as tuples in edge insertion order, so every
    traversal and ordering derived from the graph is deterministic.

    Attributes:
        _predecessors: Mapping from node to its direct dependencies.
        _successors: Mapping from node to nodes that depend on it.

    """

    _predecessors: dict[T, tuple[T, ...]] = field(default_factory=dict)
    _successors: dict[T, tuple[T, ...]] = field(default_factory=dict)

    @classmethod
    def from_edges(cls, edges: Iterable[tuple[T, T]], nodes: Iterable[T] = ()) -> DependencyGraph[T]:
        """Build a graph from (source, target) edges plus optional isolated nodes.

        An edge (a, b) means "b depends on a" (a -> b in the DAG).

        Args:
            edges: Iterable of (source, target) tuples.
            nodes: Nodes to include even if no edge touches them.

        Returns:
            A new DependencyGraph instance.

        Example:
            >>> # b depends on a, c depends on b
            >>> graph = DependencyGraph.from_edges([("a", "b"), ("b", "c")])
            >>> graph.predecessors("b")
            frozenset({'a'})

        """
        predecessors: dict[T, dict[T, None]] = {}
        successors: dict[T, dict[T, None]] = {}

        for node in nodes:
            predecessors.setdefault(node, {})
            successors.setdefault(node, {})

        for src, dst in edges:
            predecessors.setdefault(src, {})
            successors.setdefault(src, {})[dst] = None
            predecessors.setdefault(dst, {})[src] = None
            successors.setdefault(dst, {})

        return cls(
            _predecessors=_ordered(predecessors),
            _successors=_ordered(successors),
        )

    @property
    def nodes(self) -> frozenset[T]:
        """All nodes in the graph."""
        return frozenset(self._predecessors.keys()) | frozenset(self._successors.keys())

    def predecessors(self, node: T) -> frozenset[T]:
        """Get direct dependencies of a node (nodes it depends on)."""
        return frozenset(self._predecessors.get(node, ()))

    def successors(self, node: T) -> frozenset[T]:
        """Get direct dependents of a node (nodes that depend on it)."""
        return frozenset(self._successors.get(node, ()))

    def roots(self) -> frozenset[T]:
        """Get nodes with no predecessors (input/source nodes)."""
        return frozenset(n for n in self.nodes if not self._predecessors.get(n))

    def leaves(self) -> frozenset[T]:
        """Get nodes with no successors (output/sink nodes)."""
        return frozenset(n for n in self.nodes if not self._successors.get(n))

    def ancestors(self, node: T) -> frozenset[T]:
        """Get all transitive dependencies of a node.

        Args:
            node: The node to query.

        Returns:
            Set of all nodes that this node transitively depends on.

        """
        return self._reach(self._predecessors, [node])

    def descendants(self, node: T) -> frozenset[T]:
        """Get all transitive dependents of a node.

        Args:
            node: The node to query.

        Returns:
            Set of all nodes that transitively depend on this node.

        """
        return self._reach(self._successors, [node])

    def downstream(self, nodes: Iterable[T]) -> frozenset[T]:
        """Get the given nodes together with everything that transitively depends on them.

        Args:
            nodes: Starting nodes (included in the result).

        Returns:
            Set of the starting nodes and all their transitive dependents.

        """
        start = list(nodes)
        return frozenset(start) | self._reach(self._successors, start)

    @staticmethod
    def _reach(adjacency: dict[T, tuple[T, ...]], start: list[T]) -> frozenset[T]:
        visited: set[T] = set()
        stack = [neighbor for node in start for neighbor in adjacency.get(node, ())]
        while stack:
            current = stack.pop()
            if current not in visited:
                visited.add(current)
                stack.extend(adjacency.get(current, ()))
        return frozenset(visited)

    def topological_order(self, within: Iterable[T] | None = None) -> list[T]:
        """Return nodes in topological order (dependencies before dependents).

        Args:
            within: Only order these nodes, e.g. the set affected by a batch of writes.

        Returns:
            List of nodes where each node appears before all nodes that depend on it.

        Raises:
            CycleError: If the graph contains a cycle.

        """
        return topological_sort(self._successors, within)

    def find_cycle(self) -> list[T] | None:
        """Return one cycle of the graph with its first node repeated at the end, or None."""
        try:
            self.topological_order()
        except CycleError as e:
            return e.cycle
        return None

    def has_cycle(self) -> bool:
        """Check if the graph contains a cycle."""
        return self.find_cycle() is not None

    def validate(self) -> list[str]:
        """Validate the graph and return a list of error messages.

        Checks for:
        - Cycles in the graph
        - Missing nodes (edges pointing to non-existent nodes)

        Returns:
            List of error messages. Empty list if graph is valid.

        """
        errors: list[str] = []

        cycle = self.find_cycle()
        if cycle is not None:
            errors.append("Graph contains a cycle: " + " -> ".join(map(str, cycle)))

        all_nodes = self.nodes
        for node, deps in self._predecessors.items():
            missing = frozenset(deps) - all_nodes
            if missing:
                errors.append(f"Node '{node}' has missing dependencies: {set(missing)}")

        return errors

    def __len__(self) -> int:
        """Return the number of nodes in the graph."""
        return len(self.nodes)

    def __contains__(self, node: object) -> bool:
        """Check if a node is in the graph."""
        return node in self._predecessors or node in self._successors
