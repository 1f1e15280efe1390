"""Scheduling algorithms over successor mappings."""

from collections import deque
from collections.abc import Collection, Hashable, Iterable, Mapping
from typing import Any


class CycleError(ValueError):
    """The graph cannot be ordered because some nodes depend on each other.

    Attributes:
        cycle: One cycle found in the graph, in dependency order, with the
            first node repeated at the end (``[a, b, a]`` for ``a -> b -> a``).

    """

    def __init__(self, cycle: list[Any]) -> None:
        self.cycle = cycle
        super().__init__("Cycle detected in graph: " + " -> ".join(map(str, cycle)))


def topological_sort[T: Hashable](
    successors: Mapping[T, Collection[T]],
    within: Iterable[T] | None = None,
) -> list[T]:
    """Order nodes so that every node comes after the nodes it depends on.

    Uses Kahn's algorithm, so long chains never hit the recursion limit.
    Independent nodes keep the iteration order of ``successors`` and of each
    successor collection, which makes the result deterministic.

    Args:
        successors: Mapping from node to the nodes that depend on it.
            An edge (a -> b) means "b depends on a".
        within: Only order these nodes, using only the edges between them.
            Selected nodes the mapping never mentions are treated as isolated.

    Returns:
        List of nodes in evaluation order.

    Raises:
        CycleError: If the (selected part of the) graph contains a cycle.

    Example:
        >>> topological_sort({"a": ["b"], "b": ["c"], "c": []})
        ['a', 'b', 'c']
        >>> topological_sort({"a": ["b"], "b": ["c"], "c": []}, within=["c", "a"])
        ['a', 'c']

    """
    selected = None if within is None else list(within)
    scope = None if selected is None else frozenset(selected)

    # Dict insertion order doubles as the first-seen order of every node
    indegree: dict[T, int] = {}
    for node, targets in successors.items():
        if scope is not None and node not in scope:
            continue
        indegree.setdefault(node, 0)
        for target in targets:
            if scope is None or target in scope:
                indegree[target] = indegree.get(target, 0) + 1
    for node in selected or ():
        indegree.setdefault(node, 0)

    ready = deque(node for node, count in indegree.items() if count == 0)
    order: list[T] = []
    while ready:
        node = ready.popleft()
        order.append(node)
        for target in successors.get(node, ()):
            if target in indegree:
                indegree[target] -= 1
                if indegree[target] == 0:
                    ready.append(target)

    if len(order) != len(indegree):
        blocked = [node for node, count in indegree.items() if count > 0]
        raise CycleError(_find_cycle(successors, blocked))
    return order


def _find_cycle[T: Hashable](successors: Mapping[T, Collection[T]], blocked: list[T]) -> list[T]:
    # Every blocked node still has a blocked predecessor, so walking
    # predecessors from any of them must eventually revisit a node.
    members = set(blocked)
    predecessor: dict[T, T] = {}
    for node in blocked:
        for target in successors.get(node, ()):
            if target in members:
                predecessor.setdefault(target, node)

    path: list[T] = []
    position: dict[T, int] = {}
    current = blocked[0]
    while current not in position:
        position[current] = len(path)
        path.append(current)
        current = predecessor[current]

    cycle = path[position[current] :]
    cycle.reverse()
    start = cycle.index(min(cycle, key=blocked.index))
    cycle = cycle[start:] + cycle[:start]
    return [*cycle, cycle[0]]
