"""Full and incremental evaluation passes over a GraphSpec."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ._evaluator import compute_node

if TYPE_CHECKING:
    from collections.abc import Mapping

    from reflow._ir import GraphSpec
    from reflow._node import NodeId

    from ._result import Failure

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EvaluationResult:
    """Result of one evaluation pass.

    Attributes:
        values: Working value store after the pass.
        errors: Working error store after the pass.
        order: Nodes evaluated in this pass, in evaluation order.

    """

    values: dict[NodeId, Any] = field(default_factory=dict)
    errors: dict[NodeId, Failure] = field(default_factory=dict)
    order: tuple[NodeId, ...] = ()

    @property
    def success(self) -> bool:
        """Check if no node evaluated in this pass carries an error."""
        return not self.failures

    @property
    def failures(self) -> dict[NodeId, Failure]:
        """Errors of the nodes evaluated in this pass, in evaluation order."""
        return {node_id: self.errors[node_id] for node_id in self.order if node_id in self.errors}

    def get_value(self, node_id: NodeId) -> Any:
        """Get a computed value by node ID.

        Raises:
            KeyError: If no value exists for the node.

        """
        return self.values[node_id]


def _run(
    graph_spec: GraphSpec,
    order: list[NodeId],
    values: dict[NodeId, Any],
    errors: dict[NodeId, Failure],
) -> EvaluationResult:
    logger.debug("Evaluating %d nodes in order", len(order))
    for node_id in order:
        compute_node(graph_spec, node_id, values, errors)
    return EvaluationResult(values=values, errors=errors, order=tuple(order))


def evaluate_graph(graph_spec: GraphSpec) -> EvaluationResult:
    """Evaluate every node of the graph from empty stores.

    Args:
        graph_spec: The specification of nodes and their dependencies.

    Returns:
        EvaluationResult with the values and errors of every node.

    Raises:
        ValueError: If the graph contains a cycle.

    Example:
        >>> spec = build_graph_spec([run_unit])
        >>> result = evaluate_graph(spec)
        >>> if result.success:
        ...     print(result.values)

    """
    order = graph_spec.graph.topological_order()
    return _run(graph_spec, order, {}, {})


def affected_nodes(graph_spec: GraphSpec, changed: Mapping[NodeId, Any]) -> frozenset[NodeId]:
    """Get the written nodes plus every node transitively downstream of them."""
    return graph_spec.graph.downstream(changed)


def evaluate_affected(
    graph_spec: GraphSpec,
    changed: Mapping[NodeId, Any],
    values: Mapping[NodeId, Any],
    errors: Mapping[NodeId, Failure],
) -> EvaluationResult:
    """Recompute only the part of the graph affected by a batch of input writes.

    The given stores are not modified; the pass works on copies:
    1. Apply the writes to a copy of the values and drop errors of written nodes
    2. Collect the written nodes and all their transitive dependents
    3. Order that subset topologically and evaluate each node in order

    Args:
        graph_spec: The specification of nodes and their dependencies.
        changed: New values of input nodes.
        values: Committed value store.
        errors: Committed error store.

    Returns:
        EvaluationResult whose ``order`` is the affected set in evaluation order.

    """
    working_values = dict(values)
    working_values.update(changed)
    working_errors = {node_id: failure for node_id, failure in errors.items() if node_id not in changed}

    affected = affected_nodes(graph_spec, changed)
    order = graph_spec.graph.topological_order(within=affected)
    return _run(graph_spec, order, working_values, working_errors)
