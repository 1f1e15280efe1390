"""Single-node evaluation with failure classification."""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

from ._result import BlockedFailure, Err, ExpectedFailure, normalize_result

if TYPE_CHECKING:
    from collections.abc import Callable

    from reflow._ir import GraphSpec, NodeSpec
    from reflow._node import NodeId

    from ._result import Failure

logger = logging.getLogger(__name__)

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def takes_second_argument(fn: Callable[..., Any]) -> bool:
    """Check whether a callable can be given a second positional argument.

    Used for the previous values of stateful compute functions and for event payloads.
    """
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return False
    positional = 0
    for param in sig.parameters.values():
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in _POSITIONAL:
            positional += 1
    return positional >= 2


def _unit_values(values: dict[NodeId, Any], unit: str) -> dict[str, Any]:
    return {node_id.name: value for node_id, value in values.items() if node_id.unit == unit}


def _compute_input(
    graph_spec: GraphSpec,
    spec: NodeSpec,
    values: dict[NodeId, Any],
) -> None:
    # Connected source wins, then the held value, then the declared initial value
    source = graph_spec.connection_source(spec.id)
    if source is not None and source in values:
        values[spec.id] = values[source]
    elif spec.id not in values:
        values[spec.id] = spec.initial
    logger.debug("Input %s = %r", spec.id, values[spec.id])


def _compute_derived(
    spec: NodeSpec,
    values: dict[NodeId, Any],
    errors: dict[NodeId, Failure],
) -> None:
    blocker = next((dep for dep in spec.dependencies if dep in errors), None)
    if blocker is not None:
        errors[spec.id] = BlockedFailure(blocker=blocker)
        logger.debug("Blocked %s by %s", spec.id, blocker)
        return

    if spec.compute_fn is None:
        msg = f"No compute function for node {spec.id}"
        raise TypeError(msg)

    args = {dep.name: values.get(dep) for dep in spec.dependencies}
    if spec.stateful and takes_second_argument(spec.compute_fn):
        result = spec.compute_fn(args, _unit_values(values, spec.id.unit))
    else:
        result = spec.compute_fn(args)

    match normalize_result(result):
        case Err(reason=reason):
            errors[spec.id] = ExpectedFailure(reason=reason)
            logger.debug("Expected failure at %s: %r", spec.id, reason)
        case ok:
            values[spec.id] = ok.value
            errors.pop(spec.id, None)
            logger.debug("Derived %s = %r", spec.id, ok.value)


def compute_node(
    graph_spec: GraphSpec,
    node_id: NodeId,
    values: dict[NodeId, Any],
    errors: dict[NodeId, Failure],
) -> None:
    """Evaluate one node against working stores, updating them in place.

    Inputs take the value of their connected source if any, else their held
    value, else their declared initial value; inputs never fail. A derived
    value whose dependency is in error is marked blocked without calling its
    compute function. Otherwise the compute function is called with a mapping
    of dependency name to value, and its result is normalized: ``Err`` becomes
    an expected failure, anything else a success.

    Exceptions raised by a compute function propagate to the caller.

    Args:
        graph_spec: The specification of nodes and their dependencies.
        node_id: The node to evaluate. Its dependencies must already be evaluated.
        values: Working value store (modified in place).
        errors: Working error store (modified in place).

    """
    spec = graph_spec.get_node(node_id)
    if spec.is_input():
        _compute_input(graph_spec, spec, values)
    else:
        _compute_derived(spec, values, errors)
