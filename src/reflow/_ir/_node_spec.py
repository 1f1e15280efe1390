"""Node specification for computation graphs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum, auto
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from reflow._node import NodeId


class NodeKind(StrEnum):
    """The kind of node in the computation graph."""

    INPUT = auto()  # Externally settable leaf value
    DERIVED = auto()  # Value computed from other members of the unit


@dataclass(frozen=True, slots=True)
class NodeSpec:
    """Specification of a computation node.

    This is a pure, immutable data structure describing what a node does,
    without any behavior or side effects. It serves as the intermediate
    representation between the unit specs and the evaluation engine.

    Attributes:
        id: Unique identifier (NodeId) for this node.
        kind: Whether this is an INPUT or DERIVED node.
        dependencies: Node IDs this node depends on, in declaration order.
            For an input this is the connected source, if any.
        compute_fn: Function to compute the value. None for INPUT nodes.
        initial: Declared initial value. Only meaningful for INPUT nodes.
        stateful: Whether the owning unit passes previous values to compute_fn.

    Example:
        A derived node that computes pace from time and distance:

        >>> NodeSpec(
        ...     id=NodeId("Run", "pace"),
        ...     kind=NodeKind.DERIVED,
        ...     dependencies=(NodeId("Run", "time"), NodeId("Run", "distance")),
        ...     compute_fn=lambda deps: deps["time"] / deps["distance"],
        ... )

    """

    id: NodeId
    kind: NodeKind
    dependencies: tuple[NodeId, ...] = ()
    compute_fn: Callable[..., Any] | None = None
    initial: Any = None
    stateful: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_input(self) -> bool:
        """Check if this is an input node."""
        return self.kind == NodeKind.INPUT

    def __hash__(self) -> int:
        """Hash based on the node ID."""
        return hash(self.id)
