"""Transactional executor over a set of connected units."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from ._errors import (
    ExecutorError,
    FrameAlreadyOpenError,
    InitializationError,
    NoOpenFrameError,
    UnknownEventError,
    UnknownNodeError,
)
from ._eval_engine import BlockedFailure, EvaluationResult, evaluate_affected, evaluate_graph, takes_second_argument
from ._ir import Connection, GraphSpec, UnitSpec, build_graph_spec
from ._node import NodeId

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ._eval_engine import Failure

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Frame:
    """An open batch of input writes, not yet applied to the committed state."""

    _executor: Executor = field(repr=False)
    pending_inputs: dict[NodeId, Any] = field(default_factory=dict)

    def set(self, unit: str, name: str, value: Any) -> Frame:
        """Stage a write; returns the frame so writes can be chained.

        Raises:
            NoOpenFrameError: If this frame was already committed or rolled back.

        """
        if self._executor._frame is not self:  # noqa: SLF001
            raise NoOpenFrameError("set an input in")
        self._executor.set_input(unit, name, value)
        return self


@dataclass(frozen=True, slots=True)
class CommitResult:
    """Outcome of committing a frame.

    Attributes:
        success: Whether the frame was committed.
        affected: Nodes recomputed by the frame, in evaluation order.
        failures: Read-only errors of the affected nodes. Empty on success.

    """

    success: bool
    affected: tuple[NodeId, ...] = ()
    failures: Mapping[NodeId, Failure] = field(default_factory=lambda: MappingProxyType({}))

    def __bool__(self) -> bool:
        return self.success

    def __hash__(self) -> int:
        return hash((self.success, self.affected, tuple(self.failures.items())))


def _as_node_id(value: NodeId | tuple[str, str]) -> NodeId:
    if isinstance(value, NodeId):
        return value
    unit, name = value
    return NodeId(unit=unit, name=name)


def _project(store: Mapping[NodeId, Any], unit: str) -> dict[str, Any]:
    return {node_id.name: value for node_id, value in store.items() if node_id.unit == unit}


class Executor:
    """Keeps the derived values of connected units consistent with their inputs.

    Typical use:

        >>> executor = Executor()
        >>> executor.add_unit(run_spec)
        >>> executor.initialize()
        >>> with executor.frame() as frame:
        ...     frame.set("Run", "distance", 5)
        >>> executor.current_values("Run")
        {'time': 30, 'distance': 5, 'pace': 6.0}

    Committed values and errors only change on a successful commit. A frame
    that leaves any affected node in error is kept as a pending snapshot for
    inspection instead, and the committed state stays exactly as it was.
    """

    def __init__(self) -> None:
        self._units: dict[str, UnitSpec] = {}
        self._connections: list[Connection] = []
        self._graph_spec: GraphSpec | None = None
        self._values: dict[NodeId, Any] = {}
        self._errors: dict[NodeId, Failure] = {}
        self._pending: EvaluationResult | None = None
        self._frame: Frame | None = None

    # -- construction -------------------------------------------------------

    def add_unit(self, spec: UnitSpec) -> Executor:
        """Register a unit. Must be called before ``initialize``."""
        self._ensure_not_initialized("add a unit")
        if spec.name in self._units:
            msg = f"Unit with name '{spec.name}' already exists in the executor."
            raise ExecutorError(msg)
        self._units[spec.name] = spec
        return self

    def connect(self, source: NodeId | tuple[str, str], target: NodeId | tuple[str, str]) -> Executor:
        """Feed the derived value ``source`` into the input ``target``. Must be called before ``initialize``."""
        self._ensure_not_initialized("add a connection")
        self._connections.append(Connection(source=_as_node_id(source), target=_as_node_id(target)))
        return self

    def initialize(self) -> Executor:
        """Build the global graph and evaluate every node from the initial inputs.

        Raises:
            InitializationError: If any node fails; there is no earlier state to fall back to.
            ExecutorError: If the executor is already initialized.

        """
        self._ensure_not_initialized("initialize")
        graph_spec = build_graph_spec(self._units.values(), self._connections)
        result = evaluate_graph(graph_spec)
        if not result.success:
            logger.debug("Initialization failed: %s", result.failures)
            raise InitializationError(result.failures)

        self._graph_spec = graph_spec
        self._values = result.values
        self._errors = result.errors
        self._pending = None
        logger.info("Initialized %d units with %d nodes", len(self._units), len(graph_spec))
        return self

    @property
    def initialized(self) -> bool:
        return self._graph_spec is not None

    @property
    def graph_spec(self) -> GraphSpec:
        return self._require_graph_spec()

    @property
    def units(self) -> dict[str, UnitSpec]:
        return dict(self._units)

    @property
    def connections(self) -> tuple[Connection, ...]:
        return tuple(self._connections)

    # -- frames -------------------------------------------------------------

    @property
    def frame_open(self) -> bool:
        return self._frame is not None

    def start_frame(self) -> Frame:
        """Open a frame to batch input writes.

        Raises:
            FrameAlreadyOpenError: If a frame is already open.

        """
        self._require_graph_spec()
        if self._frame is not None:
            raise FrameAlreadyOpenError
        self._frame = Frame(self)
        return self._frame

    def set_input(self, unit: str, name: str, value: Any) -> Executor:
        """Stage a write to an input in the open frame.

        A later write to the same input in the same frame replaces this one.

        Raises:
            NoOpenFrameError: If no frame is open.
            UnknownNodeError: If ``unit``/``name`` is not an input of a known unit.

        """
        if self._frame is None:
            raise NoOpenFrameError("set an input in")
        spec = self._units.get(unit)
        if spec is None:
            raise UnknownNodeError(unit, name, "no such unit")
        if name not in spec.inputs:
            reason = "derived values cannot be written" if name in spec.derived else "no such input"
            raise UnknownNodeError(unit, name, reason)
        self._frame.pending_inputs[NodeId(unit, name)] = value
        return self

    def commit_frame(self) -> CommitResult:
        """Recompute everything affected by the staged writes and commit all or nothing.

        On success the recomputed values become the committed state and any
        pending snapshot is cleared. On failure the committed state is left
        untouched and the attempt is kept as the pending snapshot. The frame
        is closed in both cases, and also when a compute function raises.

        Raises:
            NoOpenFrameError: If no frame is open.

        """
        if self._frame is None:
            raise NoOpenFrameError("commit")
        graph_spec = self._require_graph_spec()
        frame, self._frame = self._frame, None

        result = evaluate_affected(graph_spec, frame.pending_inputs, self._values, self._errors)
        failures = result.failures
        if not failures:
            self._values = result.values
            self._errors = result.errors
            self._pending = None
            logger.debug("Committed frame: %d writes, %d nodes recomputed", len(frame.pending_inputs), len(result.order))
            return CommitResult(success=True, affected=result.order)

        self._pending = result
        logger.debug("Frame not committed, %d nodes in error: %s", len(failures), ", ".join(map(str, failures)))
        return CommitResult(success=False, affected=result.order, failures=MappingProxyType(failures))

    def rollback_frame(self) -> None:
        """Discard the open frame without evaluating anything.

        Raises:
            NoOpenFrameError: If no frame is open.

        """
        if self._frame is None:
            raise NoOpenFrameError("roll back")
        logger.debug("Rolled back frame with %d writes", len(self._frame.pending_inputs))
        self._frame = None

    @contextmanager
    def frame(self) -> Iterator[Frame]:
        """Open a frame for the duration of a ``with`` block.

        The frame is committed when the block exits normally and rolled back
        if the block raises. The commit outcome is available afterwards through
        ``success`` and the pending reads.
        """
        frame = self.start_frame()
        try:
            yield frame
        except BaseException:
            if self._frame is frame:
                self.rollback_frame()
            raise
        if self._frame is frame:
            self.commit_frame()

    def update(self, unit: str, /, **values: Any) -> CommitResult:
        """Write several inputs of one unit in a single frame and commit it."""
        self.start_frame()
        try:
            for name, value in values.items():
                self.set_input(unit, name, value)
        except ExecutorError:
            self.rollback_frame()
            raise
        return self.commit_frame()

    # -- events -------------------------------------------------------------

    def events(self, unit: str) -> list[str]:
        """Names of the events a unit declares, in declaration order.

        Raises:
            ExecutorError: If the unit is unknown.

        """
        return list(self._unit_spec(unit).events)

    def apply_event(self, unit: str, event: str, payload: Any = None) -> CommitResult:
        """Run an event handler and commit the input writes it returns as one frame.

        The handler sees the unit's committed values. A handler that takes a
        second argument also receives ``payload``.

        Raises:
            UnknownEventError: If the unit does not declare ``event``.
            FrameAlreadyOpenError: If a frame is already open.
            UnknownNodeError: If the handler writes something that is not an input of the unit.
            TypeError: If the handler does not return a mapping.

        """
        self._require_graph_spec()
        spec = self._unit_spec(unit)
        event_spec = spec.events.get(event)
        if event_spec is None:
            raise UnknownEventError(unit, event, spec.events)
        if self._frame is not None:
            raise FrameAlreadyOpenError

        current = self.current_values(unit)
        if takes_second_argument(event_spec.handler):
            writes = event_spec.handler(current, payload)
        else:
            writes = event_spec.handler(current)
        if not isinstance(writes, Mapping):
            msg = f"Event '{event}' of unit '{unit}' must return a mapping of input writes, got {type(writes).__name__}"
            raise TypeError(msg)

        logger.debug("Applying event %s::%s with writes to %s", unit, event, ", ".join(writes) or "nothing")
        return self.update(unit, **writes)

    # -- reads ---------------------------------------------------------------

    def current_values(self, unit: str) -> dict[str, Any]:
        """Committed values of a unit, keyed by member name."""
        return _project(self._values, unit)

    def current_errors(self, unit: str) -> dict[str, Failure]:
        """Committed errors of a unit, keyed by member name."""
        return _project(self._errors, unit)

    def pending_values(self, unit: str) -> dict[str, Any]:
        """Values of the last failed frame for a unit; empty if there is none."""
        if self._pending is None:
            return {}
        return _project(self._pending.values, unit)

    def pending_errors(self, unit: str) -> dict[str, Failure]:
        """Errors of the last failed frame for a unit; empty if there is none."""
        if self._pending is None:
            return {}
        return _project(self._pending.errors, unit)

    @property
    def success(self) -> bool:
        """True exactly when there is no pending snapshot from a failed frame."""
        return self._pending is None

    def clear_pending(self) -> None:
        """Drop the pending snapshot of the last failed frame."""
        self._pending = None

    @property
    def values(self) -> Mapping[NodeId, Any]:
        """Read-only view of the committed value store."""
        return MappingProxyType(self._values)

    @property
    def errors(self) -> Mapping[NodeId, Failure]:
        """Read-only view of the committed error store."""
        return MappingProxyType(self._errors)

    def root_cause(self, node_id: NodeId, *, pending: bool = False) -> NodeId | None:
        """Follow blocked failures from ``node_id`` to the node that actually failed.

        Args:
            node_id: Node to start from.
            pending: Walk the pending snapshot instead of the committed errors.

        Returns:
            The first node on the chain whose failure is not a blocked failure,
            or None if ``node_id`` has no error.

        """
        if pending:
            errors = self._pending.errors if self._pending is not None else {}
        else:
            errors = self._errors
        current = node_id
        seen: set[NodeId] = set()
        while current in errors and current not in seen:
            seen.add(current)
            failure = errors[current]
            if not isinstance(failure, BlockedFailure):
                return current
            current = failure.blocker
        return None

    # -- helpers ------------------------------------------------------------

    def _unit_spec(self, unit: str) -> UnitSpec:
        spec = self._units.get(unit)
        if spec is None:
            msg = f"Unknown unit '{unit}'. Known units: {', '.join(self._units)}"
            raise ExecutorError(msg)
        return spec

    def _require_graph_spec(self) -> GraphSpec:
        if self._graph_spec is None:
            msg = "Executor is not initialized. Call initialize() first."
            raise ExecutorError(msg)
        return self._graph_spec

    def _ensure_not_initialized(self, action: str) -> None:
        if self._graph_spec is not None:
            msg = f"Cannot {action}: the executor is already initialized."
            raise ExecutorError(msg)
