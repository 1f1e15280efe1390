"""Reactive dataflow evaluator with transactional, all-or-nothing updates."""

__all__ = [
    "BlockedFailure",
    "CommitResult",
    "Connection",
    "CycleError",
    "DefinitionError",
    "DependencyGraph",
    "DerivedSpec",
    "Err",
    "EventSpec",
    "EvaluationResult",
    "Executor",
    "ExecutorError",
    "ExpectedFailure",
    "Failure",
    "Frame",
    "FrameAlreadyOpenError",
    "GraphSpec",
    "InitializationError",
    "InputSpec",
    "Network",
    "NoOpenFrameError",
    "NodeId",
    "NodeKind",
    "NodeSpec",
    "Ok",
    "ReflowError",
    "Unit",
    "UnitSpec",
    "UnknownEventError",
    "UnknownNodeError",
    "build_graph_spec",
    "evaluate_affected",
    "evaluate_graph",
    "export_to_toml",
    "load_input_overrides",
    "parse_node_id",
]

from ._errors import (
    DefinitionError,
    ExecutorError,
    FrameAlreadyOpenError,
    InitializationError,
    NoOpenFrameError,
    ReflowError,
    UnknownEventError,
    UnknownNodeError,
)
from ._eval_engine import (
    BlockedFailure,
    Err,
    EvaluationResult,
    ExpectedFailure,
    Failure,
    Ok,
    evaluate_affected,
    evaluate_graph,
)
from ._executor import CommitResult, Executor, Frame
from ._graph import CycleError, DependencyGraph
from ._io import export_to_toml, load_input_overrides
from ._ir import (
    Connection,
    DerivedSpec,
    EventSpec,
    GraphSpec,
    InputSpec,
    NodeKind,
    NodeSpec,
    UnitSpec,
    build_graph_spec,
)
from ._models import Network, Unit
from ._node import NodeId, parse_node_id
