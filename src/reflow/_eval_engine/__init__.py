"""Evaluation engine module for reflow.

This module provides functions for evaluating computation graphs.
The evaluation engine takes a GraphSpec and value/error stores, and produces
new working stores without touching the ones it was given.

Key types:
- EvaluationResult: Working values and errors after a pass, plus the evaluated order
- Ok / Err: Explicit success or domain failure returned by compute functions
- ExpectedFailure / BlockedFailure: Failure descriptors recorded in the error store
- evaluate_graph: Full pass from empty stores
- evaluate_affected: Incremental pass over the nodes affected by input writes
"""

from ._engine import EvaluationResult, affected_nodes, evaluate_affected, evaluate_graph
from ._evaluator import compute_node, takes_second_argument
from ._result import BlockedFailure, Err, ExpectedFailure, Failure, Ok, normalize_result

__all__ = [
    "BlockedFailure",
    "Err",
    "EvaluationResult",
    "ExpectedFailure",
    "Failure",
    "Ok",
    "affected_nodes",
    "compute_node",
    "evaluate_affected",
    "evaluate_graph",
    "normalize_result",
    "takes_second_argument",
]
