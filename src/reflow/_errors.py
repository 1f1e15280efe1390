"""Exceptions raised by reflow."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ._eval_engine import Failure
    from ._node import NodeId


class ReflowError(Exception):
    """Base class for all reflow errors."""


class DefinitionError(ReflowError, ValueError):
    """A unit or network definition is invalid (unknown names, bad connections, cycles)."""


class InitializationError(ReflowError):
    """The graph cannot reach an error-free state from its initial inputs.

    Attributes:
        failures: Failure descriptor of every node that failed during initialization.

    """

    def __init__(self, failures: Mapping[NodeId, Failure]) -> None:
        self.failures = dict(failures)
        details = ", ".join(f"{node_id} ({failure})" for node_id, failure in self.failures.items())
        super().__init__(f"Failed to initialize executor. The following nodes have errors: {details}")


class ExecutorError(ReflowError):
    """An executor operation was called out of sequence."""


class FrameAlreadyOpenError(ExecutorError):
    """A frame was started while another one is still open."""

    def __init__(self) -> None:
        super().__init__("Frame already started. Commit or roll back the current frame first.")


class NoOpenFrameError(ExecutorError):
    """A frame operation was called without an open frame."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"No frame to {operation}. Call start_frame() first.")


class UnknownNodeError(ExecutorError, KeyError):
    """A write or query named a node that is not an input of any known unit."""

    def __init__(self, unit: str, name: str, reason: str) -> None:
        self.unit = unit
        self.name = name
        super().__init__(f"Unknown node '{unit}::{name}': {reason}")

    def __str__(self) -> str:
        # KeyError would otherwise render the message with quotes
        return str(self.args[0])


class UnknownEventError(ExecutorError, KeyError):
    """An event was applied to a unit that does not declare it."""

    def __init__(self, unit: str, event: str, known: Iterable[str]) -> None:
        self.unit = unit
        self.event = event
        self.known = tuple(known)
        super().__init__(f"Unknown event '{event}' for unit '{unit}'. Known events: {', '.join(self.known) or 'none'}")

    def __str__(self) -> str:
        return str(self.args[0])
