"""Compute results and failure descriptors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from reflow._node import NodeId


@dataclass(frozen=True, slots=True)
class Ok:
    """Explicit success returned by a compute function."""

    value: Any


@dataclass(frozen=True, slots=True)
class Err:
    """Explicit domain failure returned by a compute function.

    Example:
        >>> def pace(deps):
        ...     if deps["distance"] == 0:
        ...         return Err("zero distance")
        ...     return deps["time"] / deps["distance"]

    """

    reason: Any


@dataclass(frozen=True, slots=True)
class ExpectedFailure:
    """The compute function reported that it cannot produce a value."""

    reason: Any

    def __str__(self) -> str:
        return f"expected failure: {self.reason}"


@dataclass(frozen=True, slots=True)
class BlockedFailure:
    """The node was not evaluated because a dependency is in error.

    Only the immediate blocker is recorded; follow the chain through the
    error store to find the root failure.
    """

    blocker: NodeId

    def __str__(self) -> str:
        return f"blocked by {self.blocker}"


type Failure = ExpectedFailure | BlockedFailure


def normalize_result(result: Any) -> Ok | Err:
    """Normalize a compute function's return value.

    ``Ok`` and ``Err`` are passed through; any other value is a plain success.
    """
    if isinstance(result, Ok | Err):
        return result
    return Ok(result)
