"""Graph module providing dependency graph abstractions.

This module contains:
- DependencyGraph[T]: A generic, immutable directed acyclic graph
- topological_sort: Kahn scheduler over the whole graph or a subset of it
- CycleError: Raised with the offending cycle when no order exists
"""

from ._algorithms import CycleError, topological_sort
from ._dependency_graph import DependencyGraph

__all__ = ["CycleError", "DependencyGraph", "topological_sort"]
