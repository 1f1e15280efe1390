"""Intermediate Representation (IR) module for reflow.

This module provides pure data structures for representing computation graphs
independent of the user-facing API. The IR serves as a bridge between:
- User-facing layer (Network, Unit, decorators) or any external definition layer
- Core evaluation engine

Key types:
- UnitSpec / InputSpec / DerivedSpec / EventSpec: Immutable description of one unit
- Connection: A derived value of one unit feeding an input of another
- NodeKind: Enum for node types (INPUT, DERIVED)
- NodeSpec: Specification of a single computation node
- GraphSpec: Collection of NodeSpecs with the global dependency graph
- build_graph_spec: Function to build the IR from unit specs and connections
"""

from ._builder import build_graph_spec
from ._graph_spec import GraphSpec
from ._node_spec import NodeKind, NodeSpec
from ._unit_spec import Connection, DerivedSpec, EventSpec, InputSpec, UnitSpec

__all__ = [
    "Connection",
    "DerivedSpec",
    "EventSpec",
    "GraphSpec",
    "InputSpec",
    "NodeKind",
    "NodeSpec",
    "UnitSpec",
    "build_graph_spec",
]
