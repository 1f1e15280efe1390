from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, create_model

from ._errors import DefinitionError
from ._executor import Executor
from ._ir import Connection, DerivedSpec, EventSpec, GraphSpec, InputSpec, UnitSpec, build_graph_spec
from ._node import NodeId, parse_node_id

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

logger = logging.getLogger(__name__)


def _check_member_name(unit_name: str, name: str) -> None:
    if not name.isidentifier() or name.startswith("_"):
        msg = f"Invalid member name '{name}' in unit '{unit_name}': must be an identifier not starting with '_'."
        raise DefinitionError(msg)


def _to_node_id(ref: str | tuple[str, str] | NodeId) -> NodeId:
    if isinstance(ref, NodeId):
        return ref
    if isinstance(ref, str):
        return parse_node_id(ref)
    unit, name = ref
    return NodeId(unit=unit, name=name)


@dataclass(slots=True)
class Unit:
    """A named set of inputs and derived values.

    Example:
        >>> run = Unit("Run")
        >>> run.input("time", 30).input("distance", 10)
        >>> @run.derived(depends_on=["time", "distance"])
        ... def pace(deps):
        ...     if deps["distance"] == 0:
        ...         return Err("distance must be non-zero")
        ...     return deps["time"] / deps["distance"]

    """

    name: str
    description: str | None = None
    stateful: bool = False
    _inputs: dict[str, InputSpec] = field(default_factory=dict)
    _derived: dict[str, DerivedSpec] = field(default_factory=dict)
    _events: dict[str, EventSpec] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name.isidentifier():
            msg = f"Invalid unit name '{self.name}': must be an identifier."
            raise DefinitionError(msg)

    @property
    def inputs(self) -> dict[str, InputSpec]:
        """Get all inputs of the unit."""
        return self._inputs

    @property
    def derived_values(self) -> dict[str, DerivedSpec]:
        """Get all derived values of the unit."""
        return self._derived

    @property
    def events(self) -> dict[str, EventSpec]:
        """Get all events of the unit."""
        return self._events

    def has_member(self, name: str) -> bool:
        return name in self._inputs or name in self._derived

    def _check_new_member(self, name: str) -> None:
        _check_member_name(self.name, name)
        if self.has_member(name):
            msg = f"Member '{name}' already exists in unit '{self.name}'."
            raise DefinitionError(msg)

    def input(
        self,
        name: str,
        initial: Any = None,
        *,
        type: Any = Any,  # noqa: A002
        description: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> Unit:
        """Declare an input; returns the unit so declarations can be chained.

        ``options`` is free-form domain metadata (a unit of measure, bounds for a
        form, ...) that reflow only passes along to the node metadata and the
        input-file JSON schema.
        """
        self._check_new_member(name)
        self._inputs[name] = InputSpec(
            name=name,
            initial=initial,
            type=type,
            description=description,
            options=dict(options or {}),
        )
        return self

    def add_derived(
        self,
        name: str,
        compute_fn: Callable[..., Any],
        depends_on: Iterable[str],
        *,
        description: str | None = None,
    ) -> Unit:
        """Declare a derived value computed by ``compute_fn`` from the members named in ``depends_on``."""
        self._check_new_member(name)
        self._derived[name] = DerivedSpec(
            name=name,
            compute_fn=compute_fn,
            depends_on=tuple(depends_on),
            description=description,
        )
        return self

    def derived[F: Callable[..., Any]](
        self,
        *,
        depends_on: Iterable[str],
        name: str | None = None,
        description: str | None = None,
    ) -> Callable[[F], F]:
        """Decorator to declare a derived value; the function name is the member name by default."""
        deps = tuple(depends_on)

        def decorator(func: F) -> F:
            self.add_derived(
                name if name is not None else func.__name__,
                func,
                deps,
                description=description if description is not None else func.__doc__,
            )
            return func

        return decorator

    def add_event(
        self,
        name: str,
        handler: Callable[..., Mapping[str, Any]],
        *,
        description: str | None = None,
    ) -> Unit:
        """Declare an event whose handler maps the unit's current values to input writes."""
        if not name.isidentifier():
            msg = f"Invalid event name '{name}' in unit '{self.name}': must be an identifier."
            raise DefinitionError(msg)
        if name in self._events:
            msg = f"Event '{name}' already exists in unit '{self.name}'."
            raise DefinitionError(msg)
        self._events[name] = EventSpec(name=name, handler=handler, description=description)
        return self

    def event[F: Callable[..., Mapping[str, Any]]](
        self,
        name: str | None = None,
        *,
        description: str | None = None,
    ) -> Callable[[F], F]:
        """Decorator to declare an event; the function name is the event name by default.

        Example:
            >>> counter = Unit("Counter").input("count", 0)
            >>> @counter.event()
            ... def increment(values):
            ...     return {"count": values["count"] + 1}

        """

        def decorator(func: F) -> F:
            self.add_event(
                name if name is not None else func.__name__,
                func,
                description=description if description is not None else func.__doc__,
            )
            return func

        return decorator

    def validate(self) -> None:
        """Check that every dependency names an input or derived value of this unit.

        Raises:
            DefinitionError: If a dependency is unknown.

        """
        for derived in self._derived.values():
            for dep in derived.depends_on:
                if not self.has_member(dep):
                    msg = f"Derived value '{derived.name}' in unit '{self.name}' references non-existent input or derived value '{dep}'."
                    raise DefinitionError(msg)

    def spec(self) -> UnitSpec:
        """Validate the unit and freeze it into a UnitSpec."""
        self.validate()
        return UnitSpec(
            name=self.name,
            inputs=dict(self._inputs),
            derived=dict(self._derived),
            stateful=self.stateful,
            description=self.description,
            events=dict(self._events),
        )

    def input_model(self) -> type[BaseModel]:
        """Generate a Pydantic model for this unit's section of an input file.

        Every input is optional and defaults to its initial value; unknown keys are rejected.
        """
        fields: dict[str, Any] = {
            name: (
                spec.type,
                Field(default=spec.initial, description=spec.description, json_schema_extra=dict(spec.options) or None),
            )
            for name, spec in self._inputs.items()
        }
        return create_model(
            f"{self.name}Input",
            __config__=ConfigDict(extra="forbid", arbitrary_types_allowed=True),
            **fields,
        )


@dataclass(slots=True)
class Network:
    """A set of units and the connections between them."""

    name: str
    _units: dict[str, Unit] = field(default_factory=dict)
    _connections: list[Connection] = field(default_factory=list)

    def add_unit(self, unit: Unit) -> Unit:
        """Add a unit to the network."""
        if unit.name in self._units:
            msg = f"Unit with name '{unit.name}' already exists in the network."
            raise DefinitionError(msg)
        self._units[unit.name] = unit
        return unit

    def unit(self, name: str, *, description: str | None = None, stateful: bool = False) -> Unit:
        """Create a unit and add it to the network."""
        return self.add_unit(Unit(name, description=description, stateful=stateful))

    @property
    def units(self) -> dict[str, Unit]:
        """Get all units in the network."""
        return self._units

    @property
    def connections(self) -> list[Connection]:
        return self._connections

    def connect(self, source: str | tuple[str, str] | NodeId, target: str | tuple[str, str] | NodeId) -> Network:
        """Feed a derived value of one unit into an input of another.

        Endpoints may be given as ``"Unit.member"``, ``"Unit::member"``, a tuple or a NodeId.
        """
        connection = Connection(source=_to_node_id(source), target=_to_node_id(target))
        self._connections.append(connection)
        return self

    def _validate_connections(self) -> None:
        targets: set[NodeId] = set()
        for conn in self._connections:
            source_unit = self._units.get(conn.source.unit)
            if source_unit is None or conn.source.name not in source_unit.derived_values:
                msg = f"Connection {conn}: source '{conn.source}' is not a derived value of a known unit."
                raise DefinitionError(msg)
            target_unit = self._units.get(conn.target.unit)
            if target_unit is None or conn.target.name not in target_unit.inputs:
                msg = f"Connection {conn}: target '{conn.target}' is not an input of a known unit."
                raise DefinitionError(msg)
            if conn.target in targets:
                msg = f"Input '{conn.target}' has more than one incoming connection."
                raise DefinitionError(msg)
            targets.add(conn.target)

    def graph_spec(self) -> GraphSpec:
        """Validate the network and build its graph specification.

        Raises:
            DefinitionError: If a unit or connection is invalid or the graph has a cycle.

        """
        unit_specs = [unit.spec() for unit in self._units.values()]
        self._validate_connections()
        graph_spec = build_graph_spec(unit_specs, self._connections)
        problems = graph_spec.graph.validate()
        if problems:
            msg = f"Invalid network '{self.name}': " + "; ".join(problems)
            raise DefinitionError(msg)
        return graph_spec

    def validate(self) -> None:
        """Check names, connections and acyclicity without building an executor."""
        self.graph_spec()

    def build(self) -> Executor:
        """Validate the network and return an initialized executor.

        Raises:
            DefinitionError: If the network is invalid.
            InitializationError: If any node fails on the initial inputs.

        """
        self.validate()
        executor = Executor()
        for unit in self._units.values():
            executor.add_unit(unit.spec())
        for conn in self._connections:
            executor.connect(conn.source, conn.target)
        logger.debug("Building network '%s'", self.name)
        return executor.initialize()

    def input_model(self) -> type[BaseModel]:
        """Generate a Pydantic model for the network input file.

        The input model has the structure:
        {
            "UnitName": {
                "input_name": <value>,
                ...
            },
            ...
        }

        Every section and every key is optional.
        """
        unit_fields: dict[str, Any] = {
            unit_name: (unit.input_model() | None, None) for unit_name, unit in self._units.items()
        }
        return create_model(
            f"{self.name}Input",
            __config__=ConfigDict(extra="forbid"),
            **unit_fields,
        )
