"""Tests for the intermediate representation built from unit specs."""

import pytest

from reflow import Connection, NodeId, Unit
from reflow._ir import GraphSpec, NodeKind, build_graph_spec


def _pace_unit() -> Unit:
    run = Unit("Run")
    run.input("time", 30, description="Elapsed minutes").input("distance", 10).input("notes", "")

    @run.derived(depends_on=["time", "distance"])
    def pace(deps):
        """Minutes per kilometre."""
        return deps["time"] / deps["distance"]

    return run


def _connected_units() -> tuple[Unit, Unit]:
    source = Unit("Source")
    source.input("x", 1)
    source.add_derived("doubled", lambda deps: deps["x"] * 2, ["x"])

    sink = Unit("Sink")
    sink.input("value")
    sink.add_derived("plus_one", lambda deps: deps["value"] + 1, ["value"])
    return source, sink


class TestBuildGraphSpec:
    def test_every_input_gets_a_node(self) -> None:
        spec = build_graph_spec([_pace_unit().spec()])

        notes = NodeId("Run", "notes")
        assert notes in spec
        assert notes in spec.graph
        assert spec.get_node(notes).kind == NodeKind.INPUT
        assert spec.graph.successors(notes) == frozenset()

    def test_derived_nodes_depend_on_unit_members(self) -> None:
        spec = build_graph_spec([_pace_unit().spec()])

        pace = spec.get_node(NodeId("Run", "pace"))
        assert pace.kind == NodeKind.DERIVED
        assert pace.dependencies == (NodeId("Run", "time"), NodeId("Run", "distance"))
        assert spec.graph.predecessors(pace.id) == {NodeId("Run", "time"), NodeId("Run", "distance")}

    def test_input_carries_initial_value(self) -> None:
        spec = build_graph_spec([_pace_unit().spec()])
        assert spec.get_node(NodeId("Run", "time")).initial == 30

    def test_descriptions_go_to_metadata(self) -> None:
        spec = build_graph_spec([_pace_unit().spec()])

        assert spec.get_node(NodeId("Run", "time")).metadata == {"description": "Elapsed minutes"}
        assert spec.get_node(NodeId("Run", "pace")).metadata == {"description": "Minutes per kilometre."}
        assert spec.get_node(NodeId("Run", "distance")).metadata == {}

    def test_options_go_to_metadata(self) -> None:
        unit = Unit("Run").input("distance", 10, description="Kilometres", options={"unit": "km", "step": 0.5})

        node = build_graph_spec([unit.spec()]).get_node(NodeId("Run", "distance"))

        assert node.metadata == {"description": "Kilometres", "options": {"unit": "km", "step": 0.5}}

    def test_connection_adds_edge_to_target_input(self) -> None:
        source, sink = _connected_units()
        connection = Connection(NodeId("Source", "doubled"), NodeId("Sink", "value"))
        spec = build_graph_spec([source.spec(), sink.spec()], [connection])

        target = spec.get_node(NodeId("Sink", "value"))
        assert target.dependencies == (NodeId("Source", "doubled"),)
        assert spec.connection_source(target.id) == NodeId("Source", "doubled")
        assert spec.graph.ancestors(NodeId("Sink", "plus_one")) == {
            NodeId("Source", "x"),
            NodeId("Source", "doubled"),
            NodeId("Sink", "value"),
        }

    def test_unconnected_input_has_no_source(self) -> None:
        source, sink = _connected_units()
        spec = build_graph_spec([source.spec(), sink.spec()])
        assert spec.connection_source(NodeId("Sink", "value")) is None

    def test_topological_order_spans_units(self) -> None:
        source, sink = _connected_units()
        connection = Connection(NodeId("Source", "doubled"), NodeId("Sink", "value"))
        # Sink is registered first on purpose
        spec = build_graph_spec([sink.spec(), source.spec()], [connection])

        order = spec.graph.topological_order()
        assert order.index(NodeId("Source", "doubled")) < order.index(NodeId("Sink", "value"))
        assert order.index(NodeId("Sink", "value")) < order.index(NodeId("Sink", "plus_one"))


class TestGraphSpec:
    @pytest.fixture
    def spec(self) -> GraphSpec:
        source, sink = _connected_units()
        return build_graph_spec([source.spec(), sink.spec()])

    def test_unit_names_keep_registration_order(self, spec: GraphSpec) -> None:
        assert spec.unit_names == ("Source", "Sink")

    def test_get_nodes_by_kind(self, spec: GraphSpec) -> None:
        derived = {node.id for node in spec.get_nodes_by_kind(NodeKind.DERIVED)}
        assert derived == {NodeId("Source", "doubled"), NodeId("Sink", "plus_one")}

    def test_get_nodes_in_unit(self, spec: GraphSpec) -> None:
        names = [node.id.name for node in spec.get_nodes_in_unit("Sink")]
        assert names == ["value", "plus_one"]

    def test_len_and_missing_node(self, spec: GraphSpec) -> None:
        assert len(spec) == 4
        with pytest.raises(KeyError):
            spec.get_node(NodeId("Sink", "missing"))

    def test_connection_str(self) -> None:
        connection = Connection(NodeId("Source", "doubled"), NodeId("Sink", "value"))
        assert str(connection) == "Source::doubled -> Sink::value"
