"""Tests for TOML input loading and result export."""

import tomllib
from pathlib import Path

import pytest
from pydantic import BaseModel, ValidationError

from reflow import Err, Network, NodeId, export_to_toml, load_input_overrides
from reflow._io import parse_assignments, parse_value, results_to_dict


def _running_network() -> Network:
    network = Network("Running")
    run = network.unit("Run")
    run.input("time", 30.0, type=float).input("distance", 10.0, type=float).input("notes", None)

    @run.derived(depends_on=["time", "distance"])
    def pace(deps):
        if deps["distance"] == 0:
            return Err("distance must be non-zero")
        return deps["time"] / deps["distance"]

    return network


class TestExportToToml:
    def test_committed_values(self, tmp_path: Path) -> None:
        executor = _running_network().build()
        output = tmp_path / "out" / "results.toml"

        export_to_toml(executor, output)

        with output.open("rb") as f:
            data = tomllib.load(f)
        # None has no TOML representation and is left out
        assert data == {"Run": {"values": {"time": 30.0, "distance": 10.0, "pace": 3.0}}}

    def test_pending_snapshot(self, tmp_path: Path) -> None:
        executor = _running_network().build()
        executor.update("Run", distance=0.0)
        output = tmp_path / "pending.toml"

        export_to_toml(executor, output, pending=True)

        with output.open("rb") as f:
            data = tomllib.load(f)
        assert data["Run"]["values"]["distance"] == 0.0
        assert data["Run"]["errors"] == {"pace": "expected failure: distance must be non-zero"}

    def test_results_to_dict_serializes_models(self) -> None:
        class Point(BaseModel):
            x: float
            y: float | None = None

        result = results_to_dict(
            {NodeId("Map", "origin"): Point(x=1.0), NodeId("Map", "path"): (Path("a"), Path("b"))},
            {},
        )
        assert result == {"Map": {"values": {"origin": {"x": 1.0}, "path": ["a", "b"]}}}

    def test_list_items_keep_their_positions(self) -> None:
        result = results_to_dict(
            {NodeId("Log", "laps"): [1, None, 2], NodeId("Log", "split"): {"a": None, "b": 1}},
            {},
        )

        assert result["Log"]["values"]["laps"] == [1, None, 2]
        assert result["Log"]["values"]["split"] == {"b": 1}


class TestLoadInputOverrides:
    def test_only_present_keys_become_writes(self, tmp_path: Path) -> None:
        input_path = tmp_path / "input.toml"
        input_path.write_text("[Run]\ndistance = 12.5\n")

        overrides = load_input_overrides(_running_network(), input_path)

        assert overrides == {NodeId("Run", "distance"): 12.5}

    def test_values_are_validated(self, tmp_path: Path) -> None:
        input_path = tmp_path / "input.toml"
        input_path.write_text('[Run]\ndistance = "far"\n')

        with pytest.raises(ValidationError):
            load_input_overrides(_running_network(), input_path)

    def test_unknown_unit(self, tmp_path: Path) -> None:
        input_path = tmp_path / "input.toml"
        input_path.write_text("[Walk]\ndistance = 1.0\n")

        with pytest.raises(ValidationError):
            load_input_overrides(_running_network(), input_path)

    def test_overrides_apply_in_one_frame(self, tmp_path: Path) -> None:
        network = _running_network()
        input_path = tmp_path / "input.toml"
        input_path.write_text("[Run]\ntime = 60.0\ndistance = 12.0\n")
        executor = network.build()

        with executor.frame() as frame:
            for node_id, value in load_input_overrides(network, input_path).items():
                frame.set(node_id.unit, node_id.name, value)

        assert executor.current_values("Run")["pace"] == 5.0


class TestParseAssignments:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("12.5", 12.5),
            ("3", 3),
            ("true", True),
            ("[1, 2]", [1, 2]),
            ('"quoted"', "quoted"),
            ("archived", "archived"),
        ],
    )
    def test_parse_value(self, raw: str, expected: object) -> None:
        assert parse_value(raw) == expected

    def test_assignments(self) -> None:
        overrides = parse_assignments(["Run.distance=5", "Filters::status = open"])
        assert overrides == {NodeId("Run", "distance"): 5, NodeId("Filters", "status"): "open"}

    def test_missing_equals(self) -> None:
        with pytest.raises(ValueError, match="Expected 'unit.input=value'"):
            parse_assignments(["Run.distance"])
