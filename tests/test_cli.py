"""Tests for the reflow command line interface."""

import json
import sys
import tomllib
from collections.abc import Iterator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from reflow._cli.main import app

runner = CliRunner()

NETWORK_SCRIPT = """\
import reflow as rf

network = rf.Network("Running")

run = network.unit("Run")
run.input("time", 30.0, type=float)
run.input("distance", 10.0, type=float, options={"unit": "km"})


@run.derived(depends_on=["time", "distance"])
def pace(deps):
    \"\"\"Minutes per kilometre.\"\"\"
    if deps["distance"] == 0:
        return rf.Err("distance must be non-zero")
    return deps["time"] / deps["distance"]


@run.derived(depends_on=["pace"])
def speed(deps):
    return 60 / deps["pace"]
"""

CYCLIC_SCRIPT = """\
import reflow as rf

network = rf.Network("Loop")
unit = network.unit("Loop")
unit.add_derived("a", lambda deps: 0, ["b"])
unit.add_derived("b", lambda deps: 0, ["a"])
"""


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    for name in ("cli_running", "cli_cyclic"):
        sys.modules.pop(name, None)


@pytest.fixture
def script(workdir: Path) -> Path:
    path = workdir / "cli_running.py"
    path.write_text(NETWORK_SCRIPT)
    return path


class TestCheck:
    def test_valid_network(self, script: Path) -> None:
        result = runner.invoke(app, ["check", str(script)])

        assert result.exit_code == 0, result.output
        assert "Network is valid" in result.output
        assert "Run" in result.output

    def test_cycle_is_reported(self, workdir: Path) -> None:
        path = workdir / "cli_cyclic.py"
        path.write_text(CYCLIC_SCRIPT)

        result = runner.invoke(app, ["check", str(path)])

        assert result.exit_code == 1
        assert "cycle" in result.output

    def test_module_path(self, script: Path, workdir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.syspath_prepend(str(workdir))

        result = runner.invoke(app, ["check", f"{script.stem}:network"])

        assert result.exit_code == 0, result.output
        assert "Network is valid" in result.output

    def test_unknown_network_variable(self, script: Path) -> None:
        result = runner.invoke(app, ["check", str(script), "--network", "missing"])

        assert isinstance(result.exception, ValueError)
        assert "Could not find network 'missing'" in str(result.exception)

    def test_network_from_pyproject(self, script: Path, workdir: Path) -> None:
        (workdir / "pyproject.toml").write_text(f'[tool.reflow]\nnetwork = {{ script = "{script.name}" }}\n')

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 0, result.output
        assert "Network is valid" in result.output

    def test_missing_network(self, workdir: Path) -> None:
        result = runner.invoke(app, ["check"])

        assert result.exit_code == 1
        assert "No network given" in result.output


class TestOrder:
    def test_dependencies_come_first(self, script: Path) -> None:
        result = runner.invoke(app, ["order", str(script)])

        assert result.exit_code == 0, result.output
        positions = [result.output.index(name) for name in ("Run::time", "Run::pace", "Run::speed")]
        assert positions == sorted(positions)

    def test_descriptions_are_shown(self, script: Path) -> None:
        result = runner.invoke(app, ["order", str(script)])

        assert result.exit_code == 0, result.output
        assert "Minutes per kilometre." in result.output

    def test_unknown_unit(self, script: Path) -> None:
        result = runner.invoke(app, ["order", str(script), "--unit", "Walk"])

        assert result.exit_code == 1
        assert "Unknown unit 'Walk'" in result.output


class TestDeps:
    def test_shows_dependencies_and_dependents(self, script: Path) -> None:
        result = runner.invoke(app, ["deps", str(script), "Run::pace"])

        assert result.exit_code == 0, result.output
        assert "Run::time" in result.output
        assert "Run::distance" in result.output
        assert "Run::speed" in result.output

    def test_shows_description(self, script: Path) -> None:
        result = runner.invoke(app, ["deps", str(script), "Run::pace"])

        assert result.exit_code == 0, result.output
        assert "Description: Minutes per kilometre." in result.output

    def test_shows_input_options(self, script: Path) -> None:
        result = runner.invoke(app, ["deps", str(script), "Run::distance"])

        assert result.exit_code == 0, result.output
        assert "Option unit: 'km'" in result.output

    def test_unknown_node(self, script: Path) -> None:
        result = runner.invoke(app, ["deps", str(script), "Run.cadence"])

        assert result.exit_code == 1
        assert "Unknown node 'Run::cadence'" in result.output

    def test_malformed_node(self, script: Path) -> None:
        result = runner.invoke(app, ["deps", str(script), "pace"])

        assert result.exit_code == 1
        assert "Invalid node format" in result.output


class TestRun:
    def test_committed_frame(self, script: Path, workdir: Path) -> None:
        output = workdir / "results.toml"

        result = runner.invoke(app, ["run", str(script), "--set", "Run.distance=5", "-o", str(output)])

        assert result.exit_code == 0, result.output
        assert "Frame committed" in result.output
        with output.open("rb") as f:
            data = tomllib.load(f)
        assert data["Run"]["values"]["pace"] == 6.0

    def test_failed_frame_keeps_previous_values(self, script: Path, workdir: Path) -> None:
        output = workdir / "results.toml"

        result = runner.invoke(app, ["run", str(script), "--set", "Run.distance=0", "-o", str(output)])

        assert result.exit_code == 1
        assert "Frame was not committed" in result.output
        assert "distance must be non-zero" in result.output
        with output.open("rb") as f:
            data = tomllib.load(f)
        assert data["Run"]["values"]["pace"] == 3.0

    def test_input_file(self, script: Path, workdir: Path) -> None:
        input_path = workdir / "input.toml"
        input_path.write_text("[Run]\ntime = 60.0\n")
        output = workdir / "results.toml"

        result = runner.invoke(app, ["run", str(script), "-i", str(input_path), "-o", str(output)])

        assert result.exit_code == 0, result.output
        with output.open("rb") as f:
            data = tomllib.load(f)
        assert data["Run"]["values"]["pace"] == 6.0

    def test_paths_from_pyproject(self, script: Path, workdir: Path) -> None:
        (workdir / "input.toml").write_text("[Run]\ndistance = 15.0\n")
        (workdir / "pyproject.toml").write_text(
            f'[tool.reflow]\nnetwork = {{ script = "{script.name}" }}\ninput = "input.toml"\noutput = "out/results.toml"\n',
        )

        result = runner.invoke(app, ["run"])

        assert result.exit_code == 0, result.output
        with (workdir / "out" / "results.toml").open("rb") as f:
            data = tomllib.load(f)
        assert data["Run"]["values"]["pace"] == 2.0

    def test_invalid_input_file(self, script: Path, workdir: Path) -> None:
        input_path = workdir / "input.toml"
        input_path.write_text("[Run]\npace = 1.0\n")

        result = runner.invoke(app, ["run", str(script), "-i", str(input_path)])

        assert result.exit_code == 1

    def test_missing_input_file(self, script: Path, workdir: Path) -> None:
        result = runner.invoke(app, ["run", str(script), "-i", str(workdir / "missing.toml")])

        assert result.exit_code == 1
        assert "Input file not found" in result.output

    def test_write_to_derived_value(self, script: Path) -> None:
        result = runner.invoke(app, ["run", str(script), "--set", "Run.pace=1"])

        assert result.exit_code == 1
        assert "derived values cannot be written" in result.output


class TestSchema:
    def test_writes_json_schema(self, script: Path, workdir: Path) -> None:
        output = workdir / "schema" / "input.json"

        result = runner.invoke(app, ["schema", str(script), "-o", str(output)])

        assert result.exit_code == 0, result.output
        schema = json.loads(output.read_text())
        assert "Run" in schema["properties"]
