"""The ``[tool.reflow]`` table of pyproject.toml.

Example:
    [tool.reflow]
    network = "examples.running:network"    # or { script = "examples/running.py", name = "network" }
    input = "data/input.toml"
    output = "build/results.toml"

Relative paths are resolved from the directory holding pyproject.toml.
Paths given on the command line take precedence over the configured ones.
"""

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError


class ConfigError(Exception):
    """Error in reflow configuration."""


@dataclass(slots=True, frozen=True)
class ScriptSource:
    """Script path with optional variable name."""

    script: Path
    name: str | None = None


@dataclass(slots=True, frozen=True)
class ModuleSource:
    """Module path with variable name (e.g., 'examples.running:network')."""

    module_path: str


NetworkSource = ScriptSource | ModuleSource


class _ReflowTable(BaseModel):
    """Raw shape of ``[tool.reflow]``; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")

    network: str | dict[str, Any] | None = None
    input: str | None = None
    output: str | None = None


@dataclass(slots=True, frozen=True)
class ReflowConfig:
    """Resolved reflow settings.

    Attributes:
        network: Where to load the network from, if configured.
        input: TOML file with input writes for ``reflow run``.
        output: TOML file ``reflow run`` exports results to.
        project_root: Directory holding the pyproject.toml the settings came from.

    """

    network: NetworkSource | None = None
    input: Path | None = None
    output: Path | None = None
    project_root: Path | None = None

    def with_paths(self, *, input: Path | None = None, output: Path | None = None) -> "ReflowConfig":  # noqa: A002
        """Return a copy where the given paths replace the configured ones."""
        return replace(
            self,
            input=input if input is not None else self.input,
            output=output if output is not None else self.output,
        )

    def check_run_paths(self) -> None:
        """Check that the run input exists and both run files are TOML files.

        Raises:
            ConfigError: If a path cannot be used by ``reflow run``.

        """
        for label, path in (("input", self.input), ("output", self.output)):
            if path is not None and path.suffix != ".toml":
                msg = f"The {label} file must be a .toml file, got '{path}'"
                raise ConfigError(msg)
        if self.input is not None and not self.input.is_file():
            msg = f"Input file not found: {self.input}"
            raise ConfigError(msg)


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Return the nearest pyproject.toml in ``start_dir`` (default: cwd) or its parents."""
    start = (start_dir or Path.cwd()).resolve()
    for directory in (start, *start.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def _resolve(path: str | None, project_root: Path) -> Path | None:
    if path is None:
        return None
    return project_root / path


def _network_source(value: str | dict[str, Any], project_root: Path) -> NetworkSource:
    match value:
        case str() if ":" in value:
            return ModuleSource(module_path=value)
        case str():
            msg = f"Invalid module path '{value}' in [tool.reflow].network. Expected format: 'module.path:variable_name'"
            raise ConfigError(msg)
        case {"script": str(script), **rest}:
            unknown = sorted(set(rest) - {"name"})
            if unknown:
                msg = f"Unknown keys in [tool.reflow].network: {', '.join(unknown)}"
                raise ConfigError(msg)
            name = rest.get("name")
            if name is not None and not isinstance(name, str):
                msg = "Invalid [tool.reflow].network.name: expected the name of a variable"
                raise ConfigError(msg)
            return ScriptSource(script=project_root / script, name=name)
        case _:
            msg = "Invalid [tool.reflow].network: a table must give the 'script' path as a string"
            raise ConfigError(msg)


def _describe(error: ValidationError) -> str:
    # Union fields report one error per alternative; group them by key
    problems: dict[str, list[str]] = {}
    for detail in error.errors():
        loc = detail["loc"]
        where = f"[tool.reflow].{loc[0]}" if loc else "[tool.reflow]"
        problems.setdefault(where, []).append(detail["msg"])
    return "Invalid " + "; ".join(f"{where}: {' or '.join(msgs)}" for where, msgs in problems.items())


def load_config(pyproject_path: Path) -> ReflowConfig:
    """Load and validate the [tool.reflow] table of a pyproject.toml.

    Raises:
        ConfigError: If the file is not valid TOML or the table is malformed.

    """
    project_root = pyproject_path.parent
    try:
        with pyproject_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {pyproject_path}: {e}"
        raise ConfigError(msg) from e

    try:
        table = _ReflowTable.model_validate(data.get("tool", {}).get("reflow", {}))
    except ValidationError as e:
        raise ConfigError(_describe(e)) from e

    return ReflowConfig(
        network=_network_source(table.network, project_root) if table.network is not None else None,
        input=_resolve(table.input, project_root),
        output=_resolve(table.output, project_root),
        project_root=project_root,
    )


def get_config(start_dir: Path | None = None) -> ReflowConfig:
    """Load the settings of the enclosing project; empty if there is no pyproject.toml."""
    pyproject_path = find_pyproject_toml(start_dir)
    if pyproject_path is None:
        return ReflowConfig()
    return load_config(pyproject_path)


def run_settings(input: Path | None, output: Path | None) -> ReflowConfig:  # noqa: A002
    """Combine the paths given to ``reflow run`` with the configured defaults.

    The project configuration is only read when a path is missing.

    Raises:
        ConfigError: If the configuration is malformed or a path cannot be used.

    """
    base = get_config() if input is None or output is None else ReflowConfig()
    settings = base.with_paths(input=input, output=output)
    settings.check_run_paths()
    return settings
