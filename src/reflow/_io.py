"""TOML input files and result export."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any

import tomli_w
from pydantic import BaseModel

from ._node import NodeId, parse_node_id

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from ._eval_engine import Failure
    from ._executor import Executor
    from ._models import Network

logger = logging.getLogger(__name__)


def _serialize_value(value: Any) -> Any:
    """Recursively serialize a value for TOML export.

    Handles:
    - Pydantic BaseModel: Converts to dict via model_dump()
    - dict: Recursively serializes values, dropping None (TOML has no null)
    - list/tuple/set: Recursively serializes items, keeping their positions
    - Path objects: Converted to strings
    - Primitives and TOML-native types: Returned as-is
    """
    if isinstance(value, BaseModel):
        return _serialize_value(value.model_dump(mode="python"))

    if isinstance(value, dict):
        return {str(k): _serialize_value(v) for k, v in value.items() if v is not None}

    if isinstance(value, (list, tuple, set, frozenset)):
        return [_serialize_value(item) for item in value]

    if isinstance(value, Path):
        return str(value)

    return value


def results_to_dict(
    values: Mapping[NodeId, Any],
    errors: Mapping[NodeId, Failure],
) -> dict[str, Any]:
    """Convert value and error stores to a nested dictionary for TOML export.

    Returns:
        A nested dictionary with the structure:
        {
            "UnitName": {
                "values": {"member": <value>, ...},
                "errors": {"member": "<failure description>", ...}
            }
        }

    """
    toml_data: dict[str, Any] = {}

    for node_id, value in values.items():
        if value is None:
            continue
        section = toml_data.setdefault(node_id.unit, {}).setdefault("values", {})
        section[node_id.name] = _serialize_value(value)

    for node_id, failure in errors.items():
        section = toml_data.setdefault(node_id.unit, {}).setdefault("errors", {})
        section[node_id.name] = str(failure)

    return toml_data


def export_to_toml(executor: Executor, output_path: Path | str, *, pending: bool = False) -> None:
    """Export the committed state (or the pending snapshot) of an executor to a TOML file.

    Args:
        executor: The initialized executor.
        output_path: Path to the output TOML file.
        pending: Export the pending snapshot of the last failed frame instead.

    """
    values: dict[NodeId, Any] = {}
    errors: dict[NodeId, Any] = {}
    for unit_name in executor.units:
        if pending:
            unit_values = executor.pending_values(unit_name)
            unit_errors = executor.pending_errors(unit_name)
        else:
            unit_values = executor.current_values(unit_name)
            unit_errors = executor.current_errors(unit_name)
        values.update({NodeId(unit_name, name): value for name, value in unit_values.items()})
        errors.update({NodeId(unit_name, name): failure for name, failure in unit_errors.items()})

    toml_data = results_to_dict(values, errors)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("wb") as f:
        tomli_w.dump(toml_data, f)

    logger.debug(f"Exported results to {output_path}")


def toml_to_overrides(network: Network, toml_contents: dict[str, Any]) -> dict[NodeId, Any]:
    """Validate TOML contents against the network input model and extract input writes.

    Only keys that are present in the contents become writes; missing keys keep
    whatever value the input currently holds.

    Raises:
        pydantic.ValidationError: If a section or key is unknown or a value has the wrong type.

    """
    input_model = network.input_model()
    validated = input_model.model_validate(toml_contents)

    overrides: dict[NodeId, Any] = {}
    for unit_name, unit in network.units.items():
        if unit_name not in validated.model_fields_set:
            logger.debug(f"No input data found for unit '{unit_name}'")
            continue
        section = getattr(validated, unit_name)
        for input_name in unit.inputs:
            if input_name in section.model_fields_set:
                overrides[NodeId(unit_name, input_name)] = getattr(section, input_name)
    return overrides


def load_input_overrides(network: Network, input_path: Path | str) -> dict[NodeId, Any]:
    """Load input writes for a network from a TOML file.

    The file has one table per unit, with one key per input:

        [Run]
        distance = 12.5

    """
    input_path = Path(input_path)
    with input_path.open("rb") as f:
        toml_contents = tomllib.load(f)

    overrides = toml_to_overrides(network, toml_contents)
    logger.debug(f"Loaded {len(overrides)} input values from {input_path}")
    return overrides


def parse_value(raw: str) -> Any:
    """Parse a command-line value as a TOML value, falling back to the raw string.

    Example:
        >>> parse_value("12.5"), parse_value("[1, 2]"), parse_value("archived")
        (12.5, [1, 2], 'archived')

    """
    try:
        return tomllib.loads(f"value = {raw}")["value"]
    except tomllib.TOMLDecodeError:
        return raw


def parse_assignments(assignments: Iterable[str]) -> dict[NodeId, Any]:
    """Parse ``unit.input=value`` assignments into input writes.

    Raises:
        ValueError: If an assignment is not of the form ``unit.input=value``.

    """
    overrides: dict[NodeId, Any] = {}
    for assignment in assignments:
        target, sep, raw = assignment.partition("=")
        if not sep:
            msg = f"Invalid assignment '{assignment}'. Expected 'unit.input=value'"
            raise ValueError(msg)
        overrides[parse_node_id(target)] = parse_value(raw.strip())
    return overrides
