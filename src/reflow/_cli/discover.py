"""Locate and import the Network a CLI command operates on.

`get_module_data_from_path` was adapted from `fastapi_cli.discover` of package `fastapi-cli` version 0.0.8 (77e6d1f).
"""

from __future__ import annotations

import importlib
import logging
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

from reflow._models import Network

from .config import ModuleSource, ScriptSource

if TYPE_CHECKING:
    from pathlib import Path
    from types import ModuleType

    from .config import NetworkSource

logger = logging.getLogger(__name__)


@dataclass
class ModuleData:
    """Import name of a script and the directory that must be on sys.path to import it."""

    module_import_str: str
    extra_sys_path: Path
    module_paths: list[Path]


def get_module_data_from_path(path: Path) -> ModuleData:
    """Work out how to import a script, walking up through enclosing packages.

    Args:
        path: Path to a Python file or package

    Returns:
        ModuleData containing module import information

    """
    module_path = path.resolve()
    if module_path.is_file() and module_path.stem == "__init__":
        module_path = module_path.parent

    module_paths = [module_path]
    extra_sys_path = module_path.parent
    for parent in module_path.parents:
        if not (parent / "__init__.py").is_file():
            break
        module_paths.insert(0, parent)
        extra_sys_path = parent.parent

    return ModuleData(
        module_import_str=".".join(p.stem for p in module_paths),
        extra_sys_path=extra_sys_path.resolve(),
        module_paths=module_paths,
    )


def _pick_network(module: ModuleType, variable: str | None) -> Network:
    """Return the named Network of a module, or its first Network if no name is given.

    Raises:
        ValueError: If the variable does not exist or the module defines no Network.
        TypeError: If the variable is not a Network.

    """
    if variable is None:
        for name, obj in vars(module).items():
            if isinstance(obj, Network):
                logger.debug(f"Found network: {name}")
                return obj
        msg = f"Could not find a Network in {module.__name__}, try using --network"
        raise ValueError(msg)

    if not hasattr(module, variable):
        msg = f"Could not find network '{variable}' in {module.__name__}"
        raise ValueError(msg)
    network = getattr(module, variable)
    if not isinstance(network, Network):
        msg = f"'{variable}' in {module.__name__} is not a Network instance"
        raise TypeError(msg)
    return network


def load_network_from_script(script_path: Path, network_name: str | None = None) -> Network:
    """Import a script and take its Network.

    Args:
        script_path: Path to the Python script defining the network
        network_name: Name of the network variable. If None, the first Network in the script is used

    """
    module_data = get_module_data_from_path(script_path)
    sys.path.insert(0, str(module_data.extra_sys_path))

    try:
        module = importlib.import_module(module_data.module_import_str)
    except (ImportError, ValueError):
        logger.exception("Import error")
        logger.warning("Ensure all the package directories have an __init__.py file")
        raise

    return _pick_network(module, network_name)


def load_network_from_module_path(module_path: str) -> Network:
    """Import ``package.module:variable`` and take that Network.

    Raises:
        ValueError: If module path format is invalid

    """
    module_name, sep, variable = module_path.partition(":")
    if not sep or not variable:
        msg = "Module path must be in format 'module.path:variable_name'"
        raise ValueError(msg)
    return _pick_network(importlib.import_module(module_name), variable)


def load_network_from_source(source: NetworkSource) -> Network:
    """Load a network from a configured source (script or module)."""
    match source:
        case ScriptSource(script=script, name=name):
            return load_network_from_script(script, name)
        case ModuleSource(module_path=module_path):
            return load_network_from_module_path(module_path)
