"""Locate the `IRModule` a CLI command operates on.

A module is found either in a Python script, imported under its package
path, or in an importable ``package.module:variable``. The package-path
walk for scripts follows `fastapi_cli.discover` of package `fastapi-cli`
version 0.0.8 (77e6d1f).
"""

from __future__ import annotations

import importlib
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from tensorir._ir import IRModule

from .config import ModuleSource, ScriptSource

if TYPE_CHECKING:
    from types import ModuleType

    from .config import ModuleSourceSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ImportTarget:
    """How to import a script: its dotted name and the directory to put on sys.path."""

    module_name: str
    sys_path_entry: Path


def resolve_import_target(script_path: Path) -> ImportTarget:
    """Work out the dotted module name of `script_path`.

    Parent directories holding an ``__init__.py`` are packages, so a script at
    ``proj/models/net.py`` inside package ``models`` imports as ``models.net``
    with ``proj`` on sys.path.
    """
    module_path = script_path.resolve()
    if module_path.is_file() and module_path.stem == "__init__":
        module_path = module_path.parent

    parts = [module_path.stem]
    root = module_path.parent
    while (root / "__init__.py").is_file():
        parts.insert(0, root.name)
        root = root.parent

    return ImportTarget(module_name=".".join(parts), sys_path_entry=root)


def _prepend_sys_path(entry: Path) -> None:
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


def _pick_ir_module(module: ModuleType, var_name: str | None) -> IRModule:
    """Return `module.<var_name>`, or the first IRModule defined in `module`."""
    if var_name is None:
        for name in dir(module):
            obj = getattr(module, name)
            if isinstance(obj, IRModule):
                logger.debug("Found IRModule '%s' in %s", name, module.__name__)
                return obj
        msg = f"Could not find an IRModule in {module.__name__}, try using --module-var"
        raise ValueError(msg)

    if not hasattr(module, var_name):
        msg = f"Could not find '{var_name}' in {module.__name__}"
        raise ValueError(msg)
    ir_module = getattr(module, var_name)
    if not isinstance(ir_module, IRModule):
        msg = f"'{var_name}' in {module.__name__} is not an IRModule instance"
        raise TypeError(msg)
    return ir_module


def load_module_from_script(script_path: Path, var_name: str | None = None) -> IRModule:
    """Load an IRModule from a Python script path.

    Args:
        script_path: Path to the Python script defining the module
        var_name: Name of the module variable. If None, the first IRModule found is used

    Raises:
        ImportError: If the script cannot be imported
        ValueError: If no IRModule is found or the named variable doesn't exist
        TypeError: If the named variable is not an IRModule

    """
    target = resolve_import_target(script_path)
    _prepend_sys_path(target.sys_path_entry)

    try:
        module = importlib.import_module(target.module_name)
    except (ImportError, ValueError):
        logger.exception("Could not import %s from %s", target.module_name, target.sys_path_entry)
        logger.warning("Ensure all the package directories have an __init__.py file")
        raise

    return _pick_ir_module(module, var_name or None)


def load_module_from_import_path(module_path: str) -> IRModule:
    """Load an IRModule from a module path (e.g., 'examples.matmul:mod').

    The current directory is importable, as it is for ``python -m``.

    Raises:
        ValueError: If the module path format is invalid or the variable is missing
        TypeError: If the named variable is not an IRModule

    """
    module_name, sep, var_name = module_path.partition(":")
    if not sep or not module_name or not var_name:
        msg = "Module path must be in format 'module.path:variable_name'"
        raise ValueError(msg)

    _prepend_sys_path(Path.cwd())
    return _pick_ir_module(importlib.import_module(module_name), var_name)


def load_module_from_source(source: ModuleSourceSpec, var_name: str | None = None) -> IRModule:
    """Load an IRModule from a configured source; `var_name` overrides a script source's name."""
    match source:
        case ScriptSource(script=script, name=name):
            return load_module_from_script(script, var_name or name)
        case ModuleSource(module_path=module_path):
            return load_module_from_import_path(module_path)
