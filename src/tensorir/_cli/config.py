"""Configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import cast

DEFAULT_TARGET = "llvm"


class ConfigError(Exception):
    """Error in tensorir configuration."""


@dataclass(slots=True, frozen=True)
class ScriptSource:
    """Script path with optional variable name."""

    script: Path
    name: str | None = None


@dataclass(slots=True, frozen=True)
class ModuleSource:
    """Module path with variable name (e.g., 'examples.matmul:mod')."""

    module_path: str


ModuleSourceSpec = ScriptSource | ModuleSource


@dataclass(slots=True, frozen=True)
class TensorIRConfig:
    """Configuration loaded from pyproject.toml.

    Relative script paths are resolved from the project root (directory containing pyproject.toml).
    """

    module: ModuleSourceSpec | None = None
    target: str = DEFAULT_TARGET
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def parse_module_source(value: object, project_root: Path) -> ModuleSourceSpec:
    """Parse the module field from config.

    Args:
        value: The raw value from TOML (string or table)
        project_root: Project root directory for resolving relative paths

    Returns:
        Parsed module source

    Raises:
        ConfigError: If the value format is invalid

    """
    if isinstance(value, str):
        if ":" not in value:
            msg = f"Invalid module path '{value}'. Expected format: 'module.path:variable_name'"
            raise ConfigError(msg)
        return ModuleSource(module_path=value)

    if isinstance(value, dict):
        # { script = "path.py", name = "mod" }
        value_dict = cast("dict[str, object]", value)
        script_value = value_dict.get("script")
        if script_value is None:
            msg = "Invalid [tool.tensorir].module configuration. Expected string or table with 'script' key."
            raise ConfigError(msg)
        if not isinstance(script_value, str):
            msg = "Invalid [tool.tensorir].module.script: expected string path"
            raise ConfigError(msg)
        script_path = Path(script_value)
        if not script_path.is_absolute():
            script_path = project_root / script_path

        name = value_dict.get("name")
        if name is not None and not isinstance(name, str):
            msg = "Invalid [tool.tensorir].module.name: expected string"
            raise ConfigError(msg)

        return ScriptSource(script=script_path, name=name)

    msg = "Invalid [tool.tensorir].module configuration. Expected string or table with 'script' key."
    raise ConfigError(msg)


def load_config(pyproject_path: Path) -> TensorIRConfig:
    """Load and validate [tool.tensorir] config from pyproject.toml.

    Raises:
        ConfigError: If the file is not valid TOML or the section is malformed

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("tensorir", {})
    if not section:
        return TensorIRConfig(project_root=project_root)

    module: ModuleSourceSpec | None = None
    if "module" in section:
        module = parse_module_source(section["module"], project_root)

    target = section.get("target", DEFAULT_TARGET)
    if not isinstance(target, str) or not target:
        msg = "Invalid [tool.tensorir].target: expected a non-empty string"
        raise ConfigError(msg)

    return TensorIRConfig(module=module, target=target, project_root=project_root)


def get_config() -> TensorIRConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        TensorIRConfig (defaults if no pyproject.toml or no [tool.tensorir] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return TensorIRConfig()
    return load_config(pyproject_path)
