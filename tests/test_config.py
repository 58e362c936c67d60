"""Tests for the configuration module."""

from pathlib import Path

import pytest

from tensorir._cli.config import (
    DEFAULT_TARGET,
    ConfigError,
    ModuleSource,
    ScriptSource,
    TensorIRConfig,
    find_pyproject_toml,
    get_config,
    load_config,
)


class TestFindPyprojectToml:
    """Tests for find_pyproject_toml function."""

    def test_finds_in_current_directory(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")

        assert find_pyproject_toml(tmp_path) == pyproject

    def test_finds_in_parent_directory(self, tmp_path: Path) -> None:
        """Should walk up to the nearest pyproject.toml."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")
        subdir = tmp_path / "src" / "pkg"
        subdir.mkdir(parents=True)

        assert find_pyproject_toml(subdir) == pyproject

    def test_returns_none_when_not_found(self, tmp_path: Path) -> None:
        assert find_pyproject_toml(tmp_path) is None


class TestLoadConfigModule:
    """Tests for the [tool.tensorir].module setting."""

    def test_module_path_string(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            """
[tool.tensorir]
module = "examples.matmul:mod"
""",
        )

        config = load_config(pyproject)

        assert config.module == ModuleSource(module_path="examples.matmul:mod")
        assert config.target == DEFAULT_TARGET
        assert config.project_root == tmp_path

    def test_module_path_without_colon(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            """
[tool.tensorir]
module = "examples.matmul"
""",
        )

        with pytest.raises(ConfigError, match="Invalid module path"):
            load_config(pyproject)

    def test_script_table(self, tmp_path: Path) -> None:
        """Relative script paths resolve from the project root."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            """
[tool.tensorir]
module = { script = "examples/matmul.py", name = "mod" }
""",
        )

        config = load_config(pyproject)

        assert config.module == ScriptSource(script=tmp_path / "examples/matmul.py", name="mod")

    def test_script_table_without_script_key(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            """
[tool.tensorir]
module = { name = "mod" }
""",
        )

        with pytest.raises(ConfigError, match="'script' key"):
            load_config(pyproject)

    def test_invalid_name_type(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            """
[tool.tensorir]
module = { script = "m.py", name = 3 }
""",
        )

        with pytest.raises(ConfigError, match="module.name"):
            load_config(pyproject)

    def test_invalid_module_type(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            """
[tool.tensorir]
module = 123
""",
        )

        with pytest.raises(ConfigError, match=r"Invalid.*module configuration"):
            load_config(pyproject)


class TestLoadConfigTarget:
    def test_target(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            """
[tool.tensorir]
target = "cuda"
""",
        )

        config = load_config(pyproject)

        assert config.target == "cuda"
        assert config.module is None

    @pytest.mark.parametrize("value", ['""', "42"])
    def test_invalid_target(self, tmp_path: Path, value: str) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(f"[tool.tensorir]\ntarget = {value}\n")

        with pytest.raises(ConfigError, match="target"):
            load_config(pyproject)


class TestLoadConfigEmpty:
    def test_no_section(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")

        config = load_config(pyproject)

        assert config == TensorIRConfig(project_root=tmp_path)

    def test_invalid_toml(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("invalid toml [[[")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(pyproject)

    def test_get_config_without_pyproject(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)

        assert get_config() == TensorIRConfig()

    def test_frozen(self) -> None:
        config = TensorIRConfig()

        with pytest.raises(AttributeError):
            config.target = "cuda"  # type: ignore[misc]
