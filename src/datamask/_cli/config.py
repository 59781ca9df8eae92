"""Configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MAX_ROWS = 20


class ConfigError(Exception):
    """Error in datamask configuration."""


@dataclass(slots=True, frozen=True)
class DatamaskConfig:
    """Configuration loaded from the ``[tool.datamask]`` table of pyproject.toml.

    All relative paths are resolved from the project root (directory containing pyproject.toml).
    """

    input: Path | None = None
    strict: bool = True
    max_rows: int = DEFAULT_MAX_ROWS
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
            # Reached filesystem root
            return None
        current = parent


def load_config(pyproject_path: Path) -> DatamaskConfig:
    """Load and validate [tool.datamask] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed DatamaskConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("datamask", {})

    if not section:
        return DatamaskConfig(project_root=project_root)

    unknown = set(section) - {"input", "strict", "max_rows"}
    if unknown:
        msg = f"Unknown [tool.datamask] keys: {', '.join(sorted(unknown))}"
        raise ConfigError(msg)

    input_path: Path | None = None
    if "input" in section:
        input_value = section["input"]
        if not isinstance(input_value, str):
            msg = "Invalid [tool.datamask].input: expected string path"
            raise ConfigError(msg)
        input_path = Path(input_value)
        if not input_path.is_absolute():
            input_path = project_root / input_path

    strict = section.get("strict", True)
    if not isinstance(strict, bool):
        msg = "Invalid [tool.datamask].strict: expected boolean"
        raise ConfigError(msg)

    max_rows = section.get("max_rows", DEFAULT_MAX_ROWS)
    # bool is an int subclass
    if not isinstance(max_rows, int) or isinstance(max_rows, bool) or max_rows < 1:
        msg = "Invalid [tool.datamask].max_rows: expected positive integer"
        raise ConfigError(msg)

    return DatamaskConfig(
        input=input_path,
        strict=strict,
        max_rows=max_rows,
        project_root=project_root,
    )


def get_config() -> DatamaskConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        DatamaskConfig (defaults if no pyproject.toml or no [tool.datamask] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return DatamaskConfig()
    return load_config(pyproject_path)
