"""Read the ``[tool.fightlog]`` tables of a ``pyproject.toml``."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python < 3.11 fallback
    import tomli as tomllib  # type: ignore

__all__ = [
    "PROJECT_FILENAME",
    "TOOL_SECTION",
    "load_project_config",
    "load_project_modules_config",
    "load_toml_mapping",
    "resolve_pyproject_path",
]


PROJECT_FILENAME = "pyproject.toml"
TOOL_SECTION = "fightlog"

ProjectConfig = tuple[dict[str, Any], Path]


def _plain(value: Any) -> Any:
    """Copy TOML tables into plain ``dict``/``list`` containers."""

    if isinstance(value, Mapping):
        return {str(key): _plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_plain(item) for item in value]
    return value


def resolve_pyproject_path(candidate: Path) -> Path | None:
    """Map a directory or a ``pyproject.toml`` path onto the file to read.

    Any other file name is rejected with ``None``.
    """

    candidate = candidate.expanduser()
    if candidate.name == PROJECT_FILENAME:
        return candidate
    return None if candidate.suffix else candidate / PROJECT_FILENAME


def load_toml_mapping(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    with path.open("rb") as stream:
        return _plain(tomllib.load(stream))


def load_project_config(path: Path) -> ProjectConfig | None:
    """Return the ``[tool.fightlog]`` table and the file it came from."""

    target = resolve_pyproject_path(path)
    if target is None:
        return None
    target = target.resolve(strict=False)
    document = load_toml_mapping(target) or {}
    tool = document.get("tool")
    section = tool.get(TOOL_SECTION) if isinstance(tool, dict) else None
    if not isinstance(section, dict):
        return None
    return section, target


def load_project_modules_config(path: Path) -> ProjectConfig | None:
    """Return only the ``modules`` and ``profiles`` tables of the project section."""

    loaded = load_project_config(path)
    if loaded is None:
        return None
    section, source = loaded
    if not isinstance(section.get("modules"), dict):
        return None
    tables = {
        name: section[name]
        for name in ("modules", "profiles")
        if isinstance(section.get(name), dict)
    }
    return tables, source
