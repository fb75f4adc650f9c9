"""Locate and read the settings consumed by ``fightlog`` commands."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, Optional

from fightlog.cli.errors import CliError
from fightlog.configuration import load_project_config, resolve_pyproject_path
from fightlog.modules.config import ModuleConfig, ModuleConfigError

__all__ = ["CONFIG_ENV_VAR", "load_cli_config", "load_module_config"]


CONFIG_ENV_VAR = "FIGHTLOG_CONFIG"


def _explicit_location(path: Optional[Path]) -> Optional[Path]:
    if path is not None:
        return path
    from_env = os.environ.get(CONFIG_ENV_VAR)
    return Path(from_env) if from_env else None


def _with_origin(section: Dict[str, Any], origin: Optional[Path]) -> Dict[str, Any]:
    section["_config_path"] = str(origin) if origin is not None else None
    return section


def load_cli_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load CLI defaults from ``[tool.fightlog]``.

    ``path`` wins over ``$FIGHTLOG_CONFIG``, which wins over the working
    directory's ``pyproject.toml``. An explicit location that does not
    exist is an error rather than a silent fallback.
    """

    location = _explicit_location(path)
    if location is None:
        loaded = load_project_config(Path.cwd())
        return _with_origin(*loaded) if loaded else _with_origin({}, None)

    target = resolve_pyproject_path(location)
    if target is None or not target.is_file():
        raise CliError(
            f"Configuration file {location} does not exist",
            category="not_found",
            context={"path": str(location)},
        )
    loaded = load_project_config(target)
    if loaded is None:
        return _with_origin({}, target.resolve(strict=False))
    return _with_origin(*loaded)


def load_module_config(
    config: Mapping[str, Any],
    *,
    profile: Optional[str] = None,
) -> Optional[ModuleConfig]:
    """Turn the ``modules`` and ``profiles`` tables into a :class:`ModuleConfig`.

    Returns ``None`` when neither table is present; asking for a profile
    in that case is a usage error.
    """

    tables = {name: config[name] for name in ("modules", "profiles") if config.get(name) is not None}
    if not tables:
        if profile is None:
            return None
        raise CliError(
            f"Unknown module profile '{profile}'",
            category="usage",
            context={"profile": profile},
        )

    tables.setdefault("modules", {})
    try:
        return ModuleConfig.from_mapping(tables, default_profile=profile, source=config.get("_config_path"))
    except (ModuleConfigError, KeyError) as exc:
        raise CliError.from_exception(exc, context={"profile": profile}) from exc
