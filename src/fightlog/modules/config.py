"""Per-module enablement and settings read from ``[modules]`` and ``[profiles]``.

A configuration document looks like::

    [modules]
    disabled = ["cooldowns"]

    [modules.esprit_gauge]
    severity_tiers = { "1" = "minor", "5" = "medium", "10" = "major" }

    [profiles.strict]
    extends = "gauges"
    esprit_gauge = { severity_tiers = { "1" = "medium" } }

Module tables may carry an ``enabled`` flag; every other key is handed to
the module as its settings. Profiles inherit from the profiles they
``extend`` and their module tables deep-merge over the base tables.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

try:  # pragma: no cover - Python < 3.11 fallback
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]

from fightlog.configuration import load_project_modules_config
from fightlog.modules.registry import ModuleRegistry

__all__ = ["ModuleConfig", "ModuleConfigError"]


logger = logging.getLogger(__name__)

_PROFILE_KEYWORDS = frozenset({"extends", "disabled"})


class ModuleConfigError(RuntimeError):
    """Raised when the module configuration is invalid."""


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(dict(base))
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _string_list(value: Any, *, where: str) -> Tuple[str, ...]:
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise ModuleConfigError(f"'{where}' must be an array of module handles")


def _module_table(value: Any, *, where: str) -> Dict[str, Any]:
    if not isinstance(value, Mapping):
        raise ModuleConfigError(f"'{where}' must be a table")
    if "enabled" in value and not isinstance(value["enabled"], bool):
        raise ModuleConfigError(f"'{where}.enabled' must be a boolean")
    return copy.deepcopy(dict(value))


@dataclass(frozen=True)
class _Profile:
    disabled: Tuple[str, ...] = ()
    tables: Mapping[str, Dict[str, Any]] = field(default_factory=dict)
    extends: Tuple[str, ...] = ()


def _parse_profile(name: str, table: Any) -> _Profile:
    where = f"[profiles.{name}]"
    if not isinstance(table, Mapping):
        raise ModuleConfigError(f"'{where}' must be a table")

    extends = table.get("extends", ())
    if isinstance(extends, str):
        extends = (extends,)
    elif isinstance(extends, (list, tuple)) and all(isinstance(item, str) for item in extends):
        extends = tuple(extends)
    else:
        raise ModuleConfigError(f"'{where}.extends' must name one or more profiles")

    disabled = _string_list(table.get("disabled", []), where=f"{where}.disabled")
    tables = {
        handle: _module_table(value, where=f"{where}.{handle}")
        for handle, value in table.items()
        if handle not in _PROFILE_KEYWORDS
    }
    return _Profile(disabled=disabled, tables=tables, extends=extends)


def _flatten_profiles(profiles: Mapping[str, _Profile]) -> Dict[str, _Profile]:
    """Fold every profile's ancestors into it, parents first."""

    flattened: Dict[str, _Profile] = {}

    def flatten(name: str, chain: Tuple[str, ...]) -> _Profile:
        if name in chain:
            cycle = " -> ".join(chain[chain.index(name):] + (name,))
            raise ModuleConfigError(f"Circular profile inheritance: {cycle}")
        if name in flattened:
            return flattened[name]

        profile = profiles[name]
        disabled: list[str] = []
        tables: Dict[str, Dict[str, Any]] = {}
        for parent_name in profile.extends:
            if parent_name not in profiles:
                raise ModuleConfigError(f"Profile '{name}' extends unknown profile '{parent_name}'")
            parent = flatten(parent_name, chain + (name,))
            disabled.extend(handle for handle in parent.disabled if handle not in disabled)
            for handle, table in parent.tables.items():
                tables[handle] = _deep_merge(tables.get(handle, {}), table)
        disabled.extend(handle for handle in profile.disabled if handle not in disabled)
        for handle, table in profile.tables.items():
            tables[handle] = _deep_merge(tables.get(handle, {}), table)

        flattened[name] = _Profile(disabled=tuple(disabled), tables=tables)
        return flattened[name]

    for name in profiles:
        flatten(name, ())
    return flattened


class ModuleConfig:
    """Validated module configuration with an optional active profile."""

    def __init__(
        self,
        data: Mapping[str, Any],
        *,
        source: Optional[Path] = None,
        default_profile: Optional[str] = None,
    ) -> None:
        self._source = source
        try:
            self._parse(data)
        except ModuleConfigError:
            logger.error(
                "Invalid module configuration in %s",
                source or "in-memory mapping",
                extra={"event": "modules.config.invalid", "source": str(source) if source else None},
            )
            raise
        self._active_profile: Optional[str] = None
        if default_profile is not None:
            self.set_profile(default_profile)

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        *,
        default_profile: Optional[str] = None,
        source: str | Path | None = None,
    ) -> "ModuleConfig":
        return cls(
            data,
            source=Path(source) if source is not None else None,
            default_profile=default_profile,
        )

    @classmethod
    def from_file(cls, path: str | Path, *, default_profile: Optional[str] = None) -> "ModuleConfig":
        """Load a standalone TOML file or a ``pyproject.toml``."""

        path = Path(path)
        try:
            with path.open("rb") as stream:
                document = tomllib.load(stream)
        except FileNotFoundError:
            raise ModuleConfigError(f"Configuration file '{path}' does not exist") from None
        except (OSError, tomllib.TOMLDecodeError) as exc:  # type: ignore[attr-defined]
            raise ModuleConfigError(f"Unable to read module configuration '{path}': {exc}") from exc

        tool = document.get("tool")
        if "modules" not in document and isinstance(tool, Mapping) and "fightlog" in tool:
            document = tool["fightlog"]
        return cls(document, source=path, default_profile=default_profile)

    @classmethod
    def from_project(
        cls,
        pyproject_path: Optional[Path] = None,
        *,
        default_profile: Optional[str] = None,
    ) -> "ModuleConfig":
        loaded = load_project_modules_config(pyproject_path or Path.cwd())
        if loaded is None:
            raise ModuleConfigError("No '[tool.fightlog.modules]' table in the project configuration")
        tables, source = loaded
        return cls(tables, source=source, default_profile=default_profile)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------
    @property
    def source(self) -> Optional[Path]:
        return self._source

    @property
    def active_profile(self) -> Optional[str]:
        return self._active_profile

    @property
    def available_profiles(self) -> Tuple[str, ...]:
        return tuple(self._profiles)

    @property
    def configured_modules(self) -> Tuple[str, ...]:
        return tuple(self._tables)

    def set_profile(self, name: Optional[str]) -> None:
        if name is not None and name not in self._profiles:
            raise KeyError(f"Unknown module profile '{name}'")
        self._active_profile = name
        logger.debug(
            "Active module profile: %s",
            name,
            extra={"event": "modules.config.profile", "profile": name},
        )

    # ------------------------------------------------------------------
    # Per-module lookups
    # ------------------------------------------------------------------
    def get_module_config(self, handle: str) -> Dict[str, Any]:
        """Merged table for ``handle``, always including an ``enabled`` flag."""

        table = copy.deepcopy(self._tables.get(handle, {}))
        enabled = table.get("enabled", True) and handle not in self._disabled
        profile = self._profiles.get(self._active_profile) if self._active_profile else None
        if profile is not None:
            if handle in profile.disabled:
                enabled = False
            override = profile.tables.get(handle, {})
            table = _deep_merge(table, override)
            enabled = override.get("enabled", enabled)
        table["enabled"] = bool(enabled)
        return table

    def is_enabled(self, handle: str) -> bool:
        return self.get_module_config(handle)["enabled"]

    def settings_for(self, handle: str) -> Dict[str, Any]:
        settings = self.get_module_config(handle)
        del settings["enabled"]
        return settings

    def apply(self, registry: ModuleRegistry) -> ModuleRegistry:
        """Return a copy of ``registry`` without disabled modules and with settings attached."""

        self._warn_unknown(registry.handles)
        disabled = [handle for handle in registry.handles if not self.is_enabled(handle)]
        configured = ModuleRegistry()
        for descriptor in registry.without(disabled):
            settings = self.settings_for(descriptor.handle)
            configured.register(
                descriptor.with_settings({**descriptor.settings, **settings}) if settings else descriptor
            )
        if disabled:
            logger.info(
                "Disabled modules: %s",
                ", ".join(disabled),
                extra={"event": "modules.config.disabled", "handles": disabled},
            )
        return configured

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _parse(self, data: Mapping[str, Any]) -> None:
        if not isinstance(data, Mapping):
            raise ModuleConfigError("Module configuration must be a table")
        modules = data.get("modules", {})
        if not isinstance(modules, Mapping):
            raise ModuleConfigError("'[modules]' must be a table")
        profiles = data.get("profiles", {})
        if not isinstance(profiles, Mapping):
            raise ModuleConfigError("'[profiles]' must be a table of profiles")

        self._disabled = frozenset(_string_list(modules.get("disabled", []), where="[modules].disabled"))
        self._tables = {
            handle: _module_table(value, where=f"[modules.{handle}]")
            for handle, value in modules.items()
            if handle != "disabled"
        }
        self._profiles = _flatten_profiles(
            {name: _parse_profile(name, table) for name, table in profiles.items()}
        )

    def _warn_unknown(self, known: Tuple[str, ...]) -> None:
        mentioned = set(self._tables) | self._disabled
        for profile in self._profiles.values():
            mentioned |= set(profile.tables) | set(profile.disabled)
        for handle in sorted(mentioned - set(known)):
            logger.warning(
                "Configuration references module '%s' which is not registered",
                handle,
                extra={"event": "modules.config.unknown_handle", "handle": handle},
            )
