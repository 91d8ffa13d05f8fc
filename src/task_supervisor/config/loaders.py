# src/task_supervisor/config/loaders.py

"""Raw configuration sources: environment variables and TOML files.

Loaders return plain dictionaries and never validate; the resolver checks
the merged result against ``Settings`` once.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any

import tomllib

from . import utils

if TYPE_CHECKING:
    from pathlib import Path

log = logging.getLogger(__name__)

CONFIG_TOOL_NAME = "task_supervisor"

# TASK_SUPERVISOR_* variables that steer resolution instead of setting fields
META_ENV_FIELDS = frozenset({"profile", "pyproject_path", "config_home", "debug_config"})


def load_env() -> dict[str, Any]:
    """Collect ``TASK_SUPERVISOR_<FIELD>`` variables as ``{field: value}``.

    Values for bool/int/float schema fields are coerced; anything that does
    not parse is passed through as a string for the schema to reject.
    """
    from .core import Settings

    found: dict[str, Any] = {}
    for key, raw in os.environ.items():
        if not key.startswith(utils.ENV_PREFIX):
            continue
        name = key.removeprefix(utils.ENV_PREFIX).lower()
        if name in META_ENV_FIELDS:
            continue
        field = Settings.model_fields.get(name)
        found[name] = _coerce(raw, field.annotation if field is not None else str)
    return found


def _coerce(raw: str, target: Any) -> Any:
    if target is bool:
        return utils.coerce_bool(raw)
    if target in (int, float):
        try:
            return target(raw)
        except ValueError:
            return raw
    return raw


def _read_toml(path: Path) -> dict[str, Any]:
    """Parsed TOML, or ``{}`` when the file is missing or unreadable."""
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        log.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}


def _tool_table(data: dict[str, Any]) -> dict[str, Any]:
    table = data.get("tool", {}).get(CONFIG_TOOL_NAME, {})
    return table if isinstance(table, dict) else {}


def _settings_from(path: Path, profile: str | None) -> dict[str, Any]:
    table = _tool_table(_read_toml(path))
    values = {k: v for k, v in table.items() if k != "profiles"}
    profile = profile or utils.get_effective_profile()
    if profile:
        values.update(table.get("profiles", {}).get(profile, {}))
    return values


def load_pyproject(profile: str | None = None) -> dict[str, Any]:
    """``[tool.task_supervisor]`` from the project's pyproject.toml."""
    return _settings_from(utils.get_pyproject_path(), profile)


def load_home(profile: str | None = None) -> dict[str, Any]:
    """``[tool.task_supervisor]`` from ``~/.config/task_supervisor.toml``."""
    return _settings_from(utils.get_home_config_path(), profile)


def list_profiles() -> list[str]:
    """Profile names defined in either the project or the home file."""
    names: set[str] = set()
    for path in (utils.get_pyproject_path(), utils.get_home_config_path()):
        names.update(_tool_table(_read_toml(path)).get("profiles", {}))
    return sorted(name for name in names if name)
