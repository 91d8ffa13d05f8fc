# src/task_supervisor/config/utils.py

"""Configuration utilities shared by the resolver and the loaders.

Pure helpers only, so both ``core`` and ``loaders`` can import this module
without creating cycles.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import Callable

# --- Constants ---

ENV_PREFIX = "TASK_SUPERVISOR_"

CONFIG_HOME_VAR = "TASK_SUPERVISOR_CONFIG_HOME"
PYPROJECT_PATH_VAR = "TASK_SUPERVISOR_PYPROJECT_PATH"
PROFILE_VAR = "TASK_SUPERVISOR_PROFILE"
DEBUG_CONFIG_VAR = "TASK_SUPERVISOR_DEBUG_CONFIG"

HOME_CONFIG_FILENAME = "task_supervisor.toml"

_TRUTHY = {"1", "true", "yes", "on"}


# --- Path Utilities ---


def get_config_path(path_type: Literal["project", "home"]) -> Path:
    """Get configuration file path with environment override support.

    Falls back to a cwd-based path for the "home" type when ``Path.home()``
    cannot be resolved (restricted environments without HOME).
    """
    specs: dict[str, tuple[str, Callable[[], Path]]] = {
        "project": (
            PYPROJECT_PATH_VAR,
            lambda: Path.cwd() / "pyproject.toml",
        ),
        "home": (
            CONFIG_HOME_VAR,
            lambda: Path.home() / ".config" / HOME_CONFIG_FILENAME,
        ),
    }
    env_var, default_factory = specs[path_type]
    if override := os.environ.get(env_var):
        return Path(override)
    try:
        return default_factory()
    except RuntimeError:
        if path_type == "home":
            return Path.cwd() / HOME_CONFIG_FILENAME
        raise


def get_pyproject_path() -> Path:
    """Return path to the project pyproject.toml."""
    return get_config_path("project")


def get_home_config_path() -> Path:
    """Return path to the user's home-level config TOML."""
    return get_config_path("home")


# --- Environment Utilities ---


def get_effective_profile() -> str | None:
    """Return the profile selected through the environment, if any."""
    return os.environ.get(PROFILE_VAR) or None


def coerce_bool(value: str) -> bool:
    """Convert a string to boolean using common conventions."""
    return value.strip().lower() in _TRUTHY


def should_emit_debug() -> bool:
    """Return True when the config audit should be emitted as a warning."""
    return coerce_bool(os.environ.get(DEBUG_CONFIG_VAR, ""))


def field_spec_hint(field: str) -> str:
    """Return a compact hint for setting a config field via env or files."""
    env_key = f"{ENV_PREFIX}{field.upper()}"
    return (
        f"Set {env_key} or [tool.task_supervisor] {field} in pyproject.toml "
        f"(or ~/.config/{HOME_CONFIG_FILENAME})."
    )
