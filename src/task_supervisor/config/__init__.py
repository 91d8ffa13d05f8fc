# src/task_supervisor/config/__init__.py

"""Configuration management for task_supervisor.

Resolve once, freeze, then flow: configuration is resolved at entry points
into an immutable ``FrozenConfig`` that tasks carry for their stages.
"""

# ruff: noqa: I001

from .core import (
    ConfigScope,
    FieldOrigin,
    FrozenConfig,
    Origin,
    Settings,
    SourceMap,
    audit_lines,
    audit_text,
    check_environment,
    config_scope,
    current_config,
    resolve_config,
    was_field_overridden,
)
from .loaders import list_profiles
from .utils import field_spec_hint, get_effective_profile

__all__ = [  # noqa: RUF022
    "resolve_config",
    "current_config",
    "config_scope",
    "ConfigScope",
    "FrozenConfig",
    "Settings",
    "Origin",
    "FieldOrigin",
    "SourceMap",
    "audit_lines",
    "audit_text",
    "was_field_overridden",
    "check_environment",
    "list_profiles",
    "field_spec_hint",
    "get_effective_profile",
]
