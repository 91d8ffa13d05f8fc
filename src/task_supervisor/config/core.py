# src/task_supervisor/config/core.py

"""Settings schema, layered resolution and the ambient configuration.

Configuration is resolved once into an immutable ``FrozenConfig``. Sources
are layered from lowest to highest precedence::

    defaults < home file < project pyproject.toml < TASK_SUPERVISOR_* env < overrides

``resolve_config(explain=True)`` also returns a ``SourceMap`` naming the
layer each value came from.
"""

from __future__ import annotations

from contextlib import contextmanager
import contextvars
from dataclasses import dataclass
from enum import Enum
import os
from typing import TYPE_CHECKING, Any, Literal, overload
import warnings

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from task_supervisor.core.failures import DEFAULT_BACKTRACE_LIMIT
from task_supervisor.errors import ConfigurationError

from . import utils

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping
    from types import TracebackType


class Settings(BaseModel):
    """Validation schema; field defaults here are the lowest layer."""

    # Frames kept on captured faults
    backtrace_limit: int = Field(default=DEFAULT_BACKTRACE_LIMIT, ge=0)
    telemetry_enabled: bool = Field(default=False)

    # Unknown keys survive into FrozenConfig.extra
    model_config = {"extra": "allow"}


@dataclass(frozen=True)
class FrozenConfig:
    """Validated configuration shared by a task and the stages it runs."""

    backtrace_limit: int = DEFAULT_BACKTRACE_LIMIT
    telemetry_enabled: bool = False
    extra: Mapping[str, Any] | None = None

    def __repr__(self) -> str:
        return (
            f"FrozenConfig(backtrace_limit={self.backtrace_limit!r}, "
            f"telemetry_enabled={self.telemetry_enabled!r})"
        )

    __str__ = __repr__


class Origin(str, Enum):
    """Layer a configuration value was taken from."""

    DEFAULT = "default"
    HOME = "home"
    PROJECT = "project"
    ENV = "env"
    OVERRIDES = "overrides"


@dataclass(frozen=True)
class FieldOrigin:
    origin: Origin
    env_key: str | None = None
    file: str | None = None


type SourceMap = dict[str, FieldOrigin]


# --- Ambient configuration ---

_AMBIENT: contextvars.ContextVar[FrozenConfig | None] = contextvars.ContextVar(
    "task_supervisor_config", default=None
)


class ConfigScope:
    """Makes ``cfg`` the ambient configuration while the block runs."""

    def __init__(self, cfg: FrozenConfig) -> None:
        self.cfg = cfg
        self._tokens: list[contextvars.Token[FrozenConfig | None]] = []

    def __enter__(self) -> FrozenConfig:
        self._tokens.append(_AMBIENT.set(self.cfg))
        return self.cfg

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> Literal[False]:
        _AMBIENT.reset(self._tokens.pop())
        return False


@contextmanager
def config_scope(
    cfg_or_overrides: Mapping[str, Any] | FrozenConfig | None = None,
    *,
    profile: str | None = None,
    **overrides: object,
) -> Iterator[FrozenConfig]:
    """Run a block with an ambient configuration.

    Accepts a ready ``FrozenConfig``, or overrides (mapping and/or keywords)
    that are resolved on top of the other layers. Tasks built inside the
    block without an explicit ``config`` use it.

    Example:
        with config_scope(backtrace_limit=10):
            Task([Fetch, Store]).run()
    """
    if isinstance(cfg_or_overrides, FrozenConfig):
        cfg = cfg_or_overrides
    else:
        cfg = resolve_config(
            overrides={**(cfg_or_overrides or {}), **overrides}, profile=profile
        )
    with ConfigScope(cfg) as active:
        yield active


def current_config() -> FrozenConfig:
    """The ambient configuration, or a freshly resolved one outside any scope."""
    ambient = _AMBIENT.get()
    if ambient is None:
        return resolve_config()
    return ambient


# --- Resolution ---

_dotenv_done = False


def _ensure_dotenv() -> None:
    global _dotenv_done
    if not _dotenv_done:
        load_dotenv()
        _dotenv_done = True


def _layers(
    overrides: Mapping[str, Any], profile: str | None
) -> list[tuple[Origin, Mapping[str, Any], Callable[[str], FieldOrigin]]]:
    from . import loaders

    home_file = str(utils.get_home_config_path())
    project_file = str(utils.get_pyproject_path())
    return [
        (
            Origin.HOME,
            loaders.load_home(profile=profile),
            lambda _key: FieldOrigin(Origin.HOME, file=home_file),
        ),
        (
            Origin.PROJECT,
            loaders.load_pyproject(profile=profile),
            lambda _key: FieldOrigin(Origin.PROJECT, file=project_file),
        ),
        (
            Origin.ENV,
            loaders.load_env(),
            lambda key: FieldOrigin(Origin.ENV, env_key=utils.ENV_PREFIX + key.upper()),
        ),
        (Origin.OVERRIDES, overrides, lambda _key: FieldOrigin(Origin.OVERRIDES)),
    ]


def _merge(
    overrides: Mapping[str, Any], profile: str | None
) -> tuple[dict[str, Any], SourceMap]:
    merged = Settings().model_dump()
    sources: SourceMap = dict.fromkeys(merged, FieldOrigin(Origin.DEFAULT))
    for _origin, values, describe in _layers(overrides, profile):
        for key, value in values.items():
            merged[key] = value
            sources[key] = describe(key)
    return merged, sources


def _validate(merged: Mapping[str, Any]) -> FrozenConfig:
    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigurationError(
            f"Invalid configuration value for '{field}': {first.get('msg', 'invalid value')}",
            hint=utils.field_spec_hint(field) if field else None,
        ) from e
    return FrozenConfig(
        backtrace_limit=settings.backtrace_limit,
        telemetry_enabled=settings.telemetry_enabled,
        extra={k: v for k, v in merged.items() if k not in Settings.model_fields},
    )


@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    profile: str | None = ...,
    *,
    explain: Literal[True],
) -> tuple[FrozenConfig, SourceMap]: ...


@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    profile: str | None = ...,
    *,
    explain: Literal[False] = ...,
) -> FrozenConfig: ...


def resolve_config(
    overrides: Mapping[str, Any] | None = None,
    profile: str | None = None,
    *,
    explain: bool = False,
) -> FrozenConfig | tuple[FrozenConfig, SourceMap]:
    """Resolve every configuration layer into a ``FrozenConfig``.

    Args:
        overrides: Highest-precedence values, usually from code.
        profile: ``[tool.task_supervisor.profiles.<name>]`` table to overlay;
            defaults to ``TASK_SUPERVISOR_PROFILE``.
        explain: Also return the ``SourceMap``.

    Raises:
        ConfigurationError: A merged value fails schema validation.
    """
    _ensure_dotenv()
    if profile is None:
        profile = utils.get_effective_profile()

    merged, sources = _merge(overrides or {}, profile)
    cfg = _validate(merged)

    if explain:
        return cfg, sources
    if utils.should_emit_debug():
        warnings.warn("Config audit\n" + audit_text(cfg, sources), stacklevel=2)
    return cfg


# --- Audit ---


def _describe(field: str, where: FieldOrigin) -> str:
    if where.origin is Origin.ENV:
        return f"env:{where.env_key or utils.ENV_PREFIX + field.upper()}"
    if where.origin in (Origin.PROJECT, Origin.HOME):
        return f"file:{where.file}"
    return where.origin.value


def audit_lines(cfg: FrozenConfig, sources: SourceMap) -> list[str]:
    """One ``"<field>: <origin>"`` line per schema field, then per extra key."""
    fields = [f for f in Settings.model_fields if f in sources]
    fields += sorted(k for k in (cfg.extra or {}) if k in sources)
    return [f"{field}: {_describe(field, sources[field])}" for field in fields]


def audit_text(cfg: FrozenConfig, sources: SourceMap) -> str:
    return "\n".join(audit_lines(cfg, sources))


def was_field_overridden(sources: SourceMap, field: str) -> bool:
    """True when ``field`` came from anywhere but the schema default."""
    where = sources.get(field)
    return where is not None and where.origin is not Origin.DEFAULT


def check_environment() -> dict[str, str]:
    """The ``TASK_SUPERVISOR_*`` variables currently set."""
    return {k: v for k, v in os.environ.items() if k.startswith(utils.ENV_PREFIX)}
