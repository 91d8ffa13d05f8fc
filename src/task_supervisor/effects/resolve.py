"""Dependency resolver scope: logger, repository and config for stages.

``provide()`` makes a fixed set of capabilities resolvable for the duration
of a block; an inner ``provide()`` shadows the outer one until it exits.
Stages opt in through the ``DependencyAware`` mixin and only see the
capabilities they list in ``requires``.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Final

if TYPE_CHECKING:
    from collections.abc import Iterator

    from task_supervisor.core.result_primitives import Result
    from task_supervisor.task import Task

CAPABILITY_NAMES: Final[tuple[str, ...]] = ("logger", "repository", "config")

LOG_LEVELS: Final[frozenset[str]] = frozenset(
    {"debug", "info", "warn", "warning", "error", "critical"}
)


@dataclass(frozen=True, slots=True)
class _NullLogger:
    """Logger sentinel used when no logger was supplied; every call is a no-op."""

    def debug(self, message: str) -> None:
        pass

    def info(self, message: str) -> None:
        pass

    def warn(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        pass

    def error(self, message: str) -> None:
        pass

    def critical(self, message: str) -> None:
        pass


NULL_LOGGER: Final = _NullLogger()


@dataclass(frozen=True)
class Capabilities:
    """The named dependencies visible to stages inside a scope.

    ``repository`` and ``config`` may be any object. A mapping ``config`` is
    stored as a read-only copy; anything else is kept as given.
    """

    logger: Any = NULL_LOGGER
    repository: Any = None
    config: Any = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        if self.logger is None:
            object.__setattr__(self, "logger", NULL_LOGGER)
        if self.config is None:
            object.__setattr__(self, "config", MappingProxyType({}))
        elif isinstance(self.config, Mapping) and not isinstance(
            self.config, MappingProxyType
        ):
            object.__setattr__(self, "config", MappingProxyType(dict(self.config)))

    def get(self, name: str) -> Any:
        """Return the named capability, or None for unknown names."""
        if name not in CAPABILITY_NAMES:
            return None
        return getattr(self, name)


_UNSET: Any = object()

_CAPABILITIES: ContextVar[Capabilities | None] = ContextVar(
    "capabilities", default=None
)


@contextmanager
def provide(
    capabilities: Capabilities | None = None,
    *,
    logger: Any = _UNSET,
    repository: Any = _UNSET,
    config: Any = _UNSET,
) -> Iterator[Capabilities]:
    """Make capabilities resolvable for the duration of the block.

    A ready ``Capabilities`` replaces the enclosing scope outright. Keyword
    arguments shadow only the names they set; the rest are inherited from
    the enclosing scope, or take their defaults outside any scope.
    """
    if capabilities is None:
        supplied = {
            name: value
            for name, value in (
                ("logger", logger),
                ("repository", repository),
                ("config", config),
            )
            if value is not _UNSET
        }
        capabilities = replace(_CAPABILITIES.get() or Capabilities(), **supplied)
    token = _CAPABILITIES.set(capabilities)
    try:
        yield capabilities
    finally:
        _CAPABILITIES.reset(token)


def resolve(name: str) -> Any:
    """Resolve a capability from the innermost active scope, or None."""
    capabilities = _CAPABILITIES.get()
    if capabilities is None:
        return None
    return capabilities.get(name)


def current_capabilities() -> Capabilities | None:
    return _CAPABILITIES.get()


class DependencyAware:
    """Stage mixin granting access to scope-provided capabilities.

    Capabilities not listed in ``requires`` resolve to None, so access stays
    an explicit per-stage decision.

    ``configuration`` is the injected ``config`` capability, whatever object
    the scope supplied. It is unrelated to ``Stage.settings``, the
    ``FrozenConfig`` the library itself runs with.

    Example:
        class SaveReport(DependencyAware, Stage):
            requires = frozenset({"logger", "repository"})

            def perform_work(self):
                self.log("saving")
                self.repo.save(self.name, self.task.shared["report"])
                return Success(self.name)
    """

    requires: ClassVar[frozenset[str]] = frozenset(CAPABILITY_NAMES)
    name: str

    def resolve(self, name: str) -> Any:
        if name not in self.requires:
            return None
        return resolve(name)

    def log(self, message: str, level: str = "info") -> None:
        """Send ``"[<stage name>] <message>"`` to the resolved logger, if any."""
        if level not in LOG_LEVELS:
            raise ValueError(
                f"Unknown log level {level!r}; expected one of {sorted(LOG_LEVELS)}"
            )
        logger = self.resolve("logger")
        if logger is None:
            return
        if level == "warn" and (
            isinstance(logger, logging.Logger | logging.LoggerAdapter)
            or not hasattr(logger, "warn")
        ):
            level = "warning"
        getattr(logger, level)(f"[{self.name}] {message}")

    @property
    def repo(self) -> Any:
        return self.resolve("repository")

    @property
    def configuration(self) -> Any:
        return self.resolve("config")


def run_with_dependencies(task: Task, capabilities: Capabilities) -> Result[Any, Any]:
    """Run ``task`` with ``capabilities`` resolvable by its stages."""
    with provide(capabilities):
        return task.run()


class DependencyProvider:
    """Holds a fixed set of capabilities and runs tasks inside them."""

    def __init__(
        self,
        logger: Any = None,
        repository: Any = None,
        config: Any = None,
    ) -> None:
        self.capabilities = Capabilities(
            logger=logger, repository=repository, config=config
        )

    def run_scoped(self, task: Task) -> Result[Any, Any]:
        return run_with_dependencies(task, self.capabilities)
