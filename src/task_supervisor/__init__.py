"""task_supervisor: sequential stage execution with scoped effects.

Public API:
    - Task / Stage / FunctionStage: run stages in order, stop at first failure
    - Success / Failure / StageError: exception-free outcomes
    - StateTaskRunner / DependencyProvider / TaskRunner: effect-scoped runs
    - resolve_config / config_scope: layered configuration
"""

from __future__ import annotations

import logging

from task_supervisor.config import FrozenConfig, config_scope, resolve_config
from task_supervisor.core.types import (
    ConditionalRunSummary,
    Failure,
    Result,
    RunSummary,
    StageError,
    Success,
)
from task_supervisor.effects import (
    Capabilities,
    DependencyAware,
    DependencyProvider,
    ScopedRun,
    StageMetadata,
    StateTaskRunner,
    TaskRunner,
    current_state,
    provide,
    resolve,
    state_scope,
)
from task_supervisor.errors import (
    ConfigurationError,
    EffectScopeError,
    InvariantViolationError,
    StageSequenceNotImplementedError,
    SupervisorError,
    UnwrapError,
)
from task_supervisor.stage import FunctionStage, Stage
from task_supervisor.task import StageSpec, Task

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("task-supervisor")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("task_supervisor").addHandler(logging.NullHandler())


def new_task(*stages: StageSpec) -> Task:
    """Create a task over ``stages``."""
    return Task(stages)


def new_stage(name: str) -> Stage:
    """Create a default stage with the given name."""
    return Stage(name=name)


__all__ = [  # noqa: RUF022
    # Core
    "Task",
    "Stage",
    "FunctionStage",
    "StageSpec",
    "new_task",
    "new_stage",
    # Results
    "Success",
    "Failure",
    "Result",
    "StageError",
    "RunSummary",
    "ConditionalRunSummary",
    # Effects
    "StateTaskRunner",
    "DependencyProvider",
    "TaskRunner",
    "DependencyAware",
    "Capabilities",
    "ScopedRun",
    "StageMetadata",
    "state_scope",
    "current_state",
    "provide",
    "resolve",
    # Configuration
    "FrozenConfig",
    "resolve_config",
    "config_scope",
    # Errors
    "SupervisorError",
    "ConfigurationError",
    "EffectScopeError",
    "InvariantViolationError",
    "StageSequenceNotImplementedError",
    "UnwrapError",
]
