"""Effect scopes: context that stages can reach without parameter threading.

- ``state``: execution history and per-stage metadata for one scoped run.
- ``resolve``: logger/repository/config capabilities resolvable by stages.
- ``runner``: both scopes around the same task invocation.
"""

from .resolve import (
    CAPABILITY_NAMES,
    NULL_LOGGER,
    Capabilities,
    DependencyAware,
    DependencyProvider,
    current_capabilities,
    provide,
    resolve,
    run_with_dependencies,
)
from .runner import TaskRunner
from .state import (
    ScopedRun,
    StageMetadata,
    StateAccumulator,
    StateTaskRunner,
    current_state,
    require_state,
    state_scope,
)

__all__ = [
    "CAPABILITY_NAMES",
    "NULL_LOGGER",
    "Capabilities",
    "DependencyAware",
    "DependencyProvider",
    "ScopedRun",
    "StageMetadata",
    "StateAccumulator",
    "StateTaskRunner",
    "TaskRunner",
    "current_capabilities",
    "current_state",
    "provide",
    "require_state",
    "resolve",
    "run_with_dependencies",
    "state_scope",
]
