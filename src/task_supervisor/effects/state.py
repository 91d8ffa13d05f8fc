"""State accumulator scope: execution history and per-stage metadata.

For the duration of one scoped call, a fresh ``StateAccumulator`` is active
in a context variable. State-aware task runs append each stage's name to
``history`` before it runs and write ``metadata[name]`` after it completes.
Leaving the scope restores whatever accumulator was active before, so nested
scopes never share state.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from task_supervisor.errors import EffectScopeError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from task_supervisor.core.result_primitives import Result
    from task_supervisor.task import Task


@dataclass(frozen=True, slots=True)
class StageMetadata:
    """What the accumulator remembers about the latest run of a stage."""

    index: int
    success: bool
    timestamp: datetime


@dataclass(slots=True)
class StateAccumulator:
    """Mutable history/metadata owned by exactly one scope."""

    history: list[str] = field(default_factory=list)
    metadata: dict[str, StageMetadata] = field(default_factory=dict)

    def record_start(self, stage_name: str) -> None:
        self.history.append(stage_name)

    def record_outcome(self, stage_name: str, index: int, *, success: bool) -> None:
        # A recurring name overwrites the earlier entry
        self.metadata[stage_name] = StageMetadata(
            index=index, success=success, timestamp=datetime.now(UTC)
        )

    def snapshot(self) -> tuple[list[str], dict[str, StageMetadata]]:
        """Copies of the current history and metadata."""
        return list(self.history), dict(self.metadata)


@dataclass(frozen=True, slots=True)
class ScopedRun:
    """Outcome of an effect-scoped run: the side channel plus the Result."""

    history: list[str]
    metadata: dict[str, StageMetadata]
    result: Result[Any, Any]


_STATE: ContextVar[StateAccumulator | None] = ContextVar("stage_state", default=None)


@contextmanager
def state_scope() -> Iterator[StateAccumulator]:
    """Activate a fresh accumulator for the duration of the block."""
    accumulator = StateAccumulator()
    token = _STATE.set(accumulator)
    try:
        yield accumulator
    finally:
        _STATE.reset(token)


def current_state() -> StateAccumulator | None:
    """Return the innermost active accumulator, if any."""
    return _STATE.get()


def require_state() -> StateAccumulator:
    accumulator = _STATE.get()
    if accumulator is None:
        raise EffectScopeError(
            "No state scope is active",
            hint="Wrap the call in state_scope() or use StateTaskRunner.run_scoped()",
        )
    return accumulator


class StateTaskRunner:
    """Runs a task inside a fresh state scope and returns what it recorded."""

    def run_scoped(self, task: Task, *, conditional: bool = False) -> ScopedRun:
        with state_scope() as accumulator:
            if conditional:
                result = task.run_conditional_with_state()
            else:
                result = task.run_with_state()
        history, metadata = accumulator.snapshot()
        return ScopedRun(history=history, metadata=metadata, result=result)
