"""Combined runner: state accumulation and dependency resolution together."""

from __future__ import annotations

from contextlib import ExitStack
from typing import TYPE_CHECKING, Any

from .resolve import Capabilities, provide
from .state import ScopedRun, state_scope

if TYPE_CHECKING:
    from task_supervisor.task import Task


class TaskRunner:
    """Runs a task inside both a state scope and a dependency scope.

    ``state_outermost`` picks the nesting order; stage code sees both
    contexts either way.
    """

    def __init__(
        self,
        logger: Any = None,
        repository: Any = None,
        config: Any = None,
        *,
        state_outermost: bool = True,
    ) -> None:
        self.capabilities = Capabilities(
            logger=logger, repository=repository, config=config
        )
        self.state_outermost = state_outermost

    def run_scoped(self, task: Task, *, conditional: bool = False) -> ScopedRun:
        with ExitStack() as stack:
            if self.state_outermost:
                accumulator = stack.enter_context(state_scope())
                stack.enter_context(provide(self.capabilities))
            else:
                stack.enter_context(provide(self.capabilities))
                accumulator = stack.enter_context(state_scope())
            if conditional:
                result = task.run_conditional_with_state()
            else:
                result = task.run_with_state()
        history, metadata = accumulator.snapshot()
        return ScopedRun(history=history, metadata=metadata, result=result)
