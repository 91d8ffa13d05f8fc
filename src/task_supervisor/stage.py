"""Stage: a single unit of work with a three-phase execution contract.

``execute()`` runs the phases in order and stores the outcome:

1. ``validate_preconditions()`` - declines to run when ``preconditions_met()``
   is false.
2. ``perform_work()`` - the extension point.
3. ``handle_failure(error)`` - only when work failed; recovers through
   ``retry_with_backoff()`` when ``recoverable(error)`` says so.

Any exception raised along the way is captured into a ``Failure``; a stage
never lets a fault escape ``execute()``.
"""

from __future__ import annotations

from functools import partial
import logging
from typing import TYPE_CHECKING, Any, Self

from task_supervisor.core.failures import (
    DEFAULT_BACKTRACE_LIMIT,
    PRECONDITIONS_NOT_MET,
    RETRY_NOT_IMPLEMENTED,
    StageError,
)
from task_supervisor.core.result_primitives import Failure, Result, Success
from task_supervisor.errors import ConfigurationError, InvariantViolationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from task_supervisor.config import FrozenConfig
    from task_supervisor.task import Task

log = logging.getLogger(__name__)

READY = "ready"


class Stage:
    """Base class for stages; override the hooks to supply behavior.

    A Stage subclass is itself a valid stage factory: the task calls
    ``StageClass(task)`` when it reaches the stage.
    """

    def __init__(self, task: Task | None = None, *, name: str | None = None) -> None:
        self.task = task
        self.name = name if name is not None else type(self).__name__.lower()
        self.result: Result[Any, Any] | None = None

    def __repr__(self) -> str:
        if self.result is None:
            state = "not-run"
        else:
            state = "success" if self.result.is_ok() else "failure"
        return f"{type(self).__name__}(name={self.name!r}, state={state})"

    def bind(self, task: Task) -> Self:
        """Attach this stage to ``task`` so it can read task-level data."""
        self.task = task
        return self

    # --- Execution ---

    def execute(self) -> Result[Any, Any]:
        """Run the three-phase protocol, store the outcome and return it."""
        try:
            outcome = self._run_phases()
        except Exception as exc:
            log.debug("Stage '%s' raised; capturing as failure", self.name, exc_info=True)
            outcome = Failure(
                StageError.from_exception(
                    exc, stage=self.name, limit=self._backtrace_limit()
                )
            )
        self.result = outcome
        return outcome

    def _run_phases(self) -> Result[Any, Any]:
        ready = self._checked(self.validate_preconditions(), "validate_preconditions")
        if isinstance(ready, Failure):
            return ready
        outcome = self._checked(self.perform_work(), "perform_work")
        if isinstance(outcome, Failure):
            outcome = self._checked(self.handle_failure(outcome.error), "handle_failure")
        return outcome

    def _checked(self, outcome: object, hook: str) -> Result[Any, Any]:
        if not isinstance(outcome, Success | Failure):
            raise InvariantViolationError(
                f"{hook}() returned {type(outcome).__name__}; expected Success|Failure",
                stage_name=self.name,
            )
        return outcome

    # --- Introspection ---

    @property
    def performed(self) -> bool:
        return self.result is not None

    @property
    def succeeded(self) -> bool:
        return self.result is not None and self.result.is_ok()

    @property
    def failed(self) -> bool:
        return self.result is not None and self.result.is_err()

    @property
    def value(self) -> Any:
        """The success payload, or None if not performed or failed."""
        return self.result.value if isinstance(self.result, Success) else None

    @property
    def error(self) -> Any:
        """The failure payload, or None if not performed or succeeded."""
        return self.result.error if isinstance(self.result, Failure) else None

    def reset(self) -> None:
        """Return the stage to the not-run state."""
        self.result = None

    # --- Configuration ---

    @property
    def settings(self) -> FrozenConfig:
        """The owning task's resolved ``FrozenConfig``, or the ambient one."""
        if self.task is not None:
            return self.task.config
        from task_supervisor.config import current_config

        return current_config()

    def _backtrace_limit(self) -> int:
        try:
            return self.settings.backtrace_limit
        except ConfigurationError as e:
            log.warning(
                "Stage '%s': using default backtrace limit (%s)", self.name, e
            )
            return DEFAULT_BACKTRACE_LIMIT

    # --- Helpers for hook implementations ---

    def fail(self, message: str, **details: Any) -> Failure[StageError]:
        """Build a keyed failure attributed to this stage."""
        return Failure(StageError(error=message, stage=self.name, details=details))

    # --- Extension hooks ---

    def validate_preconditions(self) -> Result[str, Any]:
        if self.preconditions_met():
            return Success(READY)
        return self.fail(PRECONDITIONS_NOT_MET)

    def perform_work(self) -> Result[Any, Any]:
        """Do the stage's work. Override in subclasses."""
        return Success({"data": "completed", "stage": self.name})

    def handle_failure(self, error: Any) -> Result[Any, Any]:
        """Recover from a work failure, or pass the error through unchanged."""
        if self.recoverable(error):
            return self.retry_with_backoff()
        return Failure(error)

    def preconditions_met(self) -> bool:
        return True

    def recoverable(self, error: Any) -> bool:  # noqa: ARG002
        return False

    def retry_with_backoff(self) -> Result[Any, Any]:
        """Retry policy belongs to subclasses; the default declines."""
        return self.fail(RETRY_NOT_IMPLEMENTED)


class FunctionStage(Stage):
    """Stage assembled from plain callables instead of a subclass.

    Every callable receives the stage instance, so it can read ``name``,
    ``task`` and ``settings``.

    Example:
        fetch = FunctionStage.factory(lambda s: Success(api.get()), name="fetch")
        Task([fetch, store]).run()
    """

    def __init__(
        self,
        task: Task | None = None,
        *,
        work: Callable[[Stage], Result[Any, Any]] | None = None,
        name: str | None = None,
        preconditions: Callable[[Stage], bool] | None = None,
        recoverable: Callable[[Stage, Any], bool] | None = None,
        retry: Callable[[Stage], Result[Any, Any]] | None = None,
    ) -> None:
        if name is None:
            fn_name = getattr(work, "__name__", "<lambda>")
            name = fn_name.lower() if fn_name != "<lambda>" else None
        super().__init__(task, name=name)
        self._work = work
        self._preconditions = preconditions
        self._recoverable = recoverable
        self._retry = retry

    @classmethod
    def factory(cls, work: Callable[[Stage], Result[Any, Any]], **kwargs: Any) -> Callable[[Task], FunctionStage]:
        """Return a factory producing a fresh stage for every run."""
        return partial(cls, work=work, **kwargs)

    def perform_work(self) -> Result[Any, Any]:
        if self._work is None:
            return super().perform_work()
        return self._work(self)

    def preconditions_met(self) -> bool:
        if self._preconditions is None:
            return True
        return bool(self._preconditions(self))

    def recoverable(self, error: Any) -> bool:
        if self._recoverable is None:
            return False
        return bool(self._recoverable(self, error))

    def retry_with_backoff(self) -> Result[Any, Any]:
        if self._retry is None:
            return super().retry_with_backoff()
        return self._retry(self)


__all__ = ["READY", "FunctionStage", "Stage"]
