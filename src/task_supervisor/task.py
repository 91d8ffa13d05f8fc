"""Task: an ordered runner over stages with short-circuit-on-failure semantics.

A task owns a sequence of stage specifications (Stage instances, or
factories called with the task) and the per-run state ``executed_stages``,
``results`` and ``current_index``. Each ``run`` starts from a clean slate and
returns exactly one aggregate Result: the first stage failure, or a summary.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
import logging
from typing import TYPE_CHECKING, Any, Self

from task_supervisor.config import FrozenConfig, current_config
from task_supervisor.core.failures import error_message
from task_supervisor.core.result_primitives import Failure, Result, Success
from task_supervisor.core.summaries import ConditionalRunSummary, RunSummary
from task_supervisor.effects.state import require_state
from task_supervisor.errors import (
    InvariantViolationError,
    StageSequenceNotImplementedError,
)
from task_supervisor.stage import Stage
from task_supervisor.telemetry import TelemetryContext

if TYPE_CHECKING:
    from task_supervisor.effects.state import StateAccumulator
    from task_supervisor.telemetry import TelemetryReporter

log = logging.getLogger(__name__)

type StageSpec = Stage | Callable[[Task], Stage]


class Task:
    """Runs stages in order, stopping at the first failure.

    Supply the stages by passing ``stages``, by calling ``add_stage``, or by
    overriding ``stage_sequence()`` in a subclass. Override
    ``determine_next_stage()`` to branch in ``run_conditional()``.
    """

    def __init__(
        self,
        stages: Iterable[StageSpec] | None = None,
        *,
        shared: dict[str, Any] | None = None,
        config: FrozenConfig | None = None,
        reporters: Iterable[TelemetryReporter] = (),
    ) -> None:
        self._stage_specs: list[StageSpec] | None = (
            list(stages) if stages is not None else None
        )
        self.shared: dict[str, Any] = shared if shared is not None else {}
        self.config = config if config is not None else current_config()
        reporters = tuple(reporters)
        self._telemetry = TelemetryContext(
            *reporters, enabled=bool(reporters) or self.config.telemetry_enabled
        )
        self.executed_stages: list[Stage] = []
        self.results: list[Result[Any, Any]] = []
        self.current_index = 0

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(executed={len(self.executed_stages)}, "
            f"current_index={self.current_index})"
        )

    # --- Stage specification ---

    def add_stage(self, spec: StageSpec) -> Self:
        """Append a stage instance or factory; returns the task for chaining."""
        if self._stage_specs is None:
            self._stage_specs = []
        self._stage_specs.append(spec)
        return self

    def stage_sequence(self) -> Sequence[StageSpec]:
        """Return the ordered stage specifications for this task."""
        if self._stage_specs is None:
            raise StageSequenceNotImplementedError(
                f"{type(self).__name__} does not define a stage sequence",
                hint="Pass stages=..., call add_stage(), or override stage_sequence()",
            )
        return tuple(self._stage_specs)

    def determine_next_stage(
        self, outcome: Result[Any, Any], current_index: int  # noqa: ARG002
    ) -> int | None:
        """Pick the next index for ``run_conditional``; None ends the run."""
        next_index = current_index + 1
        return next_index if next_index < len(self.stage_sequence()) else None

    # --- Running ---

    def run(self) -> Result[RunSummary, Any]:
        """Run every stage in order, returning the first failure if any."""
        return self._run_linear(None)

    def run_with_state(self) -> Result[RunSummary, Any]:
        """Like ``run``, recording each stage into the active state scope."""
        return self._run_linear(require_state())

    def run_conditional(self) -> Result[ConditionalRunSummary, Any]:
        """Run stages following ``determine_next_stage`` after each one."""
        return self._run_branching(None)

    def run_conditional_with_state(self) -> Result[ConditionalRunSummary, Any]:
        """Like ``run_conditional``, recording into the active state scope."""
        return self._run_branching(require_state())

    def _begin_run(self) -> Sequence[StageSpec]:
        specs = self.stage_sequence()
        self.executed_stages = []
        self.results = []
        self.current_index = 0
        return specs

    def _run_linear(
        self, accumulator: StateAccumulator | None
    ) -> Result[RunSummary, Any]:
        specs = self._begin_run()
        for index, spec in enumerate(specs):
            self.current_index = index
            outcome = self._execute_stage(spec, index, accumulator)
            if isinstance(outcome, Failure):
                return outcome
        return Success(
            RunSummary(
                completed=[stage.name for stage in self.executed_stages],
                total_stages=len(specs),
            )
        )

    def _run_branching(
        self, accumulator: StateAccumulator | None
    ) -> Result[ConditionalRunSummary, Any]:
        specs = self._begin_run()
        if not specs:
            return Success(ConditionalRunSummary(final_stage=None, executed_stages=0))

        index: int | None = 0
        while index is not None:
            if not 0 <= index < len(specs):
                raise InvariantViolationError(
                    f"determine_next_stage() returned out-of-range index {index} "
                    f"for a sequence of {len(specs)} stages"
                )
            self.current_index = index
            outcome = self._execute_stage(specs[index], index, accumulator)
            if isinstance(outcome, Failure):
                return outcome
            index = self.determine_next_stage(outcome, index)

        return Success(
            ConditionalRunSummary(
                final_stage=self.executed_stages[-1].name,
                executed_stages=len(self.executed_stages),
            )
        )

    def _instantiate(self, spec: StageSpec) -> Stage:
        if isinstance(spec, Stage):
            return spec.bind(self)
        stage = spec(self)
        if not isinstance(stage, Stage):
            raise InvariantViolationError(
                f"Stage factory {spec!r} returned {type(stage).__name__}; expected a Stage"
            )
        return stage

    def _execute_stage(
        self,
        spec: StageSpec,
        index: int,
        accumulator: StateAccumulator | None,
    ) -> Result[Any, Any]:
        stage = self._instantiate(spec)
        self.executed_stages.append(stage)
        if accumulator is not None:
            accumulator.record_start(stage.name)

        log.debug("Starting stage '%s' (index=%d)", stage.name, index)
        with self._telemetry("task.stage", stage=stage.name, index=index):
            outcome = stage.execute()
        self.results.append(outcome)

        if accumulator is not None:
            accumulator.record_outcome(stage.name, index, success=outcome.is_ok())
        if isinstance(outcome, Failure):
            self._telemetry.count("task.stage_failure", stage=stage.name)
            log.info(
                "Stage '%s' failed; stopping task: %s",
                stage.name,
                error_message(outcome.error),
            )
        else:
            log.debug("Completed stage '%s'", stage.name)
        return outcome

    # --- Introspection ---

    def successful_results(self) -> list[Result[Any, Any]]:
        return [r for r in self.results if r.is_ok()]

    def failed_results(self) -> list[Result[Any, Any]]:
        return [r for r in self.results if r.is_err()]

    def all_successful(self) -> bool:
        return bool(self.results) and all(r.is_ok() for r in self.results)

    def any_failed(self) -> bool:
        return any(r.is_err() for r in self.results)

    def reset(self) -> None:
        """Reset every executed stage and clear the run state."""
        for stage in self.executed_stages:
            stage.reset()
        self.executed_stages = []
        self.results = []
        self.current_index = 0


__all__ = ["StageSpec", "Task"]
