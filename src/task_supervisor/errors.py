"""Exception hierarchy for task_supervisor.

Stage failures are never raised: they travel as ``Failure`` values. The
exceptions below signal programming or configuration mistakes only.
"""

from __future__ import annotations


class SupervisorError(Exception):
    """Base exception for all task_supervisor errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        """Return the message with the actionable hint appended, if any."""
        msg = super().__str__()
        return f"{msg}. {self.hint}" if self.hint else msg


class ConfigurationError(SupervisorError):
    """Configuration validation or resolution failed."""


class StageSequenceNotImplementedError(SupervisorError, NotImplementedError):
    """A task was run without a stage sequence."""


class EffectScopeError(SupervisorError):
    """An effect was requested outside of the scope that handles it."""


class UnwrapError(SupervisorError):
    """``unwrap()`` was called on the wrong Result variant."""


class InvariantViolationError(SupervisorError):
    """An internal invariant was violated by a stage, factory or task hook."""

    def __init__(
        self, message: str, *, stage_name: str | None = None, hint: str | None = None
    ) -> None:
        self.stage_name = stage_name
        msg = message if stage_name is None else f"[{stage_name}] {message}"
        super().__init__(msg, hint=hint)


__all__ = [
    "ConfigurationError",
    "EffectScopeError",
    "InvariantViolationError",
    "StageSequenceNotImplementedError",
    "SupervisorError",
    "UnwrapError",
]
