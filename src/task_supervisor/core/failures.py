"""Keyed failure payload shared by precondition, business and captured faults.

Callers never need to tell an expected failure from a crash structurally:
all three kinds are ``StageError`` values inside a ``Failure``.
"""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime
import traceback
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

PRECONDITIONS_NOT_MET = "Preconditions not met"
RETRY_NOT_IMPLEMENTED = "Retry not implemented"
DEFAULT_BACKTRACE_LIMIT = 5


@dataclasses.dataclass(frozen=True, slots=True)
class StageError:
    """Failure payload produced by a stage.

    ``error`` is the human-readable message and ``stage`` the name of the
    stage that produced it. Captured faults additionally carry a short
    ``backtrace`` and a ``timestamp``.
    """

    error: str
    stage: str | None = None
    backtrace: tuple[str, ...] | None = None
    timestamp: datetime | None = None
    details: Mapping[str, Any] = dataclasses.field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        if not isinstance(self.details, MappingProxyType):
            object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    @property
    def is_captured_fault(self) -> bool:
        """True when the payload was built from an unexpected exception."""
        return self.backtrace is not None

    def as_dict(self) -> dict[str, Any]:
        """Return the keyed view, omitting keys that were never populated."""
        out: dict[str, Any] = {"error": self.error}
        if self.stage is not None:
            out["stage"] = self.stage
        if self.backtrace is not None:
            out["backtrace"] = list(self.backtrace)
        if self.timestamp is not None:
            out["timestamp"] = self.timestamp
        out.update(self.details)
        return out

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        *,
        stage: str | None,
        limit: int = DEFAULT_BACKTRACE_LIMIT,
    ) -> StageError:
        """Normalize an unexpected exception into the captured-fault shape.

        Frames are ordered innermost first, so the raising frame leads.
        """
        frames = traceback.extract_tb(exc.__traceback__)
        innermost_first = list(reversed(frames))[: max(limit, 0)]
        backtrace = tuple(
            f"{frame.filename}:{frame.lineno}:in {frame.name}"
            for frame in innermost_first
        )
        message = str(exc) or type(exc).__name__
        return cls(
            error=message,
            stage=stage,
            backtrace=backtrace,
            timestamp=datetime.now(UTC),
            details={"exception_type": type(exc).__name__},
        )


def error_message(error: object) -> str:
    """Best-effort human-readable message for any failure payload."""
    if isinstance(error, StageError):
        return error.error
    if isinstance(error, dict) and "error" in error:
        return str(error["error"])
    return str(error)
