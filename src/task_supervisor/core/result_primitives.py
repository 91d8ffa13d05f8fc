"""Result type for explicit, exception-free stage outcomes.

Every stage produces a ``Success`` or a ``Failure``; the task short-circuits
on the first ``Failure``. Keeping failures as values lets callers inspect a
run without wrapping it in try/except.
"""

from __future__ import annotations

from collections.abc import Callable
import dataclasses
import typing

from task_supervisor.errors import UnwrapError

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure")
U = typing.TypeVar("U")
F = typing.TypeVar("F")


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful outcome carrying a value."""

    value: TSuccess

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def map(self, fn: Callable[[TSuccess], U]) -> Success[U]:
        """Transform the success value."""
        return Success(fn(self.value))

    def map_error(self, fn: Callable[[typing.Any], typing.Any]) -> Success[TSuccess]:  # noqa: ARG002
        return self

    def and_then(self, fn: Callable[[TSuccess], Result[U, F]]) -> Result[U, F]:
        """Chain a computation that may itself fail (monadic bind)."""
        return fn(self.value)

    def or_else(self, fn: Callable[[typing.Any], Result[typing.Any, typing.Any]]) -> Success[TSuccess]:  # noqa: ARG002
        return self

    def unwrap(self) -> TSuccess:
        return self.value

    def unwrap_error(self) -> typing.NoReturn:
        raise UnwrapError(f"Called unwrap_error() on Success({self.value!r})")

    def unwrap_or(self, default: object) -> TSuccess:  # noqa: ARG002
        return self.value


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failed outcome carrying an error payload (not an exception)."""

    error: TFailure

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def map(self, fn: Callable[[typing.Any], typing.Any]) -> Failure[TFailure]:  # noqa: ARG002
        return self

    def map_error(self, fn: Callable[[TFailure], F]) -> Failure[F]:
        """Transform the error payload."""
        return Failure(fn(self.error))

    def and_then(self, fn: Callable[[typing.Any], Result[typing.Any, typing.Any]]) -> Failure[TFailure]:  # noqa: ARG002
        return self

    def or_else(self, fn: Callable[[TFailure], Result[U, F]]) -> Result[U, F]:
        """Recover from the failure with a computation that may succeed."""
        return fn(self.error)

    def unwrap(self) -> typing.NoReturn:
        raise UnwrapError(
            f"Called unwrap() on Failure({self.error!r})",
            hint="Check is_ok() first or use unwrap_or()",
        )

    def unwrap_error(self) -> TFailure:
        return self.error

    def unwrap_or(self, default: U) -> U:
        return default


Result = Success[TSuccess] | Failure[TFailure]


def is_result(obj: object) -> typing.TypeGuard[Result[typing.Any, typing.Any]]:
    """Return True if ``obj`` is either Result variant."""
    return isinstance(obj, Success | Failure)
