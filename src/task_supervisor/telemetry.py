"""Optional per-stage telemetry.

Tasks wrap every stage execution in a named span. When telemetry is off the
span is a shared no-op; when it is on, span durations and counters are
handed to reporters. Span names nest through a context variable, so a span
opened inside another is reported as ``"outer.inner"``.
"""

from __future__ import annotations

from collections import defaultdict, deque
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from functools import partial
import logging
import time
from typing import TYPE_CHECKING, Any, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from types import TracebackType

log = logging.getLogger(__name__)

_open_spans: ContextVar[tuple[str, ...]] = ContextVar("telemetry_spans", default=())


@runtime_checkable
class TelemetryReporter(Protocol):
    """Anything with these two methods can receive telemetry."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


def _placement(spans: tuple[str, ...]) -> dict[str, Any]:
    return {"depth": len(spans), "parent_scope": ".".join(spans) or None}


@dataclass(frozen=True, slots=True)
class _DisabledTelemetry:
    """Shared no-op used whenever telemetry is off."""

    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        return None

    @property
    def is_enabled(self) -> bool:
        return False

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        pass

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass


class _RecordingTelemetry:
    """Times spans and forwards everything to its reporters."""

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter) -> None:
        self.reporters = reporters

    @property
    def is_enabled(self) -> bool:
        return True

    @contextmanager
    def __call__(self, name: str, **metadata: Any) -> Iterator[Self]:
        if not isinstance(name, str) or not name:
            raise ValueError("Span name must be a non-empty string")
        enclosing = _open_spans.get()
        token = _open_spans.set((*enclosing, name))
        started = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - started
            _open_spans.reset(token)
            self._dispatch(
                "record_timing",
                ".".join((*enclosing, name)),
                elapsed,
                {**_placement(enclosing), **metadata},
            )

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        """Report ``value`` under ``name`` inside the current span."""
        enclosing = _open_spans.get()
        self._dispatch(
            "record_metric",
            ".".join((*enclosing, name)),
            value,
            {**_placement(enclosing), **metadata},
        )

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        self.metric(name, increment, metric_type="counter", **metadata)

    def _dispatch(self, method: str, scope: str, value: Any, metadata: dict[str, Any]) -> None:
        # A broken reporter must not fail the task it observes
        for reporter in self.reporters:
            send: Callable[..., None] = partial(getattr(reporter, method), scope, value)
            try:
                send(**metadata)
            except Exception as e:
                log.error(
                    "Telemetry reporter '%s' failed in %s(%r): %s",
                    type(reporter).__name__,
                    method,
                    scope,
                    e,
                    exc_info=True,
                )


_DISABLED = _DisabledTelemetry()

type Telemetry = _RecordingTelemetry | _DisabledTelemetry


def TelemetryContext(  # noqa: N802
    *reporters: TelemetryReporter, enabled: bool | None = None
) -> Telemetry:
    """Build the telemetry a task uses for its stage spans.

    Passing reporters turns telemetry on. ``enabled=True`` without
    reporters records into a fresh ``SimpleReporter``; otherwise the
    shared no-op is returned.
    """
    if enabled is None:
        enabled = bool(reporters)
    if not enabled:
        return _DISABLED
    return _RecordingTelemetry(*(reporters or (SimpleReporter(),)))


class SimpleReporter:
    """Keeps the most recent entries per scope in memory."""

    def __init__(self, max_entries_per_scope: int = 1000) -> None:
        self.max_entries = max_entries_per_scope
        self.timings: defaultdict[str, deque[tuple[float, dict[str, Any]]]] = defaultdict(
            self._bucket
        )
        self.metrics: defaultdict[str, deque[tuple[Any, dict[str, Any]]]] = defaultdict(
            self._bucket
        )

    def _bucket(self) -> deque[Any]:
        return deque(maxlen=self.max_entries)

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self.timings[scope].append((duration, metadata))

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self.metrics[scope].append((value, metadata))

    def reset(self) -> None:
        self.timings.clear()
        self.metrics.clear()

    def as_dict(self) -> dict[str, Any]:
        """Plain-dict snapshot: ``{"timings": {scope: [...]}, "metrics": {...}}``."""
        return {
            "timings": {scope: list(entries) for scope, entries in self.timings.items()},
            "metrics": {scope: list(entries) for scope, entries in self.metrics.items()},
        }

    def get_report(self) -> str:
        lines = ["Stage timings:"]
        for scope, entries in sorted(self.timings.items()):
            total = sum(duration for duration, _ in entries)
            lines.append(
                f"  {scope:<28} Calls: {len(entries):<4} "
                f"Mean: {total / len(entries):.4f}s  Sum: {total:.4f}s"
            )
        if self.metrics:
            lines.append("Metrics:")
            for scope, entries in sorted(self.metrics.items()):
                numeric = sum(v for v, _ in entries if isinstance(v, int | float))
                lines.append(f"  {scope:<28} Entries: {len(entries):<4} Total: {numeric:,.0f}")
        return "\n".join(lines)
