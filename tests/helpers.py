"""Test helpers (small, reusable stage and logger doubles)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from task_supervisor import DependencyAware, Failure, Result, Stage, StageError, Success


def ok_stage(name: str, value: Any = None) -> type[Stage]:
    """Build a Stage subclass named ``name`` whose work succeeds with ``value``."""

    def perform_work(self: Stage) -> Result[Any, Any]:
        return Success(value if value is not None else {"data": "completed", "stage": self.name})

    return type(name, (Stage,), {"perform_work": perform_work})


def err_stage(name: str, message: str = "failed") -> type[Stage]:
    """Build a Stage subclass named ``name`` whose work fails with ``message``."""

    def perform_work(self: Stage) -> Result[Any, Any]:
        return Failure(StageError(error=message, stage=self.name))

    return type(name, (Stage,), {"perform_work": perform_work})


def raising_stage(name: str, message: str = "Something went wrong") -> type[Stage]:
    """Build a Stage subclass named ``name`` whose work raises RuntimeError."""

    def perform_work(self: Stage) -> Result[Any, Any]:
        raise RuntimeError(message)

    return type(name, (Stage,), {"perform_work": perform_work})


@dataclass
class CountingFactory:
    """Stage factory that records how many times it was instantiated."""

    stage_cls: type[Stage]
    calls: int = 0

    def __call__(self, task: Any) -> Stage:
        self.calls += 1
        return self.stage_cls(task)


@dataclass
class RecordingLogger:
    """Logger double exposing info/warn/error/debug and recording calls."""

    calls: list[tuple[str, str]] = field(default_factory=list)

    def debug(self, message: str) -> None:
        self.calls.append(("debug", message))

    def info(self, message: str) -> None:
        self.calls.append(("info", message))

    def warn(self, message: str) -> None:
        self.calls.append(("warn", message))

    def error(self, message: str) -> None:
        self.calls.append(("error", message))

    def messages(self, level: str) -> list[str]:
        return [m for lvl, m in self.calls if lvl == level]


@dataclass
class InMemoryRepository:
    """Repository double storing values in a dict."""

    data: dict[str, Any] = field(default_factory=dict)

    def save(self, key: str, value: Any) -> None:
        self.data[key] = value

    def fetch(self, key: str) -> Any:
        return self.data.get(key)


class LoggingStage(DependencyAware, Stage):
    """Stage that logs once and returns the resolved configuration."""

    def perform_work(self) -> Result[Any, Any]:
        self.log("Executing stage")
        return Success({"data": "completed", "config": self.configuration})
