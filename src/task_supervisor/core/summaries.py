"""User-facing payload shapes returned by successful runs."""

from __future__ import annotations

import typing


class RunSummary(typing.TypedDict):
    """Summary returned by a linear ``Task.run()``."""

    completed: list[str]  # Stage names in execution order
    total_stages: int


class ConditionalRunSummary(typing.TypedDict):
    """Summary returned by ``Task.run_conditional()``."""

    final_stage: str | None  # None only when the sequence was empty
    executed_stages: int
