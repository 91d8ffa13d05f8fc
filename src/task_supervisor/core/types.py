"""Convenience re-exports of the core value types."""

from __future__ import annotations

from .failures import StageError, error_message
from .result_primitives import Failure, Result, Success, is_result
from .summaries import ConditionalRunSummary, RunSummary

__all__ = [
    "ConditionalRunSummary",
    "Failure",
    "Result",
    "RunSummary",
    "StageError",
    "Success",
    "error_message",
    "is_result",
]
