"""Tests for the StageError failure payload."""

from datetime import datetime

import pytest

from task_supervisor.core.failures import StageError, error_message

pytestmark = pytest.mark.unit


def _raise_nested(message: str) -> None:
    def inner() -> None:
        raise ValueError(message)

    inner()


def _captured(message: str = "kaboom", limit: int = 5) -> StageError:
    try:
        _raise_nested(message)
    except ValueError as exc:
        return StageError.from_exception(exc, stage="loader", limit=limit)
    raise AssertionError("unreachable")


class TestStageError:
    def test_minimal_payload_as_dict(self):
        err = StageError(error="timeout", stage="fetch")
        assert err.as_dict() == {"error": "timeout", "stage": "fetch"}
        assert not err.is_captured_fault

    def test_details_are_merged_and_read_only(self):
        err = StageError(error="bad row", stage="parse", details={"row": 7})
        assert err.as_dict()["row"] == 7
        with pytest.raises(TypeError):
            err.details["row"] = 8  # type: ignore[index]

    def test_equal_payloads_compare_equal(self):
        assert StageError("x", "s", details={"k": 1}) == StageError("x", "s", details={"k": 1})

    def test_from_exception_captures_fault_shape(self):
        err = _captured()
        assert err.error == "kaboom"
        assert err.stage == "loader"
        assert isinstance(err.timestamp, datetime)
        assert err.timestamp.tzinfo is not None
        assert err.is_captured_fault
        assert err.details["exception_type"] == "ValueError"

    def test_backtrace_is_innermost_first(self):
        err = _captured()
        assert err.backtrace is not None
        assert err.backtrace[0].endswith("in inner")

    def test_backtrace_respects_limit(self):
        assert len(_captured(limit=1).backtrace or ()) == 1
        assert _captured(limit=0).backtrace == ()

    def test_empty_message_falls_back_to_type_name(self):
        try:
            raise KeyError
        except KeyError as exc:
            err = StageError.from_exception(exc, stage=None)
        assert err.error == "KeyError"


@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        (StageError("timeout"), "timeout"),
        ({"error": "as-dict"}, "as-dict"),
        ("plain", "plain"),
    ],
)
def test_error_message_handles_any_payload(payload, expected):
    assert error_message(payload) == expected
