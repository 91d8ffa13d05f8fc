"""Tests for the telemetry context and SimpleReporter."""

from __future__ import annotations

import pytest

from task_supervisor.telemetry import SimpleReporter, TelemetryContext, TelemetryReporter

pytestmark = pytest.mark.unit


class ExplodingReporter:
    def record_timing(self, scope, duration, **metadata):
        raise RuntimeError("reporter down")

    def record_metric(self, scope, value, **metadata):
        raise RuntimeError("reporter down")


def test_disabled_context_is_shared_noop():
    first = TelemetryContext()
    second = TelemetryContext(enabled=False)
    assert first is second
    assert not first.is_enabled
    with first("anything", key="value") as ctx:
        ctx.metric("m", 1)
        ctx.count("c")


def test_enabled_without_reporters_uses_simple_reporter():
    ctx = TelemetryContext(enabled=True)
    assert ctx.is_enabled
    assert isinstance(ctx.reporters[0], SimpleReporter)


def test_nested_scopes_build_dotted_paths():
    reporter = SimpleReporter()
    tele = TelemetryContext(reporter)
    with tele("task"), tele("stage", stage="a"):
        tele.count("failure")
    data = reporter.as_dict()
    assert set(data["timings"]) == {"task", "task.stage"}
    _, meta = data["timings"]["task.stage"][0]
    assert meta["depth"] == 1
    assert meta["parent_scope"] == "task"
    assert meta["stage"] == "a"
    value, meta = data["metrics"]["task.stage.failure"][0]
    assert value == 1
    assert meta["metric_type"] == "counter"


def test_empty_scope_name_is_rejected():
    tele = TelemetryContext(SimpleReporter())
    with pytest.raises(ValueError, match="non-empty"), tele(""):
        pass


def test_reporter_failures_are_logged_not_raised(caplog):
    tele = TelemetryContext(ExplodingReporter())
    with tele("scope"):
        tele.metric("m", 2)
    messages = [r.getMessage() for r in caplog.records]
    assert sum("ExplodingReporter" in m for m in messages) == 2


def test_report_and_reset():
    reporter = SimpleReporter()
    reporter.record_timing("task.stage", 0.5)
    reporter.record_metric("task.stage_failure", 2)
    report = reporter.get_report()
    assert "task.stage" in report
    assert "Calls: 1" in report
    assert "Total: 2" in report
    reporter.reset()
    assert reporter.as_dict() == {"timings": {}, "metrics": {}}


def test_reporter_protocol_is_runtime_checkable():
    assert isinstance(SimpleReporter(), TelemetryReporter)
    assert isinstance(ExplodingReporter(), TelemetryReporter)
