"""Tests for layered configuration resolution and the ambient scope."""

from __future__ import annotations

from pathlib import Path
import warnings

import pytest

from task_supervisor import ConfigurationError, FrozenConfig, Task
from task_supervisor.config import (
    Origin,
    audit_text,
    check_environment,
    config_scope,
    current_config,
    list_profiles,
    resolve_config,
    was_field_overridden,
)

pytestmark = pytest.mark.unit


def _write_pyproject(tmp_path: Path, body: str) -> None:
    (tmp_path / "pyproject.toml").write_text(body, encoding="utf-8")


class TestDefaults:
    def test_defaults_without_any_source(self):
        cfg = resolve_config()
        assert cfg.backtrace_limit == 5
        assert cfg.telemetry_enabled is False
        assert cfg.extra == {}

    def test_frozen_config_is_immutable(self):
        cfg = resolve_config()
        with pytest.raises(AttributeError):
            cfg.backtrace_limit = 1  # type: ignore[misc]

    def test_repr_omits_extras(self):
        cfg = FrozenConfig(extra={"secret": "x"})
        assert "secret" not in repr(cfg)


class TestPrecedence:
    def test_overrides_beat_env(self, monkeypatch):
        monkeypatch.setenv("TASK_SUPERVISOR_BACKTRACE_LIMIT", "7")
        assert resolve_config().backtrace_limit == 7
        assert resolve_config(overrides={"backtrace_limit": 2}).backtrace_limit == 2

    def test_env_beats_project_file(self, tmp_path, monkeypatch):
        _write_pyproject(tmp_path, "[tool.task_supervisor]\nbacktrace_limit = 9\n")
        assert resolve_config().backtrace_limit == 9
        monkeypatch.setenv("TASK_SUPERVISOR_BACKTRACE_LIMIT", "3")
        assert resolve_config().backtrace_limit == 3

    def test_project_beats_home(self, tmp_path):
        (tmp_path / "home.toml").write_text(
            "[tool.task_supervisor]\nbacktrace_limit = 11\ntelemetry_enabled = true\n",
            encoding="utf-8",
        )
        _write_pyproject(tmp_path, "[tool.task_supervisor]\nbacktrace_limit = 4\n")
        cfg = resolve_config()
        assert cfg.backtrace_limit == 4
        assert cfg.telemetry_enabled is True

    def test_env_bool_coercion(self, monkeypatch):
        monkeypatch.setenv("TASK_SUPERVISOR_TELEMETRY_ENABLED", "yes")
        assert resolve_config().telemetry_enabled is True

    def test_unknown_keys_are_kept_as_extra(self, monkeypatch):
        monkeypatch.setenv("TASK_SUPERVISOR_TEAM", "ops")
        assert resolve_config().extra == {"team": "ops"}


class TestProfiles:
    def test_profile_overlays_base_table(self, tmp_path):
        _write_pyproject(
            tmp_path,
            "[tool.task_supervisor]\nbacktrace_limit = 5\n"
            "[tool.task_supervisor.profiles.debug]\nbacktrace_limit = 20\n",
        )
        assert resolve_config(profile="debug").backtrace_limit == 20
        assert resolve_config().backtrace_limit == 5

    def test_profile_from_env(self, tmp_path, monkeypatch):
        _write_pyproject(
            tmp_path, "[tool.task_supervisor.profiles.quiet]\nbacktrace_limit = 0\n"
        )
        monkeypatch.setenv("TASK_SUPERVISOR_PROFILE", "quiet")
        assert resolve_config().backtrace_limit == 0

    def test_list_profiles(self, tmp_path):
        _write_pyproject(
            tmp_path,
            "[tool.task_supervisor.profiles.b]\n[tool.task_supervisor.profiles.a]\n",
        )
        assert list_profiles() == ["a", "b"]


class TestValidation:
    def test_negative_backtrace_limit_is_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            resolve_config(overrides={"backtrace_limit": -1})
        assert "backtrace_limit" in str(exc_info.value)
        assert "TASK_SUPERVISOR_BACKTRACE_LIMIT" in exc_info.value.hint

    def test_non_numeric_env_is_rejected(self, monkeypatch):
        monkeypatch.setenv("TASK_SUPERVISOR_BACKTRACE_LIMIT", "lots")
        with pytest.raises(ConfigurationError):
            resolve_config()

    def test_unreadable_toml_is_ignored(self, tmp_path, caplog):
        _write_pyproject(tmp_path, "[tool.task_supervisor\nbroken")
        assert resolve_config().backtrace_limit == 5
        assert any("Ignoring unreadable config file" in r.getMessage() for r in caplog.records)


class TestAudit:
    def test_explain_reports_origins(self, monkeypatch):
        monkeypatch.setenv("TASK_SUPERVISOR_TELEMETRY_ENABLED", "1")
        cfg, sources = resolve_config(overrides={"backtrace_limit": 1}, explain=True)
        assert sources["backtrace_limit"].origin is Origin.OVERRIDES
        assert sources["telemetry_enabled"].origin is Origin.ENV
        assert sources["telemetry_enabled"].env_key == "TASK_SUPERVISOR_TELEMETRY_ENABLED"
        assert was_field_overridden(sources, "backtrace_limit")
        text = audit_text(cfg, sources)
        assert "backtrace_limit: overrides" in text
        assert "telemetry_enabled: env:TASK_SUPERVISOR_TELEMETRY_ENABLED" in text

    def test_defaults_are_not_overridden(self):
        _, sources = resolve_config(explain=True)
        assert not was_field_overridden(sources, "backtrace_limit")

    def test_debug_flag_emits_audit_warning(self, monkeypatch):
        monkeypatch.setenv("TASK_SUPERVISOR_DEBUG_CONFIG", "true")
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            resolve_config()
        assert any("Config audit" in str(w.message) for w in caught)

    def test_check_environment_lists_prefixed_vars(self, monkeypatch):
        monkeypatch.setenv("TASK_SUPERVISOR_TEAM", "ops")
        assert check_environment()["TASK_SUPERVISOR_TEAM"] == "ops"


class TestAmbientScope:
    def test_scope_with_overrides(self):
        with config_scope(backtrace_limit=1) as cfg:
            assert current_config() is cfg
            assert Task([]).config.backtrace_limit == 1
        assert current_config().backtrace_limit == 5

    def test_scope_with_frozen_config(self, frozen_config):
        with config_scope(frozen_config):
            assert current_config() is frozen_config

    def test_scope_restored_after_exception(self, frozen_config):
        with pytest.raises(RuntimeError), config_scope(frozen_config):
            raise RuntimeError("boom")
        assert current_config() is not frozen_config

    def test_backtrace_limit_flows_into_captured_faults(self):
        from tests.helpers import raising_stage

        with config_scope(backtrace_limit=0):
            result = Task([raising_stage("Boom")]).run()
        assert result.error.backtrace == ()
