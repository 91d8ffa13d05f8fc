"""Pytest configuration and fixtures.

Provides environment isolation, logging configuration and shared test
doubles. Fixtures here are autouse unless noted.
"""

from __future__ import annotations

import logging
import os

import pytest

from task_supervisor.config import FrozenConfig, config_scope

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    monkeypatch.setattr(
        "task_supervisor.config.core.load_dotenv", lambda *_args, **_kwargs: False
    )


@pytest.fixture(autouse=True)
def isolate_supervisor_env(request, monkeypatch, tmp_path):
    """Clear TASK_SUPERVISOR_* variables and point config files at tmp_path.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("TASK_SUPERVISOR_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("TASK_SUPERVISOR_PYPROJECT_PATH", str(tmp_path / "pyproject.toml"))
    monkeypatch.setenv("TASK_SUPERVISOR_CONFIG_HOME", str(tmp_path / "home.toml"))


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def library_logging():
    """Let caplog see the library's debug output."""
    logging.getLogger("task_supervisor").setLevel(logging.DEBUG)


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def frozen_config() -> FrozenConfig:
    """A default configuration that never touches the filesystem."""
    return FrozenConfig(extra={})


@pytest.fixture
def ambient_config(frozen_config):
    """Run the test inside an ambient configuration scope."""
    with config_scope(frozen_config) as cfg:
        yield cfg
