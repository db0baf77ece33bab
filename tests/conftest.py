"""Shared test fixtures."""

from __future__ import annotations

import logging

import pytest
from agent_fakes import TEST_API_KEY, FakeClock


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def api_env(monkeypatch):
    """Provide an API key and clear optional overrides."""
    monkeypatch.setenv("CURSOR_API_KEY", TEST_API_KEY)
    for name in (
        "AGENT_TEAM_BASE_URL",
        "AGENT_TEAM_REQUEST_TIMEOUT_SECONDS",
        "AGENT_TEAM_POLL_INTERVAL_SECONDS",
        "AGENT_TEAM_POLL_TIMEOUT_SECONDS",
        "AGENT_TEAM_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def restore_root_logger():
    """CLI invocations configure the root logger; undo that after the test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
