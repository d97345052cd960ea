"""
Pytest configuration and shared fixtures.
"""

import pytest


@pytest.fixture(autouse=True, scope="function")
def reset_api_env(monkeypatch):
    """
    Run every test with API auth disabled and no stray JobControl settings.

    Tests that need a setting set it explicitly with monkeypatch.
    """
    monkeypatch.setenv("API_AUTH_ENABLED", "false")
    monkeypatch.delenv("API_KEY", raising=False)
    for key in (
        "JOBCONTROL_POLL_INTERVAL",
        "JOBCONTROL_WAIT_INTERVAL",
        "JOBCONTROL_GROUP",
        "JOBCONTROL_LOG_DIR",
        "JOBCONTROL_COMMAND_LOG_DIR",
        "JOBCONTROL_API_HOST",
        "JOBCONTROL_API_PORT",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    yield
