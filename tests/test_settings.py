"""
Tests for settings module.
"""

import pytest

from src.infra.settings import (
    get_api_host,
    get_api_port,
    get_command_log_dir,
    get_group_name,
    get_log_dir,
    get_log_level,
    get_poll_interval,
    get_wait_interval,
)


class TestDefaults:
    """Values with no environment set."""

    def test_intervals(self):
        assert get_poll_interval() == 5.0
        assert get_wait_interval() == 1.0

    def test_names_and_dirs(self):
        assert get_group_name() == "job"
        assert get_log_dir() == "logs"
        assert get_command_log_dir() is None
        assert get_log_level() == "INFO"

    def test_api_bind(self):
        assert get_api_host() == "127.0.0.1"
        assert get_api_port() == 8000


class TestOverrides:

    def test_poll_interval(self, monkeypatch):
        monkeypatch.setenv("JOBCONTROL_POLL_INTERVAL", "0.25")
        assert get_poll_interval() == 0.25

    @pytest.mark.parametrize("value", ["fast", "0", "-1"])
    def test_invalid_interval_falls_back(self, monkeypatch, value):
        monkeypatch.setenv("JOBCONTROL_WAIT_INTERVAL", value)
        assert get_wait_interval() == 1.0

    def test_group_name(self, monkeypatch):
        monkeypatch.setenv("JOBCONTROL_GROUP", "nightly")
        assert get_group_name() == "nightly"

    def test_empty_group_name_uses_default(self, monkeypatch):
        monkeypatch.setenv("JOBCONTROL_GROUP", "")
        assert get_group_name() == "job"

    def test_empty_log_dir_means_console_only(self, monkeypatch):
        monkeypatch.setenv("JOBCONTROL_LOG_DIR", "")
        assert get_log_dir() is None

    def test_log_level_uppercased(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert get_log_level() == "DEBUG"

    def test_invalid_port_falls_back(self, monkeypatch):
        monkeypatch.setenv("JOBCONTROL_API_PORT", "eighty")
        assert get_api_port() == 8000

    def test_port(self, monkeypatch):
        monkeypatch.setenv("JOBCONTROL_API_PORT", "9100")
        assert get_api_port() == 9100
