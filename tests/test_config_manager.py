"""Tests for claude_usage_monitor.services.config_manager."""

from pathlib import Path

import pytest

from claude_usage_monitor.services.config_manager import DEFAULTS, ConfigManager


@pytest.fixture
def config(isolated_settings):
    return ConfigManager()


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

def test_defaults(config):
    assert config.get_bool("general/headless") is True
    assert config.get_int("general/tokenLimit") == 200_000
    assert config.get_int("thresholds/warning") == 75
    assert config.get_string("general/workspacePath") == ""


def test_unknown_int_key(config):
    assert config.get_int("nope/missing") == 0


# ---------------------------------------------------------------------------
# Round trips
# ---------------------------------------------------------------------------

def test_set_get_string(config):
    config.set_string("general/workspacePath", "/home/wiz/projects/myapp")
    assert config.get_string("general/workspacePath") == "/home/wiz/projects/myapp"


def test_set_get_int(config):
    config.set_int("general/autoRefreshMinutes", 15)
    assert config.get_int("general/autoRefreshMinutes") == 15


def test_set_get_bool(config):
    config.set_bool("statusBar/showOpus", True)
    assert config.get_bool("statusBar/showOpus") is True


def test_bad_int_falls_back_to_default(config):
    config.set_string("general/tokenLimit", "lots")
    assert config.get_int("general/tokenLimit") == DEFAULTS["general/tokenLimit"]


def test_string_bool(config):
    config.set_string("general/fetchOnStartup", "false")
    assert config.get_bool("general/fetchOnStartup") is False


def test_reset_key(config):
    config.set_int("thresholds/error", 50)
    config.reset_key("thresholds/error")
    assert config.get_int("thresholds/error") == 90


def test_settings_changed_signal(config):
    keys = []
    config.settings_changed.connect(lambda k: keys.append(k))
    config.set_bool("advanced/debugLogging", True)
    config.reset_key("advanced/debugLogging")
    assert keys == ["advanced/debugLogging", "advanced/debugLogging"]


# ---------------------------------------------------------------------------
# MonitorConfig
# ---------------------------------------------------------------------------

def test_to_monitor_config(config):
    config.set_int("general/tokenLimit", 500_000)
    config.set_bool("statusBar/showCredits", True)
    config.set_string("general/dataDir", "~/usage-data")
    mc = config.to_monitor_config()
    assert mc.token_limit == 500_000
    assert mc.show_credits is True
    assert mc.show_sonnet is False
    assert mc.data_dir == Path.home() / "usage-data"
    assert mc.debug is False


def test_refresh_interval_clamped(config):
    config.set_int("general/autoRefreshMinutes", 0)
    assert config.to_monitor_config().refresh_interval_minutes == 1
    config.set_int("general/autoRefreshMinutes", 600)
    assert config.to_monitor_config().refresh_interval_minutes == 60
