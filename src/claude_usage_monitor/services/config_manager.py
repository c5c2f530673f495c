"""Application configuration manager wrapping QSettings."""

import logging
from pathlib import Path

from PySide6.QtCore import QObject, Signal, Slot, QSettings

from claude_usage_monitor.constants import BROWSER_SESSION_DIR, DATA_DIR, DEFAULT_TOKEN_LIMIT
from claude_usage_monitor.types.config import MonitorConfig

logger = logging.getLogger(__name__)

# Default values
DEFAULTS = {
    "general/headless": True,
    "general/tokenLimit": DEFAULT_TOKEN_LIMIT,
    "general/autoRefreshMinutes": 5,
    "general/fetchOnStartup": True,
    "general/workspacePath": "",
    "general/sessionDir": str(BROWSER_SESSION_DIR),
    "general/dataDir": str(DATA_DIR),
    "thresholds/warning": 75,
    "thresholds/error": 90,
    "statusBar/showSession": True,
    "statusBar/showWeekly": True,
    "statusBar/showSonnet": False,
    "statusBar/showOpus": False,
    "statusBar/showTokens": True,
    "statusBar/showCredits": False,
    "advanced/debugLogging": False,
}


class ConfigManager(QObject):
    """Centralized monitor settings."""

    settings_changed = Signal(str)  # key

    def __init__(self, parent=None):
        super().__init__(parent)
        self._settings = QSettings()

    @Slot(str, result=str)
    def get_string(self, key: str) -> str:
        return str(self._settings.value(key, DEFAULTS.get(key, "")))

    @Slot(str, result=int)
    def get_int(self, key: str) -> int:
        val = self._settings.value(key, DEFAULTS.get(key, 0))
        try:
            return int(val)
        except (ValueError, TypeError):
            return DEFAULTS.get(key, 0)

    @Slot(str, result=bool)
    def get_bool(self, key: str) -> bool:
        val = self._settings.value(key, DEFAULTS.get(key, False))
        if isinstance(val, bool):
            return val
        if isinstance(val, str):
            return val.lower() in ("true", "1", "yes")
        return bool(val)

    @Slot(str, str)
    def set_string(self, key: str, value: str):
        self._store(key, value)

    @Slot(str, int)
    def set_int(self, key: str, value: int):
        self._store(key, value)

    @Slot(str, bool)
    def set_bool(self, key: str, value: bool):
        self._store(key, value)

    @Slot(str)
    def reset_key(self, key: str):
        """Drop a stored override so the default applies again."""
        self._settings.remove(key)
        self.settings_changed.emit(key)

    def to_monitor_config(self) -> MonitorConfig:
        return MonitorConfig(
            headless=self.get_bool("general/headless"),
            token_limit=self.get_int("general/tokenLimit"),
            auto_refresh_minutes=self.get_int("general/autoRefreshMinutes"),
            fetch_on_startup=self.get_bool("general/fetchOnStartup"),
            warning_threshold=self.get_int("thresholds/warning"),
            error_threshold=self.get_int("thresholds/error"),
            show_session=self.get_bool("statusBar/showSession"),
            show_weekly=self.get_bool("statusBar/showWeekly"),
            show_sonnet=self.get_bool("statusBar/showSonnet"),
            show_opus=self.get_bool("statusBar/showOpus"),
            show_tokens=self.get_bool("statusBar/showTokens"),
            show_credits=self.get_bool("statusBar/showCredits"),
            debug=self.get_bool("advanced/debugLogging"),
            workspace_path=self.get_string("general/workspacePath"),
            session_dir=Path(self.get_string("general/sessionDir")).expanduser(),
            data_dir=Path(self.get_string("general/dataDir")).expanduser(),
        )

    def _store(self, key: str, value):
        if self._settings.value(key) == value:
            return
        self._settings.setValue(key, value)
        self.settings_changed.emit(key)
