"""Runtime configuration."""

from dataclasses import dataclass, field
from pathlib import Path

from claude_usage_monitor.constants import (
    BROWSER_SESSION_DIR,
    DATA_DIR,
    DEFAULT_TOKEN_LIMIT,
)


@dataclass
class MonitorConfig:
    headless: bool = True
    token_limit: int = DEFAULT_TOKEN_LIMIT
    auto_refresh_minutes: int = 5
    fetch_on_startup: bool = True
    warning_threshold: int = 75
    error_threshold: int = 90
    show_session: bool = True
    show_weekly: bool = True
    show_sonnet: bool = False
    show_opus: bool = False
    show_tokens: bool = True
    show_credits: bool = False
    debug: bool = False
    workspace_path: str = ""
    session_dir: Path = field(default_factory=lambda: BROWSER_SESSION_DIR)
    data_dir: Path = field(default_factory=lambda: DATA_DIR)

    @property
    def refresh_interval_minutes(self) -> int:
        return max(1, min(60, self.auto_refresh_minutes))
