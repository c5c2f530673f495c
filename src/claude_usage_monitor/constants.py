"""Shared constants: service URLs, timeouts, and on-disk locations."""

from pathlib import Path

BASE_URL = "https://claude.ai"
LOGIN_URL = "https://claude.ai/login"
USAGE_URL = "https://claude.ai/settings/usage"
API_ORGS_URL = "https://claude.ai/api/organizations"

SESSION_COOKIE_NAME = "sessionKey"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)
VIEWPORT = {"width": 1280, "height": 800}

# Timeouts, in seconds
PAGE_LOAD_TIMEOUT_S = 30.0
COOKIE_NAV_TIMEOUT_S = 15.0
LOGIN_WAIT_S = 300.0
LOGIN_POLL_S = 2.0
SETTLE_DELAY_S = 2.0

# A log file touched within this window still counts as an active conversation
ACTIVITY_WINDOW_S = 60 * 60

DEFAULT_TOKEN_LIMIT = 200_000

BROWSER_SESSION_DIR = Path.home() / ".claude-browser-session"
DATA_DIR = Path.home() / ".local" / "share" / "claude-usage-monitor"
SESSION_DATA_FILE = DATA_DIR / "session-data.json"
USAGE_HISTORY_FILE = DATA_DIR / "usage-history.json"

CONFIG_DIR_ENV = "CLAUDE_CONFIG_DIR"
STANDARD_LOG_ROOTS = (
    Path.home() / ".config" / "claude" / "projects",
    Path.home() / ".claude" / "projects",
)
