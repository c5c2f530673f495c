"""Exception hierarchy for the usage acquisition pipeline."""


class UsageMonitorError(Exception):
    """Base class for errors surfaced to the user."""


class ChromeNotFoundError(UsageMonitorError):
    """No Chrome/Chromium/Edge executable was found. Never retried."""

    def __init__(self, message: str = ""):
        super().__init__(
            message or "Chrome/Chromium required. Install Chrome or Chromium "
            "to fetch Claude.ai usage stats."
        )


class BrowserLaunchError(UsageMonitorError):
    """The browser could not be launched or attached."""


class LoginTimeoutError(UsageMonitorError):
    pass


class PageLoadTimeoutError(UsageMonitorError):
    """Navigation exceeded its timeout. Retry is the caller's decision."""


class LayoutChangedError(UsageMonitorError):
    """The usage page text no longer contains a recognizable percentage."""


class SchemaError(UsageMonitorError):
    """A required field is missing from an API payload."""
