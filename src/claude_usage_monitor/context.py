"""Explicit runtime context carrying the debug channel and dev-mode flag."""

import logging
from pathlib import Path

from claude_usage_monitor.types.config import MonitorConfig

DEBUG_LOGGER_NAME = "claude_usage_monitor.debug"


class MonitorContext:
    """Holds configuration plus the verbose API/auth diagnostic channel.

    Constructed once by the host and passed to every service. Call close()
    on teardown to detach the debug handler.
    """

    def __init__(self, config: MonitorConfig | None = None, dev_mode: bool = False,
                 debug_log_file: str | Path | None = None):
        self.config = config or MonitorConfig()
        self.dev_mode = dev_mode
        self.logger = logging.getLogger(DEBUG_LOGGER_NAME)
        self._handler: logging.Handler | None = None
        self._debug_log_file = debug_log_file
        if self.debug_enabled:
            self._attach_handler()

    @property
    def debug_enabled(self) -> bool:
        return self.config.debug or self.dev_mode

    def set_debug(self, enabled: bool):
        self.config.debug = enabled
        if self.debug_enabled and self._handler is None:
            self._attach_handler()
        elif not self.debug_enabled:
            self._detach_handler()

    def debug(self, msg: str, *args):
        """Write to the debug channel. No-op unless debug is enabled."""
        if self.debug_enabled:
            self.logger.info(msg, *args)

    def _attach_handler(self):
        if self._debug_log_file:
            handler: logging.Handler = logging.FileHandler(self._debug_log_file, encoding="utf-8")
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s %(message)s"))
        self.logger.addHandler(handler)
        self.logger.setLevel(logging.INFO)
        self._handler = handler

    def _detach_handler(self):
        if self._handler is not None:
            self.logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None

    def close(self):
        self._detach_handler()
