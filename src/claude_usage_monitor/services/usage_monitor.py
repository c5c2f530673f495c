"""Central orchestrator tying remote usage and local token data together."""

import asyncio
import logging

from PySide6.QtCore import QObject, Signal, Slot, Property, QTimer, QThread

from claude_usage_monitor.context import MonitorContext
from claude_usage_monitor.errors import UsageMonitorError
from claude_usage_monitor.services.activity import activity_stats
from claude_usage_monitor.services.file_watcher import FileWatcher
from claude_usage_monitor.services.log_aggregator import LogAggregator
from claude_usage_monitor.services.session_tracker import SessionTracker
from claude_usage_monitor.services.usage_fetcher import UsageFetcher
from claude_usage_monitor.services.usage_history import UsageHistory
from claude_usage_monitor.services.view_state import build_view_state
from claude_usage_monitor.types.auth import ClearResult
from claude_usage_monitor.types.logs import INACTIVE_SNAPSHOT, SessionSnapshot
from claude_usage_monitor.types.sessions import SessionState
from claude_usage_monitor.types.usage import UsageRecord
from claude_usage_monitor.types.view import UsageViewState

logger = logging.getLogger(__name__)

STARTUP_FETCH_DELAY_MS = 2000
AUTO_SESSION_DESCRIPTION = "Claude Code session (auto-created)"
SPARKLINE_WIDTH = 16
SPARKLINE_GROUP = 3
# QThread.quit() cannot interrupt asyncio.run, so shutdown only waits this long
CANCEL_WAIT_MS = 2000


class _BrowserWorker(QThread):
    """Runs one browser coroutine (fetch, reset, clear) on its own asyncio loop."""

    finished = Signal(object, str)  # coroutine result or None, error message

    def __init__(self, coro_factory, parent=None):
        super().__init__(parent)
        self._coro_factory = coro_factory

    def run(self):
        try:
            result = asyncio.run(self._coro_factory())
            self.finished.emit(result, "")
        except UsageMonitorError as e:
            logger.warning("Browser task failed: %s", e)
            self.finished.emit(None, str(e))
        except Exception as e:
            logger.exception("Browser task failed")
            self.finished.emit(None, str(e) or type(e).__name__)


def _clear_result(result, error: str) -> ClearResult:
    if result is None:
        return ClearResult(success=False, message=error or "Unknown error")
    return result


class UsageMonitor(QObject):
    """Owns the fetcher, log aggregator, session tracker, and history.

    One browser task runs at a time: a fetch requested while another task
    is in flight is skipped, and reset or clear commands are refused.
    A failed fetch keeps the last successful UsageRecord on display.
    """

    view_changed = Signal(object)  # UsageViewState
    fetching_changed = Signal()
    fetch_failed = Signal(str)
    login_required = Signal()
    tokens_updated = Signal(object)  # SessionSnapshot
    connection_reset = Signal(object)  # dict with success and message
    session_cleared = Signal(object)  # ClearResult
    locks_removed = Signal(object)  # ClearResult

    def __init__(
        self,
        context: MonitorContext | None = None,
        fetcher: UsageFetcher | None = None,
        aggregator: LogAggregator | None = None,
        tracker: SessionTracker | None = None,
        history: UsageHistory | None = None,
        parent=None,
    ):
        super().__init__(parent)
        self._context = context or MonitorContext()
        config = self._context.config
        self._fetcher = fetcher or UsageFetcher(context=self._context)
        self._fetcher.on_login_required = self.login_required.emit
        self._aggregator = aggregator or LogAggregator(config.workspace_path or None, context=self._context)
        self._tracker = tracker or SessionTracker(
            config.data_dir / "session-data.json", token_limit=config.token_limit
        )
        self._history = history or UsageHistory(config.data_dir / "usage-history.json")

        self._usage: UsageRecord | None = None
        self._session: SessionState | None = None
        self._snapshot: SessionSnapshot = INACTIVE_SNAPSHOT
        self._web_error: str | None = None
        self._token_error: str | None = None
        self._consecutive_failures = 0
        self._view_state = UsageViewState()
        self._worker: _BrowserWorker | None = None
        self._worker_slot = None

        self._watcher = FileWatcher(self)
        self._watcher.logs_changed.connect(self._on_logs_changed)

        self._refresh_timer = QTimer(self)
        self._refresh_timer.timeout.connect(self.fetch_usage)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    def _get_fetching(self) -> bool:
        return self._worker is not None

    fetching = Property(bool, _get_fetching, notify=fetching_changed)

    @property
    def usage(self) -> UsageRecord | None:
        return self._usage

    @property
    def session(self) -> SessionState | None:
        return self._session

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def view_state(self) -> UsageViewState:
        return self._view_state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def last_error(self) -> str | None:
        return self._web_error

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @Slot()
    def start(self):
        """Begin watching logs, schedule auto-refresh and the startup fetch."""
        config = self._context.config
        self._restart_watcher()
        self._refresh_timer.start(config.refresh_interval_minutes * 60 * 1000)
        self.refresh_tokens()
        if config.fetch_on_startup:
            QTimer.singleShot(STARTUP_FETCH_DELAY_MS, self.fetch_usage)

    @Slot()
    def cleanup(self):
        self._refresh_timer.stop()
        self._watcher.stop()
        self._cancel_worker()
        self._context.close()

    def set_workspace_path(self, workspace_path: str):
        self._aggregator.set_workspace_path(workspace_path)
        self._restart_watcher()
        self.refresh_tokens()

    def apply_config(self):
        """Re-read timer interval and token limit after a settings change."""
        config = self._context.config
        self._tracker.set_token_limit(config.token_limit)
        if self._refresh_timer.isActive():
            self._refresh_timer.start(config.refresh_interval_minutes * 60 * 1000)
        self._rebuild()

    # ------------------------------------------------------------------
    # Remote fetch
    # ------------------------------------------------------------------

    @Slot(result=bool)
    def fetch_usage(self) -> bool:
        """Start a fetch in the background. Returns False if a browser task is already running."""
        if self._worker is not None:
            logger.debug("Browser task in flight, skipping fetch")
            return False
        return self._start_worker(self._fetcher.fetch, self._on_fetch_finished)

    def _start_worker(self, coro_factory, slot) -> bool:
        worker = _BrowserWorker(coro_factory, self)
        worker.finished.connect(slot)
        worker.finished.connect(worker.deleteLater)
        self._worker = worker
        self._worker_slot = slot
        self.fetching_changed.emit()
        worker.start()
        return True

    def _finish_worker(self):
        self._worker = None
        self._worker_slot = None
        self.fetching_changed.emit()

    def _on_fetch_finished(self, record, error: str):
        self._finish_worker()

        if record is not None:
            self._usage = record
            self._web_error = None
            self._consecutive_failures = 0
            if record.usage_percent is not None:
                try:
                    self._history.add_data_point(record.usage_percent)
                except OSError as e:
                    logger.warning("Could not record usage history: %s", e)
        else:
            self._web_error = error or "Unknown error"
            self._consecutive_failures += 1
            self.fetch_failed.emit(self._web_error)

        self.refresh_tokens()

    def _cancel_worker(self):
        """Drop the result of a running browser task and give it a bounded wait.

        The coroutine cannot be interrupted from this thread. A task that
        outlives the wait still closes its own browser when it ends, and its
        result is discarded.
        """
        worker, slot = self._worker, self._worker_slot
        if worker is None:
            return
        self._finish_worker()
        worker.finished.disconnect(slot)
        if worker.isRunning() and not worker.wait(CANCEL_WAIT_MS):
            logger.warning("Browser task still running after %d ms; its result will be discarded",
                           CANCEL_WAIT_MS)

    # ------------------------------------------------------------------
    # Local tokens
    # ------------------------------------------------------------------

    @Slot()
    def refresh_tokens(self):
        """Re-read the active conversation and record its token count."""
        snapshot = self._aggregator.current_session_snapshot()
        self._snapshot = snapshot
        try:
            if snapshot.is_active and snapshot.total_tokens > 0:
                if self._tracker.current_session() is None:
                    self._tracker.start_session(AUTO_SESSION_DESCRIPTION)
                self._session = self._tracker.update_tokens(
                    snapshot.total_tokens, self._context.config.token_limit
                )
            else:
                self._session = None
            self._token_error = None
        except OSError as e:
            logger.warning("Could not update session data: %s", e)
            self._token_error = str(e)

        self.tokens_updated.emit(snapshot)
        self._rebuild()

    def _on_logs_changed(self, path: str):
        self._context.debug("Log change: %s", path)
        self.refresh_tokens()

    def _restart_watcher(self):
        directory = self._aggregator.locate_project_directory()
        if directory is not None:
            self._watcher.start(str(directory))
        else:
            self._watcher.stop()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_session(self, description: str = "Development session") -> SessionState:
        session = self._tracker.start_session(description)
        self._session = session
        self._rebuild()
        return session

    @Slot(result=bool)
    def reset_connection(self) -> bool:
        """Close the browser and forget captured endpoints, off the Qt thread.

        The outcome arrives on connection_reset. Returns False while another
        browser task is running.
        """
        if self._worker is not None:
            logger.debug("Browser task in flight, refusing reset")
            return False
        return self._start_worker(self._fetcher.reset, self._on_reset_finished)

    def _on_reset_finished(self, result, error: str):
        self._finish_worker()
        if result is None:
            result = {"success": False, "message": error or "Unknown error"}
        else:
            self._web_error = None
            self._consecutive_failures = 0
            self._rebuild()
        self.connection_reset.emit(result)

    @Slot(result=bool)
    def clear_session(self) -> bool:
        """Delete the browser profile in the background; the result arrives on session_cleared."""
        if self._worker is not None:
            logger.debug("Browser task in flight, refusing session clear")
            return False
        return self._start_worker(self._fetcher.clear_session, self._on_session_cleared)

    def _on_session_cleared(self, result, error: str):
        self._finish_worker()
        self.session_cleared.emit(_clear_result(result, error))

    @Slot(result=bool)
    def remove_profile_locks(self) -> bool:
        """Delete stale browser lock files; the result arrives on locks_removed."""
        if self._worker is not None:
            logger.debug("Browser task in flight, refusing lock removal")
            return False
        return self._start_worker(self._fetcher.remove_profile_locks, self._on_locks_removed)

    def _on_locks_removed(self, result, error: str):
        self._finish_worker()
        self.locks_removed.emit(_clear_result(result, error))

    def diagnostics(self) -> dict:
        return {
            **self._fetcher.diagnostics(),
            "workspacePath": self._aggregator.workspace_path,
            "projectDir": self._aggregator.project_dir_name,
            "consecutiveFailures": self._consecutive_failures,
            "lastError": self._web_error,
            "fetching": self._worker is not None,
        }

    # ------------------------------------------------------------------
    # View state
    # ------------------------------------------------------------------

    def _rebuild(self):
        stats = activity_stats(self._usage, self._session)
        try:
            sparkline = self._history.five_hour_sparkline(SPARKLINE_WIDTH, SPARKLINE_GROUP, braille=False)
        except OSError:
            logger.debug("Usage history unavailable", exc_info=True)
            sparkline = ""

        state = build_view_state(
            self._usage,
            self._session,
            stats,
            self._context.config,
            web_error=self._web_error,
            token_error=self._token_error,
            consecutive_failures=self._consecutive_failures,
            sparkline=sparkline if self._usage is not None else "",
        )
        if state != self._view_state:
            self._view_state = state
            self.view_changed.emit(state)
