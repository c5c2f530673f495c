"""Local Claude Code usage aggregation from JSONL session logs."""

import logging
import os
import re
import time
from datetime import datetime
from pathlib import Path
from typing import Iterable

from claude_usage_monitor.constants import (
    ACTIVITY_WINDOW_S,
    CONFIG_DIR_ENV,
    STANDARD_LOG_ROOTS,
)
from claude_usage_monitor.context import MonitorContext
from claude_usage_monitor.services.jsonl_parser import load_line, parse_log_file
from claude_usage_monitor.types.logs import (
    INACTIVE_SNAPSHOT,
    LocalUsageEvent,
    SessionSnapshot,
    UsageTotals,
)
from claude_usage_monitor.utils.path_codec import encode_path

logger = logging.getLogger(__name__)

LOG_EXTENSION = ".jsonl"
AGENT_FILE_PREFIX = "agent-"
MAIN_SESSION_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\.jsonl$"
)


def candidate_log_roots() -> list[Path]:
    """Log roots in priority order: env override list, then the standard locations."""
    roots: list[Path] = []
    env_value = os.environ.get(CONFIG_DIR_ENV, "")
    if env_value:
        roots.extend(Path(p.strip()).expanduser() for p in env_value.split(",") if p.strip())
    roots.extend(STANDARD_LOG_ROOTS)
    return roots


def enumerate_log_files(root: str | Path) -> list[Path]:
    """Recursively collect every .jsonl file under root, in lexical order."""
    found: list[Path] = []
    try:
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames.sort()
            for name in sorted(filenames):
                if name.endswith(LOG_EXTENSION):
                    found.append(Path(dirpath) / name)
    except OSError as e:
        logger.error("Error reading directory %s: %s", root, e)
    return found


def is_main_session_file(path: str | Path) -> bool:
    """True for UUID-named conversation logs; agent/subprocess logs are excluded."""
    name = Path(path).name
    if name.startswith(AGENT_FILE_PREFIX):
        return False
    return MAIN_SESSION_RE.match(name) is not None


def aggregate(events: Iterable[LocalUsageEvent], since: datetime | None = None) -> UsageTotals:
    """Sum token categories across events, first occurrence per (message_id, request_id)."""
    if since is not None and since.tzinfo is None:
        since = since.astimezone()
    totals = UsageTotals()
    seen: set[tuple[str, str]] = set()
    for event in events:
        if since is not None:
            if event.timestamp is None or event.timestamp < since:
                continue
        if event.key in seen:
            continue
        seen.add(event.key)
        totals.input_tokens += event.input_tokens
        totals.output_tokens += event.output_tokens
        totals.cache_creation_tokens += event.cache_creation_tokens
        totals.cache_read_tokens += event.cache_read_tokens
        totals.message_count += 1
    return totals


class LogAggregator:
    """Reads Claude Code session logs for one workspace (or globally).

    Once a workspace path is set only its mapped project directory is read,
    so tokens from another project are never shown.
    """

    def __init__(
        self,
        workspace_path: str | None = None,
        roots: list[str | Path] | None = None,
        activity_window_s: float = ACTIVITY_WINDOW_S,
        context: MonitorContext | None = None,
    ):
        self._roots = [Path(r) for r in roots] if roots is not None else None
        self._activity_window_s = activity_window_s
        self._context = context or MonitorContext()
        self._workspace_path = ""
        self._project_dir_name = ""
        self.set_workspace_path(workspace_path)

    @property
    def workspace_path(self) -> str:
        return self._workspace_path

    @property
    def project_dir_name(self) -> str:
        return self._project_dir_name

    def set_workspace_path(self, workspace_path: str | None):
        self._workspace_path = workspace_path or ""
        self._project_dir_name = encode_path(self._workspace_path)
        if self._workspace_path:
            logger.debug("Workspace set to %s (project dir %s)",
                         self._workspace_path, self._project_dir_name)

    def candidate_roots(self) -> list[Path]:
        return list(self._roots) if self._roots is not None else candidate_log_roots()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def locate_log_root(self) -> Path | None:
        """Return the first candidate root that exists as a directory."""
        for root in self.candidate_roots():
            try:
                if root.is_dir():
                    return root
            except OSError:
                continue
        logger.warning("Could not find Claude data directory in any standard location")
        return None

    def locate_project_directory(self, workspace_path: str | None = None) -> Path | None:
        """Return the workspace's project directory under the log root, or None if absent."""
        dir_name = encode_path(workspace_path) if workspace_path else self._project_dir_name
        if not dir_name:
            return None
        root = self.locate_log_root()
        if root is None:
            return None
        project_dir = root / dir_name
        if project_dir.is_dir():
            return project_dir
        logger.debug("Project directory not found: %s", project_dir)
        return None

    def search_directory(self) -> Path | None:
        """The one directory this aggregator may read.

        With a workspace set this is the project directory or None, never the
        global root.
        """
        if self._project_dir_name:
            return self.locate_project_directory()
        return self.locate_log_root()

    # ------------------------------------------------------------------
    # Historical totals
    # ------------------------------------------------------------------

    def load_usage_totals(self, since: datetime | None = None) -> UsageTotals:
        directory = self.search_directory()
        if directory is None:
            return UsageTotals()
        try:
            files = enumerate_log_files(directory)
            events: list[LocalUsageEvent] = []
            for path in files:
                events.extend(parse_log_file(path))
            totals = aggregate(events, since)
            logger.debug("Aggregated %d events from %d files in %s",
                         totals.message_count, len(files), directory)
            return totals
        except Exception:
            logger.exception("Failed to load usage totals from %s", directory)
            return UsageTotals()

    def today_totals(self, now: datetime | None = None) -> UsageTotals:
        now = (now or datetime.now()).astimezone()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return self.load_usage_totals(since=start_of_day)

    # ------------------------------------------------------------------
    # Current session
    # ------------------------------------------------------------------

    def current_session_snapshot(self, now: float | None = None) -> SessionSnapshot:
        """Latest cache snapshot of the most recently active main session file."""
        try:
            return self._current_session_snapshot(time.time() if now is None else now)
        except Exception:
            logger.exception("Error getting current session usage")
            return INACTIVE_SNAPSHOT

    def _current_session_snapshot(self, now: float) -> SessionSnapshot:
        directory = self.search_directory()
        if directory is None:
            self._context.debug("No log directory for %s", self._project_dir_name or "global search")
            return INACTIVE_SNAPSHOT

        session_files = [p for p in enumerate_log_files(directory) if is_main_session_file(p)]

        window_start = now - self._activity_window_s
        recent: list[tuple[float, Path]] = []
        for path in session_files:
            try:
                mtime = path.stat().st_mtime
            except OSError:
                continue
            if mtime >= window_start:
                recent.append((mtime, path))

        if not recent:
            self._context.debug("No recently modified session files in %s", directory)
            return INACTIVE_SNAPSHOT

        recent.sort(key=lambda item: item[0], reverse=True)
        newest = recent[0][1]
        self._context.debug("Reading %s", newest.name)
        return self._scan_latest_cache_usage(newest)

    def _scan_latest_cache_usage(self, path: Path) -> SessionSnapshot:
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Could not read session file %s: %s", path, e)
            return INACTIVE_SNAPSHOT

        lines = content.strip().split("\n")
        for line in reversed(lines):
            raw = load_line(line.strip())
            if raw is None or raw.get("type") != "assistant":
                continue
            message = raw.get("message")
            usage = message.get("usage") if isinstance(message, dict) else None
            if not isinstance(usage, dict):
                continue

            cache_creation = _as_int(usage.get("cache_creation_input_tokens"))
            cache_read = _as_int(usage.get("cache_read_input_tokens"))
            if cache_creation + cache_read <= 0:
                continue

            self._context.debug("Session cache: creation=%d read=%d", cache_creation, cache_read)
            return SessionSnapshot(
                total_tokens=cache_read,
                cache_creation_tokens=cache_creation,
                cache_read_tokens=cache_read,
                message_count=len(lines),
                is_active=cache_read > 0,
            )

        return INACTIVE_SNAPSHOT


def _as_int(value) -> int:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return 0
