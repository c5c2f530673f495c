"""Development-session bookkeeping persisted to session-data.json."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from claude_usage_monitor.constants import DEFAULT_TOKEN_LIMIT, SESSION_DATA_FILE
from claude_usage_monitor.types.sessions import SessionState, TokenUsage

logger = logging.getLogger(__name__)


def _empty_data() -> dict:
    return {
        "sessions": [],
        "totals": {
            "totalSessions": 0,
            "totalTokensUsed": 0,
            "lastSessionDate": None,
        },
    }


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionTracker:
    """Tracks token usage per development session.

    Every operation is a whole-file read-modify-write, so the file is the
    single source of truth between processes.
    """

    def __init__(
        self,
        data_file: str | Path = SESSION_DATA_FILE,
        token_limit: int = DEFAULT_TOKEN_LIMIT,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._data_file = Path(data_file)
        self._token_limit = token_limit
        self._clock = clock
        self._current_id: str | None = None

    @property
    def data_file(self) -> Path:
        return self._data_file

    def set_token_limit(self, limit: int):
        self._token_limit = limit

    def load_data(self) -> dict:
        """Read the data file. A missing or corrupt file yields an empty structure."""
        if not self._data_file.exists():
            return _empty_data()
        try:
            data = json.loads(self._data_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            logger.warning("Failed to load session data from %s", self._data_file)
            return _empty_data()
        if not isinstance(data, dict) or not isinstance(data.get("sessions"), list):
            return _empty_data()
        data.setdefault("totals", _empty_data()["totals"])
        return data

    def save_data(self, data: dict):
        self._data_file.parent.mkdir(parents=True, exist_ok=True)
        self._data_file.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def start_session(self, description: str = "Development session") -> SessionState:
        data = self.load_data()
        now = self._clock()
        number = len(data["sessions"]) + 1

        session = SessionState(
            session_id=f"session-{now.date().isoformat()}-{number:03d}",
            start_time=now.isoformat(),
            description=description,
            token_usage=TokenUsage(
                current=0,
                limit=self._token_limit,
                remaining=self._token_limit,
                last_update=now.isoformat(),
            ),
        )
        data["sessions"].append(session.to_dict())
        data["totals"]["totalSessions"] = len(data["sessions"])
        data["totals"]["lastSessionDate"] = session.start_time
        self.save_data(data)

        self._current_id = session.session_id
        logger.info("Started session %s", session.session_id)
        return session

    def update_tokens(self, tokens_used: int, token_limit: int | None = None) -> SessionState | None:
        """Record the token count on the current session (the last one if none is current)."""
        limit = token_limit or self._token_limit
        data = self.load_data()
        entry = self._find_current(data["sessions"])
        if entry is None:
            logger.warning("No active session to update")
            return None

        entry["tokenUsage"] = {
            "current": tokens_used,
            "limit": limit,
            "remaining": limit - tokens_used,
            "lastUpdate": self._clock().isoformat(),
        }
        data["totals"]["totalTokensUsed"] = sum(
            (s.get("tokenUsage") or {}).get("current", 0) or 0 for s in data["sessions"]
        )
        self.save_data(data)
        return SessionState.from_dict(entry)

    def current_session(self) -> SessionState | None:
        entry = self._find_current(self.load_data()["sessions"])
        return SessionState.from_dict(entry) if entry is not None else None

    def totals(self) -> dict:
        return dict(self.load_data()["totals"])

    def _find_current(self, sessions: list[dict]) -> dict | None:
        if not sessions:
            return None
        if self._current_id is not None:
            for entry in sessions:
                if entry.get("sessionId") == self._current_id:
                    return entry
        return sessions[-1]
