"""Persisted session-tracking types."""

from dataclasses import dataclass, field


@dataclass
class TokenUsage:
    current: int = 0
    limit: int = 0
    remaining: int = 0
    last_update: str = ""

    @property
    def percent(self) -> int:
        if self.limit <= 0:
            return 0
        return round(self.current / self.limit * 100)


@dataclass
class SessionState:
    session_id: str
    start_time: str
    description: str = ""
    token_usage: TokenUsage = field(default_factory=TokenUsage)

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "startTime": self.start_time,
            "description": self.description,
            "tokenUsage": {
                "current": self.token_usage.current,
                "limit": self.token_usage.limit,
                "remaining": self.token_usage.remaining,
                "lastUpdate": self.token_usage.last_update,
            },
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SessionState":
        usage = d.get("tokenUsage") or {}
        return cls(
            session_id=d.get("sessionId", ""),
            start_time=d.get("startTime", ""),
            description=d.get("description", ""),
            token_usage=TokenUsage(
                current=usage.get("current", 0),
                limit=usage.get("limit", 0),
                remaining=usage.get("remaining", 0),
                last_update=usage.get("lastUpdate", ""),
            ),
        )
