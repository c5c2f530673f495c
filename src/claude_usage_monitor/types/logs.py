"""Types for local Claude Code JSONL usage logs."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class LocalUsageEvent:
    message_id: str
    request_id: str
    timestamp: Optional[datetime]
    type: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    model: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return (self.message_id, self.request_id)

    @property
    def total_tokens(self) -> int:
        return (self.input_tokens + self.output_tokens +
                self.cache_creation_tokens + self.cache_read_tokens)


@dataclass
class UsageTotals:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    message_count: int = 0

    @property
    def total_tokens(self) -> int:
        return (self.input_tokens + self.output_tokens +
                self.cache_creation_tokens + self.cache_read_tokens)


@dataclass(frozen=True)
class SessionSnapshot:
    """Latest cache snapshot of the active conversation.

    total_tokens is the cache-read count alone, a reporting convention for the
    context-size percentage rather than an exact token sum.
    """
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    message_count: int = 0
    is_active: bool = False


INACTIVE_SNAPSHOT = SessionSnapshot()
