"""Type definitions for the Claude usage monitor."""

from claude_usage_monitor.types.usage import MonthlyCredits, UsageRecord, UsageWindow
from claude_usage_monitor.types.logs import (
    INACTIVE_SNAPSHOT,
    LocalUsageEvent,
    SessionSnapshot,
    UsageTotals,
)
from claude_usage_monitor.types.sessions import SessionState, TokenUsage
from claude_usage_monitor.types.auth import (
    AuthState,
    ClearResult,
    CookieCheck,
    SessionValidation,
)
from claude_usage_monitor.types.capture import CapturedEndpoint, CapturedRequest, EndpointKind
from claude_usage_monitor.types.config import MonitorConfig
from claude_usage_monitor.types.view import (
    ActivityStats,
    DetailRow,
    StatusItem,
    UsageViewState,
)

__all__ = [
    "MonthlyCredits",
    "UsageRecord",
    "UsageWindow",
    "INACTIVE_SNAPSHOT",
    "LocalUsageEvent",
    "SessionSnapshot",
    "UsageTotals",
    "SessionState",
    "TokenUsage",
    "AuthState",
    "ClearResult",
    "CookieCheck",
    "SessionValidation",
    "CapturedEndpoint",
    "CapturedRequest",
    "EndpointKind",
    "MonitorConfig",
    "ActivityStats",
    "DetailRow",
    "StatusItem",
    "UsageViewState",
]
