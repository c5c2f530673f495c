"""Services for usage acquisition, log aggregation, and presentation state."""

from claude_usage_monitor.services.authenticator import SessionAuthenticator
from claude_usage_monitor.services.config_manager import ConfigManager
from claude_usage_monitor.services.log_aggregator import LogAggregator
from claude_usage_monitor.services.request_observer import RequestObserver
from claude_usage_monitor.services.session_tracker import SessionTracker
from claude_usage_monitor.services.usage_fetcher import UsageFetcher
from claude_usage_monitor.services.usage_history import UsageHistory
from claude_usage_monitor.services.usage_monitor import UsageMonitor

__all__ = [
    "SessionAuthenticator",
    "ConfigManager",
    "LogAggregator",
    "RequestObserver",
    "SessionTracker",
    "UsageFetcher",
    "UsageHistory",
    "UsageMonitor",
]
