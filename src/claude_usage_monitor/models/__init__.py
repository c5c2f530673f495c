"""Qt models for the Claude usage monitor."""

from claude_usage_monitor.models.usage_model import UsageModel

__all__ = ["UsageModel"]
