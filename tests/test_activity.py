"""Tests for claude_usage_monitor.services.activity."""

from datetime import datetime, timezone

import pytest

from claude_usage_monitor.services.activity import (
    QUIRKY_TEXT,
    activity_level,
    activity_stats,
    quirky_text,
)
from claude_usage_monitor.types.sessions import SessionState, TokenUsage
from claude_usage_monitor.types.usage import UsageRecord, UsageWindow


def record(percent):
    return UsageRecord(five_hour=UsageWindow(utilization=percent),
                       fetched_at=datetime(2026, 10, 18, tzinfo=timezone.utc))


def session(current, limit=1000):
    return SessionState(session_id="s", start_time="",
                        token_usage=TokenUsage(current=current, limit=limit))


@pytest.mark.parametrize("percent, level", [
    (0, "idle"), (74.9, "idle"), (75, "moderate"), (89, "moderate"), (90, "heavy"), (120, "heavy"),
])
def test_activity_level(percent, level):
    assert activity_level(percent) == level


def test_quirky_text_is_stable():
    assert quirky_text("idle", 37) == quirky_text("idle", 37)
    assert quirky_text("idle", 37) == QUIRKY_TEXT["idle"][37 % len(QUIRKY_TEXT["idle"])]


def test_quirky_text_unknown_level_uses_idle():
    assert quirky_text("bogus", 0) in QUIRKY_TEXT["idle"]


class TestActivityStats:
    def test_no_data(self):
        stats = activity_stats()
        assert stats.level == "idle"
        assert stats.max_percent == 0
        assert stats.short == "Normal usage"

    def test_usage_dominates(self):
        stats = activity_stats(record(92), session(100))
        assert stats.level == "heavy"
        assert stats.claude_percent == 92
        assert stats.token_percent == 10
        assert stats.short == "Running low!"

    def test_tokens_dominate(self):
        stats = activity_stats(record(10), session(800))
        assert stats.level == "moderate"
        assert stats.max_percent == 80
        assert stats.quirky in QUIRKY_TEXT["moderate"]

    def test_unknown_usage_percent(self):
        assert activity_stats(record(None)).claude_percent == 0
