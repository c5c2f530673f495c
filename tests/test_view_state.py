"""Tests for claude_usage_monitor.services.view_state."""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from claude_usage_monitor.services.activity import activity_stats
from claude_usage_monitor.services.view_state import (
    EMPTY_HINT,
    build_view_state,
    indicator_for,
    usage_level,
)
from claude_usage_monitor.types.config import MonitorConfig
from claude_usage_monitor.types.sessions import SessionState, TokenUsage
from claude_usage_monitor.types.usage import MonthlyCredits, UsageRecord, UsageWindow

NOW = datetime(2026, 10, 18, 10, 0)
FETCHED = datetime(2026, 10, 18, 9, 58, tzinfo=timezone.utc)


def make_usage(percent=37, **kw):
    return UsageRecord(
        five_hour=UsageWindow(utilization=percent, reset_time="2h 15m"),
        fetched_at=FETCHED,
        **kw,
    )


def make_session(current=40_000, limit=200_000):
    return SessionState(session_id="session-2026-10-18-001", start_time="",
                        token_usage=TokenUsage(current=current, limit=limit,
                                               remaining=limit - current))


def build(usage=None, session=None, config=None, **kw):
    return build_view_state(usage, session, activity_stats(usage, session),
                            config or MonitorConfig(), now=NOW, **kw)


def items_by_key(state):
    return {item.key: item for item in state.status_items}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("percent, level", [
    (None, "normal"), (74, "normal"), (75, "warning"), (89.9, "warning"), (90, "critical"),
])
def test_usage_level(percent, level):
    assert usage_level(percent) == level


def test_usage_level_custom_thresholds():
    assert usage_level(60, warning=50, error=70) == "warning"


@pytest.mark.parametrize("has_usage, web, token, expected", [
    (True, None, None, "ok"),
    (False, None, "disk", "ok"),
    (True, "boom", None, "stale"),
    (False, "boom", None, "warning"),
    (True, "boom", "disk", "error"),
])
def test_indicator(has_usage, web, token, expected):
    assert indicator_for(has_usage, web, token) == expected


# ---------------------------------------------------------------------------
# Status items
# ---------------------------------------------------------------------------

class TestStatusItems:
    def test_empty(self):
        state = build()
        items = items_by_key(state)
        assert items["label"].text == "Claude"
        assert not any(i.visible for k, i in items.items() if k != "label")
        assert state.tooltip == (EMPTY_HINT,)
        assert [r.key for r in state.rows] == ["hint"]

    def test_order(self):
        keys = [i.key for i in build(make_usage(), make_session()).status_items]
        assert keys == ["label", "session", "weekly", "sonnet", "opus", "credits", "tokens"]

    def test_session_text(self):
        items = items_by_key(build(make_usage(), make_session()))
        assert items["session"].text == "37%@12:15"
        assert items["session"].level == "normal"
        assert items["tokens"].text == "Tk 20%"

    def test_warning_prefix(self):
        items = items_by_key(build(make_usage(80)))
        assert items["session"].text == "⚠ 80%@12:15"
        assert items["session"].level == "warning"

    def test_critical_prefix(self):
        items = items_by_key(build(make_usage(95)))
        assert items["session"].text == "✗ 95%@12:15"

    def test_weekly_and_models(self):
        usage = make_usage(
            seven_day=UsageWindow(utilization=12),
            seven_day_sonnet=UsageWindow(utilization=5),
            seven_day_opus=UsageWindow(utilization=91),
        )
        config = MonitorConfig(show_sonnet=True, show_opus=True)
        items = items_by_key(build(usage, config=config))
        assert items["weekly"].text == "7d 12%"
        assert items["sonnet"].text == "5%S"
        assert items["opus"].text == "✗ 91%O"
        assert items["sonnet"].visible and items["opus"].visible

    def test_hidden_by_config(self):
        usage = make_usage(seven_day_sonnet=UsageWindow(utilization=5))
        items = items_by_key(build(usage))
        assert items["sonnet"].text == "5%S"
        assert items["sonnet"].visible is False

    def test_missing_windows_hidden(self):
        items = items_by_key(build(make_usage()))
        assert items["weekly"].visible is False
        assert items["credits"].visible is False

    def test_credits(self):
        credits = MonthlyCredits(used=12.0, limit=50.0, currency="USD", percent=24)
        items = items_by_key(build(make_usage(monthly_credits=credits),
                                   config=MonitorConfig(show_credits=True)))
        assert items["credits"].text == "$12/24%"

    def test_tokens_without_session(self):
        items = items_by_key(build(make_usage()))
        assert items["tokens"].text == "Tk -"

    def test_label_on_stale(self):
        items = items_by_key(build(make_usage(), web_error="Login timeout"))
        assert items["label"].text == "Claude ⚠"
        assert items["session"].text == "37%@12:15"

    def test_label_on_error(self):
        state = build(make_usage(), web_error="x", token_error="y")
        assert state.indicator == "error"
        assert items_by_key(state)["label"].text == "Claude ✗"


# ---------------------------------------------------------------------------
# Tooltip
# ---------------------------------------------------------------------------

class TestTooltip:
    def test_sections(self):
        credits = MonthlyCredits(used=1234.5, limit=5000.0, currency="EUR", percent=25)
        usage = make_usage(seven_day=UsageWindow(utilization=40, reset_time="1d 2h"),
                           monthly_credits=credits)
        tooltip = build(usage, make_session()).tooltip
        assert tooltip[0] == "**Session**"
        assert tooltip[1] == "5hr limit: 37% (resets at 12:15)"
        assert "Tokens: 40,000 / 200,000 (20%)" in tooltip
        assert "All models: 40% (resets at Mon 19 12:00)" in tooltip
        assert "Used: €1,234.5 / €5,000 EUR (25%)" in tooltip
        assert "Remaining: €3,765.5 EUR" in tooltip
        assert tooltip[-1] == "Click to refresh"

    def test_web_failure(self):
        tooltip = build(make_usage(), web_error="Login timeout", consecutive_failures=1).tooltip
        assert tooltip[0] == "**Web Fetch Failed**"
        assert "Error: Login timeout" in tooltip
        assert not any(line.startswith("Consecutive") for line in tooltip)

    def test_complete_failure_counts(self):
        tooltip = build(None, web_error="a", token_error="b", consecutive_failures=3).tooltip
        assert tooltip[0] == "**Complete Fetch Failed**"
        assert "Consecutive failures: 3" in tooltip
        assert "**Actions**" in tooltip


# ---------------------------------------------------------------------------
# Detail rows
# ---------------------------------------------------------------------------

class TestRows:
    def test_rows(self):
        usage = make_usage(seven_day=UsageWindow(utilization=76))
        state = build(usage, make_session(), sparkline="▁▂▃")
        keys = [r.key for r in state.rows]
        assert keys == ["sparkline", "session", "tokens", "weekly", "activity", "updated"]
        rows = {r.key: r for r in state.rows}
        assert rows["weekly"].icon == "warning"
        assert rows["session"].value == "37% (resets at 12:15)"
        assert rows["updated"].value == state.updated_at

    def test_thresholds_from_config(self):
        state = build(make_usage(60), config=MonitorConfig(warning_threshold=50))
        assert {r.key: r for r in state.rows}["session"].icon == "warning"

    def test_updated_at(self):
        expected = FETCHED.astimezone().strftime("%I:%M %p")
        assert build(make_usage()).updated_at == expected


def test_pure():
    usage, session = make_usage(), make_session()
    assert build(usage, session) == build(usage, session)
    assert build(usage, session) != build(replace(usage, five_hour=UsageWindow(utilization=38)), session)
