"""Build the immutable presentation state from the latest data.

build_view_state is pure: identical inputs give an equal UsageViewState,
so the caller can skip redraws by comparing against the previous state.
"""

from datetime import datetime

from claude_usage_monitor.types.config import MonitorConfig
from claude_usage_monitor.types.sessions import SessionState
from claude_usage_monitor.types.usage import UsageRecord, UsageWindow
from claude_usage_monitor.types.view import (
    ActivityStats,
    DetailRow,
    StatusItem,
    UsageViewState,
)
from claude_usage_monitor.utils.formatting import (
    calculate_reset_clock_time,
    format_amount,
    format_percent,
    format_reset_clock,
    get_currency_symbol,
)

LABEL_TEXT = "Claude"
LEVEL_ICONS = {"warning": "⚠", "critical": "✗"}
EMPTY_HINT = "Click to fetch Claude usage data"


def usage_level(percent, warning: int = 75, error: int = 90) -> str:
    if percent is None:
        return "normal"
    if percent >= error:
        return "critical"
    elif percent >= warning:
        return "warning"
    return "normal"


def reset_clock(window: UsageWindow, now: datetime | None = None) -> str:
    if window.resets_at is not None:
        return format_reset_clock(window.resets_at, now)
    return calculate_reset_clock_time(window.reset_time, now)


def indicator_for(has_usage: bool, web_error: str | None, token_error: str | None) -> str:
    if web_error and token_error:
        return "error"
    if web_error:
        # Last-known numbers are still on screen
        return "stale" if has_usage else "warning"
    return "ok"


def build_view_state(
    usage: UsageRecord | None,
    session: SessionState | None,
    activity: ActivityStats | None,
    config: MonitorConfig,
    web_error: str | None = None,
    token_error: str | None = None,
    consecutive_failures: int = 0,
    sparkline: str = "",
    now: datetime | None = None,
) -> UsageViewState:
    indicator = indicator_for(usage is not None, web_error, token_error)
    items = _status_items(usage, session, config, indicator, now)

    if web_error:
        tooltip = _error_tooltip(web_error, token_error, consecutive_failures)
    elif usage is None and session is None:
        tooltip = (EMPTY_HINT,)
    else:
        tooltip = _tooltip(usage, session, activity, now)

    return UsageViewState(
        indicator=indicator,
        status_items=items,
        tooltip=tooltip,
        rows=_detail_rows(usage, session, activity, config, sparkline, now),
        updated_at=_updated_at(usage),
    )


# ----------------------------------------------------------------------
# Status items
# ----------------------------------------------------------------------

def _item(key: str, text: str | None, level: str, visible: bool) -> StatusItem:
    if text is None:
        return StatusItem(key=key, text="", level="normal", visible=False)
    icon = LEVEL_ICONS.get(level)
    return StatusItem(key=key, text=f"{icon} {text}" if icon else text, level=level, visible=visible)


def _status_items(usage, session, config, indicator, now) -> tuple[StatusItem, ...]:
    warn, err = config.warning_threshold, config.error_threshold
    label = LABEL_TEXT
    label_level = "normal"
    if indicator == "error":
        label, label_level = f"{LABEL_TEXT} ✗", "critical"
    elif indicator in ("warning", "stale"):
        label, label_level = f"{LABEL_TEXT} ⚠", "warning"
    items = [StatusItem(key="label", text=label, level=label_level)]

    if usage is None and session is None:
        for key in ("session", "weekly", "sonnet", "opus", "credits", "tokens"):
            items.append(StatusItem(key=key, text="", visible=False))
        return tuple(items)

    session_text = None
    if usage is not None and usage.usage_percent is not None:
        session_text = f"{format_percent(usage.usage_percent)}@{reset_clock(usage.five_hour, now)}"
    items.append(_item("session", session_text,
                       usage_level(usage.usage_percent if usage else None, warn, err),
                       config.show_session))

    weekly = usage.seven_day if usage is not None else None
    items.append(_item("weekly", f"7d {format_percent(weekly.utilization)}" if weekly else None,
                       usage_level(weekly.utilization if weekly else None, warn, err),
                       config.show_weekly))

    sonnet = usage.seven_day_sonnet if usage is not None else None
    items.append(_item("sonnet", f"{format_percent(sonnet.utilization)}S" if sonnet else None,
                       usage_level(sonnet.utilization if sonnet else None, warn, err),
                       config.show_sonnet))

    opus = usage.seven_day_opus if usage is not None else None
    items.append(_item("opus", f"{format_percent(opus.utilization)}O" if opus else None,
                       usage_level(opus.utilization if opus else None, warn, err),
                       config.show_opus))

    credits = usage.monthly_credits if usage is not None else None
    credits_text = None
    if credits is not None:
        used = f"{credits.used / 1000:.1f}K" if credits.used >= 1000 else str(round(credits.used))
        credits_text = f"{get_currency_symbol(credits.currency)}{used}/{credits.percent}%"
    items.append(_item("credits", credits_text,
                       usage_level(credits.percent if credits else None, warn, err),
                       config.show_credits))

    if session is not None and session.token_usage.limit > 0:
        pct = session.token_usage.percent
        items.append(_item("tokens", f"Tk {pct}%", usage_level(pct, warn, err), config.show_tokens))
    else:
        items.append(StatusItem(key="tokens", text="Tk -", visible=config.show_tokens))

    return tuple(items)


# ----------------------------------------------------------------------
# Tooltip
# ----------------------------------------------------------------------

def _tooltip(usage, session, activity, now) -> tuple[str, ...]:
    lines: list[str] = []
    if usage is not None and usage.usage_percent is not None:
        lines.append("**Session**")
        lines.append(f"5hr limit: {format_percent(usage.usage_percent)} "
                     f"(resets at {reset_clock(usage.five_hour, now)})")

    if session is not None and session.token_usage.limit > 0:
        tokens = session.token_usage
        lines.append(f"Tokens: {tokens.current:,} / {tokens.limit:,} ({tokens.percent}%)")

    if usage is not None:
        weekly_lines = []
        if usage.seven_day is not None:
            weekly_lines.append(f"All models: {format_percent(usage.seven_day.utilization)} "
                                f"(resets at {reset_clock(usage.seven_day, now)})")
        if usage.seven_day_sonnet is not None:
            weekly_lines.append(f"Sonnet: {format_percent(usage.seven_day_sonnet.utilization)}")
        if usage.seven_day_opus is not None:
            weekly_lines.append(f"Opus: {format_percent(usage.seven_day_opus.utilization)}")
        if weekly_lines:
            lines.extend(["", "**Weekly**", *weekly_lines])

        credits = usage.monthly_credits
        if credits is not None:
            sym = get_currency_symbol(credits.currency)
            lines.extend([
                "",
                "**Extra Usage**",
                f"Used: {sym}{format_amount(credits.used)} / {sym}{format_amount(credits.limit)} "
                f"{credits.currency} ({credits.percent}%)",
                f"Remaining: {sym}{format_amount(credits.remaining)} {credits.currency}",
            ])

    if activity is not None:
        lines.extend(["", f"*{activity.quirky}*"])

    lines.append("")
    if usage is not None:
        lines.append(f"Updated: {_updated_at(usage)}")
    lines.append("Click to refresh")
    return tuple(lines)


def _error_tooltip(web_error: str, token_error: str | None, failures: int) -> tuple[str, ...]:
    if token_error:
        lines = ["**Complete Fetch Failed**", "", f"Web: {web_error}", f"Tokens: {token_error}"]
    else:
        lines = ["**Web Fetch Failed**", "", f"Error: {web_error}", "",
                 "Token data may still be available"]
    if failures > 1:
        lines.extend(["", f"Consecutive failures: {failures}"])
    lines.extend(["", "**Actions**", "• Click to retry", "• Reset the browser connection to reconnect"])
    return tuple(lines)


# ----------------------------------------------------------------------
# Detail rows
# ----------------------------------------------------------------------

def _detail_rows(usage, session, activity, config, sparkline, now) -> tuple[DetailRow, ...]:
    if usage is None:
        return (DetailRow(key="hint", label=EMPTY_HINT),)

    warn, err = config.warning_threshold, config.error_threshold
    rows: list[DetailRow] = []
    if sparkline:
        rows.append(DetailRow(key="sparkline", label=sparkline, icon="graph"))

    if usage.usage_percent is not None:
        rows.append(DetailRow(
            key="session",
            label="Session (5hr)",
            value=f"{format_percent(usage.usage_percent)} (resets at {reset_clock(usage.five_hour, now)})",
            icon=usage_level(usage.usage_percent, warn, err),
        ))

    if session is not None and session.token_usage.limit > 0:
        tokens = session.token_usage
        rows.append(DetailRow(
            key="tokens",
            label="Tokens",
            value=f"{tokens.current:,} / {tokens.limit:,} ({tokens.percent}%)",
            icon=usage_level(tokens.percent, warn, err),
        ))

    if usage.seven_day is not None:
        rows.append(DetailRow(
            key="weekly",
            label="Weekly (all)",
            value=f"{format_percent(usage.seven_day.utilization)} "
                  f"(resets at {reset_clock(usage.seven_day, now)})",
            icon=usage_level(usage.seven_day.utilization, warn, err),
        ))
    for key, label, window in (("sonnet", "Weekly (Sonnet)", usage.seven_day_sonnet),
                               ("opus", "Weekly (Opus)", usage.seven_day_opus)):
        if window is not None:
            rows.append(DetailRow(key=key, label=label, value=format_percent(window.utilization),
                                  icon=usage_level(window.utilization, warn, err)))

    credits = usage.monthly_credits
    if credits is not None:
        sym = get_currency_symbol(credits.currency)
        rows.append(DetailRow(
            key="credits",
            label="Extra Usage",
            value=f"{sym}{format_amount(credits.used)} / {sym}{format_amount(credits.limit)} "
                  f"{credits.currency} ({credits.percent}%)",
            icon=usage_level(credits.percent, warn, err),
        ))

    if activity is not None:
        icon = {"heavy": "critical", "moderate": "warning"}.get(activity.level, "normal")
        rows.append(DetailRow(key="activity", label=activity.short, value=activity.quirky, icon=icon))

    rows.append(DetailRow(key="updated", label="Updated", value=_updated_at(usage), icon="clock"))
    return tuple(rows)


def _updated_at(usage: UsageRecord | None) -> str:
    if usage is None:
        return ""
    return usage.fetched_at.astimezone().strftime("%I:%M %p")
