"""Display formatting for reset times, currencies, and token counts."""

import logging
import re
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "AUD": "$",
    "CAD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "¥",
    "KRW": "₩",
    "INR": "₹",
    "BRL": "R$",
    "MXN": "$",
    "CHF": "CHF ",
    "SEK": "kr",
    "NOK": "kr",
    "DKK": "kr",
    "NZD": "$",
    "SGD": "$",
    "HKD": "$",
}

_DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def parse_iso_timestamp(value) -> datetime | None:
    """Parse an ISO 8601 string into an aware datetime, or None."""
    if not isinstance(value, str) or not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def calculate_reset_time(iso_timestamp, now: datetime | None = None) -> str:
    """Convert an absolute reset instant to a coarse relative budget.

    "5d 3h" beyond a day, "2h 15m" beyond an hour, otherwise "42m".
    """
    if not iso_timestamp:
        return "Unknown"
    reset = iso_timestamp if isinstance(iso_timestamp, datetime) else parse_iso_timestamp(iso_timestamp)
    if reset is None:
        logger.debug("Unparseable reset timestamp: %r", iso_timestamp)
        return "Unknown"
    if reset.tzinfo is None:
        reset = reset.replace(tzinfo=timezone.utc)
    if now is None:
        now = datetime.now(timezone.utc)

    diff_s = (reset - now).total_seconds()
    if diff_s <= 0:
        return "Soon"

    hours = int(diff_s // 3600)
    minutes = int((diff_s % 3600) // 60)
    if hours > 24:
        return f"{hours // 24}d {hours % 24}h"
    elif hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def calculate_reset_clock_time(reset_time: str, now: datetime | None = None) -> str:
    """Turn a relative budget like "2h 30m" into a local clock time.

    Budgets of a day or more include the weekday and date ("Tue 14 09:30").
    """
    if not reset_time:
        return "??:??"
    days = re.search(r"(\d+)d", reset_time)
    hours = re.search(r"(\d+)h", reset_time)
    minutes = re.search(r"(\d+)m", reset_time)

    total_minutes = 0
    if days:
        total_minutes += int(days.group(1)) * 24 * 60
    if hours:
        total_minutes += int(hours.group(1)) * 60
    if minutes:
        total_minutes += int(minutes.group(1))

    if now is None:
        now = datetime.now()
    reset = now + timedelta(minutes=total_minutes)
    clock = f"{reset.hour:02d}:{reset.minute:02d}"
    if total_minutes >= 24 * 60:
        return f"{_DAY_NAMES[reset.weekday()]} {reset.day} {clock}"
    return clock


def get_currency_symbol(currency: str) -> str:
    return _CURRENCY_SYMBOLS.get(currency, "")


def format_compact(value: float) -> str:
    """Format a number with a K/M suffix."""
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    elif value >= 1000:
        return f"{value / 1000:.1f}K"
    return str(round(value))


def format_percent(value) -> str:
    """Render a utilization percent without a trailing .0."""
    if value is None:
        return "-"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"{value}%"


def format_reset_clock(resets_at: datetime, now: datetime | None = None) -> str:
    """Local clock time of an absolute reset instant, with the day when a day or more away."""
    local = resets_at.astimezone()
    if now is None:
        now = datetime.now().astimezone()
    elif now.tzinfo is None:
        now = now.astimezone()
    clock = f"{local.hour:02d}:{local.minute:02d}"
    if (local - now).total_seconds() >= 24 * 3600:
        return f"{_DAY_NAMES[local.weekday()]} {local.day} {clock}"
    return clock


def format_amount(value: float) -> str:
    """Thousands-separated amount with at most two decimals."""
    text = f"{value:,.2f}"
    return text.rstrip("0").rstrip(".")
