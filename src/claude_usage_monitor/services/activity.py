"""Activity level from the more urgent of plan usage and session tokens."""

from claude_usage_monitor.types.sessions import SessionState
from claude_usage_monitor.types.usage import UsageRecord
from claude_usage_monitor.types.view import ActivityStats

HEAVY_THRESHOLD = 90
MODERATE_THRESHOLD = 75

SHORT_TEXT = {
    "heavy": "Running low!",
    "moderate": "Getting low",
    "idle": "Normal usage",
}

QUIRKY_TEXT = {
    "heavy": (
        "Claude needs a coffee break soon ☕",
        "I'm sorry Dave, I'm afraid I can't do much more 🔴",
        "GAME OVER, man! GAME OVER! 👾",
        "This is heavy, Doc! 🚗",
        "I'll be back... after the reset 🤖",
        "Houston, we have a problem 🚀",
        "You shall not pass... (90%) 🧙",
    ),
    "moderate": (
        "Pace yourself, human 🐢",
        "Life moves pretty fast. Token consumption too 🎸",
        "May the tokens be with you 🌟",
        "One does not simply ignore token warnings 💍",
        "Wax on, tokens off 🥋",
        "Be excellent to your token budget 🎸",
    ),
    "idle": (
        "Plenty of Claude time remaining 🚀",
        "All systems nominal, Captain 🖖",
        "Stay awhile and code 📜",
        "Cowabunga, dude! 🐢",
        "I love it when a plan comes together 🚐",
        "Achievement unlocked: Good token hygiene 🎮",
        "To infinity and beyond! 🚀",
    ),
}


def activity_level(max_percent: float) -> str:
    if max_percent >= HEAVY_THRESHOLD:
        return "heavy"
    elif max_percent >= MODERATE_THRESHOLD:
        return "moderate"
    return "idle"


def quirky_text(level: str, max_percent: float) -> str:
    """Pick a line keyed on the percentage, so redraws at the same level never flicker."""
    options = QUIRKY_TEXT.get(level, QUIRKY_TEXT["idle"])
    return options[int(max_percent) % len(options)]


def activity_stats(usage: UsageRecord | None = None,
                   session: SessionState | None = None) -> ActivityStats:
    claude_percent = usage.usage_percent if usage is not None and usage.usage_percent is not None else 0
    token_percent = session.token_usage.percent if session is not None else 0
    max_percent = max(claude_percent, token_percent)
    level = activity_level(max_percent)
    return ActivityStats(
        level=level,
        claude_percent=claude_percent,
        token_percent=token_percent,
        max_percent=max_percent,
        short=SHORT_TEXT[level],
        quirky=quirky_text(level, max_percent),
    )
