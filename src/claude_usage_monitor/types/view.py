"""Presentation view-model types."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ActivityStats:
    level: str  # heavy | moderate | idle
    claude_percent: float
    token_percent: int
    max_percent: float
    short: str
    quirky: str


@dataclass(frozen=True)
class StatusItem:
    key: str
    text: str
    level: str = "normal"  # normal | warning | critical
    visible: bool = True


@dataclass(frozen=True)
class DetailRow:
    key: str
    label: str
    value: str = ""
    icon: str = "info"


@dataclass(frozen=True)
class UsageViewState:
    indicator: str = "ok"  # ok | warning | error | stale
    status_items: tuple[StatusItem, ...] = ()
    tooltip: tuple[str, ...] = ()
    rows: tuple[DetailRow, ...] = ()
    updated_at: str = ""
