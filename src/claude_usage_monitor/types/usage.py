"""Remote plan usage types."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class UsageWindow:
    """Utilization of one rate-limit window."""
    utilization: Optional[float]
    resets_at: Optional[datetime] = None
    reset_time: str = "Unknown"  # coarse display budget, e.g. "2h 15m"


@dataclass(frozen=True)
class MonthlyCredits:
    used: float
    limit: float
    currency: str
    percent: int

    @property
    def remaining(self) -> float:
        return self.limit - self.used


@dataclass(frozen=True)
class UsageRecord:
    """One usage snapshot. Superseded wholesale by the next fetch."""
    five_hour: UsageWindow
    fetched_at: datetime
    seven_day: Optional[UsageWindow] = None
    seven_day_sonnet: Optional[UsageWindow] = None
    seven_day_opus: Optional[UsageWindow] = None
    extra_usage: Any = None
    monthly_credits: Optional[MonthlyCredits] = None
    prepaid_credits: Optional[dict] = None
    raw_payload: Any = field(default=None, compare=False, repr=False)
    source: str = "api"
    schema_version: str = ""

    @property
    def usage_percent(self) -> Optional[float]:
        return self.five_hour.utilization

    @property
    def reset_time(self) -> str:
        return self.five_hour.reset_time
