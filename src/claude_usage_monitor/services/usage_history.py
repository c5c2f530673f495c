"""Rolling five-hour utilization history and sparkline rendering."""

import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from claude_usage_monitor.constants import USAGE_HISTORY_FILE

logger = logging.getLogger(__name__)

MAX_DATA_POINTS = 96  # 8 hours at 5-minute refreshes

SPARK_CHARS = "▁▂▃▄▅▆▇█"
BRAILLE_BLANK = "⠀"
# Height 0-8 within each half of a two-row graph
BRAILLE_BOTTOM = ["⠀", "⠁", "⠃", "⠇", "⡇", "⡗", "⡷", "⡿", "⣿"]
BRAILLE_TOP = ["⠀", "⢀", "⢠", "⢰", "⢸", "⣀", "⣠", "⣰", "⣸"]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_sparkline(values: list[float]) -> str:
    """Single-row sparkline, min/max normalized."""
    if not values:
        return SPARK_CHARS[0] * 8

    lo, hi = min(values), max(values)
    span = hi - lo
    if span == 0:
        index = min(math.floor(values[0] / 12.5), 7)
        return SPARK_CHARS[max(index, 0)] * len(values)

    return "".join(
        SPARK_CHARS[min(math.floor((v - lo) / span * 7.99), 7)] for v in values
    )


def generate_braille_sparkline(values: list[float], width: int = 24) -> tuple[str, str]:
    """Two-row Braille graph of 0-100 values. Returns (top, bottom)."""
    if not values:
        return BRAILLE_BLANK * width, BRAILLE_BLANK * width

    top: list[str] = []
    bottom: list[str] = []
    for value in values:
        height = max(0.0, min(100.0, value)) / 100 * 16
        if height <= 8:
            top.append(BRAILLE_BLANK)
            bottom.append(BRAILLE_BOTTOM[math.floor(height)])
        else:
            bottom.append(BRAILLE_BOTTOM[-1])
            top.append(BRAILLE_TOP[math.floor(height - 8)])
    return "".join(top), "".join(bottom)


class UsageHistory:
    """Five-hour utilization samples, capped at MAX_DATA_POINTS."""

    def __init__(
        self,
        history_file: str | Path = USAGE_HISTORY_FILE,
        max_points: int = MAX_DATA_POINTS,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._history_file = Path(history_file)
        self._max_points = max_points
        self._clock = clock

    @property
    def history_file(self) -> Path:
        return self._history_file

    def load_data(self) -> dict:
        if not self._history_file.exists():
            return {"dataPoints": [], "lastUpdated": None}
        try:
            data = json.loads(self._history_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            logger.warning("Failed to load usage history from %s", self._history_file)
            return {"dataPoints": [], "lastUpdated": None}
        if not isinstance(data, dict) or not isinstance(data.get("dataPoints"), list):
            return {"dataPoints": [], "lastUpdated": None}
        return data

    def save_data(self, data: dict):
        self._history_file.parent.mkdir(parents=True, exist_ok=True)
        self._history_file.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def add_data_point(self, five_hour: float) -> dict:
        data = self.load_data()
        point = {"timestamp": self._clock().isoformat(), "fiveHour": five_hour}
        data["dataPoints"].append(point)
        data["dataPoints"] = data["dataPoints"][-self._max_points:]
        data["lastUpdated"] = point["timestamp"]
        self.save_data(data)
        return point

    def recent_data_points(self, count: int = 8) -> list[dict]:
        if count <= 0:
            return []
        return self.load_data()["dataPoints"][-count:]

    def clear_history(self):
        self.save_data({"dataPoints": [], "lastUpdated": None})

    def five_hour_sparkline(self, count: int = 24, aggregate_size: int = 2,
                            braille: bool = True):
        """Sparkline of usage activity rather than cumulative level.

        Positive deltas between consecutive samples are summed per group of
        aggregate_size and scaled to the largest group. Returns (top, bottom)
        for Braille, a single string otherwise.
        """
        points = self.recent_data_points(count * aggregate_size)
        if not points:
            if braille:
                return BRAILLE_BLANK * count, BRAILLE_BLANK * count
            return SPARK_CHARS[0] * count

        levels = [_as_float(p.get("fiveHour")) for p in points]
        deltas = [max(0.0, b - a) for a, b in zip(levels, levels[1:])]
        groups = [
            sum(deltas[i:i + aggregate_size])
            for i in range(0, len(deltas), max(aggregate_size, 1))
        ]
        peak = max(groups + [1.0])
        normalized = [g / peak * 100 for g in groups]

        if braille:
            return generate_braille_sparkline(normalized, width=count)
        return generate_sparkline(normalized)


def _as_float(value) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0
