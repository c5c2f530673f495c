"""Line-isolated JSONL parser for Claude Code usage logs."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterator

import orjson

from claude_usage_monitor.types.logs import LocalUsageEvent
from claude_usage_monitor.utils.formatting import parse_iso_timestamp

logger = logging.getLogger(__name__)

SYNTHETIC_MODEL = "<synthetic>"

# Max size for a single JSONL line (10MB)
MAX_LINE_SIZE = 10 * 1024 * 1024


def parse_log_file(file_path: str | Path) -> list[LocalUsageEvent]:
    """Parse every valid usage event in a JSONL log file.

    The file is written by an external process and may end in a partial line;
    malformed or invalid lines are skipped without aborting the file.
    """
    return list(stream_log_file(file_path))


def stream_log_file(file_path: str | Path) -> Iterator[LocalUsageEvent]:
    path = Path(file_path)
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("Could not read log file %s: %s", path, e)
        return

    for line_num, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue

        if len(line) > MAX_LINE_SIZE:
            logger.warning(
                "Line %d in %s exceeds %dMB, skipping",
                line_num, path.name, MAX_LINE_SIZE // (1024 * 1024),
            )
            continue

        raw = load_line(line)
        if raw is None:
            logger.debug("Malformed JSON at line %d in %s", line_num, path.name)
            continue

        event = parse_usage_event(raw)
        if event is not None:
            yield event


def load_line(line: str) -> dict | None:
    """Decode one JSONL line into a dict, or None if it is not an object."""
    try:
        raw = orjson.loads(line)
    except orjson.JSONDecodeError:
        return None
    return raw if isinstance(raw, dict) else None


def is_valid_usage_record(raw: dict) -> bool:
    """A counted record has numeric input/output usage and is neither synthetic nor an API error."""
    message = raw.get("message")
    if not isinstance(message, dict):
        return False
    usage = message.get("usage")
    if not isinstance(usage, dict):
        return False
    if not _is_number(usage.get("input_tokens")) or not _is_number(usage.get("output_tokens")):
        return False
    if message.get("model") == SYNTHETIC_MODEL:
        return False
    if raw.get("isApiErrorMessage"):
        return False
    return True


def parse_usage_event(raw: dict) -> LocalUsageEvent | None:
    """Convert a raw log object into a LocalUsageEvent, or None if invalid."""
    if not is_valid_usage_record(raw):
        return None

    message = raw["message"]
    usage = message["usage"]
    return LocalUsageEvent(
        message_id=str(message.get("id") or ""),
        request_id=str(raw.get("requestId") or ""),
        timestamp=_parse_timestamp(raw.get("timestamp")),
        type=raw.get("type", ""),
        input_tokens=_as_int(usage.get("input_tokens")),
        output_tokens=_as_int(usage.get("output_tokens")),
        cache_creation_tokens=_as_int(usage.get("cache_creation_input_tokens")),
        cache_read_tokens=_as_int(usage.get("cache_read_input_tokens")),
        model=message.get("model") or "",
    )


def _parse_timestamp(ts_value) -> datetime | None:
    if isinstance(ts_value, (int, float)) and not isinstance(ts_value, bool):
        try:
            return datetime.fromtimestamp(ts_value / 1000 if ts_value > 1e12 else ts_value).astimezone()
        except (OverflowError, OSError, ValueError):
            return None
    return parse_iso_timestamp(ts_value)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_int(value) -> int:
    return int(value) if _is_number(value) else 0
