"""Shared test helpers."""

import json
import os
import time
import uuid
from pathlib import Path

from PySide6.QtCore import QCoreApplication


def wait_for_worker(monitor):
    """Wait for an in-flight browser worker to finish and deliver its signal."""
    if monitor._worker is not None:
        monitor._worker.wait(5000)
    QCoreApplication.processEvents()


def usage_line(
    message_id: str = "msg_1",
    request_id: str = "req_1",
    input_tokens=10,
    output_tokens=20,
    cache_creation=0,
    cache_read=0,
    timestamp: str = "2026-10-18T10:00:00Z",
    model: str = "claude-sonnet-4",
    type: str = "assistant",
    **extra,
) -> str:
    """One JSONL log line for an assistant message with usage."""
    record = {
        "type": type,
        "timestamp": timestamp,
        "requestId": request_id,
        "message": {
            "id": message_id,
            "model": model,
            "usage": {
                "input_tokens": input_tokens,
                "output_tokens": output_tokens,
                "cache_creation_input_tokens": cache_creation,
                "cache_read_input_tokens": cache_read,
            },
        },
    }
    record.update(extra)
    return json.dumps(record)


def write_log(directory: Path, lines: list[str], name: str | None = None,
              mtime: float | None = None) -> Path:
    """Write lines to a session log (UUID-named by default) and optionally set its mtime."""
    path = directory / (name or f"{uuid.uuid4()}.jsonl")
    path.write_text("\n".join(lines) + "\n")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def hours_ago(hours: float) -> float:
    return time.time() - hours * 3600
