"""Tests for claude_usage_monitor.services.jsonl_parser."""

import json
from datetime import datetime, timezone

from claude_usage_monitor.services.jsonl_parser import (
    is_valid_usage_record,
    load_line,
    parse_log_file,
    parse_usage_event,
)

from helpers import usage_line, write_log


# ---------------------------------------------------------------------------
# Record validity
# ---------------------------------------------------------------------------

class TestIsValidUsageRecord:
    def test_valid_record(self):
        assert is_valid_usage_record(json.loads(usage_line()))

    def test_synthetic_model_rejected(self):
        assert not is_valid_usage_record(json.loads(usage_line(model="<synthetic>")))

    def test_api_error_rejected(self):
        assert not is_valid_usage_record(json.loads(usage_line(isApiErrorMessage=True)))

    def test_non_numeric_tokens_rejected(self):
        assert not is_valid_usage_record(json.loads(usage_line(input_tokens="10")))
        assert not is_valid_usage_record(json.loads(usage_line(output_tokens=None)))

    def test_bool_tokens_rejected(self):
        assert not is_valid_usage_record(json.loads(usage_line(input_tokens=True)))

    def test_missing_message_rejected(self):
        assert not is_valid_usage_record({"type": "user"})


# ---------------------------------------------------------------------------
# Event conversion
# ---------------------------------------------------------------------------

def test_parse_usage_event_fields():
    event = parse_usage_event(json.loads(usage_line(
        message_id="msg_a", request_id="req_a",
        input_tokens=5, output_tokens=7, cache_creation=100, cache_read=2000,
    )))
    assert event.key == ("msg_a", "req_a")
    assert event.input_tokens == 5
    assert event.output_tokens == 7
    assert event.cache_creation_tokens == 100
    assert event.cache_read_tokens == 2000
    assert event.total_tokens == 2112
    assert event.timestamp == datetime(2026, 10, 18, 10, 0, tzinfo=timezone.utc)


def test_load_line_rejects_non_objects():
    assert load_line("[1, 2]") is None
    assert load_line("{not json") is None
    assert load_line('{"a": 1}') == {"a": 1}


# ---------------------------------------------------------------------------
# File parsing
# ---------------------------------------------------------------------------

def test_malformed_lines_are_isolated(tmp_path):
    """A broken line in the middle never hides the valid lines around it."""
    path = write_log(tmp_path, [
        usage_line(message_id="m1"),
        "{truncated",
        '"just a string"',
        usage_line(message_id="m2"),
        '{"type": "user", "message": {"content": "hi"}}',
    ])
    events = parse_log_file(path)
    assert [e.message_id for e in events] == ["m1", "m2"]


def test_partial_trailing_line(tmp_path):
    path = tmp_path / "s.jsonl"
    path.write_text(usage_line(message_id="m1") + "\n" + usage_line(message_id="m2")[:40])
    assert [e.message_id for e in parse_log_file(path)] == ["m1"]


def test_missing_file_yields_nothing(tmp_path):
    assert parse_log_file(tmp_path / "missing.jsonl") == []
