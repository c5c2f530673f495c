"""Tests for claude_usage_monitor.services.log_aggregator."""

from datetime import datetime, timezone

import pytest

from claude_usage_monitor.services import log_aggregator
from claude_usage_monitor.services.jsonl_parser import parse_log_file
from claude_usage_monitor.services.log_aggregator import (
    LogAggregator,
    aggregate,
    candidate_log_roots,
    enumerate_log_files,
    is_main_session_file,
)
from claude_usage_monitor.types.logs import INACTIVE_SNAPSHOT

from conftest import PROJECT_DIR_NAME, WORKSPACE
from helpers import hours_ago, usage_line, write_log

SESSION_NAME = "0f8fad5b-d9cb-469f-a165-70867728950e.jsonl"


@pytest.fixture
def aggregator(log_root):
    return LogAggregator(WORKSPACE, roots=[log_root])


# ---------------------------------------------------------------------------
# Root discovery
# ---------------------------------------------------------------------------

class TestLogRoots:
    def test_env_override_first(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CLAUDE_CONFIG_DIR", f" {tmp_path / 'a'} , {tmp_path / 'b'} ")
        roots = candidate_log_roots()
        assert roots[0] == tmp_path / "a"
        assert roots[1] == tmp_path / "b"
        assert len(roots) == 4

    def test_first_existing_root_wins(self, tmp_path):
        missing = tmp_path / "missing"
        present = tmp_path / "present"
        present.mkdir()
        agg = LogAggregator(roots=[missing, present])
        assert agg.locate_log_root() == present

    def test_no_root(self, tmp_path):
        agg = LogAggregator(roots=[tmp_path / "nope"])
        assert agg.locate_log_root() is None
        assert not (tmp_path / "nope").exists()

    def test_project_directory(self, aggregator, project_dir):
        assert aggregator.project_dir_name == PROJECT_DIR_NAME
        assert aggregator.locate_project_directory() == project_dir


# ---------------------------------------------------------------------------
# File enumeration
# ---------------------------------------------------------------------------

def test_enumerate_recursive_sorted(tmp_path):
    (tmp_path / "b").mkdir()
    (tmp_path / "a").mkdir()
    (tmp_path / "b" / "2.jsonl").write_text("")
    (tmp_path / "a" / "1.jsonl").write_text("")
    (tmp_path / "a" / "notes.txt").write_text("")
    files = enumerate_log_files(tmp_path)
    assert [f.name for f in files] == ["1.jsonl", "2.jsonl"]


class TestMainSessionFile:
    def test_uuid_name(self):
        assert is_main_session_file(SESSION_NAME)

    def test_agent_prefix(self):
        assert not is_main_session_file("agent-1a2b3c4d.jsonl")

    def test_other_name(self):
        assert not is_main_session_file("history.jsonl")


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

class TestAggregate:
    def test_duplicates_counted_once(self, tmp_path):
        path = write_log(tmp_path, [
            usage_line(message_id="m1", request_id="r1", input_tokens=100, output_tokens=50),
            usage_line(message_id="m1", request_id="r1", input_tokens=100, output_tokens=50),
            usage_line(message_id="m2", request_id="r2", input_tokens=1, output_tokens=2),
        ])
        totals = aggregate(parse_log_file(path))
        assert totals.message_count == 2
        assert totals.input_tokens == 101
        assert totals.output_tokens == 52

    def test_first_occurrence_wins(self, tmp_path):
        path = write_log(tmp_path, [
            usage_line(message_id="m1", request_id="r1", input_tokens=7),
            usage_line(message_id="m1", request_id="r1", input_tokens=999),
        ])
        assert aggregate(parse_log_file(path)).input_tokens == 7

    def test_since_filter(self, tmp_path):
        path = write_log(tmp_path, [
            usage_line(message_id="old", timestamp="2026-10-17T10:00:00Z", input_tokens=1000),
            usage_line(message_id="new", timestamp="2026-10-18T10:00:00Z", input_tokens=5),
        ])
        since = datetime(2026, 10, 18, tzinfo=timezone.utc)
        totals = aggregate(parse_log_file(path), since=since)
        assert totals.message_count == 1
        assert totals.input_tokens == 5

    def test_load_usage_totals_reads_project_only(self, log_root, project_dir):
        other = log_root / "-home-wiz-other"
        other.mkdir()
        write_log(other, [usage_line(message_id="x", input_tokens=1000)])
        write_log(project_dir, [usage_line(message_id="y", input_tokens=3)])

        totals = LogAggregator(WORKSPACE, roots=[log_root]).load_usage_totals()
        assert totals.input_tokens == 3


# ---------------------------------------------------------------------------
# Current session snapshot
# ---------------------------------------------------------------------------

class TestCurrentSessionSnapshot:
    def _three_events(self):
        return [
            usage_line(message_id="m1", cache_creation=10, cache_read=100),
            usage_line(message_id="m2", cache_creation=20, cache_read=1000),
            usage_line(message_id="m3", cache_creation=200, cache_read=5000),
        ]

    def test_active_file(self, aggregator, project_dir):
        write_log(project_dir, self._three_events(), name=SESSION_NAME, mtime=hours_ago(1 / 60))
        snap = aggregator.current_session_snapshot()
        assert snap.total_tokens == 5000
        assert snap.cache_read_tokens == 5000
        assert snap.cache_creation_tokens == 200
        assert snap.is_active is True

    def test_file_outside_activity_window(self, aggregator, project_dir):
        write_log(project_dir, self._three_events(), name=SESSION_NAME, mtime=hours_ago(2))
        snap = aggregator.current_session_snapshot()
        assert snap == INACTIVE_SNAPSHOT
        assert snap.is_active is False
        assert snap.total_tokens == 0

    def test_missing_project_dir_never_reads_root(self, log_root, monkeypatch):
        other = log_root / "-home-wiz-other"
        other.mkdir()
        write_log(other, self._three_events(), name=SESSION_NAME, mtime=hours_ago(0))

        visited = []
        real = log_aggregator.enumerate_log_files
        monkeypatch.setattr(log_aggregator, "enumerate_log_files",
                            lambda root: visited.append(root) or real(root))

        agg = LogAggregator("/home/u/proj", roots=[log_root])
        assert agg.project_dir_name == "-home-u-proj"
        assert agg.current_session_snapshot() == INACTIVE_SNAPSHOT
        assert visited == []

    def test_trailing_lines_skipped(self, aggregator, project_dir):
        lines = [
            usage_line(message_id="m1", cache_creation=50, cache_read=4321),
            usage_line(message_id="m2", cache_creation=0, cache_read=0),
            '{"type": "user", "message": {"content": "next"}}',
            '{"type": "summary"}',
        ]
        write_log(project_dir, lines, name=SESSION_NAME, mtime=hours_ago(0))
        snap = aggregator.current_session_snapshot()
        assert snap.total_tokens == 4321
        assert snap.message_count == 4

    def test_agent_file_excluded_even_if_newest(self, aggregator, project_dir):
        write_log(project_dir, [usage_line(cache_read=111)], name=SESSION_NAME, mtime=hours_ago(0.5))
        write_log(project_dir, [usage_line(cache_read=999)], name="agent-7d3e1f.jsonl", mtime=hours_ago(0))
        assert aggregator.current_session_snapshot().total_tokens == 111

    def test_newest_main_file_wins(self, aggregator, project_dir):
        write_log(project_dir, [usage_line(cache_read=1)],
                  name="11111111-1111-1111-1111-111111111111.jsonl", mtime=hours_ago(0.5))
        write_log(project_dir, [usage_line(cache_read=2)],
                  name="22222222-2222-2222-2222-222222222222.jsonl", mtime=hours_ago(0.1))
        assert aggregator.current_session_snapshot().total_tokens == 2

    def test_no_cache_usage(self, aggregator, project_dir):
        write_log(project_dir, [usage_line()], name=SESSION_NAME, mtime=hours_ago(0))
        assert aggregator.current_session_snapshot() == INACTIVE_SNAPSHOT

    def test_errors_never_escape(self, aggregator, project_dir, monkeypatch):
        def boom(_):
            raise RuntimeError("disk on fire")
        monkeypatch.setattr(log_aggregator, "enumerate_log_files", boom)
        assert aggregator.current_session_snapshot() == INACTIVE_SNAPSHOT


def test_today_totals(aggregator, project_dir):
    now = datetime(2026, 10, 18, 15, 0, tzinfo=timezone.utc)
    write_log(project_dir, [
        usage_line(message_id="old", timestamp="2026-10-16T15:00:00Z", input_tokens=900),
        usage_line(message_id="now", timestamp=now.isoformat(), input_tokens=4),
    ])
    totals = aggregator.today_totals(now=now)
    assert totals.message_count == 1
    assert totals.input_tokens == 4
