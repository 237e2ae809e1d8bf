"""Unit tests for archivist.engine.logging — FileLogger, AsyncLogQueue, entry builders."""

import json
import logging

import pytest

from archivist.engine import logging as log_mod
from archivist.engine.logging import (
    EVENT_CATEGORIES,
    AsyncLogQueue,
    FileLogger,
    JsonFormatter,
    LogEntry,
    configure_logging,
    init_logging,
    log,
    log_cache_event,
    log_structure_anomaly,
    log_subscription_event,
    log_system_event,
)


class TestLogEntry:

    def test_to_json(self):
        entry = LogEntry("system", {"event": "x", "n": 1})
        assert json.loads(entry.to_json()) == {"event": "x", "n": 1}


class TestBuilders:

    def test_subscription_event(self):
        entry = log_subscription_event("delivered", "docs?", 3, item_count=7)
        assert entry.category == "subscriptions"
        assert entry.data["level"] == "INFO"
        assert entry.data["item_count"] == 7
        assert "error" not in entry.data

    def test_subscription_failure_is_error(self):
        entry = log_subscription_event("failed", "docs?", 3, error="denied")
        assert entry.data["level"] == "ERROR"
        assert entry.data["error"] == "denied"

    def test_cache_event(self):
        entry = log_cache_event("stored", "archive:documents", ttl_ms=1000)
        assert entry.category == "cache"
        assert entry.data["level"] == "DEBUG"
        assert entry.data["ttl_ms"] == 1000

    def test_structure_anomaly(self):
        entry = log_structure_anomaly("orphan", ["b", "a"], source="documents")
        assert entry.category == "structure"
        assert entry.data["event"] == "structure_orphan"
        assert entry.data["document_ids"] == ["a", "b"]

    def test_system_event(self):
        entry = log_system_event("engine_started", details={"tag_id": None})
        assert entry.category == "system"
        assert entry.data["details"] == {"tag_id": None}


class TestFileLogger:

    def test_creates_category_dirs(self, tmp_path):
        FileLogger(str(tmp_path / "logs"))
        for category in EVENT_CATEGORIES:
            assert (tmp_path / "logs" / category).is_dir()

    def test_write_and_read(self, tmp_path):
        fl = FileLogger(str(tmp_path))
        fl.write(log_system_event("a"))
        fl.write_batch([log_system_event("b"), log_cache_event("hit", "k")])
        assert [e["event"] for e in fl.read_today("system")] == ["a", "b"]
        assert [e["event"] for e in fl.read_today("cache")] == ["hit"]

    def test_read_skips_bad_lines(self, tmp_path):
        fl = FileLogger(str(tmp_path))
        fl.write(log_system_event("ok"))
        with open(fl._resolve_path("system"), "a", encoding="utf-8") as f:
            f.write("not json\n\n")
        assert [e["event"] for e in fl.read_today("system")] == ["ok"]

    def test_read_missing(self, tmp_path):
        assert FileLogger(str(tmp_path)).read_today("structure") == []


class TestAsyncLogQueue:

    def test_push_and_drain_on_stop(self, tmp_path):
        fl = FileLogger(str(tmp_path))
        queue = AsyncLogQueue(fl, flush_interval_ms=10)
        queue.start()
        for i in range(5):
            assert queue.push(log_system_event(f"e{i}")) is True
        queue.stop()
        assert len(fl.read_today("system")) == 5
        assert queue.pending_count == 0

    def test_drops_when_full(self, tmp_path):
        queue = AsyncLogQueue(FileLogger(str(tmp_path)), max_queue_size=1)
        assert queue.push(log_system_event("a")) is True
        assert queue.push(log_system_event("b")) is False
        assert queue.dropped_count == 1


class TestGlobalQueue:

    def test_log_without_init(self):
        assert log(log_system_event("x")) is False

    def test_init_and_shutdown(self, tmp_path):
        queue = init_logging(str(tmp_path), flush_interval_ms=10)
        assert log_mod.get_log_queue() is queue
        assert log(log_structure_anomaly("cycle", ["x", "y"])) is True
        log_mod.shutdown_logging()
        assert log_mod.get_log_queue() is None
        entries = FileLogger(str(tmp_path)).read_today("structure")
        assert entries[0]["document_ids"] == ["x", "y"]


class TestConfigureLogging:

    def test_single_handler(self):
        configure_logging("DEBUG", "text")
        root = configure_logging("WARNING", "json")
        handlers = [h for h in root.handlers if getattr(h, "_archivist_handler", False)]
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, JsonFormatter)
        assert root.level == logging.WARNING

    def test_json_formatter(self):
        record = logging.LogRecord("archivist.x", logging.INFO, __file__, 1, "hello %s", ("w",), None)
        data = json.loads(JsonFormatter().format(record))
        assert data["message"] == "hello w"
        assert data["logger"] == "archivist.x"
        assert data["level"] == "INFO"
