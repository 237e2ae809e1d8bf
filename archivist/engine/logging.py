"""
Archivist Logging — stdlib logger setup plus structured JSONL event files.

Implements:
- configure_logging: root "archivist" logger handlers (JSON or text lines)
- FileLogger: per-category event files (daily rotation)
- AsyncLogQueue: in-memory queue with background flush (100ms / 50 entries)
- Entry builders for subscription, cache, structure and system events

Event files live under {directory}/{category}/{YYYY-MM-DD}.jsonl.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import defaultdict
from datetime import date, datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, List, Optional

logger = logging.getLogger("archivist.engine.logging")

EVENT_CATEGORIES = ("subscriptions", "cache", "structure", "system")


class JsonFormatter(logging.Formatter):
    """Render stdlib log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str, separators=(",", ":"))


def configure_logging(level: str = "INFO", fmt: str = "json") -> logging.Logger:
    """
    Attach a single stream handler to the "archivist" logger.

    Safe to call repeatedly; an earlier handler installed here is replaced.
    """
    root = logging.getLogger("archivist")
    for handler in list(root.handlers):
        if getattr(handler, "_archivist_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler._archivist_handler = True  # type: ignore[attr-defined]
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    root.addHandler(handler)
    root.setLevel(level.upper())
    return root


class LogEntry:
    """A structured log entry destined for a specific category file."""

    __slots__ = ("category", "data")

    def __init__(self, category: str, data: Dict[str, Any]):
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Writes structured JSON log entries to per-category files.
    Files rotate daily: {log_dir}/{category}/{YYYY-MM-DD}.jsonl

    Thread-safe — uses a lock per file path.
    """

    def __init__(self, log_dir: str = ".archivist/logs"):
        self._log_dir = Path(log_dir)
        self._file_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        for category in EVENT_CATEGORIES:
            (self._log_dir / category).mkdir(parents=True, exist_ok=True)

    def write(self, entry: LogEntry) -> None:
        """Write a single log entry to the appropriate file."""
        self.write_batch([entry])

    def write_batch(self, entries: List[LogEntry]) -> None:
        """Write a batch of log entries, grouping by file path."""
        grouped: Dict[str, List[LogEntry]] = defaultdict(list)
        for entry in entries:
            grouped[str(self._resolve_path(entry.category))].append(entry)

        for file_path, batch in grouped.items():
            with self._file_locks[file_path]:
                with open(file_path, "a", encoding="utf-8") as f:
                    for entry in batch:
                        f.write(entry.to_json())
                        f.write("\n")

    def _resolve_path(self, category: str) -> Path:
        """Resolve the log file path for today's date."""
        directory = self._log_dir / category
        directory.mkdir(parents=True, exist_ok=True)
        return directory / f"{date.today().isoformat()}.jsonl"

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def read_today(self, category: str) -> List[Dict[str, Any]]:
        """Read today's entries for a category, skipping unparseable lines."""
        path = self._resolve_path(category)
        if not path.exists():
            return []
        entries: List[Dict[str, Any]] = []
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(json.loads(line))
                    except json.JSONDecodeError:
                        continue
        except OSError as exc:
            logger.warning("Could not read log file %s: %s", path, exc)
        return entries


class AsyncLogQueue:
    """
    In-memory queue with a background flush thread.

    Entries are pushed non-blocking. The flush thread writes to FileLogger
    every flush_interval_ms or when flush_batch_size entries accumulate,
    whichever comes first.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._logger = file_logger
        self._flush_interval = flush_interval_ms / 1000.0
        self._flush_batch_size = flush_batch_size
        self._queue: Queue[LogEntry] = Queue(maxsize=max_queue_size)
        self._running = False
        self._flush_thread: Optional[threading.Thread] = None
        self._dropped_count = 0

    def start(self) -> None:
        """Start the background flush thread."""
        if self._running:
            return
        self._running = True
        self._flush_thread = threading.Thread(
            target=self._flush_loop,
            name="archivist-log-flush",
            daemon=True,
        )
        self._flush_thread.start()
        logger.info("Async log queue started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the flush thread and drain remaining entries."""
        self._running = False
        if self._flush_thread and self._flush_thread.is_alive():
            self._flush_thread.join(timeout=timeout)
        self._drain()
        logger.info(f"Async log queue stopped (dropped: {self._dropped_count})")

    def push(self, entry: LogEntry) -> bool:
        """
        Push a log entry to the queue. Non-blocking.

        Returns:
            True if queued, False if dropped (queue full).
        """
        try:
            self._queue.put_nowait(entry)
            return True
        except Full:
            self._dropped_count += 1
            return False

    def _flush_loop(self) -> None:
        while self._running:
            batch = self._collect_batch()
            if batch:
                try:
                    self._logger.write_batch(batch)
                except OSError as e:
                    logger.error(f"Log flush error: {e}")
            else:
                time.sleep(self._flush_interval)

    def _collect_batch(self) -> List[LogEntry]:
        """Collect up to flush_batch_size entries from the queue."""
        batch: List[LogEntry] = []
        deadline = time.monotonic() + self._flush_interval

        while len(batch) < self._flush_batch_size:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                batch.append(self._queue.get(timeout=min(remaining, 0.01)))
            except Empty:
                if batch:
                    break
                continue

        return batch

    def _drain(self) -> None:
        batch: List[LogEntry] = []
        while not self._queue.empty():
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        if batch:
            try:
                self._logger.write_batch(batch)
            except OSError as e:
                logger.error(f"Log drain error: {e}")

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped_count


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(event: str, level: str, **extra: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    entry.update({k: v for k, v in extra.items() if v is not None})
    return entry


def log_subscription_event(
    event: str,
    query: str,
    subscription_id: int,
    item_count: Optional[int] = None,
    error: Optional[str] = None,
) -> LogEntry:
    """Build a subscription lifecycle entry (opened, delivered, failed, disposed)."""
    data = _base_entry(
        event=event,
        level="ERROR" if error else "INFO",
        query=query,
        subscription_id=subscription_id,
        item_count=item_count,
        error=error,
    )
    return LogEntry("subscriptions", data)


def log_cache_event(event: str, key: str, ttl_ms: Optional[int] = None) -> LogEntry:
    """Build a cache entry (hit, miss, expired, corrupt, stored)."""
    data = _base_entry(event=event, level="DEBUG", key=key, ttl_ms=ttl_ms)
    return LogEntry("cache", data)


def log_structure_anomaly(
    kind: str,
    document_ids: List[str],
    source: Optional[str] = None,
) -> LogEntry:
    """Build a tree anomaly entry (orphan or cycle)."""
    data = _base_entry(
        event=f"structure_{kind}",
        level="WARNING",
        document_ids=sorted(document_ids),
        source=source,
    )
    return LogEntry("structure", data)


def log_system_event(
    event: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """Build a system event entry (engine start, close, config load)."""
    data = _base_entry(event=event, level=level, details=details)
    return LogEntry("system", data)


# ---------------------------------------------------------------------------
# Convenience: Global Log Queue Singleton
# ---------------------------------------------------------------------------

_global_queue: Optional[AsyncLogQueue] = None


def init_logging(
    log_dir: str = ".archivist/logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
) -> AsyncLogQueue:
    """Initialize the global async log queue."""
    global _global_queue
    if _global_queue is not None:
        _global_queue.stop()
    _global_queue = AsyncLogQueue(
        file_logger=FileLogger(log_dir=log_dir),
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _global_queue.start()
    return _global_queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    return _global_queue


def log(entry: LogEntry) -> bool:
    """
    Push an event entry to the global queue. Non-blocking.

    Event files are optional; without init_logging() entries are dropped.
    """
    if _global_queue is None:
        return False
    return _global_queue.push(entry)


def shutdown_logging() -> None:
    """Flush and stop the global log queue."""
    global _global_queue
    if _global_queue:
        _global_queue.stop()
        _global_queue = None
