"""
Archivist Cache Layer — TTL cache in front of one-shot collection fetches.

Entries are JSON envelopes {"value", "stored_at", "ttl_ms"} kept in a
KeyValueStore. An entry is stale once now - stored_at > ttl_ms. Anything that
cannot be decoded is a miss, so callers always fall through to their fetch.

Stores:
  MemoryStore: process-local dict (default)
  RedisStore:  redis-py client with a circuit breaker; when Redis is down the
               cache degrades to "always miss" instead of failing callers
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Protocol

from archivist.engine.errors import CacheError
from archivist.engine.logging import log, log_cache_event

logger = logging.getLogger("archivist.engine.cache")


class _Miss:
    """Sentinel for a cache miss. None is a cacheable value."""

    _instance: Optional["_Miss"] = None

    def __new__(cls) -> "_Miss":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISS"


MISS = _Miss()


class CACHE_TTL:
    """TTL presets in milliseconds."""
    SHORT = 2 * 60 * 1000
    MEDIUM = 5 * 60 * 1000
    LONG = 15 * 60 * 1000
    VERY_LONG = 60 * 60 * 1000


class CACHE_KEYS:
    """Well-known cache keys used by the archive engine."""
    ROOT_CATEGORIES = "archive:root_categories"
    DOCUMENTS = "archive:documents"
    RESOURCES = "archive:approved_resources"


def _now_ms() -> float:
    return time.time() * 1000.0


class KeyValueStore(Protocol):
    """Minimal string key/value surface the cache needs."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> bool: ...

    def delete(self, key: str) -> bool: ...

    def clear(self) -> int: ...


class MemoryStore:
    """In-process store. Values are kept serialized, like any other backend."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def clear(self) -> int:
        count = len(self._data)
        self._data.clear()
        return count

    def __len__(self) -> int:
        return len(self._data)


class RedisStore:
    """
    Redis-backed store with circuit breaker.

    Expiry is decided by CacheLayer from the envelope; Redis gets a generous
    EX only so that abandoned keys do not live forever.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        prefix: str = "archivist:",
        db: int = 3,
        key_expiry_seconds: int = 24 * 60 * 60,
    ):
        self._redis_url = redis_url
        self._prefix = prefix
        self._db = db
        self._key_expiry = key_expiry_seconds
        self._client = None
        self._available = False

        # Circuit breaker state
        self._failure_count = 0
        self._failure_threshold = 5
        self._failure_window = 30  # seconds
        self._first_failure_time = 0.0
        self._circuit_open = False

    def connect(self) -> bool:
        """Initialize Redis connection."""
        try:
            import redis

            self._client = redis.Redis.from_url(
                self._redis_url,
                db=self._db,
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
            self._client.ping()
            self._available = True
            self._circuit_open = False
            self._failure_count = 0
            logger.info(f"Redis connected: DB {self._db} ({self._prefix})")
            return True
        except Exception as e:
            logger.warning(f"Redis connection failed (DB {self._db}): {e}")
            self._available = False
            return False

    def _check_circuit(self) -> bool:
        if self._circuit_open:
            if time.time() - self._first_failure_time > self._failure_window:
                self._circuit_open = False
                self._failure_count = 0
                return self.connect()
            return False
        return self._available

    def _record_failure(self) -> None:
        now = time.time()
        if self._failure_count == 0:
            self._first_failure_time = now

        self._failure_count += 1

        if self._failure_count >= self._failure_threshold:
            elapsed = now - self._first_failure_time
            if elapsed <= self._failure_window:
                self._circuit_open = True
                logger.error(
                    f"Redis circuit breaker OPEN: {self._failure_count} failures in {elapsed:.1f}s"
                )

    def _make_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Optional[str]:
        if not self._check_circuit():
            return None
        try:
            return self._client.get(self._make_key(key))
        except Exception as e:
            self._record_failure()
            logger.debug(f"Redis GET failed: {e}")
            return None

    def set(self, key: str, value: str) -> bool:
        if not self._check_circuit():
            return False
        try:
            self._client.set(self._make_key(key), value, ex=self._key_expiry)
            return True
        except Exception as e:
            self._record_failure()
            logger.debug(f"Redis SET failed: {e}")
            return False

    def delete(self, key: str) -> bool:
        if not self._check_circuit():
            return False
        try:
            self._client.delete(self._make_key(key))
            return True
        except Exception:
            self._record_failure()
            return False

    def clear(self) -> int:
        """Delete every key under this store's prefix."""
        if not self._check_circuit():
            return 0
        try:
            keys = list(self._client.scan_iter(match=self._make_key("*"), count=1000))
            if keys:
                return self._client.delete(*keys)
            return 0
        except Exception:
            self._record_failure()
            return 0

    def close(self) -> None:
        """Close the Redis connection and release resources."""
        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.debug(f"Redis close failed: {e}")
            self._client = None
        self._available = False
        self._circuit_open = False
        self._failure_count = 0

    @property
    def is_available(self) -> bool:
        return self._available and not self._circuit_open

    @property
    def is_circuit_open(self) -> bool:
        return self._circuit_open


class CacheLayer:
    """
    Key/value cache with per-entry TTL.

    No eviction besides expiry: the set of keys is small and fixed by
    callers. Entries are immutable once set and replaced wholesale.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        default_ttl_ms: int = CACHE_TTL.MEDIUM,
        clock: Callable[[], float] = _now_ms,
    ):
        self._store = store if store is not None else MemoryStore()
        self._default_ttl_ms = default_ttl_ms
        self._clock = clock

    def get(self, key: str) -> Any:
        """Return the cached value, or MISS if absent, expired or corrupt."""
        raw = self._store.get(key)
        if raw is None:
            log(log_cache_event("miss", key))
            return MISS

        try:
            envelope = json.loads(raw)
            stored_at = float(envelope["stored_at"])
            ttl_ms = float(envelope["ttl_ms"])
            value = envelope["value"]
        except (ValueError, TypeError, KeyError) as e:
            logger.debug(f"Discarding corrupt cache entry '{key}': {e}")
            log(log_cache_event("corrupt", key))
            self._store.delete(key)
            return MISS

        if self._clock() - stored_at > ttl_ms:
            log(log_cache_event("expired", key))
            self._store.delete(key)
            return MISS

        log(log_cache_event("hit", key))
        return value

    def set(self, key: str, value: Any, ttl_ms: Optional[int] = None) -> bool:
        """
        Store a JSON-serializable value. Returns False if the value cannot be
        serialized or the store rejected the write.
        """
        ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        try:
            raw = json.dumps({"value": value, "stored_at": self._clock(), "ttl_ms": ttl})
        except (TypeError, ValueError) as e:
            logger.warning(f"Cannot cache '{key}': {e}")
            return False
        stored = self._store.set(key, raw)
        if stored:
            log(log_cache_event("stored", key, ttl_ms=ttl))
        return stored

    def has(self, key: str) -> bool:
        return self.get(key) is not MISS

    def clear(self, key: Optional[str] = None) -> None:
        """Clear one key, or the entire cache when key is None."""
        if key is None:
            self._store.clear()
        else:
            self._store.delete(key)

    @property
    def store(self) -> KeyValueStore:
        return self._store


def create_cache(
    backend: str = "memory",
    redis_url: str = "redis://localhost:6379/0",
    prefix: str = "archivist:",
    db: int = 3,
    default_ttl_ms: int = CACHE_TTL.MEDIUM,
) -> CacheLayer:
    """Create a CacheLayer for the configured backend."""
    if backend == "memory":
        return CacheLayer(MemoryStore(), default_ttl_ms=default_ttl_ms)
    if backend == "redis":
        store = RedisStore(redis_url=redis_url, prefix=prefix, db=db)
        store.connect()
        return CacheLayer(store, default_ttl_ms=default_ttl_ms)
    raise CacheError(f"Unknown cache backend '{backend}'", backend=backend)
