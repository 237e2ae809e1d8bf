"""
Versioned one-shot loads — cache lookup, fallback fetch, stale-response guard.

Every load() takes a fresh request id. When the fetch completes, its result
is applied (and cached) only if no newer load() for the same key started in
the meantime; otherwise it is reported as stale and dropped.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from archivist.engine.cache import MISS, CacheLayer
from archivist.engine.errors import ArchivistError, FetchError

logger = logging.getLogger("archivist.engine.fetch")


@dataclass
class LoadResult:
    """Outcome of a single versioned load."""
    key: str
    request_id: int
    value: Any = None
    from_cache: bool = False
    stale: bool = False
    error: Optional[ArchivistError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.stale


class VersionedLoader:
    """
    Runs cache-first fetches and discards responses that lost a race.

    Usage:
        loader = VersionedLoader(cache)
        result = await loader.load("archive:documents", fetch_documents, ttl_ms=CACHE_TTL.MEDIUM)
        if result.ok:
            render(result.value)
    """

    def __init__(
        self,
        cache: CacheLayer,
        on_error: Optional[Callable[[ArchivistError], None]] = None,
    ):
        self._cache = cache
        self._on_error = on_error
        self._counter = itertools.count(1)
        self._latest: Dict[str, int] = {}

    def latest_request_id(self, key: str) -> Optional[int]:
        return self._latest.get(key)

    def is_current(self, key: str, request_id: int) -> bool:
        return self._latest.get(key) == request_id

    async def load(
        self,
        key: str,
        fetch: Callable[[], Awaitable[Any]],
        ttl_ms: Optional[int] = None,
        use_cache: bool = True,
    ) -> LoadResult:
        """
        Return the cached value for key, or await fetch() and cache it.

        Fetch errors are reported once through on_error and returned in the
        result; they never raise and never touch the cached entry.
        """
        request_id = next(self._counter)
        self._latest[key] = request_id

        if use_cache:
            cached = self._cache.get(key)
            if cached is not MISS:
                return LoadResult(key, request_id, value=cached, from_cache=True)

        try:
            value = await fetch()
        except ArchivistError as e:
            return self._fail(key, request_id, e)
        except Exception as e:
            return self._fail(
                key,
                request_id,
                FetchError(f"Fetch for '{key}' failed: {e}", cache_key=key),
            )

        if not self.is_current(key, request_id):
            logger.debug(
                f"Discarding stale response for '{key}' "
                f"(request {request_id}, latest {self._latest.get(key)})"
            )
            return LoadResult(key, request_id, value=value, stale=True)

        self._cache.set(key, value, ttl_ms)
        return LoadResult(key, request_id, value=value)

    def _fail(self, key: str, request_id: int, error: ArchivistError) -> LoadResult:
        if not self.is_current(key, request_id):
            return LoadResult(key, request_id, stale=True, error=error)
        logger.warning(f"Load failed for '{key}': {error.message}")
        if self._on_error is not None:
            self._on_error(error)
        return LoadResult(key, request_id, error=error)
