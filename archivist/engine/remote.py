"""
Archivist Remote Source — polls a REST document store with httpx.

GET {base_url}/{collection}?field=value&orderBy=createdAt&direction=desc
returns either a JSON list of records or {"items": [...]}. Each poll is a
full snapshot, so listeners get the same full-replace semantics as any other
CollectionSource. Polling is explicit: call refresh() from the host loop.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx

from archivist.engine.errors import ArchivistError, FetchError
from archivist.engine.subscription import (
    ErrorCallback,
    QueryDescriptor,
    Record,
    SnapshotCallback,
)

logger = logging.getLogger("archivist.engine.remote")


@dataclass
class _Poll:
    query: QueryDescriptor
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback


class HttpCollectionSource:
    """
    CollectionSource over HTTP.

    One pooled httpx.Client for sync polling; fetch_async() opens a short-lived
    httpx.AsyncClient for one-shot loads.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = headers or {}
        self._async_transport = async_transport
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0)),
            transport=transport,
            headers=self._headers,
            follow_redirects=True,
        )
        self._counter = itertools.count(1)
        self._polls: Dict[int, _Poll] = {}

    # -------------------------------------------------------------------
    # Request building / parsing
    # -------------------------------------------------------------------

    @staticmethod
    def _params(query: QueryDescriptor) -> Dict[str, Any]:
        params: Dict[str, Any] = {field: value for field, value in query.filters}
        if query.order_by:
            params["orderBy"] = query.order_by
            params["direction"] = "desc" if query.descending else "asc"
        return params

    def _parse(self, query: QueryDescriptor, response: httpx.Response) -> List[Record]:
        url = str(response.request.url)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"{query.collection} query returned HTTP {response.status_code}",
                collection=query.collection,
                status_code=response.status_code,
                url=url,
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchError(
                f"{query.collection} query returned invalid JSON",
                collection=query.collection,
                status_code=response.status_code,
                url=url,
            ) from e

        if isinstance(payload, dict):
            payload = payload.get("items", [])
        if not isinstance(payload, list):
            raise FetchError(
                f"{query.collection} query returned {type(payload).__name__}, expected a list",
                collection=query.collection,
                url=url,
            )
        # Server filtering is trusted but re-applied so the contract holds
        return query.apply(r for r in payload if isinstance(r, dict) and "id" in r)

    # -------------------------------------------------------------------
    # One-shot fetches
    # -------------------------------------------------------------------

    def fetch(self, query: QueryDescriptor) -> List[Record]:
        """Fetch one snapshot. Raises FetchError."""
        try:
            response = self._client.get(f"/{query.collection}", params=self._params(query))
        except httpx.RequestError as e:
            raise FetchError(
                f"{query.collection} query failed: {e}",
                collection=query.collection,
                url=f"{self._base_url}/{query.collection}",
            ) from e
        return self._parse(query, response)

    async def fetch_async(self, query: QueryDescriptor) -> List[Record]:
        """Async variant of fetch() for VersionedLoader. Raises FetchError."""
        async with httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout, connect=min(self._timeout, 10.0)),
            transport=self._async_transport,
            headers=self._headers,
            follow_redirects=True,
        ) as client:
            try:
                response = await client.get(f"/{query.collection}", params=self._params(query))
            except httpx.RequestError as e:
                raise FetchError(
                    f"{query.collection} query failed: {e}",
                    collection=query.collection,
                    url=f"{self._base_url}/{query.collection}",
                ) from e
        return self._parse(query, response)

    # -------------------------------------------------------------------
    # CollectionSource
    # -------------------------------------------------------------------

    def listen(
        self,
        query: QueryDescriptor,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Callable[[], None]:
        """Register a poll and deliver its first snapshot immediately."""
        poll_id = next(self._counter)
        poll = _Poll(query, on_snapshot, on_error)
        self._polls[poll_id] = poll
        self._poll_once(poll_id, poll)

        def unlisten() -> None:
            self._polls.pop(poll_id, None)

        return unlisten

    def refresh(self) -> int:
        """Poll every registered query once. Returns the number of snapshots delivered."""
        delivered = 0
        for poll_id, poll in list(self._polls.items()):
            if poll_id not in self._polls:
                continue
            if self._poll_once(poll_id, poll):
                delivered += 1
        return delivered

    def _poll_once(self, poll_id: int, poll: _Poll) -> bool:
        try:
            snapshot = self.fetch(poll.query)
        except ArchivistError as e:
            logger.warning(f"Poll {poll_id} ({poll.query}) failed: {e.message}")
            poll.on_error(e)
            return False
        # Unlistened while the request was in flight
        if poll_id not in self._polls:
            return False
        poll.on_snapshot(snapshot)
        return True

    def close(self) -> None:
        self._polls.clear()
        self._client.close()

    @property
    def poll_count(self) -> int:
        return len(self._polls)
