"""
Archivist Live Subscriptions — one live query per SyncSubscription.

A CollectionSource pushes the complete current result set ("snapshot") for a
query every time it changes. SyncSubscription replaces its local list
wholesale on each delivery and forwards it to the consumer.

Guarantees:
    - deliveries within one subscription are applied in arrival order
    - dispose() is idempotent; after it returns nothing is delivered
    - an open failure is reported once through on_error, never raised

SubscriptionManager owns subscriptions independently of any UI lifecycle;
callers keep the returned handle and dispose it explicitly.
"""

from __future__ import annotations

import copy
import itertools
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Protocol,
    Tuple,
)

from archivist.engine.errors import ArchivistError, SubscriptionError
from archivist.engine.logging import log, log_subscription_event
from archivist.engine.timestamps import sort_key

logger = logging.getLogger("archivist.engine.subscription")

Record = Dict[str, Any]
SnapshotCallback = Callable[[List[Record]], None]
ErrorCallback = Callable[[ArchivistError], None]


@dataclass(frozen=True)
class QueryDescriptor:
    """
    Equality-filtered, optionally ordered query against one collection.

    Usage:
        QueryDescriptor.where("otk_documents", parentPath="main")
        QueryDescriptor.where("otk_documents", order_by="createdAt", descending=True)
    """
    collection: str
    filters: Tuple[Tuple[str, Any], ...] = ()
    order_by: Optional[str] = None
    descending: bool = False

    @classmethod
    def where(
        cls,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = False,
        **filters: Any,
    ) -> "QueryDescriptor":
        return cls(
            collection=collection,
            filters=tuple(sorted(filters.items())),
            order_by=order_by,
            descending=descending,
        )

    def matches(self, record: Record) -> bool:
        return all(record.get(field) == value for field, value in self.filters)

    def apply(self, records: Iterable[Record]) -> List[Record]:
        """Filter and order records the way the remote store would."""
        result = [r for r in records if self.matches(r)]
        if self.order_by is not None:
            field = self.order_by
            result.sort(key=lambda r: sort_key(r.get(field)), reverse=self.descending)
        return result

    def cache_key(self) -> str:
        parts = [f"{field}={value}" for field, value in self.filters]
        if self.order_by:
            parts.append(f"order={'-' if self.descending else ''}{self.order_by}")
        return f"{self.collection}?{'&'.join(parts)}"

    def __str__(self) -> str:
        return self.cache_key()


class CollectionSource(Protocol):
    """Anything that can push snapshots for a query."""

    def listen(
        self,
        query: QueryDescriptor,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Callable[[], None]: ...


class SyncSubscription:
    """
    Handle for one live query.

    Attributes:
        initial: snapshot delivered while subscribing (empty if none yet)
        items:   latest snapshot
        loading: True until the first delivery
        failed:  True once an error has been reported
    """

    def __init__(
        self,
        subscription_id: int,
        query: QueryDescriptor,
        on_update: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
        on_dispose: Optional[Callable[["SyncSubscription"], None]] = None,
    ):
        self.id = subscription_id
        self.query = query
        self._on_update = on_update
        self._on_error = on_error
        self._on_dispose = on_dispose
        self._unlisten: Optional[Callable[[], None]] = None
        self.items: List[Record] = []
        self.initial: List[Record] = []
        self.loading = True
        self.failed = False
        self.disposed = False
        self.delivery_count = 0

    def _attach(self, unlisten: Callable[[], None]) -> None:
        if self.disposed:
            unlisten()
        else:
            self._unlisten = unlisten

    def deliver(self, snapshot: List[Record]) -> None:
        """Apply a full snapshot. Ignored once disposed."""
        if self.disposed:
            return
        self.items = list(snapshot)
        self.loading = False
        # A later outage is reported again once the source has recovered
        self.failed = False
        self.delivery_count += 1
        log(log_subscription_event(
            "delivered", str(self.query), self.id, item_count=len(self.items),
        ))
        self._on_update(self.items)

    def fail(self, error: ArchivistError) -> None:
        """Report an error once per outage. Ignored once disposed."""
        if self.disposed or self.failed:
            return
        self.failed = True
        self.loading = False
        logger.warning(f"Subscription {self.id} ({self.query}) failed: {error.message}")
        log(log_subscription_event("failed", str(self.query), self.id, error=error.message))
        if self._on_error is not None:
            self._on_error(error)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        unlisten, self._unlisten = self._unlisten, None
        if unlisten is not None:
            unlisten()
        log(log_subscription_event("disposed", str(self.query), self.id))
        if self._on_dispose is not None:
            self._on_dispose(self)

    __call__ = dispose

    def __repr__(self) -> str:
        state = "disposed" if self.disposed else ("loading" if self.loading else "live")
        return f"SyncSubscription(id={self.id}, query={self.query}, {state}, items={len(self.items)})"


class SubscriptionManager:
    """
    Long-lived owner of live queries against one CollectionSource.

    Usage:
        manager = SubscriptionManager(source)
        sub = manager.subscribe(query, on_update, on_error)
        ...
        sub.dispose()          # or manager.dispose_all()
    """

    def __init__(self, source: CollectionSource):
        self._source = source
        self._counter = itertools.count(1)
        self._active: Dict[int, SyncSubscription] = {}

    def subscribe(
        self,
        query: QueryDescriptor,
        on_update: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> SyncSubscription:
        """Open a live query. Never raises on source failure."""
        sub = SyncSubscription(
            next(self._counter),
            query,
            on_update,
            on_error=on_error,
            on_dispose=lambda s: self._active.pop(s.id, None),
        )
        self._active[sub.id] = sub
        log(log_subscription_event("opened", str(query), sub.id))

        try:
            unlisten = self._source.listen(query, sub.deliver, sub.fail)
        except ArchivistError as e:
            sub.fail(e)
        except Exception as e:
            sub.fail(SubscriptionError(
                f"Cannot open live query {query}: {e}",
                collection=query.collection,
                query=str(query),
            ))
        else:
            sub._attach(unlisten)

        sub.initial = list(sub.items)
        return sub

    def dispose_all(self) -> int:
        subs = list(self._active.values())
        for sub in subs:
            sub.dispose()
        return len(subs)

    @property
    def active(self) -> List[SyncSubscription]:
        return list(self._active.values())


# ---------------------------------------------------------------------------
# In-memory source
# ---------------------------------------------------------------------------

@dataclass
class _Listener:
    query: QueryDescriptor
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback


class InMemoryStore:
    """
    Local document store of named collections that pushes snapshots.

    Every write notifies the listeners of the touched collection with the
    full, re-queried result. Records are dicts with a unique "id".
    """

    def __init__(self, collections: Optional[Dict[str, Iterable[Record]]] = None):
        self._collections: Dict[str, "OrderedDict[str, Record]"] = {}
        self._listeners: Dict[int, _Listener] = {}
        self._counter = itertools.count(1)
        self._pending_failures: Dict[str, ArchivistError] = {}
        for name, records in (collections or {}).items():
            self._collection(name).update((r["id"], dict(r)) for r in records)

    def _collection(self, name: str) -> "OrderedDict[str, Record]":
        return self._collections.setdefault(name, OrderedDict())

    def records(self, collection: str) -> List[Record]:
        return [copy.deepcopy(r) for r in self._collection(collection).values()]

    def query(self, query: QueryDescriptor) -> List[Record]:
        return query.apply(self.records(query.collection))

    def replace_all(self, collection: str, records: Iterable[Record]) -> None:
        data = self._collection(collection)
        data.clear()
        data.update((r["id"], dict(r)) for r in records)
        self._notify(collection)

    def upsert(self, collection: str, record: Record) -> None:
        if "id" not in record:
            raise ValueError("record must carry an 'id'")
        self._collection(collection)[record["id"]] = dict(record)
        self._notify(collection)

    def remove(self, collection: str, record_id: str) -> bool:
        removed = self._collection(collection).pop(record_id, None) is not None
        if removed:
            self._notify(collection)
        return removed

    def fail_next_listen(self, collection: str, error: ArchivistError) -> None:
        """Make the next listen() on collection report error (permission denied etc.)."""
        self._pending_failures[collection] = error

    def listen(
        self,
        query: QueryDescriptor,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Callable[[], None]:
        failure = self._pending_failures.pop(query.collection, None)
        if failure is not None:
            on_error(failure)
            return lambda: None

        listener_id = next(self._counter)
        self._listeners[listener_id] = _Listener(query, on_snapshot, on_error)
        on_snapshot(self.query(query))

        def unlisten() -> None:
            self._listeners.pop(listener_id, None)

        return unlisten

    def emit_error(self, collection: str, error: ArchivistError) -> None:
        """Push an error to every listener of a collection."""
        for listener in list(self._listeners.values()):
            if listener.query.collection == collection:
                listener.on_error(error)

    def _notify(self, collection: str) -> None:
        for listener_id, listener in list(self._listeners.items()):
            # A callback may have disposed another listener meanwhile
            if listener_id not in self._listeners:
                continue
            if listener.query.collection == collection:
                listener.on_snapshot(self.query(listener.query))

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
