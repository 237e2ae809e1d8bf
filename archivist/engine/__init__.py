"""Archivist Engine — cache, live subscriptions, remote source, config, logging, errors."""

from archivist.engine.cache import CACHE_KEYS, CACHE_TTL, MISS, CacheLayer, MemoryStore, RedisStore  # noqa: F401
from archivist.engine.fetch import LoadResult, VersionedLoader  # noqa: F401
from archivist.engine.remote import HttpCollectionSource  # noqa: F401
from archivist.engine.subscription import (  # noqa: F401
    InMemoryStore,
    QueryDescriptor,
    SubscriptionManager,
    SyncSubscription,
)

__all__ = [
    "CACHE_KEYS",
    "CACHE_TTL",
    "MISS",
    "CacheLayer",
    "MemoryStore",
    "RedisStore",
    "LoadResult",
    "VersionedLoader",
    "HttpCollectionSource",
    "InMemoryStore",
    "QueryDescriptor",
    "SubscriptionManager",
    "SyncSubscription",
]
