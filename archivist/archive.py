"""
Archivist ArchiveEngine — the surface the presentation layer talks to.

Wires the pieces together:

    source ──► SubscriptionManager ──► TreeStore ──► NavigationManager
                                  └──► FilterPipeline ──► ResourceAggregator
    CacheLayer + VersionedLoader seed both views before live data arrives

Live snapshots always win over cached or primed data: once a subscription
has delivered, later optimistic loads for that view are ignored.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from archivist.documents.models import Document
from archivist.documents.navigation import Breadcrumb, NavigationCursor, NavigationManager
from archivist.documents.tree import TreeStore
from archivist.engine.cache import CACHE_KEYS, CACHE_TTL, MISS, CacheLayer, create_cache
from archivist.engine.config import ArchivistConfig, get_config
from archivist.engine.errors import ArchivistError, NavigationError
from archivist.engine.fetch import LoadResult, VersionedLoader
from archivist.engine.logging import log, log_system_event
from archivist.engine.subscription import (
    CollectionSource,
    QueryDescriptor,
    Record,
    SubscriptionManager,
    SyncSubscription,
)
from archivist.resources.aggregator import CourseGroup, ResourceAggregator
from archivist.resources.filters import FilterConfig, FilterPipeline, SavedSource
from archivist.resources.models import Resource, ResourceStatus

logger = logging.getLogger("archivist.archive")

ROOTS_SOURCE = "roots"
DOCUMENTS_SOURCE = "documents"


class ArchiveEngine:
    """
    Archive navigation and resource aggregation over one CollectionSource.

    Usage:
        engine = ArchiveEngine(source, saved=lambda: profile.saved_ids)
        engine.seed_from_cache()
        engine.start()
        for category in engine.root_categories():
            engine.children(category.id)
        engine.grouped_courses(FilterConfig(search_text="cmpe"))
        engine.close()
    """

    def __init__(
        self,
        source: CollectionSource,
        config: Optional[ArchivistConfig] = None,
        cache: Optional[CacheLayer] = None,
        saved: Optional[SavedSource] = None,
        on_error: Optional[Callable[[ArchivistError], None]] = None,
    ):
        self._config = config or get_config()
        self._source = source
        self._cache = cache if cache is not None else create_cache(
            backend=self._config.cache.backend,
            redis_url=self._config.cache.redis_url,
            prefix=self._config.cache.prefix,
            db=self._config.cache.db,
            default_ttl_ms=self._config.cache.default_ttl_ms,
        )
        self._on_error = on_error
        self.errors: List[ArchivistError] = []

        collections = self._config.collections
        self._documents_collection = collections.documents
        self._resources_collection = collections.resources
        self.tree = TreeStore(
            anchor=collections.anchor,
            max_depth=self._config.navigation.max_depth,
        )
        self.navigation = NavigationManager()
        self.pipeline = FilterPipeline(saved=saved)
        self._loader = VersionedLoader(self._cache, on_error=self._report)
        self._subscriptions = SubscriptionManager(source)

        self._documents_sub: Optional[SyncSubscription] = None
        self._roots_sub: Optional[SyncSubscription] = None
        self._resources_sub: Optional[SyncSubscription] = None
        self._documents_live = False
        self._resources_live = False
        self._tag_id: Optional[str] = None

    # -------------------------------------------------------------------
    # Queries sent to the remote store
    # -------------------------------------------------------------------

    def roots_query(self) -> QueryDescriptor:
        return QueryDescriptor.where(self._documents_collection, parentPath=self.tree.anchor)

    def documents_query(self, tag_id: Optional[str] = None) -> QueryDescriptor:
        if tag_id:
            return QueryDescriptor.where(
                self._documents_collection,
                order_by="createdAt",
                descending=True,
                relatedCommissionId=tag_id,
            )
        return QueryDescriptor.where(
            self._documents_collection, order_by="createdAt", descending=True,
        )

    def resources_query(self) -> QueryDescriptor:
        return QueryDescriptor.where(
            self._resources_collection, status=ResourceStatus.APPROVED.value,
        )

    def _documents_cache_key(self) -> str:
        return f"{CACHE_KEYS.DOCUMENTS}:{self._tag_id}" if self._tag_id else CACHE_KEYS.DOCUMENTS

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------

    def start(self, tag_id: Optional[str] = None) -> None:
        """
        Open the live queries. With tag_id, documents are limited to that
        cross-reference (the committee listing) and root categories still load.
        """
        self.stop()
        self._tag_id = tag_id
        self._roots_sub = self._subscriptions.subscribe(
            self.roots_query(),
            lambda records: self._apply_documents(ROOTS_SOURCE, records),
            self._report,
        )
        self._documents_sub = self._subscriptions.subscribe(
            self.documents_query(tag_id),
            self._on_documents,
            self._report,
        )
        self._resources_sub = self._subscriptions.subscribe(
            self.resources_query(),
            self._on_resources,
            self._report,
        )
        log(log_system_event("engine_started", details={"tag_id": tag_id}))

    def stop(self) -> None:
        """Dispose live queries. Current state stays readable."""
        for sub in (self._roots_sub, self._documents_sub, self._resources_sub):
            if sub is not None:
                sub.dispose()
        self._roots_sub = self._documents_sub = self._resources_sub = None
        self._documents_live = False
        self._resources_live = False

    def close(self) -> None:
        self.stop()
        self._subscriptions.dispose_all()
        log(log_system_event("engine_closed"))

    def __enter__(self) -> "ArchiveEngine":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # -------------------------------------------------------------------
    # Snapshot handling
    # -------------------------------------------------------------------

    def _report(self, error: ArchivistError) -> None:
        self.errors.append(error)
        if self._on_error is not None:
            self._on_error(error)

    def _apply_documents(self, source: str, records: List[Record]) -> None:
        documents = Document.parse_records(records, self._documents_collection)
        self.tree.ingest(documents, source=source)

    def _on_documents(self, records: List[Record]) -> None:
        self._documents_live = True
        self._apply_documents(DOCUMENTS_SOURCE, records)
        self._cache.set(self._documents_cache_key(), records, CACHE_TTL.MEDIUM)

    def _apply_resources(self, records: List[Record]) -> None:
        resources = [
            r for r in Resource.parse_records(records, self._resources_collection)
            if r.status is ResourceStatus.APPROVED
        ]
        self.pipeline.set_source(resources)

    def _on_resources(self, records: List[Record]) -> None:
        self._resources_live = True
        self._apply_resources(records)
        self._cache.set(CACHE_KEYS.RESOURCES, records, CACHE_TTL.MEDIUM)

    def seed_from_cache(self) -> Dict[str, bool]:
        """Render cached snapshots until the live queries deliver."""
        seeded = {"documents": False, "resources": False}
        if not self._documents_live:
            cached = self._cache.get(self._documents_cache_key())
            if cached is not MISS and isinstance(cached, list):
                self._apply_documents(DOCUMENTS_SOURCE, cached)
                seeded["documents"] = True
        if not self._resources_live:
            cached = self._cache.get(CACHE_KEYS.RESOURCES)
            if cached is not MISS and isinstance(cached, list):
                self._apply_resources(cached)
                seeded["resources"] = True
        return seeded

    async def prime(self) -> Dict[str, LoadResult]:
        """
        One-shot, cache-first loads of both views through VersionedLoader.

        Needs a source with fetch_async(query). Results that lost a race with
        a newer prime(), or arrive after live data, are not applied.
        """
        fetch_async = getattr(self._source, "fetch_async", None)
        if fetch_async is None:
            return {}

        documents_query = self.documents_query(self._tag_id)
        resources_query = self.resources_query()
        results = {
            "documents": await self._loader.load(
                self._documents_cache_key(),
                lambda: fetch_async(documents_query),
                ttl_ms=CACHE_TTL.MEDIUM,
            ),
            "resources": await self._loader.load(
                CACHE_KEYS.RESOURCES,
                lambda: fetch_async(resources_query),
                ttl_ms=CACHE_TTL.MEDIUM,
            ),
        }
        documents, resources = results["documents"], results["resources"]
        if documents.ok and not self._documents_live:
            self._apply_documents(DOCUMENTS_SOURCE, documents.value)
        if resources.ok and not self._resources_live:
            self._apply_resources(resources.value)
        return results

    @property
    def documents_loading(self) -> bool:
        return self._documents_sub is None or self._documents_sub.loading

    @property
    def resources_loading(self) -> bool:
        return self._resources_sub is None or self._resources_sub.loading

    # -------------------------------------------------------------------
    # Archive navigation
    # -------------------------------------------------------------------

    def root_categories(self) -> List[Document]:
        return self.tree.root_categories()

    def _category(self, category_id: str) -> Document:
        category = self.tree.get(category_id)
        if category is None or not category.is_root:
            raise NavigationError(
                f"Unknown category '{category_id}'", category_id=category_id,
            )
        return category

    def cursor(self, category_id: str) -> NavigationCursor:
        return self.navigation.cursor(self._category(category_id))

    def children(self, category_id: str, path: Optional[str] = None) -> List[Document]:
        """Contents of path, or of the category cursor's current folder."""
        if path is None:
            cursor = self.navigation.get(category_id)
            path = cursor.current_path if cursor is not None else category_id
        return self.tree.children(path)

    def descend(self, category_id: str, folder: Union[Document, str]) -> NavigationCursor:
        if isinstance(folder, str):
            doc = self.tree.get(folder)
            if doc is None:
                raise NavigationError(
                    f"Unknown folder '{folder}'", category_id=category_id, object_id=folder,
                )
            folder = doc
        cursor = self.cursor(category_id)
        cursor.descend(folder)
        return cursor

    def ascend(self, category_id: str) -> NavigationCursor:
        cursor = self.cursor(category_id)
        cursor.ascend()
        return cursor

    def jump_to(self, category_id: str, index: int) -> NavigationCursor:
        cursor = self.cursor(category_id)
        cursor.jump_to(index)
        return cursor

    def is_at_root(self, category_id: str) -> bool:
        return self.cursor(category_id).is_at_root()

    def breadcrumb(self, category_id: str) -> List[Breadcrumb]:
        return self.cursor(category_id).breadcrumb

    def open_at(self, category_id: str, doc_id: str) -> NavigationCursor:
        return self.navigation.open_at(self._category(category_id), doc_id, self.tree)

    def documents_for_tag(self, tag_id: str) -> List[Document]:
        return self.tree.tag_listing(tag_id)

    # -------------------------------------------------------------------
    # Academic resources
    # -------------------------------------------------------------------

    def grouped_courses(self, config: Optional[FilterConfig] = None) -> List[CourseGroup]:
        return ResourceAggregator.group(self.pipeline.apply(config or FilterConfig()))

    def available_terms(self) -> List[str]:
        return self.pipeline.available_terms()
