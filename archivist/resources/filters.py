"""
Resource FilterPipeline — independent predicates over the approved catalog.

A resource is admitted iff every active predicate holds. Predicates do not
look at each other, so evaluation order never changes the admitted set.
"""

from __future__ import annotations

import logging
from typing import Callable, Collection, Iterable, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from archivist.resources.models import Resource

logger = logging.getLogger("archivist.resources.filters")

ALL = "ALL"

SavedSource = Union[Collection[str], Callable[[], Iterable[str]]]
Predicate = Callable[[Resource], bool]


class FilterConfig(BaseModel):
    """Current filter selection. Empty search and ALL mean "no constraint"."""

    model_config = ConfigDict(frozen=True)

    saved_only: bool = False
    search_text: str = ""
    resource_type: str = ALL
    term: str = ALL

    @property
    def is_default(self) -> bool:
        return self == FilterConfig()


def saved_predicate(saved_only: bool, saved: Collection[str]) -> Predicate:
    return lambda r: not saved_only or r.id in saved


def search_predicate(search_text: str) -> Predicate:
    needle = search_text.lower()

    def _match(r: Resource) -> bool:
        if not needle:
            return True
        return needle in r.course_code.lower() or needle in (r.course_name or "").lower()

    return _match


def type_predicate(resource_type: str) -> Predicate:
    return lambda r: resource_type == ALL or r.resource_type == resource_type


def term_predicate(term: str) -> Predicate:
    return lambda r: term == ALL or r.term == term


def available_terms(resources: Iterable[Resource]) -> List[str]:
    """ALL followed by the distinct non-empty terms, newest-looking first (reverse lexicographic)."""
    terms = {r.term for r in resources if r.term}
    return [ALL, *sorted(terms, reverse=True)]


class FilterPipeline:
    """
    Holds the unfiltered source list and applies a FilterConfig to it.

    Usage:
        pipeline = FilterPipeline(resources, saved=profile.saved_ids)
        admitted = pipeline.apply(FilterConfig(search_text="cmpe"))
        pipeline.available_terms()
    """

    def __init__(
        self,
        resources: Optional[Iterable[Resource]] = None,
        saved: Optional[SavedSource] = None,
    ):
        self._resources: List[Resource] = []
        self._terms: List[str] = [ALL]
        self._saved: SavedSource = saved if saved is not None else frozenset()
        self.set_source(resources or [])

    def set_source(self, resources: Iterable[Resource]) -> None:
        """Replace the unfiltered list; derived terms are recomputed here."""
        self._resources = list(resources)
        self._terms = available_terms(self._resources)

    def set_saved(self, saved: SavedSource) -> None:
        self._saved = saved

    def saved_ids(self) -> frozenset:
        saved = self._saved() if callable(self._saved) else self._saved
        return frozenset(saved or ())

    def predicates(self, config: FilterConfig) -> List[Predicate]:
        return [
            saved_predicate(config.saved_only, self.saved_ids() if config.saved_only else frozenset()),
            search_predicate(config.search_text),
            type_predicate(config.resource_type),
            term_predicate(config.term),
        ]

    @staticmethod
    def admits(resource: Resource, predicates: Sequence[Predicate]) -> bool:
        return all(p(resource) for p in predicates)

    def apply(self, config: FilterConfig) -> List[Resource]:
        """Admitted resources, in source order."""
        predicates = self.predicates(config)
        return [r for r in self._resources if self.admits(r, predicates)]

    def available_terms(self) -> List[str]:
        return list(self._terms)

    @property
    def resources(self) -> List[Resource]:
        return list(self._resources)

    def __len__(self) -> int:
        return len(self._resources)
