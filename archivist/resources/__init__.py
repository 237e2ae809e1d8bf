"""Archivist Resources — approved course resources, filters and course grouping."""

from archivist.resources.aggregator import CourseGroup, ResourceAggregator
from archivist.resources.filters import ALL, FilterConfig, FilterPipeline, available_terms
from archivist.resources.models import RESOURCE_TYPES, Resource, ResourceStatus

__all__ = [
    "ALL",
    "CourseGroup",
    "FilterConfig",
    "FilterPipeline",
    "RESOURCE_TYPES",
    "Resource",
    "ResourceAggregator",
    "ResourceStatus",
    "available_terms",
]
