"""
ResourceAggregator — admitted resources grouped as course -> type -> items.

One pass, keyed by course code. The first resource seen for a course seeds its
name and department. Buckets keep first-appearance order and items keep
admitted order; only the groups themselves are sorted, by code.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from archivist.resources.models import Resource


def collation_key(text: str) -> Tuple[str, str]:
    """
    Locale-style ordering key: accents and case only break ties.

    "cmpe150" and "CMPE150" sort together, and "Ç" sorts next to "C".
    """
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), text)


@dataclass
class CourseGroup:
    code: str
    name: Optional[str] = None
    department: Optional[str] = None
    by_type: Dict[str, List[Resource]] = field(default_factory=dict)
    total_count: int = 0

    def add(self, resource: Resource) -> None:
        self.by_type.setdefault(resource.resource_type, []).append(resource)
        self.total_count += 1

    @property
    def types(self) -> List[str]:
        return list(self.by_type.keys())

    def to_dict(self) -> Dict:
        return {
            "code": self.code,
            "name": self.name,
            "department": self.department,
            "total_count": self.total_count,
            "by_type": {
                t: [r.model_dump(mode="json", by_alias=True) for r in items]
                for t, items in self.by_type.items()
            },
        }


class ResourceAggregator:
    """Builds the CourseGroup sequence for one admitted list."""

    @staticmethod
    def group(admitted: Iterable[Resource]) -> List[CourseGroup]:
        groups: Dict[str, CourseGroup] = {}
        for resource in admitted:
            group = groups.get(resource.course_code)
            if group is None:
                group = CourseGroup(
                    code=resource.course_code,
                    name=resource.course_name,
                    department=resource.department,
                )
                groups[resource.course_code] = group
            group.add(resource)
        return sorted(groups.values(), key=lambda g: collation_key(g.code))
