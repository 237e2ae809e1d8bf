"""
Academic resource model — one catalog record in the shared course pool.

Only approved records reach the engine; the subscription filters on status.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator

from archivist.engine.records import RemoteRecord

RESOURCE_TYPES = (
    "Ders Notu",
    "Midterm Soruları",
    "Final Soruları",
    "Proje/Ödev",
    "Kitap/Kaynak",
    "Syllabus",
)


class ResourceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class Resource(RemoteRecord):
    """Approved course resource. course_code + resource_type pick its display bucket."""

    course_code: str = Field(alias="courseCode", min_length=1)
    course_name: Optional[str] = Field(default=None, alias="courseName")
    department: Optional[str] = None
    resource_type: str = Field(alias="resourceType")
    title: str = ""
    url: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    size: Optional[str] = None
    term: Optional[str] = None
    instructor: Optional[str] = None
    status: ResourceStatus = ResourceStatus.APPROVED

    @field_validator("size", mode="before")
    @classmethod
    def _coerce_size(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def is_known_type(self) -> bool:
        return self.resource_type in RESOURCE_TYPES
