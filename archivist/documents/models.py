"""
Archive document model — one node of the virtual filesystem.

Documents form an adjacency list keyed by parent_path. Top-level categories
are kind=root under the ANCHOR sentinel; everything else points at the id of
its containing node.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, Field, field_validator, model_validator

from archivist.engine.records import RemoteRecord

logger = logging.getLogger("archivist.documents.models")

ANCHOR = "main"

FILE_ONLY_FIELDS = ("url", "mimeType", "mime_type", "size")


class DocumentKind(str, Enum):
    ROOT = "root"
    FOLDER = "folder"
    FILE = "file"


class Document(RemoteRecord):
    """
    Archive node.

    url, mime_type and size only exist on files. Stray values on roots and
    folders are dropped during validation.
    """

    title: str = Field(default="", description="Display name")
    kind: DocumentKind = Field(
        validation_alias=AliasChoices("kind", "type"),
        description="root | folder | file",
    )
    parent_path: str = Field(
        alias="parentPath",
        description="Id of the containing node, or ANCHOR for categories",
    )
    url: Optional[str] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    size: Optional[str] = None
    related_tag_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("related_tag_id", "relatedTagId", "relatedCommissionId"),
        description="Cross-reference used for external filtering (e.g. committee)",
    )

    @model_validator(mode="before")
    @classmethod
    def _strip_file_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        kind = data.get("kind", data.get("type"))
        if isinstance(kind, DocumentKind):
            kind = kind.value
        if kind != DocumentKind.FILE.value and any(
            data.get(f) is not None for f in FILE_ONLY_FIELDS
        ):
            logger.debug(f"Dropping file-only fields from {kind} document {data.get('id')!r}")
            data = {k: v for k, v in data.items() if k not in FILE_ONLY_FIELDS}
        return data

    @field_validator("size", mode="before")
    @classmethod
    def _coerce_size(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def is_root(self) -> bool:
        return self.kind is DocumentKind.ROOT

    @property
    def is_folder(self) -> bool:
        return self.kind is DocumentKind.FOLDER

    @property
    def is_file(self) -> bool:
        return self.kind is DocumentKind.FILE
