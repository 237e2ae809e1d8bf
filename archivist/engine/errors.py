"""
Archivist Error Hierarchy — Structured exceptions for the archive engine.

Most engine failures are soft (reported through error callbacks, or treated
as a cache miss). The exceptions below are raised only for caller mistakes
and for errors handed to error callbacks, where they carry enough context to
be logged as JSON.

Hierarchy:
    ArchivistError
    ├── NavigationError    — Invalid cursor operation
    ├── SubscriptionError  — Live query could not be opened or delivered
    ├── FetchError         — One-shot fetch failed
    ├── CacheError         — Cache backend misconfiguration
    ├── ConfigError        — Invalid archivist.yaml
    └── ValidationError    — Malformed document/resource payload
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ArchivistError(Exception):
    """
    Base error for all archive engine failures.
    All context is serializable to JSON.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.error_type: str = self.__class__.__name__
        self.collection: Optional[str] = context.get("collection")
        self.object_id: Optional[str] = context.get("object_id")
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict for logging."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "collection": self.collection,
            "object_id": self.object_id,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("collection", "object_id")
            },
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        parts = [f"{self.error_type}: {self.message}"]
        if self.collection:
            parts.append(f"collection={self.collection}")
        if self.object_id:
            parts.append(f"object_id={self.object_id}")
        return " | ".join(parts)


class NavigationError(ArchivistError):
    """Cursor operation rejected (bad breadcrumb index, non-folder descend)."""

    def __init__(self, message: str, **context: Any):
        self.category_id: Optional[str] = context.get("category_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["category_id"] = self.category_id
        return d


class SubscriptionError(ArchivistError):
    """A live query failed to open, or its source reported an error."""

    def __init__(self, message: str, **context: Any):
        self.query: Optional[str] = context.get("query")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["query"] = self.query
        return d


class FetchError(ArchivistError):
    """One-shot fetch against the remote store failed."""

    def __init__(self, message: str, **context: Any):
        self.status_code: Optional[int] = context.get("status_code")
        self.url: Optional[str] = context.get("url")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["status_code"] = self.status_code
        d["url"] = self.url
        return d


class CacheError(ArchivistError):
    """Cache backend cannot be created (unknown backend name)."""
    pass


class ConfigError(ArchivistError):
    """Configuration error — invalid archivist.yaml."""
    pass


class ValidationError(ArchivistError):
    """
    A document or resource payload failed model validation.
    Includes field-level error details from pydantic.
    """

    def __init__(self, message: str, **context: Any):
        self.validation_errors: Optional[list] = context.get("validation_errors")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["validation_errors"] = self.validation_errors
        return d
