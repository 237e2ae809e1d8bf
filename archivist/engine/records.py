"""
Base model for records delivered by the remote store.

Remote payloads are camelCase and loosely typed; models declare snake_case
fields with camelCase aliases and accept either form.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from archivist.engine.timestamps import to_datetime, to_epoch_seconds

logger = logging.getLogger("archivist.engine.records")

R = TypeVar("R", bound="RemoteRecord")


class RemoteRecord(BaseModel):
    """Common config and coercions for Document and Resource."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: str = Field(min_length=1, description="Opaque, stable identifier")
    created_at: Optional[datetime] = Field(
        default=None,
        alias="createdAt",
        description="Ordering timestamp; absent while a server timestamp is pending",
    )

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) and not isinstance(v, bool) else v

    @field_validator("created_at", mode="before")
    @classmethod
    def _coerce_created_at(cls, v: Any) -> Optional[datetime]:
        return to_datetime(v)

    @property
    def created_at_seconds(self) -> float:
        """Epoch seconds for ordering; a missing timestamp orders as 0."""
        return to_epoch_seconds(self.created_at) or 0.0

    @classmethod
    def parse_records(
        cls: Type[R],
        records: Iterable[Mapping[str, Any]],
        collection: Optional[str] = None,
    ) -> List[R]:
        """
        Validate a snapshot, dropping malformed records with a warning.

        One bad record never hides the rest of the snapshot.
        """
        parsed: List[R] = []
        for record in records:
            try:
                parsed.append(cls.model_validate(record))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed {cls.__name__} "
                    f"{record.get('id', '?')!r} in {collection or 'snapshot'}: "
                    f"{e.error_count()} error(s)"
                )
        return parsed
