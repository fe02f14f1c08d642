"""Content domain models: pure Pydantic v2 data types.

These models are the records the interchange engine moves across the
store boundary: notes (ContentItem), their tags, stored files
(Attachment), and the audit row written for every import or export
batch (InterchangeRecord).
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(tz=UTC)


class InterchangeDirection(StrEnum):
    """Which way a batch moved content."""

    IMPORT = "import"
    EXPORT = "export"


class InterchangeStatus(StrEnum):
    """Lifecycle status of an interchange batch."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Tag(BaseModel):
    """A unique tag name."""

    id: str = Field(default_factory=_new_id)
    name: str


class ContentItem(BaseModel):
    """A note record.

    ``slug`` is unique among items that are not soft-deleted.  Tags are
    stored by name, de-duplicated in first-seen order.
    """

    id: str = Field(default_factory=_new_id)
    title: str
    slug: str
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)
    is_deleted: bool = False
    deleted_at: datetime | None = None

    @field_validator("tags")
    @classmethod
    def _dedupe_tags(cls, value: list[str]) -> list[str]:
        seen: list[str] = []
        for tag in value:
            name = str(tag).strip()
            if name and name not in seen:
                seen.append(name)
        return seen


class Attachment(BaseModel):
    """A stored file, optionally owned by one ContentItem."""

    id: str = Field(default_factory=_new_id)
    original_name: str
    storage_name: str
    storage_path: str
    size_bytes: int
    mime_type: str
    post_id: str | None = None
    thumbnail_name: str | None = None
    thumbnail_path: str | None = None
    compressed_size: int | None = None
    width: int | None = None
    height: int | None = None
    uploaded_at: datetime = Field(default_factory=_now)

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")


class InterchangeRecord(BaseModel):
    """Audit row for one import or export batch."""

    id: str = Field(default_factory=_new_id)
    direction: InterchangeDirection
    format: str
    file_name: str
    status: InterchangeStatus = InterchangeStatus.PENDING
    item_count: int = 0
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_now)
    finished_at: datetime | None = None
