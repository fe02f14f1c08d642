"""JSON-backed content store.

Persists items, tags, attachments and interchange records in a single
JSON file, loaded on init and saved after every write operation.  This
is the Store collaborator the pipelines talk to: item CRUD with slug
uniqueness, attachment registry, audit records, and tag upsert.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

from noteport.content.models import (
    Attachment,
    ContentItem,
    InterchangeDirection,
    InterchangeRecord,
    InterchangeStatus,
    Tag,
)
from noteport.errors import SlugConflictError

logger = logging.getLogger(__name__)

STORE_FILENAME = ".noteport-store.json"


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    items: list[ContentItem] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    records: list[InterchangeRecord] = Field(default_factory=list)


class ContentStore:
    """JSON-backed store for items, tags, attachments and audit records.

    Loads the store file on init and saves after every mutation.  Writes
    are serialized within the process; nothing guards against a second
    process writing the same file.
    """

    def __init__(self, data_dir: Path) -> None:
        self._path = data_dir / STORE_FILENAME
        self._lock = threading.RLock()
        self._data = self._load()

    @property
    def path(self) -> Path:
        return self._path

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _StoreData:
        if not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt content store at %s, starting fresh", self._path)
            return _StoreData()

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(self._data.model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(self._path)

    def _find_item(self, item_id: str) -> ContentItem | None:
        for item in self._data.items:
            if item.id == item_id:
                return item
        return None

    def _require_item(self, item_id: str) -> ContentItem:
        item = self._find_item(item_id)
        if item is None:
            raise KeyError(item_id)
        return item

    def _check_slug_free(self, slug: str, *, exclude_id: str | None = None) -> None:
        for item in self._data.items:
            if item.slug == slug and not item.is_deleted and item.id != exclude_id:
                raise SlugConflictError(slug)

    # ── Items ────────────────────────────────────────────────────

    def create_item(self, item: ContentItem) -> ContentItem:
        """Insert a new item.

        Raises SlugConflictError if a live item already uses the slug.
        """
        with self._lock:
            self._check_slug_free(item.slug)
            for name in item.tags:
                self._upsert_tag(name)
            self._data.items.append(item)
            self._save()
        return item

    def update_item(self, item: ContentItem) -> ContentItem:
        """Replace an existing item by id.

        Raises KeyError if the id does not exist and SlugConflictError if
        the new slug collides with another live item.
        """
        with self._lock:
            self._require_item(item.id)
            self._check_slug_free(item.slug, exclude_id=item.id)
            for name in item.tags:
                self._upsert_tag(name)
            self._data.items = [item if i.id == item.id else i for i in self._data.items]
            self._save()
        return item

    def get_item(self, item_id: str) -> ContentItem | None:
        """Return an item by id, or None if not found."""
        return self._find_item(item_id)

    def get_by_slug(self, slug: str) -> ContentItem | None:
        """Return the live item using this slug, or None."""
        for item in self._data.items:
            if item.slug == slug and not item.is_deleted:
                return item
        return None

    def slug_exists(self, slug: str) -> bool:
        """Check whether a live item uses this slug."""
        return self.get_by_slug(slug) is not None

    def list_items(self, include_deleted: bool = False) -> list[ContentItem]:
        """Return items newest-first, excluding soft-deleted ones by default."""
        items = [i for i in self._data.items if include_deleted or not i.is_deleted]
        return sorted(items, key=lambda i: i.created_at, reverse=True)

    def soft_delete_item(self, item_id: str) -> None:
        """Flag an item as deleted.  Raises KeyError if missing."""
        with self._lock:
            item = self._require_item(item_id)
            item.is_deleted = True
            item.deleted_at = datetime.now(tz=UTC)
            self._save()

    def restore_item(self, item_id: str) -> None:
        """Clear the deleted flag.

        Raises SlugConflictError if a live item took the slug meanwhile.
        """
        with self._lock:
            item = self._require_item(item_id)
            self._check_slug_free(item.slug, exclude_id=item.id)
            item.is_deleted = False
            item.deleted_at = None
            self._save()

    # ── Tags ─────────────────────────────────────────────────────

    def _upsert_tag(self, name: str) -> Tag:
        for tag in self._data.tags:
            if tag.name == name:
                return tag
        tag = Tag(name=name)
        self._data.tags.append(tag)
        return tag

    def upsert_tag(self, name: str) -> Tag:
        """Return the tag with this name, creating it if needed."""
        with self._lock:
            tag = self._upsert_tag(name)
            self._save()
        return tag

    def list_tags(self) -> list[Tag]:
        return list(self._data.tags)

    # ── Attachments ──────────────────────────────────────────────

    def create_attachment(self, attachment: Attachment) -> Attachment:
        """Register an attachment record.

        Raises ValueError if the storage name is already registered.
        """
        with self._lock:
            if any(a.storage_name == attachment.storage_name for a in self._data.attachments):
                raise ValueError(f"Storage name already registered: {attachment.storage_name}")
            self._data.attachments.append(attachment)
            self._save()
        return attachment

    def update_attachment(self, attachment: Attachment) -> Attachment:
        """Replace an attachment record by id.  Raises KeyError if missing."""
        with self._lock:
            if self.get_attachment(attachment.id) is None:
                raise KeyError(attachment.id)
            self._data.attachments = [
                attachment if a.id == attachment.id else a for a in self._data.attachments
            ]
            self._save()
        return attachment

    def get_attachment(self, attachment_id: str) -> Attachment | None:
        for attachment in self._data.attachments:
            if attachment.id == attachment_id:
                return attachment
        return None

    def list_attachments(
        self,
        post_id: str | None = None,
        *,
        unlinked: bool = False,
        post_ids: set[str] | None = None,
    ) -> list[Attachment]:
        """Return attachments newest-first.

        Args:
            post_id: Only attachments owned by this item.
            unlinked: Only attachments with no owner.
            post_ids: Only attachments owned by any of these items.
        """
        results = self._data.attachments
        if post_id is not None:
            results = [a for a in results if a.post_id == post_id]
        if unlinked:
            results = [a for a in results if a.post_id is None]
        if post_ids is not None:
            results = [a for a in results if a.post_id in post_ids]
        return sorted(results, key=lambda a: a.uploaded_at, reverse=True)

    def find_attachment(self, original_name: str, size_bytes: int, mime_type: str) -> Attachment | None:
        """Return the first attachment matching the (name, size, mime) triple."""
        for attachment in self._data.attachments:
            if (
                attachment.original_name == original_name
                and attachment.size_bytes == size_bytes
                and attachment.mime_type == mime_type
            ):
                return attachment
        return None

    def delete_attachment(self, attachment_id: str) -> None:
        """Remove an attachment record.  Raises KeyError if missing."""
        with self._lock:
            if self.get_attachment(attachment_id) is None:
                raise KeyError(attachment_id)
            self._data.attachments = [a for a in self._data.attachments if a.id != attachment_id]
            self._save()

    # ── Interchange records ──────────────────────────────────────

    def create_record(
        self,
        direction: InterchangeDirection,
        fmt: str,
        file_name: str,
        status: InterchangeStatus = InterchangeStatus.PENDING,
    ) -> InterchangeRecord:
        """Create and persist an audit record for a batch."""
        record = InterchangeRecord(
            direction=direction,
            format=fmt,
            file_name=file_name,
            status=status,
        )
        with self._lock:
            self._data.records.append(record)
            self._save()
        return record

    def update_record(
        self,
        record_id: str,
        *,
        status: InterchangeStatus | None = None,
        item_count: int | None = None,
        error_message: str | None = None,
        file_name: str | None = None,
    ) -> InterchangeRecord:
        """Update an audit record.  Raises KeyError if missing."""
        with self._lock:
            record = self.get_record(record_id)
            if record is None:
                raise KeyError(record_id)
            if status is not None:
                record.status = status
                if status in (InterchangeStatus.COMPLETED, InterchangeStatus.FAILED):
                    record.finished_at = datetime.now(tz=UTC)
            if item_count is not None:
                record.item_count = item_count
            if error_message is not None:
                record.error_message = error_message
            if file_name is not None:
                record.file_name = file_name
            self._save()
        return record

    def get_record(self, record_id: str) -> InterchangeRecord | None:
        for record in self._data.records:
            if record.id == record_id:
                return record
        return None

    def list_records(
        self,
        direction: InterchangeDirection | None = None,
        limit: int = 50,
    ) -> list[InterchangeRecord]:
        """Return audit records newest-first."""
        results = self._data.records
        if direction is not None:
            results = [r for r in results if r.direction == direction]
        return sorted(results, key=lambda r: r.created_at, reverse=True)[:limit]
