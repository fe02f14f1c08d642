"""Tests for ContentStore: JSON-backed item, attachment and audit store."""

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from noteport.content.models import (
    Attachment,
    ContentItem,
    InterchangeDirection,
    InterchangeStatus,
)
from noteport.content.store import STORE_FILENAME, ContentStore
from noteport.errors import SlugConflictError


def _make_item(slug: str = "test-note", title: str = "Test Note", **kwargs: object) -> ContentItem:
    """Helper to build a ContentItem with sensible defaults."""
    return ContentItem(title=title, slug=slug, content="Body", **kwargs)  # type: ignore[arg-type]


def _make_attachment(storage_name: str = "1700000000000-abcd1234-deadbeef.pdf", **kwargs: object) -> Attachment:
    defaults: dict[str, object] = {
        "original_name": "report.pdf",
        "storage_name": storage_name,
        "storage_path": f"documents/2024/01/{storage_name}",
        "size_bytes": 100,
        "mime_type": "application/pdf",
    }
    defaults.update(kwargs)
    return Attachment(**defaults)  # type: ignore[arg-type]


class TestItems:
    def test_create_and_get(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        item = store.create_item(_make_item())

        assert store.get_item(item.id) is not None
        assert store.get_by_slug("test-note") is not None
        assert store.slug_exists("test-note")

    def test_persists_to_disk(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        store.create_item(_make_item(tags=["python"]))

        data = json.loads((tmp_path / STORE_FILENAME).read_text(encoding="utf-8"))
        assert len(data["items"]) == 1
        assert data["items"][0]["slug"] == "test-note"
        assert [t["name"] for t in data["tags"]] == ["python"]

    def test_reload_from_disk(self, tmp_path: Path):
        ContentStore(tmp_path).create_item(_make_item())
        reloaded = ContentStore(tmp_path)
        assert reloaded.get_by_slug("test-note") is not None

    def test_duplicate_slug_rejected(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        store.create_item(_make_item())
        with pytest.raises(SlugConflictError):
            store.create_item(_make_item(title="Other"))

    def test_update_to_taken_slug_rejected(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        store.create_item(_make_item(slug="a"))
        b = store.create_item(_make_item(slug="b"))
        with pytest.raises(SlugConflictError):
            store.update_item(b.model_copy(update={"slug": "a"}))

    def test_update_missing_raises(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        with pytest.raises(KeyError):
            store.update_item(_make_item())

    def test_list_newest_first_excludes_deleted(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        now = datetime.now(tz=UTC)
        old = store.create_item(_make_item(slug="old", created_at=now - timedelta(days=2)))
        new = store.create_item(_make_item(slug="new", created_at=now))
        gone = store.create_item(_make_item(slug="gone", created_at=now - timedelta(days=1)))
        store.soft_delete_item(gone.id)

        assert [i.id for i in store.list_items()] == [new.id, old.id]
        assert len(store.list_items(include_deleted=True)) == 3

    def test_soft_deleted_slug_can_be_reused(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        first = store.create_item(_make_item())
        store.soft_delete_item(first.id)
        store.create_item(_make_item())
        assert store.get_by_slug("test-note").id != first.id

    def test_restore_blocked_when_slug_taken(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        first = store.create_item(_make_item())
        store.soft_delete_item(first.id)
        store.create_item(_make_item())
        with pytest.raises(SlugConflictError):
            store.restore_item(first.id)

    def test_corrupt_store_starts_fresh(self, tmp_path: Path):
        (tmp_path / STORE_FILENAME).write_text("{not json", encoding="utf-8")
        store = ContentStore(tmp_path)
        assert store.list_items() == []


class TestTags:
    def test_upsert_is_idempotent(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        a = store.upsert_tag("python")
        b = store.upsert_tag("python")
        assert a.id == b.id
        assert len(store.list_tags()) == 1


class TestAttachments:
    def test_create_and_find(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        att = store.create_attachment(_make_attachment())

        assert store.get_attachment(att.id) is not None
        assert store.find_attachment("report.pdf", 100, "application/pdf").id == att.id
        assert store.find_attachment("report.pdf", 101, "application/pdf") is None

    def test_duplicate_storage_name_rejected(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        store.create_attachment(_make_attachment())
        with pytest.raises(ValueError):
            store.create_attachment(_make_attachment())

    def test_list_filters(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        store.create_attachment(_make_attachment("a.pdf", post_id="p1"))
        store.create_attachment(_make_attachment("b.pdf", post_id="p2"))
        store.create_attachment(_make_attachment("c.pdf"))

        assert [a.storage_name for a in store.list_attachments("p1")] == ["a.pdf"]
        assert [a.storage_name for a in store.list_attachments(unlinked=True)] == ["c.pdf"]
        assert {a.storage_name for a in store.list_attachments(post_ids={"p1", "p2"})} == {"a.pdf", "b.pdf"}

    def test_delete(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        att = store.create_attachment(_make_attachment())
        store.delete_attachment(att.id)
        assert store.get_attachment(att.id) is None
        with pytest.raises(KeyError):
            store.delete_attachment(att.id)


class TestRecords:
    def test_lifecycle(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        record = store.create_record(
            InterchangeDirection.IMPORT, "json", "notes.json", status=InterchangeStatus.PROCESSING
        )
        assert record.finished_at is None

        updated = store.update_record(record.id, status=InterchangeStatus.COMPLETED, item_count=3)
        assert updated.status == InterchangeStatus.COMPLETED
        assert updated.item_count == 3
        assert updated.finished_at is not None

    def test_list_by_direction(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        store.create_record(InterchangeDirection.IMPORT, "json", "a.json")
        store.create_record(InterchangeDirection.EXPORT, "zip", "b.zip")

        exports = store.list_records(InterchangeDirection.EXPORT)
        assert [r.file_name for r in exports] == ["b.zip"]

    def test_update_missing_raises(self, tmp_path: Path):
        store = ContentStore(tmp_path)
        with pytest.raises(KeyError):
            store.update_record("nope", status=InterchangeStatus.FAILED)
