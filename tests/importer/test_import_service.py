"""Tests for ImportService: conflict strategies and audit records."""

import io
import json
import zipfile
from pathlib import Path

import pytest

from noteport.content.models import ContentItem, InterchangeDirection, InterchangeStatus
from noteport.content.store import ContentStore
from noteport.importer.models import CandidateItem, ConflictStrategy
from noteport.importer.services import ImportService


@pytest.fixture
def store(tmp_path: Path) -> ContentStore:
    return ContentStore(tmp_path)


@pytest.fixture
def existing(store: ContentStore) -> ContentItem:
    return store.create_item(ContentItem(title="Demo", slug="demo", content="old", tags=["keep", "old"]))


def _candidate(title: str = "Demo", **kwargs: object) -> CandidateItem:
    return CandidateItem(title=title, content="new", tags=["fresh"], **kwargs)  # type: ignore[arg-type]


class TestConflictStrategies:
    def test_skip_leaves_existing(self, store: ContentStore, existing: ContentItem):
        result = ImportService(store).import_items([_candidate()], ConflictStrategy.SKIP)

        assert not result.success
        assert result.created == []
        assert result.skipped == ["demo"]
        assert len(result.errors) == 1 and "skipped" in result.errors[0]
        assert result.message.startswith("Nothing imported")
        assert len(store.list_items()) == 1
        assert store.get_item(existing.id).content == "old"

    def test_overwrite_replaces_in_place(self, store: ContentStore, existing: ContentItem):
        result = ImportService(store).import_items([_candidate()], ConflictStrategy.OVERWRITE)

        assert result.updated == ["demo"]
        assert len(store.list_items()) == 1
        item = store.get_item(existing.id)
        assert item.content == "new"
        assert item.tags == ["fresh"]
        assert item.created_at == existing.created_at

    def test_rename_creates_second_slug(self, store: ContentStore, existing: ContentItem):
        result = ImportService(store).import_items([_candidate()], ConflictStrategy.RENAME)

        assert len(result.created) == 1
        slugs = {i.slug for i in store.list_items()}
        assert len(slugs) == 2
        assert result.created[0].startswith("demo-")

    def test_default_strategy_is_rename(self, store: ContentStore, existing: ContentItem):
        result = ImportService(store).import_items([_candidate()])
        assert len(result.created) == 1

    def test_no_conflict_uses_plain_slug(self, store: ContentStore):
        result = ImportService(store).import_items([_candidate("Brand New")])
        assert result.created == ["brand-new"]

    def test_skip_alongside_new_item_succeeds(self, store: ContentStore, existing: ContentItem):
        result = ImportService(store).import_items([_candidate(), _candidate("Fresh")], ConflictStrategy.SKIP)

        assert result.success
        assert result.created == ["fresh"]
        assert result.skipped == ["demo"]
        assert result.message == "Imported 1 items, skipped 1"

    def test_one_failure_does_not_abort_batch(self, store: ContentStore):
        service = ImportService(store)
        original = store.create_item

        def flaky(item: ContentItem) -> ContentItem:
            if item.title == "Bad":
                raise OSError("disk full")
            return original(item)

        store.create_item = flaky  # type: ignore[method-assign]
        result = service.import_items([_candidate("Good"), _candidate("Bad"), _candidate("Also Good")])

        assert result.success
        assert result.created == ["good", "also-good"]
        assert len(result.errors) == 1
        assert "Partially imported" in result.message

    def test_all_failures_is_failure(self, store: ContentStore):
        def broken(item: ContentItem) -> ContentItem:
            raise OSError("nope")

        store.create_item = broken  # type: ignore[method-assign]
        result = ImportService(store).import_items([_candidate("A"), _candidate("B")])

        assert not result.success
        assert len(result.errors) == 2


class TestImportFile:
    def test_markdown_scenario(self, store: ContentStore):
        result = ImportService(store).import_file(
            b'---\ntitle: "Demo"\ntags: [a, b]\n---\nHello', "demo.md", "text/markdown"
        )

        assert result.success
        assert result.created == ["demo"]
        item = store.get_by_slug("demo")
        assert item.title == "Demo"
        assert set(item.tags) == {"a", "b"}
        assert item.content == "Hello"
        assert {t.name for t in store.list_tags()} == {"a", "b"}

    def test_record_completed(self, store: ContentStore):
        data = json.dumps([{"title": "A"}, {"title": "B"}]).encode()
        result = ImportService(store).import_file(data, "notes.json", "application/json")

        record = store.get_record(result.record_id)
        assert record.direction == InterchangeDirection.IMPORT
        assert record.format == "json"
        assert record.status == InterchangeStatus.COMPLETED
        assert record.item_count == 2
        assert record.finished_at is not None

    def test_parse_failure_marks_record_failed(self, store: ContentStore):
        result = ImportService(store).import_file(b"{broken", "notes.json", "application/json")

        assert not result.success
        record = store.get_record(result.record_id)
        assert record.status == InterchangeStatus.FAILED
        assert record.error_message
        assert store.list_items() == []

    def test_unsupported_type_writes_no_record(self, store: ContentStore):
        result = ImportService(store).import_file(b"\x89PNG", "photo.png", "image/png")

        assert not result.success
        assert result.record_id is None
        assert store.list_records() == []

    def test_empty_archive_fails(self, store: ContentStore):
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            zf.writestr("image.png", b"x")
        result = ImportService(store).import_file(buf.getvalue(), "empty.zip", "application/zip")

        assert not result.success
        assert store.get_record(result.record_id).status == InterchangeStatus.FAILED

    def test_strategy_string_accepted(self, store: ContentStore, existing: ContentItem):
        result = ImportService(store).import_file(b"# Demo\nbody", "demo.md", "text/markdown", "skip")
        assert result.skipped == ["demo"]

    def test_all_skipped_marks_record_failed(self, store: ContentStore, existing: ContentItem):
        result = ImportService(store).import_file(b"# Demo\nbody", "demo.md", "text/markdown", "skip")

        assert not result.success
        record = store.get_record(result.record_id)
        assert record.status == InterchangeStatus.FAILED
        assert record.item_count == 1
        assert "skipped" in record.error_message

    def test_bad_json_post_does_not_abort_file(self, store: ContentStore):
        data = b'[{"title": "Good one"}, 5, {"title": "Good two"}]'
        result = ImportService(store).import_file(data, "posts.json", "application/json")

        assert result.success
        assert result.created == ["good-one", "good-two"]
        assert len(result.errors) == 1
        assert "post 2" in result.errors[0]
        record = store.get_record(result.record_id)
        assert record.status == InterchangeStatus.COMPLETED
        assert record.item_count == 2
