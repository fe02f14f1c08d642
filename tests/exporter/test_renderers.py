"""Tests for export renderers."""

import io
import json
import zipfile
from datetime import UTC, datetime

import pytest

from noteport.content.frontmatter import split_frontmatter
from noteport.content.models import ContentItem
from noteport.exporter.formats import create_renderer
from noteport.exporter.formats.pdf import wrap_line
from noteport.exporter.models import AttachmentFile, ExportFormat, RenderContext

EXPORTED_AT = datetime(2024, 6, 1, 8, 0, tzinfo=UTC)


def _items() -> list[ContentItem]:
    return [
        ContentItem(title="First", slug="first", content="one\ntwo", tags=["a"]),
        ContentItem(title="Second", slug="second", content="three", tags=[]),
    ]


class TestCreateRenderer:
    def test_all_formats_registered(self):
        for fmt in ExportFormat:
            renderer = create_renderer(fmt)
            assert renderer.format == fmt
            assert renderer.extension == fmt.value

    def test_unknown_raises(self):
        with pytest.raises(ValueError):
            create_renderer("docx")


class TestMarkdownRenderer:
    def test_single_item(self):
        item = _items()[0]
        out = create_renderer("md").render([item], RenderContext(exported_at=EXPORTED_AT)).decode()
        meta, body = split_frontmatter(out)
        assert meta["title"] == "First"
        assert meta["slug"] == "first"
        assert meta["tags"] == ["a"]
        assert body == "one\ntwo"

    def test_rejects_multiple(self):
        with pytest.raises(ValueError):
            create_renderer("md").render(_items(), RenderContext(exported_at=EXPORTED_AT))


class TestJsonRenderer:
    def test_envelope(self):
        data = json.loads(create_renderer("json").render(_items(), RenderContext(exported_at=EXPORTED_AT)))
        assert data["exportInfo"] == {
            "version": "1.0",
            "exportDate": EXPORTED_AT.isoformat(),
            "itemCount": 2,
        }
        post = data["posts"][0]
        assert set(post) == {"id", "title", "slug", "content", "tags", "createdAt", "updatedAt"}
        assert post["content"] == "one\ntwo"


class TestZipRenderer:
    def test_layout(self):
        items = _items()
        context = RenderContext(
            exported_at=EXPORTED_AT,
            include_attachments=True,
            attachments=[AttachmentFile(post_id=items[0].id, storage_name="1-a-b.pdf", data=b"pdf")],
        )
        blob = create_renderer("zip").render(items, context)

        with zipfile.ZipFile(io.BytesIO(blob)) as zf:
            names = set(zf.namelist())
            assert names == {
                "posts/first.md",
                "posts/second.md",
                "data.json",
                f"attachments/{items[0].id}/1-a-b.pdf",
                "README.md",
            }
            assert zf.getinfo("data.json").compress_type == zipfile.ZIP_DEFLATED
            assert json.loads(zf.read("data.json"))["exportInfo"]["itemCount"] == 2
            assert "attachments/" in zf.read("README.md").decode()

    def test_attachments_omitted_unless_requested(self):
        items = _items()
        context = RenderContext(
            exported_at=EXPORTED_AT,
            attachments=[AttachmentFile(post_id=items[0].id, storage_name="x.pdf", data=b"pdf")],
        )
        with zipfile.ZipFile(io.BytesIO(create_renderer("zip").render(items, context))) as zf:
            assert not any(n.startswith("attachments/") for n in zf.namelist())


class TestPdfRenderer:
    def test_produces_pdf(self):
        items = [ContentItem(title=f"Note {n}", slug=f"note-{n}", content="line\n" * 40) for n in range(12)]
        blob = create_renderer("pdf").render(items, RenderContext(exported_at=EXPORTED_AT))
        assert blob.startswith(b"%PDF")
        assert blob.rstrip().endswith(b"%%EOF")

    def test_body_lines_limited(self):
        renderer = create_renderer("pdf", pdf_body_lines=2)
        assert renderer.body_lines == 2

    def test_wrap_line(self):
        lines = wrap_line("word " * 60, "Helvetica", 10, 200)
        assert len(lines) > 1
        assert all(line for line in lines)

    def test_wrap_splits_long_word(self):
        lines = wrap_line("x" * 500, "Helvetica", 10, 100)
        assert len(lines) > 1
        assert "".join(lines) == "x" * 500

    def test_wrap_empty(self):
        assert wrap_line("", "Helvetica", 10, 100) == [""]
