"""Zip bundle renderer.

Layout::

    posts/<slug>.md
    data.json
    attachments/<post_id>/<storage_name>   (optional)
    README.md
"""

from __future__ import annotations

import io
import zipfile

from noteport.content.frontmatter import render_markdown
from noteport.content.models import ContentItem
from noteport.exporter.formats.base import ExportRenderer
from noteport.exporter.formats.structured import dump_envelope
from noteport.exporter.models import ExportFormat, RenderContext


def readme_text(items: list[ContentItem], context: RenderContext) -> str:
    lines = [
        "# Notebook export",
        "",
        f"Exported: {context.exported_at.isoformat()}",
        f"Items: {len(items)}",
        "",
        "## Contents",
        "",
        "- `posts/` one markdown file per note, named by slug, with front matter",
        "- `data.json` every note in the structured import format",
    ]
    if context.include_attachments:
        lines.append("- `attachments/<note id>/` files attached to each note")
    lines += [
        "",
        "Import either `data.json` or the whole archive to restore these notes.",
        "",
    ]
    return "\n".join(lines)


class ZipRenderer(ExportRenderer):
    """Markdown files, a JSON copy, attachments and a README in one zip."""

    extension = "zip"

    @property
    def format(self) -> ExportFormat:
        return ExportFormat.ZIP

    def render(self, items: list[ContentItem], context: RenderContext) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for item in items:
                zf.writestr(f"posts/{item.slug}.md", render_markdown(item))
            zf.writestr("data.json", dump_envelope(items, context.exported_at))
            if context.include_attachments:
                for attachment in context.attachments:
                    zf.writestr(f"attachments/{attachment.post_id}/{attachment.storage_name}", attachment.data)
            zf.writestr("README.md", readme_text(items, context))
        return buf.getvalue()
