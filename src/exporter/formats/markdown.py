"""Single-note markdown renderer."""

from __future__ import annotations

from noteport.content.frontmatter import render_markdown
from noteport.content.models import ContentItem
from noteport.exporter.formats.base import ExportRenderer
from noteport.exporter.models import ExportFormat, RenderContext


class MarkdownRenderer(ExportRenderer):
    """One item as a markdown file with front matter.

    Multi-item selections are bundled as zip by the export service.
    """

    extension = "md"

    @property
    def format(self) -> ExportFormat:
        return ExportFormat.MD

    def render(self, items: list[ContentItem], context: RenderContext) -> bytes:
        if len(items) != 1:
            raise ValueError(f"Markdown export renders exactly one item, got {len(items)}")
        return render_markdown(items[0]).encode("utf-8")
