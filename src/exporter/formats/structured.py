"""JSON envelope renderer.

The envelope is what the JSON import parser reads back.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from noteport.content.models import ContentItem
from noteport.exporter.formats.base import ExportRenderer
from noteport.exporter.models import EXPORT_VERSION, ExportFormat, RenderContext


def post_payload(item: ContentItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "title": item.title,
        "slug": item.slug,
        "content": item.content,
        "tags": list(item.tags),
        "createdAt": item.created_at.isoformat(),
        "updatedAt": item.updated_at.isoformat(),
    }


def build_envelope(items: list[ContentItem], exported_at: datetime) -> dict[str, Any]:
    """``{"exportInfo": {...}, "posts": [...]}`` for ``items``."""
    return {
        "exportInfo": {
            "version": EXPORT_VERSION,
            "exportDate": exported_at.isoformat(),
            "itemCount": len(items),
        },
        "posts": [post_payload(item) for item in items],
    }


def dump_envelope(items: list[ContentItem], exported_at: datetime) -> bytes:
    return json.dumps(build_envelope(items, exported_at), indent=2, ensure_ascii=False).encode("utf-8")


class JsonRenderer(ExportRenderer):
    """All selected items in one JSON document."""

    extension = "json"

    @property
    def format(self) -> ExportFormat:
        return ExportFormat.JSON

    def render(self, items: list[ContentItem], context: RenderContext) -> bytes:
        return dump_envelope(items, context.exported_at)
