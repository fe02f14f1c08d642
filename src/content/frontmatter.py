"""Front-matter parsing and rendering for markdown notes.

The block is a leading ``---`` fenced YAML mapping.  Rendering quotes
every scalar as a JSON string so the output is valid YAML and survives
a round trip through :func:`split_frontmatter`.
"""

from __future__ import annotations

import json
import re
from datetime import UTC, date, datetime
from typing import Any

import yaml

from noteport.content.models import ContentItem
from noteport.errors import ParseError

_FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)(.*)\Z", re.DOTALL)


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split markdown text into its front-matter mapping and body.

    Returns an empty mapping and the whole text when there is no block.

    Raises:
        ParseError: The block is present but is not a YAML mapping.
    """
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return {}, text

    raw, body = match.group(1), match.group(2)
    try:
        data = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as exc:
        raise ParseError(f"Malformed front matter: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError("Front matter must be a key/value mapping")
    return data, body


def parse_tags(value: Any) -> list[str]:
    """Normalize a front-matter ``tags`` value to a list of names.

    Accepts a YAML list or a comma-separated string.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce a front-matter date value to an aware datetime.

    Unparseable values yield None rather than an error.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            result = datetime.fromisoformat(text)
        except ValueError:
            return None
    if result.tzinfo is None:
        result = result.replace(tzinfo=UTC)
    return result


def render_frontmatter(item: ContentItem) -> str:
    """Build the front-matter block for an exported item."""
    lines = [
        "---",
        f"title: {json.dumps(item.title, ensure_ascii=False)}",
        f"slug: {json.dumps(item.slug)}",
        f"tags: {json.dumps(item.tags, ensure_ascii=False)}",
        f'created: "{item.created_at.isoformat()}"',
        f'updated: "{item.updated_at.isoformat()}"',
        "---",
        "",
    ]
    return "\n".join(lines)


def render_markdown(item: ContentItem) -> str:
    """Front matter followed by the item body."""
    return render_frontmatter(item) + item.content
