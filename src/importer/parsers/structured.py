"""JSON parser.

Accepts three shapes: an export envelope ``{"posts": [...]}``, a bare
list of post objects, or a single object with ``title`` or ``content``.
"""

from __future__ import annotations

import json
from typing import Any

from noteport.content.frontmatter import parse_timestamp
from noteport.errors import ParseError
from noteport.importer.models import CandidateItem, ImportFormat, ParsedFile
from noteport.importer.parsers.base import ImportParser, decode_text


def _candidate(post: Any, source: str) -> CandidateItem:
    if not isinstance(post, dict):
        raise ParseError(f"Expected a post object, got {type(post).__name__}")
    tags = post.get("tags")
    return CandidateItem(
        title=str(post.get("title") or "Untitled"),
        content=str(post.get("content") or ""),
        tags=[str(t) for t in tags if t is not None and str(t).strip()] if isinstance(tags, list) else [],
        created_at=parse_timestamp(post.get("createdAt")),
        updated_at=parse_timestamp(post.get("updatedAt")),
        source=source,
    )


def parse_json_text(text: str, file_name: str) -> ParsedFile:
    """Parse JSON text into candidates.

    A post that is not an object is reported in ``errors`` and the rest
    still parse.

    Raises:
        ParseError: Invalid JSON or an unrecognized shape.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON in {file_name}: {exc}") from exc

    if isinstance(data, dict) and isinstance(data.get("posts"), list):
        posts = data["posts"]
    elif isinstance(data, list):
        posts = data
    elif isinstance(data, dict) and (data.get("title") or data.get("content")):
        posts = [data]
    else:
        raise ParseError(f"Unrecognized JSON structure in {file_name}")

    result = ParsedFile()
    for index, post in enumerate(posts, start=1):
        try:
            result.candidates.append(_candidate(post, file_name))
        except ParseError as exc:
            result.errors.append(f"{file_name} post {index}: {exc}")
    return result


class JsonParser(ImportParser):
    """Structured JSON export or hand-written post list."""

    @property
    def format(self) -> ImportFormat:
        return ImportFormat.JSON

    def parse(self, data: bytes, file_name: str) -> ParsedFile:
        text = decode_text(data, file_name)
        return parse_json_text(text, file_name)
