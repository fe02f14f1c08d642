"""Markdown and plain-text parser."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from noteport.content.frontmatter import parse_tags, parse_timestamp, split_frontmatter
from noteport.importer.models import CandidateItem, ImportFormat, ParsedFile
from noteport.importer.parsers.base import ImportParser, decode_text

_HEADING_RE = re.compile(r"^#[ \t]+(.+)$", re.MULTILINE)


def title_from_file_name(file_name: str) -> str:
    """``notes/my_first-note.md`` -> ``my first note``."""
    stem = PurePosixPath(file_name.replace("\\", "/")).stem
    title = re.sub(r"[-_]+", " ", stem).strip()
    return title or "Untitled"


def parse_markdown_text(text: str, file_name: str) -> CandidateItem:
    """Build one candidate from markdown text with optional front matter.

    Title comes from front matter, then the first ``# `` heading, then
    the file name.

    Raises:
        ParseError: The front-matter block is malformed.
    """
    meta, body = split_frontmatter(text)
    body = body.strip()

    title = str(meta.get("title") or "").strip()
    if not title:
        heading = _HEADING_RE.search(body)
        title = heading.group(1).strip() if heading else title_from_file_name(file_name)

    created = meta.get("date")
    if created is None:
        created = meta.get("created")

    return CandidateItem(
        title=title,
        content=body,
        tags=parse_tags(meta.get("tags")),
        created_at=parse_timestamp(created),
        updated_at=parse_timestamp(meta.get("updated")),
        source=file_name,
    )


class MarkdownParser(ImportParser):
    """One markdown file becomes one candidate."""

    @property
    def format(self) -> ImportFormat:
        return ImportFormat.MARKDOWN

    def parse(self, data: bytes, file_name: str) -> ParsedFile:
        text = decode_text(data, file_name)
        return ParsedFile(candidates=[parse_markdown_text(text, file_name)])


class TextParser(MarkdownParser):
    """Plain text is read exactly like markdown."""

    @property
    def format(self) -> ImportFormat:
        return ImportFormat.TEXT
