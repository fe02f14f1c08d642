"""Pure data models for the import pipeline.

No I/O here.  Parsers produce CandidateItem objects; the service turns
them into stored ContentItem rows and reports through ImportResult.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ImportFormat(StrEnum):
    """Supported import file formats."""

    MARKDOWN = "markdown"
    TEXT = "text"
    JSON = "json"
    ZIP = "zip"


class ConflictStrategy(StrEnum):
    """What to do when an imported title maps to a slug already in use."""

    SKIP = "skip"
    OVERWRITE = "overwrite"
    RENAME = "rename"


IMPORT_MIME_TYPES: dict[str, ImportFormat] = {
    "text/markdown": ImportFormat.MARKDOWN,
    "text/x-markdown": ImportFormat.MARKDOWN,
    "text/plain": ImportFormat.TEXT,
    "application/json": ImportFormat.JSON,
    "application/zip": ImportFormat.ZIP,
    "application/x-zip-compressed": ImportFormat.ZIP,
}

IMPORT_EXTENSIONS: dict[str, ImportFormat] = {
    ".md": ImportFormat.MARKDOWN,
    ".markdown": ImportFormat.MARKDOWN,
    ".txt": ImportFormat.TEXT,
    ".json": ImportFormat.JSON,
    ".zip": ImportFormat.ZIP,
}

# Entries inside an archive that are parsed; everything else is ignored.
ARCHIVE_ENTRY_EXTENSIONS = (".md", ".txt", ".json")

# ---------------------------------------------------------------------------
# Parse output
# ---------------------------------------------------------------------------


class CandidateItem(BaseModel):
    """A parsed item awaiting import."""

    title: str
    content: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    source: str = ""


class ParsedFile(BaseModel):
    """Everything one parser pass produced.

    ``errors`` holds per-entry problems that did not stop the rest of
    the file from parsing (archive entries).
    """

    candidates: list[CandidateItem] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class ImportResult(BaseModel):
    """Outcome of an import batch."""

    success: bool = True
    message: str = ""
    item_count: int = 0
    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    record_id: str | None = None

    @property
    def imported_count(self) -> int:
        return len(self.created) + len(self.updated)
