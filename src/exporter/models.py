"""Pure data models for the export pipeline."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_PREFIX = "notebook-export"
DEFAULT_RETENTION_HOURS = 24.0
DEFAULT_PDF_BODY_LINES = 20
EXPORT_VERSION = "1.0"


class ExportFormat(StrEnum):
    """Supported export artifact formats."""

    MD = "md"
    JSON = "json"
    ZIP = "zip"
    PDF = "pdf"


class ExportFilter(BaseModel):
    """Item selection.  Every criterion is optional; set ones combine."""

    ids: list[str] | None = None
    tag: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None


class ExportOptions(BaseModel):
    """One export request."""

    format: ExportFormat = ExportFormat.JSON
    filter: ExportFilter = Field(default_factory=ExportFilter)
    include_attachments: bool = False


class AttachmentFile(BaseModel):
    """Attachment bytes bundled into a zip export."""

    post_id: str
    storage_name: str
    data: bytes


class RenderContext(BaseModel):
    """Inputs a renderer needs besides the items."""

    exported_at: datetime
    attachments: list[AttachmentFile] = Field(default_factory=list)
    include_attachments: bool = False


class ExportResult(BaseModel):
    """Outcome of an export."""

    success: bool
    message: str = ""
    file_name: str | None = None
    path: Path | None = None
    item_count: int = 0
    error: str | None = None
    record_id: str | None = None


class SweepResult(BaseModel):
    """Outcome of one retention sweep over the exports directory."""

    removed: list[str] = Field(default_factory=list)
    freed_bytes: int = 0
    errors: list[str] = Field(default_factory=list)
