"""Import parser factory and format detection."""

from __future__ import annotations

from pathlib import PurePosixPath

from noteport.attachments.models import ALWAYS_ACCEPTED_EXTENSIONS
from noteport.errors import UnsupportedType
from noteport.importer.models import IMPORT_EXTENSIONS, IMPORT_MIME_TYPES, ImportFormat
from noteport.importer.parsers.base import ImportParser


def create_parser(fmt: ImportFormat | str) -> ImportParser:
    """Create a parser for the given import format.

    Raises:
        ValueError: If the format is unknown.
    """
    if isinstance(fmt, str):
        fmt = ImportFormat(fmt)

    from noteport.importer.parsers.archive import ArchiveParser
    from noteport.importer.parsers.markdown import MarkdownParser, TextParser
    from noteport.importer.parsers.structured import JsonParser

    parsers: dict[ImportFormat, type[ImportParser]] = {
        ImportFormat.MARKDOWN: MarkdownParser,
        ImportFormat.TEXT: TextParser,
        ImportFormat.JSON: JsonParser,
        ImportFormat.ZIP: ArchiveParser,
    }

    if fmt in parsers:
        return parsers[fmt]()

    raise ValueError(f"Unknown import format: {fmt!r}")


def detect_format(file_name: str, mime_type: str | None = None) -> ImportFormat:
    """Pick the import format for a file.

    The MIME type must be one the importer accepts, unless the name ends
    in ``.md``.  The extension decides the format when it is known,
    otherwise the MIME type does.

    Raises:
        UnsupportedType: Neither the name nor the MIME type is importable.
    """
    mime = (mime_type or "").split(";")[0].strip().lower()
    lowered = file_name.lower()
    if mime not in IMPORT_MIME_TYPES and not lowered.endswith(ALWAYS_ACCEPTED_EXTENSIONS):
        raise UnsupportedType(file_name, mime)

    ext = PurePosixPath(lowered).suffix
    if ext in IMPORT_EXTENSIONS:
        return IMPORT_EXTENSIONS[ext]
    if mime in IMPORT_MIME_TYPES:
        return IMPORT_MIME_TYPES[mime]
    return ImportFormat.MARKDOWN


__all__ = ["ImportParser", "create_parser", "detect_format"]
