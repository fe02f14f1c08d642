"""Zip archive parser.

Every ``.md``, ``.txt`` and ``.json`` entry is parsed on its own; a bad
entry is reported and skipped while the rest of the archive imports.
"""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import PurePosixPath

from noteport.errors import ParseError
from noteport.importer.models import ARCHIVE_ENTRY_EXTENSIONS, ImportFormat, ParsedFile
from noteport.importer.parsers.base import ImportParser, decode_text
from noteport.importer.parsers.markdown import parse_markdown_text
from noteport.importer.parsers.structured import parse_json_text

logger = logging.getLogger(__name__)


class ArchiveParser(ImportParser):
    """Zip bundle of markdown, text and JSON files."""

    @property
    def format(self) -> ImportFormat:
        return ImportFormat.ZIP

    def parse(self, data: bytes, file_name: str) -> ParsedFile:
        try:
            archive = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as exc:
            raise ParseError(f"Cannot open archive {file_name}: {exc}") from exc

        result = ParsedFile()
        with archive:
            for info in archive.infolist():
                if info.is_dir():
                    continue
                ext = PurePosixPath(info.filename).suffix.lower()
                if ext not in ARCHIVE_ENTRY_EXTENSIONS:
                    continue
                try:
                    text = decode_text(archive.read(info), info.filename)
                    if ext == ".json":
                        parsed = parse_json_text(text, info.filename)
                        result.candidates.extend(parsed.candidates)
                        result.errors.extend(parsed.errors)
                    else:
                        result.candidates.append(parse_markdown_text(text, info.filename))
                except (ParseError, zipfile.BadZipFile, RuntimeError, NotImplementedError) as exc:
                    logger.warning("Skipping archive entry %s: %s", info.filename, exc)
                    result.errors.append(f"{info.filename}: {exc}")

        logger.debug(
            "Parsed %d candidates from %s (%d entry errors)",
            len(result.candidates), file_name, len(result.errors),
        )
        return result
