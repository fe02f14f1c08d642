"""Base class for import file parsers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from noteport.errors import ParseError
from noteport.importer.models import ImportFormat, ParsedFile


class ImportParser(ABC):
    """Turns the raw bytes of one uploaded file into candidate items.

    A failure that makes the whole file unusable raises ParseError;
    recoverable per-entry problems go into ``ParsedFile.errors``.
    """

    @property
    @abstractmethod
    def format(self) -> ImportFormat:
        """The import format this parser handles."""

    @abstractmethod
    def parse(self, data: bytes, file_name: str) -> ParsedFile:
        """Parse ``data`` read from ``file_name``."""


def decode_text(data: bytes, file_name: str) -> str:
    """Decode UTF-8 text, tolerating a byte-order mark."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError(f"{file_name} is not valid UTF-8 text") from exc
