"""Import pipeline: parse uploaded files into notes."""

from noteport.importer.models import (
    CandidateItem,
    ConflictStrategy,
    ImportFormat,
    ImportResult,
    ParsedFile,
)
from noteport.importer.parsers import create_parser, detect_format
from noteport.importer.services import ImportService

__all__ = [
    "CandidateItem",
    "ConflictStrategy",
    "ImportFormat",
    "ImportResult",
    "ImportService",
    "ParsedFile",
    "create_parser",
    "detect_format",
]
