"""Exception hierarchy for the interchange engine.

Validation errors are surfaced to the caller immediately.  Parse errors
abort a single import item.  Processing errors are downgraded by the
attachment pipeline to "store the original unmodified".
"""

from __future__ import annotations


class NoteportError(Exception):
    """Base class for all noteport errors."""


class ValidationError(NoteportError):
    """Input rejected before any state was touched."""


class SizeExceeded(ValidationError):
    """Upload larger than the limit for its content class."""

    def __init__(self, name: str, size: int, limit: int) -> None:
        self.name = name
        self.size = size
        self.limit = limit
        super().__init__(f"File {name!r} is {size} bytes, limit is {limit} bytes")


class UnsupportedType(ValidationError):
    """Declared MIME type is not on the allow list."""

    def __init__(self, name: str, mime_type: str) -> None:
        self.name = name
        self.mime_type = mime_type
        super().__init__(f"Unsupported file type for {name!r}: {mime_type or 'unknown'}")


class EmptySelection(ValidationError):
    """An export filter matched no items."""

    def __init__(self, message: str = "No matching items") -> None:
        super().__init__(message)


class ParseError(NoteportError):
    """Imported content could not be parsed."""


class ProcessingError(NoteportError):
    """Image decode/encode failure."""


class SlugConflictError(NoteportError):
    """A write would break slug uniqueness among live items."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__(f"Slug already in use: {slug}")
