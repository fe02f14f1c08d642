"""Content domain: note, tag, attachment and audit models plus the store.

Every pipeline in the package reads and writes through the
ContentStore; the models here are the shapes that cross that boundary.
"""

from noteport.content.models import (
    Attachment,
    ContentItem,
    InterchangeDirection,
    InterchangeRecord,
    InterchangeStatus,
    Tag,
)
from noteport.content.store import ContentStore

__all__ = [
    "Attachment",
    "ContentItem",
    "ContentStore",
    "InterchangeDirection",
    "InterchangeRecord",
    "InterchangeStatus",
    "Tag",
]
