"""Base class for export renderers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from noteport.content.models import ContentItem
from noteport.exporter.models import ExportFormat, RenderContext


class ExportRenderer(ABC):
    """Renders a selection of items into one artifact's bytes."""

    extension: str = ""

    @property
    @abstractmethod
    def format(self) -> ExportFormat:
        """The export format this renderer produces."""

    @abstractmethod
    def render(self, items: list[ContentItem], context: RenderContext) -> bytes:
        """Render ``items`` (never empty) into the artifact body."""
