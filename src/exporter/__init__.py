"""Export pipeline: selected notes to md, json, zip or pdf artifacts."""

from noteport.exporter.formats import create_renderer
from noteport.exporter.models import (
    ExportFilter,
    ExportFormat,
    ExportOptions,
    ExportResult,
    SweepResult,
)
from noteport.exporter.services import ExportService, RetentionSweeper, select_items

__all__ = [
    "ExportFilter",
    "ExportFormat",
    "ExportOptions",
    "ExportResult",
    "ExportService",
    "RetentionSweeper",
    "SweepResult",
    "create_renderer",
    "select_items",
]
