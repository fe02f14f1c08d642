"""Export renderer factory and registry."""

from __future__ import annotations

from noteport.exporter.formats.base import ExportRenderer
from noteport.exporter.models import DEFAULT_PDF_BODY_LINES, ExportFormat


def create_renderer(
    fmt: ExportFormat | str,
    *,
    pdf_body_lines: int = DEFAULT_PDF_BODY_LINES,
) -> ExportRenderer:
    """Create a renderer for the given export format.

    Args:
        fmt: The artifact format.
        pdf_body_lines: Body lines printed per item in PDF output.

    Raises:
        ValueError: If the format is unknown.
    """
    if isinstance(fmt, str):
        fmt = ExportFormat(fmt)

    from noteport.exporter.formats.archive import ZipRenderer
    from noteport.exporter.formats.markdown import MarkdownRenderer
    from noteport.exporter.formats.pdf import PdfRenderer
    from noteport.exporter.formats.structured import JsonRenderer

    renderers: dict[ExportFormat, ExportRenderer] = {
        ExportFormat.MD: MarkdownRenderer(),
        ExportFormat.JSON: JsonRenderer(),
        ExportFormat.ZIP: ZipRenderer(),
        ExportFormat.PDF: PdfRenderer(body_lines=pdf_body_lines),
    }

    if fmt in renderers:
        return renderers[fmt]

    raise ValueError(f"Unknown export format: {fmt!r}")


__all__ = ["ExportRenderer", "create_renderer"]
