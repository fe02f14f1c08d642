"""Printable PDF renderer (reportlab canvas).

Best-effort layout: a cover block, then for each item its title, tags,
created date and the first body lines, word-wrapped to the page width.
"""

from __future__ import annotations

import io

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen import canvas

from noteport.content.models import ContentItem
from noteport.exporter.formats.base import ExportRenderer
from noteport.exporter.models import DEFAULT_PDF_BODY_LINES, ExportFormat, RenderContext

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
MARGIN = 20 * mm


def wrap_line(text: str, font_name: str, font_size: float, max_width: float) -> list[str]:
    """Greedy word wrap; words wider than the line are split by character."""
    if not text:
        return [""]
    out: list[str] = []
    cur = ""
    for word in text.split(" "):
        cand = f"{cur} {word}" if cur else word
        if pdfmetrics.stringWidth(cand, font_name, font_size) <= max_width:
            cur = cand
            continue
        if cur:
            out.append(cur)
        if pdfmetrics.stringWidth(word, font_name, font_size) <= max_width:
            cur = word
            continue
        chunk = ""
        for ch in word:
            if pdfmetrics.stringWidth(chunk + ch, font_name, font_size) <= max_width:
                chunk += ch
            else:
                if chunk:
                    out.append(chunk)
                chunk = ch
        cur = chunk
    if cur:
        out.append(cur)
    return out


class _Cursor:
    """Tracks the vertical write position and breaks pages."""

    def __init__(self, pdf: canvas.Canvas, height: float) -> None:
        self.pdf = pdf
        self.top = height - MARGIN
        self.y = self.top

    def line(self, text: str, font: str = FONT, size: float = 10, leading: float | None = None) -> None:
        leading = leading or size * 1.4
        if self.y - leading < MARGIN:
            self.pdf.showPage()
            self.y = self.top
        self.y -= leading
        self.pdf.setFont(font, size)
        self.pdf.drawString(MARGIN, self.y, text)

    def gap(self, amount: float) -> None:
        self.y -= amount


class PdfRenderer(ExportRenderer):
    """Paginated print document."""

    extension = "pdf"

    def __init__(self, body_lines: int = DEFAULT_PDF_BODY_LINES) -> None:
        self.body_lines = body_lines

    @property
    def format(self) -> ExportFormat:
        return ExportFormat.PDF

    def render(self, items: list[ContentItem], context: RenderContext) -> bytes:
        buf = io.BytesIO()
        width, height = A4
        pdf = canvas.Canvas(buf, pagesize=A4)
        pdf.setTitle("Notebook export")
        text_width = width - 2 * MARGIN
        cursor = _Cursor(pdf, height)

        cursor.line("Notebook export", FONT_BOLD, 20)
        cursor.line(f"Exported {context.exported_at:%Y-%m-%d %H:%M} UTC", size=10)
        cursor.line(f"{len(items)} items", size=10)
        cursor.gap(12)

        for item in items:
            for part in wrap_line(item.title, FONT_BOLD, 14, text_width):
                cursor.line(part, FONT_BOLD, 14)
            if item.tags:
                for part in wrap_line("Tags: " + ", ".join(item.tags), FONT, 9, text_width):
                    cursor.line(part, size=9)
            cursor.line(f"Created {item.created_at:%Y-%m-%d}", size=9)
            cursor.gap(4)
            for raw in item.content.splitlines()[: self.body_lines]:
                for part in wrap_line(raw, FONT, 10, text_width):
                    cursor.line(part)
            cursor.gap(14)

        pdf.save()
        return buf.getvalue()
