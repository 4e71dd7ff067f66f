"""Paginated PDF rendering with ReportLab."""

from __future__ import annotations

import io
from typing import Sequence
from xml.sax.saxutils import escape

import structlog
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from mototask.errors import SerializationError

log = structlog.get_logger()

HEADER_FILL = colors.Color(41 / 255, 128 / 255, 185 / 255)


def render_table_pdf(
    title: str,
    subtitle: str,
    head: Sequence[str],
    body: Sequence[Sequence[str]],
) -> bytes:
    """
    Title, subtitle and a striped table. The table flows across as many A4
    pages as it needs, repeating its header row on each.
    """
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=16 * mm,
        bottomMargin=16 * mm,
        title=title,
    )
    styles = getSampleStyleSheet()

    table = Table([list(head), *[list(row) for row in body]], repeatRows=1)
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_FILL),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.whitesmoke]),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
    ]))

    story = [
        Paragraph(escape(title), styles["Title"]),
        Paragraph(escape(subtitle), styles["Normal"]),
        Spacer(1, 5 * mm),
        table,
    ]
    try:
        doc.build(story)
    except Exception as exc:
        log.error("pdf.render_failed", title=title, error=str(exc))
        raise SerializationError(f"Could not render PDF: {exc}") from exc
    return buf.getvalue()
