"""Report renderer — inspection results as a paginated PDF.

Uses ReportLab's direct-draw canvas.  The renderer walks the Definition in
order and, for each question, emits a block of wrapped text lines:

    1. <label>
    Answer: <display answer>
    Notes: <notes>                (only when present)
    Photos attached: <count>      (only when present)
    Answered by: <name>           (only when present)

A single vertical cursor tracks the position on the page; before a block is
drawn the renderer checks that it fits above the bottom margin and starts a
new page otherwise.  Text is wrapped at a fixed character budget rather
than measured in points, so layout is identical for every font size.

Two export paths exist:
    render_inspection  — one inspection; embeds the template logo and the
                         section header images
    render_batch       — many inspections; text only, no images
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import textwrap
from dataclasses import dataclass, field
from io import BytesIO
from typing import Iterable, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen.canvas import Canvas

from auditking.constants import REPORT_MARGIN, REPORT_WRAP_WIDTH
from auditking.models.answer import AnswerRow
from auditking.models.question import Definition, Question
from auditking.models.views import InspectionInfo
from auditking.reconciler import reconcile

logger = logging.getLogger(__name__)

# =============================================================================
# STYLING CONSTANTS
# =============================================================================

BRAND_PURPLE = colors.HexColor("#6b21a8")
MUTED_GRAY = colors.HexColor("#6b7280")

TITLE_FONT = ("Helvetica-Bold", 16)
SECTION_FONT = ("Helvetica-Bold", 13)
LABEL_FONT = ("Helvetica-Bold", 10)
BODY_FONT = ("Helvetica", 10)
FOOTER_FONT = ("Helvetica", 8)

LOGO_MAX_HEIGHT = 50.0
SECTION_IMAGE_MAX_HEIGHT = 120.0
BLOCK_SPACING = 6.0

_DATA_URL_RE = re.compile(r"^data:[^;,]*(;base64)?,", re.IGNORECASE)


class ReportError(ValueError):
    """Raised when there is nothing to export."""


@dataclass
class RenderedReport:
    """A finished PDF document.

    ``layout`` records ``(page, section_id, question_id)`` for every
    question in emission order.
    """

    filename: str
    content: bytes
    page_count: int
    layout: list[tuple[int, str, str]] = field(default_factory=list)


def slugify(value: str) -> str:
    """Lowercase, ASCII-only, dash-separated slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "inspection"


def report_filename(inspection: InspectionInfo) -> str:
    """``<template-name-slug>-<inspection-id-slug>.pdf``"""
    return f"{slugify(inspection.template_name)}-{slugify(inspection.id)}.pdf"


def display_answer(question: Question, row: AnswerRow) -> str:
    """The answer as shown to readers.

    Free text is shown verbatim; choice questions prefer the stored label.
    """
    if not row.is_answered:
        return "Not answered"
    if question.type == "text":
        return row.value
    return row.choice_label or row.value


def decode_data_url(data_url: str) -> Optional[bytes]:
    """Decode a base64 ``data:`` URL (or bare base64) to bytes; None if invalid."""
    payload = _DATA_URL_RE.sub("", data_url.strip(), count=1)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None


# =============================================================================
# PAGE WRITER
# =============================================================================

class _PageWriter:
    """Canvas plus the running vertical cursor."""

    def __init__(self, canvas: Canvas, page_size: tuple[float, float], margin: float) -> None:
        self.canvas = canvas
        self.width, self.height = page_size
        self.margin = margin
        self.page = 1
        self.y = self.height - margin

    @property
    def printable_height(self) -> float:
        return self.height - 2 * self.margin

    @property
    def printable_width(self) -> float:
        return self.width - 2 * self.margin

    def ensure(self, needed: float) -> None:
        """Start a new page if ``needed`` points do not fit below the cursor."""
        if self.y - needed < self.margin:
            self.new_page()

    def new_page(self) -> None:
        self._draw_footer()
        self.canvas.showPage()
        self.page += 1
        self.y = self.height - self.margin

    def finish(self) -> None:
        self._draw_footer()
        self.canvas.save()

    def line(self, text: str, font: tuple[str, int], color=colors.black) -> None:
        leading = font[1] + 3
        self.ensure(leading)
        self.canvas.setFont(*font)
        self.canvas.setFillColor(color)
        self.y -= leading
        self.canvas.drawString(self.margin, self.y + 3, text)

    def gap(self, points: float) -> None:
        self.y -= points

    def image(self, data_url: str, max_height: float) -> bool:
        """Draw an embedded image scaled to fit; returns False if undecodable."""
        data = decode_data_url(data_url)
        if data is None:
            logger.warning("Skipping image: not a base64 data URL")
            return False
        try:
            reader = ImageReader(BytesIO(data))
            img_w, img_h = reader.getSize()
        except Exception as exc:  # ReportLab raises assorted errors for bad images
            logger.warning("Skipping undecodable image: %s", exc)
            return False

        scale = min(max_height / img_h, self.printable_width / img_w, 1.0)
        w, h = img_w * scale, img_h * scale
        self.ensure(h)
        self.y -= h
        self.canvas.drawImage(reader, self.margin, self.y, width=w, height=h, mask="auto")
        self.gap(BLOCK_SPACING)
        return True

    def _draw_footer(self) -> None:
        self.canvas.setFont(*FOOTER_FONT)
        self.canvas.setFillColor(MUTED_GRAY)
        self.canvas.drawRightString(self.width - self.margin, self.margin / 2, f"Page {self.page}")


# =============================================================================
# RENDERER
# =============================================================================

class ReportRenderer:
    """Renders (Definition, Inspection) pairs into PDF documents.

    Args:
        page_size: ReportLab page size tuple in points
        margin: page margin in points, applied on all sides
        wrap_width: maximum characters per text line
    """

    def __init__(
        self,
        *,
        page_size: tuple[float, float] = letter,
        margin: float = REPORT_MARGIN,
        wrap_width: int = REPORT_WRAP_WIDTH,
    ) -> None:
        self._page_size = page_size
        self._margin = margin
        self._wrap_width = wrap_width

    def render_inspection(
        self,
        definition: Definition,
        inspection: InspectionInfo,
        *,
        logo_data_url: str | None = None,
    ) -> RenderedReport:
        """Single-inspection export with the logo and section images embedded.

        Raises:
            ReportError: if the definition has no questions
        """
        return self._render(definition, inspection, logo_data_url=logo_data_url, embed_images=True)

    def render_batch(
        self, pairs: Iterable[tuple[Definition, InspectionInfo]]
    ) -> list[RenderedReport]:
        """Bulk export: one text-only document per inspection.

        Inspections whose definition has no questions are skipped.
        """
        reports = []
        for definition, inspection in pairs:
            try:
                reports.append(self._render(definition, inspection, embed_images=False))
            except ReportError as exc:
                logger.warning("Skipping inspection %s in batch export: %s", inspection.id, exc)
        return reports

    # --- Internal rendering helpers ---

    def _wrap(self, text: str) -> list[str]:
        lines: list[str] = []
        for paragraph in text.splitlines() or [""]:
            lines.extend(textwrap.wrap(paragraph, width=self._wrap_width) or [""])
        return lines

    def _render(
        self,
        definition: Definition,
        inspection: InspectionInfo,
        *,
        logo_data_url: str | None = None,
        embed_images: bool,
    ) -> RenderedReport:
        if definition.question_count == 0:
            raise ReportError(f"Nothing to export for inspection {inspection.id}: template has no questions")

        filename = report_filename(inspection)
        buffer = BytesIO()
        canvas = Canvas(buffer, pagesize=self._page_size)
        canvas.setTitle(f"{inspection.template_name} ({inspection.id})")
        writer = _PageWriter(canvas, self._page_size, self._margin)

        if embed_images and logo_data_url:
            writer.image(logo_data_url, LOGO_MAX_HEIGHT)
        self._draw_header(writer, inspection)

        rows = reconcile(definition, inspection.items)
        layout: list[tuple[int, str, str]] = []
        number = 0
        current_section = None
        for (section, question), row in zip(definition.iter_questions(), rows):
            if section is not current_section:
                current_section = section
                writer.gap(BLOCK_SPACING)
                if embed_images and section.image_data_url:
                    writer.image(section.image_data_url, SECTION_IMAGE_MAX_HEIGHT)
                # Keep the title on the same page as its first question
                writer.ensure(SECTION_FONT[1] + 3 + 2 * (LABEL_FONT[1] + 3))
                for text in self._wrap(section.title):
                    writer.line(text, SECTION_FONT, BRAND_PURPLE)

            number += 1
            block = self._question_block(number, question, row)
            block_height = sum(font[1] + 3 for _, font, _ in block) + BLOCK_SPACING
            writer.ensure(min(block_height, writer.printable_height))
            layout.append((writer.page, section.id, question.id))
            for text, font, color in block:
                writer.line(text, font, color)
            writer.gap(BLOCK_SPACING)

        writer.finish()
        logger.info(
            "Rendered report %s: %d questions on %d pages",
            filename, number, writer.page,
        )
        return RenderedReport(
            filename=filename,
            content=buffer.getvalue(),
            page_count=writer.page,
            layout=layout,
        )

    def _draw_header(self, writer: _PageWriter, inspection: InspectionInfo) -> None:
        for text in self._wrap(inspection.template_name):
            writer.line(text, TITLE_FONT, BRAND_PURPLE)

        details = []
        if inspection.site_name:
            details.append(f"Site: {inspection.site_name}")
        details.append(f"Status: {inspection.status.replace('_', ' ')}")
        details.append(f"Started: {inspection.started_at:%Y-%m-%d %H:%M}")
        if inspection.submitted_at is not None:
            details.append(f"Submitted: {inspection.submitted_at:%Y-%m-%d %H:%M}")
        if inspection.owner_name:
            details.append(f"Inspector: {inspection.owner_name}")
        score = f"{inspection.score}%" if inspection.score is not None else "n/a"
        details.append(f"Score: {score}")

        for text in details:
            writer.line(text, BODY_FONT, MUTED_GRAY)
        writer.gap(BLOCK_SPACING)

    def _question_block(
        self, number: int, question: Question, row: AnswerRow
    ) -> list[tuple[str, tuple[str, int], object]]:
        block = [(text, LABEL_FONT, colors.black) for text in self._wrap(f"{number}. {question.label}")]
        block += [(text, BODY_FONT, colors.black) for text in self._wrap(f"Answer: {display_answer(question, row)}")]
        if row.notes:
            block += [(text, BODY_FONT, colors.black) for text in self._wrap(f"Notes: {row.notes}")]
        if row.photos:
            block.append((f"Photos attached: {len(row.photos)}", BODY_FONT, MUTED_GRAY))
        if row.answered_by_name:
            block.append((f"Answered by: {row.answered_by_name}", BODY_FONT, MUTED_GRAY))
        return block
