"""
PDF Layout Engine
=================
Turns a Paper into an ordered list of LayoutBlocks and hands them to a page
renderer.

The block order is the whole contract:
    title → time/marks row → instructions → per section:
    heading → one block per question

`FitzPageRenderer` renders the blocks with PyMuPDF (fitz) in a single flow
on A4 pages. Glyph shaping and the PDF byte format are PyMuPDF's business;
any object with `render(blocks) -> bytes` can replace it.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

import fitz  # PyMuPDF

from .errors import FontLoadFailed
from .models import Align, BlockKind, LayoutBlock, Paper
from .rtf import INSTRUCTIONS

logger = logging.getLogger(__name__)


class PageRenderer(Protocol):
    """External page-description renderer."""

    def render(self, blocks: Sequence[LayoutBlock]) -> bytes:
        ...


class PdfLayoutEngine:
    """Groups and orders a Paper into layout blocks."""

    def layout(self, paper: Paper) -> list[LayoutBlock]:
        blocks: list[LayoutBlock] = [
            LayoutBlock(
                kind=BlockKind.TITLE,
                text=paper.title.upper(),
                align=Align.CENTER,
                bold=True,
                font_size=18,
                space_after=20,
            ),
            LayoutBlock(
                kind=BlockKind.META_ROW,
                text=paper.time_label,
                right_text=paper.marks_label,
                space_after=20,
            ),
            LayoutBlock(
                kind=BlockKind.INSTRUCTIONS_HEADING,
                text="INSTRUCTIONS:",
                bold=True,
            ),
        ]

        for i, line in enumerate(INSTRUCTIONS):
            blocks.append(LayoutBlock(
                kind=BlockKind.INSTRUCTION,
                text=line,
                font_size=10,
                space_after=20 if i == len(INSTRUCTIONS) - 1 else 0,
            ))

        for section in paper.sections:
            blocks.append(LayoutBlock(
                kind=BlockKind.SECTION_HEADING,
                text=section.label,
                align=Align.CENTER,
                bold=True,
                font_size=14,
                space_after=20,
            ))
            for question in paper.section_questions(section):
                blocks.append(LayoutBlock(
                    kind=BlockKind.QUESTION,
                    text=f"Q.{question.number} {question.text}",
                    right_text=f"[{question.display_marks}]",
                    bold=True,
                    space_after=30,
                ))

        logger.debug(f"Laid out {len(blocks)} blocks")
        return blocks


# ─── PyMuPDF Renderer ─────────────────────────────────────────────────────────


_FITZ_ALIGN = {
    Align.LEFT: fitz.TEXT_ALIGN_LEFT,
    Align.CENTER: fitz.TEXT_ALIGN_CENTER,
    Align.RIGHT: fitz.TEXT_ALIGN_RIGHT,
}

MIN_FONT_SIZE = 6.0
LINE_HEIGHT = 1.2


def load_font(font_path: str) -> fitz.Font:
    """
    Load a TrueType/OpenType font file.

    Raises:
        FontLoadFailed: If the file is missing or not a usable font.
    """
    try:
        return fitz.Font(fontfile=font_path)
    except Exception as e:
        raise FontLoadFailed(font_path, e) from e


class FitzPageRenderer:
    """
    Single-flow A4 renderer backed by PyMuPDF.

    A block that does not fit below the previous one starts a new page. A
    font that cannot be loaded is reported and replaced by Helvetica.
    """

    CUSTOM_FONT_NAME = "paperfont"

    def __init__(
        self,
        font_path: Optional[str] = None,
        margin: float = 40.0,
        marks_column_width: float = 60.0,
        paper_size: str = "a4",
    ):
        self.font_path = font_path
        self.margin = margin
        self.marks_column_width = marks_column_width
        self.page_width, self.page_height = fitz.paper_size(paper_size)
        self.font_fallback = False

    def render(self, blocks: Sequence[LayoutBlock]) -> bytes:
        """Render blocks into PDF bytes."""
        fontfile = self._resolve_font()

        doc = fitz.open()
        try:
            page = self._new_page(doc)
            y = self.margin
            for block in blocks:
                page, y = self._place(doc, page, y, block, fontfile)
            data = doc.tobytes(garbage=3, deflate=True)
            logger.info(f"Rendered {len(blocks)} blocks on {doc.page_count} pages")
        finally:
            doc.close()
        return data

    def _resolve_font(self) -> Optional[str]:
        self.font_fallback = False
        if not self.font_path:
            return None
        try:
            load_font(self.font_path)
        except FontLoadFailed as e:
            logger.warning(f"{e}; falling back to default font")
            self.font_fallback = True
            return None
        return self.font_path

    def _new_page(self, doc: fitz.Document) -> fitz.Page:
        return doc.new_page(width=self.page_width, height=self.page_height)

    def _place(
        self,
        doc: fitz.Document,
        page: fitz.Page,
        y: float,
        block: LayoutBlock,
        fontfile: Optional[str],
    ) -> tuple[fitz.Page, float]:
        used = self._draw(page, y, block, block.font_size, fontfile)
        if used is None and y > self.margin:
            page = self._new_page(doc)
            y = self.margin
            used = self._draw(page, y, block, block.font_size, fontfile)

        font_size = block.font_size
        while used is None and font_size > MIN_FONT_SIZE:
            font_size = max(MIN_FONT_SIZE, font_size * 0.85)
            used = self._draw(page, y, block, font_size, fontfile)

        if used is None:
            logger.warning(
                f"Block does not fit on a page, skipped: {block.text[:40]}..."
            )
            return page, y

        bottom = self.page_height - self.margin
        return page, min(y + used + block.space_after, bottom)

    def _draw(
        self,
        page: fitz.Page,
        y: float,
        block: LayoutBlock,
        font_size: float,
        fontfile: Optional[str],
    ) -> Optional[float]:
        """Draw a block at y. Returns the height used, or None if it didn't fit."""
        left = self.margin
        right = self.page_width - self.margin
        bottom = self.page_height - self.margin
        if bottom - y < font_size * LINE_HEIGHT:
            return None
        if block.right_text is None:
            text_right = right
        elif block.kind == BlockKind.META_ROW:
            text_right = left + (right - left) / 2
        else:
            text_right = right - self.marks_column_width

        rect = fitz.Rect(left, y, text_right, bottom)
        rc = self._insert(page, rect, block.text, block.align,
                          block.bold, font_size, fontfile)
        if rc < 0:
            return None
        used = rect.height - rc

        if block.right_text is not None:
            side = fitz.Rect(text_right, y, right, bottom)
            side_rc = self._insert(page, side, block.right_text, Align.RIGHT,
                                   block.bold, font_size, fontfile)
            if side_rc >= 0:
                used = max(used, side.height - side_rc)

        return used

    def _insert(
        self,
        page: fitz.Page,
        rect: fitz.Rect,
        text: str,
        align: Align,
        bold: bool,
        font_size: float,
        fontfile: Optional[str],
    ) -> float:
        if fontfile:
            fontname = self.CUSTOM_FONT_NAME
        else:
            fontname = "hebo" if bold else "helv"
        return page.insert_textbox(
            rect,
            text,
            fontsize=font_size,
            fontname=fontname,
            fontfile=fontfile,
            align=_FITZ_ALIGN[align],
        )
