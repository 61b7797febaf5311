"""PDF builder module.

PyMuPDF implementations of the layout collaborators: ``FitzTextMetrics``
measures text with the base-14 fonts and ``PdfRenderer`` draws laid-out
titles and cells onto the pages of a new PDF document.

Layout geometry uses a bottom-up y-axis (``y`` is the distance from the
bottom edge of the page); PyMuPDF pages are top-down, so every bounds
passed to the renderer is flipped against the page height.
"""

import logging
import math
import os
from contextlib import contextmanager
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Callable, Dict, Iterator, Optional

import fitz  # PyMuPDF

from layout.models import Bounds, Cell, CellStyle, Color, FontSpec

logger = logging.getLogger(__name__)

# Page sizes in PDF points.
PAGE_SIZES: Dict[str, tuple] = {
    "letter": (612.0, 792.0),
    "legal": (612.0, 1008.0),
    "a4": (595.0, 842.0),
}

_FOOTER_FONT = FontSpec("helv", 8.0)
_FOOTER_OFFSET = 12.0

# Mapping from alignment strings to PyMuPDF text alignment constants.
_ALIGNMENT_MAP: Dict[str, int] = {
    "left": fitz.TEXT_ALIGN_LEFT,
    "center": fitz.TEXT_ALIGN_CENTER,
    "centre": fitz.TEXT_ALIGN_CENTER,
    "right": fitz.TEXT_ALIGN_RIGHT,
    "justify": fitz.TEXT_ALIGN_JUSTIFY,
}


# Height of the scratch page used to measure text boxes.
_SCRATCH_HEIGHT = 14400.0


@lru_cache(maxsize=4096)
def _textbox_height(text: str, width: float, fontname: str, fontsize: float) -> float:
    """Height ``insert_textbox`` needs to place *text* in a box *width* wide.

    The text is written into a tall box on a throwaway page; the value
    returned by ``insert_textbox`` is the unused (or, when negative, the
    missing) height, so the needed height is the box height minus it.
    """
    with fitz.open() as doc:
        page = doc.new_page(width=width, height=_SCRATCH_HEIGHT)
        rc = page.insert_textbox(
            fitz.Rect(0, 0, width, _SCRATCH_HEIGHT), text,
            fontname=fontname, fontsize=fontsize,
        )
    return _SCRATCH_HEIGHT - rc


class FitzTextMetrics:
    """Text measurement backed by PyMuPDF.

    Widths come from ``fitz.get_text_length``.  Wrapped heights are taken
    from a dry run of ``page.insert_textbox``, so a box of the measured
    height always holds the text when ``PdfRenderer`` draws it.
    """

    def measure_width(self, text: str, font: FontSpec) -> float:
        if not text:
            return 0.0
        return max(self._length(line, font) for line in text.split("\n"))

    def measure_wrap_height(self, text: str, max_width: float, font: FontSpec) -> float:
        if not text:
            return 0.0
        # Boxes narrower than one em are measured one em wide.
        width = math.floor(max(max_width, font.size) * 1000) / 1000
        return _textbox_height(text, width, font.name, float(font.size))

    @staticmethod
    def _length(text: str, font: FontSpec) -> float:
        return fitz.get_text_length(text, fontname=font.name, fontsize=font.size)


@dataclass(frozen=True)
class DrawingContext:
    """Graphics state used for the next drawing operation."""

    fill_color: Optional[Color] = None
    stroke_color: Optional[Color] = (0.0, 0.0, 0.0)
    line_width: float = 1.0
    font: FontSpec = FontSpec()
    text_color: Optional[Color] = (0.0, 0.0, 0.0)


class PdfRenderer:
    """Draws tables onto the pages of a new PDF document.

    Parameters
    ----------
    page_width, page_height : float
        Size of every page in points.
    metrics : FitzTextMetrics | None
        Measurement used to centre text vertically inside its box.
    on_finalize : callable | None
        ``(page, page_number) -> None`` hook run when a page is complete,
        e.g. ``page_number_footer``.
    """

    def __init__(
        self,
        page_width: float = PAGE_SIZES["letter"][0],
        page_height: float = PAGE_SIZES["letter"][1],
        metrics: Optional[FitzTextMetrics] = None,
        on_finalize: Optional[Callable[[fitz.Page, int], None]] = None,
    ) -> None:
        self.page_width = float(page_width)
        self.page_height = float(page_height)
        self.metrics = metrics or FitzTextMetrics()
        self._on_finalize = on_finalize
        self._context = DrawingContext()
        self._doc = fitz.open()
        self._page = self._doc.new_page(width=self.page_width, height=self.page_height)
        self._overflows = 0
        self._finalized: set = set()

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    @property
    def overflow_count(self) -> int:
        """Number of cells whose text did not fit their box."""
        return self._overflows

    # ------------------------------------------------------------------
    # Page lifecycle
    # ------------------------------------------------------------------

    def start_new_page(self) -> None:
        self._page = self._doc.new_page(width=self.page_width, height=self.page_height)
        logger.debug("Started page %d.", self._doc.page_count)

    def finalize_page(self) -> None:
        number = self._page.number + 1
        if number in self._finalized:
            return
        self._finalized.add(number)
        if self._on_finalize is not None:
            self._on_finalize(self._page, number)

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def draw_filled_rect(self, bounds: Bounds, color: Optional[Color]) -> None:
        if color is None:
            return
        with self._scoped(fill_color=color) as ctx:
            self._page.draw_rect(self._to_rect(bounds), color=None, fill=ctx.fill_color, width=0)

    def draw_border(self, bounds: Bounds, color: Optional[Color], width: float) -> None:
        if color is None or width <= 0:
            return
        with self._scoped(stroke_color=color, line_width=width) as ctx:
            self._page.draw_rect(
                self._to_rect(bounds), color=ctx.stroke_color, width=ctx.line_width
            )

    def draw_cell(self, bounds: Bounds, cell: Cell, style: CellStyle) -> None:
        """Write the cell text inside its padded box, centred vertically."""
        if not cell.content:
            return
        pad = style.padding
        inner_width = bounds.width - 2 * pad
        inner_height = bounds.height - 2 * pad
        text_height = self.metrics.measure_wrap_height(cell.content, inner_width, style.font)
        offset = (inner_height - text_height) / 2.0 if text_height < inner_height else 0.0

        outer = self._to_rect(bounds)
        inner = fitz.Rect(outer.x0 + pad, outer.y0 + pad, outer.x1 - pad, outer.y1 - pad)
        if inner.is_empty:
            self._overflows += 1
            logger.warning(
                "No room for text %r inside its padding on page %d.",
                cell.content[:40], self._page.number + 1,
            )
            return

        # The centred box keeps at least the measured text height.
        box = fitz.Rect(inner.x0, inner.y0 + offset, inner.x1, inner.y1)
        with self._scoped(font=style.font, text_color=style.text_color) as ctx:
            remaining = self._insert_text(box, cell.content, style.align, ctx)
            if remaining < 0 and offset > 0:
                box = inner
                remaining = self._insert_text(box, cell.content, style.align, ctx)
        if remaining < 0:
            self._overflows += 1
            logger.warning(
                "Text %r overflowed its %.1fx%.1f pt box on page %d.",
                cell.content[:40], box.width, box.height, self._page.number + 1,
            )

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def save(self, output_path: str) -> str:
        """Write the document to *output_path* and return its absolute path."""
        output_path = os.path.abspath(output_path)
        out_dir = os.path.dirname(output_path)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        self._doc.save(output_path, garbage=3, deflate=True)
        logger.info(
            "Saved %d page(s) to '%s'%s.",
            self._doc.page_count,
            output_path,
            f" ({self._overflows} overflowing cell(s))" if self._overflows else "",
        )
        return output_path

    def close(self) -> None:
        self._doc.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _insert_text(self, box: fitz.Rect, text: str, align: str, ctx: DrawingContext) -> float:
        # insert_textbox writes nothing when the text does not fit.
        return self._page.insert_textbox(
            box,
            text,
            fontname=ctx.font.name,
            fontsize=ctx.font.size,
            color=ctx.text_color,
            align=_ALIGNMENT_MAP.get(align, fitz.TEXT_ALIGN_LEFT),
        )

    @contextmanager
    def _scoped(self, **changes) -> Iterator[DrawingContext]:
        """Swap in a modified drawing context, restoring the previous one on exit."""
        previous = self._context
        self._context = replace(previous, **changes)
        try:
            yield self._context
        finally:
            self._context = previous

    def _to_rect(self, bounds: Bounds) -> fitz.Rect:
        top = self.page_height - bounds.y
        return fitz.Rect(bounds.x, top, bounds.x + bounds.width, top + bounds.height)


def page_number_footer(page: fitz.Page, page_number: int) -> None:
    """``on_finalize`` hook writing ``Page N`` centred near the bottom edge."""
    label = f"Page {page_number}"
    width = fitz.get_text_length(label, fontname=_FOOTER_FONT.name, fontsize=_FOOTER_FONT.size)
    point = fitz.Point((page.rect.width - width) / 2.0, page.rect.height - _FOOTER_OFFSET)
    page.insert_text(point, label, fontname=_FOOTER_FONT.name, fontsize=_FOOTER_FONT.size)
