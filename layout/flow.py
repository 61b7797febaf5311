"""Vertical flow of tables across pages.

``layout_tables`` walks every table in document order, writing its
title, then for each content block its headings row and data rows.
Before anything is written the controller checks that it fits above the
bottom margin; when it does not, the current page is finalized, a new
one is started and (optionally) the title and headings are written again
before the pending row.

Usage::

    renderer = PdfRenderer(page_width=612, page_height=792)
    cursor = layout_tables(tables, {"padding": 2, "table_margin": 36},
                           metrics=renderer.metrics, renderer=renderer)
    renderer.save("out.pdf")
"""

import enum
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .interfaces import RenderAdapter, TextMetrics
from .models import Bounds, Cell, CellStyle, ContentBlock, Cursor, RowType, TableSpec
from .normalizer import normalize_table
from .options import LayoutOptions, resolve_options
from .widths import ColumnWidthSolver

logger = logging.getLogger(__name__)

# Extra height added to every measured box so glyphs never touch the border.
SAFETY_MARGIN = 2.0


class FlowState(enum.Enum):
    START_TABLE = "start_table"
    WRITE_TITLE = "write_title"
    WRITE_HEADINGS = "write_headings"
    WRITE_ROW = "write_row"
    PAGE_BREAK = "page_break"
    DONE = "done"


def title_height(title: Optional[str], options: LayoutOptions, metrics: TextMetrics) -> float:
    """Height of the title box; ``0`` when the table has no title."""
    if title is None:
        return 0.0
    pad = (options.padding + options.title_padding) * 2
    text_height = metrics.measure_wrap_height(
        title, options.table_width - pad, options.title_font
    )
    return text_height + pad + SAFETY_MARGIN


def row_height(
    row: Sequence[Optional[Cell]],
    widths: Sequence[float],
    options: LayoutOptions,
    metrics: TextMetrics,
    row_type: RowType = RowType.ROW,
) -> float:
    """Height of a row, governed by its tallest cell; ``0`` for an empty row."""
    if not row:
        return 0.0
    pad = options.padding * 2
    tallest = 0.0
    for idx, cell in enumerate(row):
        if cell is None:
            continue
        font = cell.font or options.font_for(row_type)
        tallest = max(
            tallest, metrics.measure_wrap_height(cell.content, widths[idx] - pad, font)
        )
    return tallest + pad + SAFETY_MARGIN


class FlowController:
    """Pagination state machine for one ``layout_tables`` call.

    A controller owns its cursor and option copies; it is not reusable
    across calls.
    """

    def __init__(
        self,
        metrics: TextMetrics,
        renderer: RenderAdapter,
        options: LayoutOptions,
    ) -> None:
        self._metrics = metrics
        self._renderer = renderer
        self._solver = ColumnWidthSolver(metrics)
        self._call_options = options

        page = resolve_options(options)
        start_y = page.y_initial if page.y_initial is not None else page.y_start
        self.cursor = Cursor(page.x_start, start_y)
        self.page_breaks = 0

        self._tables: List[Tuple[TableSpec, LayoutOptions]] = []
        self._table_idx = -1
        self._table: Optional[TableSpec] = None
        self._table_options = page
        self._block: Optional[ContentBlock] = None
        self._block_idx = 0
        self._options = page
        self._widths: List[float] = []
        self._row_idx = 0

        self._break_origin = FlowState.START_TABLE
        self._fresh_page = False
        self._forced = False

        self._handlers: Dict[FlowState, Callable[[], FlowState]] = {
            FlowState.START_TABLE: self._start_table,
            FlowState.WRITE_TITLE: self._write_title_state,
            FlowState.WRITE_HEADINGS: self._write_headings,
            FlowState.WRITE_ROW: self._write_row,
            FlowState.PAGE_BREAK: self._page_break,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, tables: Iterable[Any]) -> Cursor:
        """Lay out *tables* and return the final cursor position."""
        self._tables = self._prepare(tables)
        state = FlowState.START_TABLE
        while state is not FlowState.DONE:
            state = self._handlers[state]()

        self._renderer.finalize_page()
        logger.debug(
            "Laid out %d table(s) with %d page break(s); cursor at (%.2f, %.2f).",
            len(self._tables), self.page_breaks, self.cursor.x, self.cursor.y,
        )
        return self.cursor

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    def _start_table(self) -> FlowState:
        self._table_idx += 1
        if self._table_idx >= len(self._tables):
            return FlowState.DONE

        self._table, self._table_options = self._tables[self._table_idx]
        self.cursor = Cursor(self._table_options.x_start, self.cursor.y)
        self._block_idx = 0
        self._enter_block()

        if self._table_idx > 0 and self._table_options.page_break_on_new_table:
            return self._request_break(FlowState.START_TABLE)

        needed = (
            title_height(self._table.title, self._table_options, self._metrics)
            + self._headings_height()
            + self._row_height(self._block.first_row)
        )
        if not self._fits(needed):
            return self._request_break(FlowState.START_TABLE)
        return FlowState.WRITE_TITLE

    def _write_title_state(self) -> FlowState:
        self._write_title()
        return FlowState.WRITE_HEADINGS

    def _write_headings(self) -> FlowState:
        needed = self._headings_height() + self._row_height(self._block.first_row)
        if not self._fits(needed):
            return self._request_break(FlowState.WRITE_HEADINGS)
        self._draw_row(self._block.headings, RowType.HEADING)
        return FlowState.WRITE_ROW

    def _write_row(self) -> FlowState:
        if self._row_idx >= len(self._block.rows):
            return self._next_block()

        row = self._block.rows[self._row_idx]
        if not self._fits(self._row_height(row)):
            return self._request_break(FlowState.WRITE_ROW)
        self._draw_row(row, RowType.ROW)
        self._row_idx += 1
        return FlowState.WRITE_ROW

    def _page_break(self) -> FlowState:
        self._renderer.finalize_page()
        self._renderer.start_new_page()
        self.page_breaks += 1
        self.cursor = Cursor(self._options.x_start, self._options.y_start)
        self._fresh_page = True
        self._forced = True
        logger.debug(
            "Page break %d while in %s (table %d, block %d, row %d).",
            self.page_breaks, self._break_origin.value,
            self._table_idx, self._block_idx, self._row_idx,
        )

        origin = self._break_origin
        if origin is FlowState.START_TABLE:
            return FlowState.WRITE_TITLE
        if self._options.show_title_after_page_break:
            self._write_title()
        if origin is FlowState.WRITE_ROW and self._options.show_headings_after_page_break:
            self._draw_row(self._block.headings, RowType.HEADING)
        return origin

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _prepare(self, tables: Iterable[Any]) -> List[Tuple[TableSpec, LayoutOptions]]:
        """Normalize every table and resolve every scope before anything is drawn."""
        prepared = []
        for raw in tables:
            table = normalize_table(raw)
            table_options = resolve_options(self._call_options, table.options)
            for block in table.contents:
                resolve_options(table_options, None, block.options, expand_margins=False)
            prepared.append((table, table_options))
        return prepared

    def _enter_block(self) -> None:
        self._block = self._table.contents[self._block_idx]
        self._options = resolve_options(
            self._table_options, None, self._block.options, expand_margins=False
        )
        self._widths = self._solver.solve(self._block, self._options)
        self._row_idx = 0

    def _next_block(self) -> FlowState:
        self._block_idx += 1
        if self._block_idx < len(self._table.contents):
            self._enter_block()
            return FlowState.WRITE_HEADINGS
        self.cursor = self.cursor.moved_down(self._table_options.spacing)
        return FlowState.START_TABLE

    def _request_break(self, origin: FlowState) -> FlowState:
        self._break_origin = origin
        return FlowState.PAGE_BREAK

    def _fits(self, height: float) -> bool:
        if self._forced:
            self._forced = False
            return True
        if self.cursor.y - height >= self._options.y_end:
            return True
        if self._fresh_page:
            logger.warning(
                "Content %.2f pt tall does not fit on an empty page (%.2f pt available); "
                "drawing it anyway.",
                height, self.cursor.y - self._options.y_end,
            )
            return True
        return False

    def _headings_height(self) -> float:
        return row_height(
            self._block.headings, self._widths, self._options, self._metrics, RowType.HEADING
        )

    def _row_height(self, row: Sequence[Optional[Cell]]) -> float:
        return row_height(row, self._widths, self._options, self._metrics, RowType.ROW)

    def _commit(self, height: float) -> None:
        self.cursor = self.cursor.moved_down(height)
        self._fresh_page = False

    def _write_title(self) -> None:
        title = self._table.title
        if title is None:
            return
        opts = self._table_options
        height = title_height(title, opts, self._metrics)
        bounds = Bounds(self.cursor.x, self.cursor.y, opts.table_width, height)
        if opts.title_background_color is not None:
            self._renderer.draw_filled_rect(bounds, opts.title_background_color)
        self._renderer.draw_cell(
            bounds,
            Cell(content=title),
            CellStyle(
                font=opts.title_font,
                text_color=opts.title_text_color,
                align=opts.title_text_alignment,
                padding=opts.title_padding + opts.padding,
            ),
        )
        self._renderer.draw_border(bounds, opts.border_color, opts.border_width)
        self._commit(height)

    def _draw_row(self, row: Sequence[Optional[Cell]], row_type: RowType) -> None:
        if not row:
            return
        opts = self._options
        style = opts.style_for(row_type)
        height = row_height(row, self._widths, opts, self._metrics, row_type)
        x = self.cursor.x

        for idx, cell in enumerate(row):
            bounds = Bounds(x, self.cursor.y, self._widths[idx], height)
            if cell is None:
                self._renderer.draw_filled_rect(bounds, style.blackout_color)
            else:
                background = cell.background_color
                if background is None:
                    background = style.background_color(idx)
                if background is not None:
                    self._renderer.draw_filled_rect(bounds, background)
                text_color = cell.text_color
                if text_color is None:
                    text_color = style.text_color(idx)
                self._renderer.draw_cell(
                    bounds,
                    cell,
                    CellStyle(
                        font=cell.font or opts.font_for(row_type),
                        text_color=text_color,
                        align=cell.align or style.text_alignment,
                        padding=opts.padding,
                    ),
                )
            self._renderer.draw_border(bounds, opts.border_color, opts.border_width)
            x += self._widths[idx]

        self._commit(height)


def layout_tables(
    tables: Union[TableSpec, Mapping[str, Any], Iterable[Any]],
    options: Union[LayoutOptions, Mapping[str, Any], None] = None,
    *,
    metrics: TextMetrics,
    renderer: RenderAdapter,
) -> Cursor:
    """Lay out one or more tables, breaking pages as needed.

    Parameters
    ----------
    tables : TableSpec | dict | list
        A single table description or a list of them (see
        ``layout.normalizer`` for the accepted shapes).
    options : LayoutOptions | dict | None
        Call-level options; each table's and block's ``options`` are
        layered on top (see ``layout.options``).
    metrics : TextMetrics
        Text measurement collaborator.
    renderer : RenderAdapter
        Drawing and page lifecycle collaborator.  The current page must
        already be open; it is finalized once more at the end.

    Returns
    -------
    Cursor
        Position just below the last table (after its spacing).

    Raises
    ------
    ColumnMismatchError, InvalidConstraintError
        Raised for any table before anything is measured or drawn.
    LayoutOverflowError
        The call is aborted and no further pages are started.
    """
    if isinstance(tables, (TableSpec, Mapping)):
        tables = [tables]
    if isinstance(options, LayoutOptions):
        base = options.clone()
    else:
        base = LayoutOptions.from_mapping(options)

    return FlowController(metrics, renderer, base).run(tables)
