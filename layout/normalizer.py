"""Table description normalization.

Turns loosely structured table descriptions (as decoded from JSON or
written by hand) into ``TableSpec`` / ``ContentBlock`` instances with a
consistent shape::

    {"title": "Inventory",
     "contents": [{"headings": ["Part", "Qty"],
                   "rows": [["Bolt", "12"], ["Nut", {"content": "40", "color": [1, 0, 0]}]],
                   "options": {"row_text_alignment": "left"}}],
     "options": {"title_padding": 4}}

Heading and row values may be strings, mappings with a ``content`` key,
``Cell`` instances or ``None`` (an absent cell).
"""

import logging
from typing import Any, Dict, List, Optional

from .errors import ColumnMismatchError
from .models import Cell, ContentBlock, FontSpec, TableSpec, coerce_color

logger = logging.getLogger(__name__)


def normalize_cell(value: Any) -> Optional[Cell]:
    """Coerce a raw heading/row value into a ``Cell`` (or ``None``)."""
    if value is None or isinstance(value, Cell):
        return value
    if isinstance(value, dict):
        content = value.get("content")
        return Cell(
            content="" if content is None else str(content),
            text_color=coerce_color(value.get("text_color", value.get("color"))),
            background_color=coerce_color(value.get("background_color")),
            font=FontSpec.coerce(value.get("font")),
            align=value.get("align"),
        )
    return Cell(content=str(value))


def _normalize_block(raw: Any) -> ContentBlock:
    if isinstance(raw, ContentBlock):
        headings = raw.headings
        rows = raw.rows
        options = raw.options
    elif isinstance(raw, dict):
        headings = raw.get("headings")
        rows = raw.get("rows")
        options = raw.get("options")
    else:
        headings = rows = options = None

    if headings is None:
        headings = []
    if rows is None:
        rows = [[]]

    return ContentBlock(
        headings=[normalize_cell(h) for h in headings],
        rows=[[normalize_cell(c) for c in row] for row in rows],
        options=dict(options or {}),
    )


def _check_columns(blocks: List[ContentBlock]) -> None:
    for block_idx, block in enumerate(blocks):
        expected = len(block.headings)
        for row_idx, row in enumerate(block.rows):
            if len(row) != expected and expected > 0:
                raise ColumnMismatchError(block_idx, row_idx, expected, len(row))
            expected = len(row)


def normalize_contents(raw: Any) -> List[ContentBlock]:
    """Normalize the ``contents`` part of a table description.

    A single block is wrapped into a list, an empty list gains one empty
    block, and every block gets ``headings``/``rows``/``options`` filled
    in.  Raises ``ColumnMismatchError`` when a row disagrees with the
    column count established by its block's headings or earlier rows.
    """
    if raw is None:
        raw = []
    elif isinstance(raw, (dict, ContentBlock)):
        raw = [raw]

    blocks = [_normalize_block(item) for item in raw]
    if not blocks:
        blocks.append(_normalize_block({}))

    _check_columns(blocks)
    return blocks


def normalize_table(raw: Any) -> TableSpec:
    """Return a normalized copy of a table description."""
    if isinstance(raw, TableSpec):
        title: Any = raw.title
        contents: Any = raw.contents
        options: Dict[str, Any] = raw.options
    elif isinstance(raw, dict):
        title = raw.get("title")
        contents = raw.get("contents")
        options = raw.get("options") or {}
    else:
        raise TypeError(f"Cannot build a table from {type(raw).__name__}")

    table = TableSpec(
        title=None if title is None else str(title),
        contents=normalize_contents(contents),
        options=dict(options),
    )
    logger.debug(
        "Normalized table %r: %d block(s).", table.title, len(table.contents)
    )
    return table
