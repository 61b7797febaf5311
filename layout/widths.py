"""Column width solver.

Sizes the columns of one content block so they exactly fill the table
width while honouring the block's width restrictions:

1. *Natural sizing* – each column is as wide as its widest cell, and can
   never be narrower than its longest unbreakable token.
2. *Explicit minimums* – columns are raised to their configured minimum.
3. *Fitting* – the widths are shrunk (proportionally) or expanded
   (evenly) until they sum to the table width.  Fitted columns keep their
   natural width; shrinking stops at each column's hard minimum and
   expanding stops at each column's maximum.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .errors import LayoutOverflowError
from .interfaces import TextMetrics
from .models import Cell, ContentBlock, RowType, WidthConstraints
from .options import LayoutOptions

logger = logging.getLogger(__name__)

# Widths within this many points of a target are treated as equal.
_EPSILON = 1e-6


@dataclass
class ColumnSizes:
    """Natural and minimum widths per column index."""

    widths: List[float]
    min_widths: List[float]


def longest_token(text: str, break_chars: Sequence[str]) -> str:
    """Return the longest run of *text* containing none of *break_chars*."""
    if break_chars:
        pattern = "[" + "".join(re.escape(c) for c in break_chars) + "]+"
        tokens = [t for t in re.split(pattern, text) if t]
    else:
        tokens = [text.strip()]
    return max(tokens, key=len, default="")


def _grow(values: List[float], idx: int, value: float) -> None:
    if idx >= len(values):
        values.extend([0.0] * (idx + 1 - len(values)))
    if values[idx] < value:
        values[idx] = value


class ColumnWidthSolver:
    """Computes column widths for content blocks.

    Parameters
    ----------
    metrics : TextMetrics
        Text measurement collaborator.
    """

    def __init__(self, metrics: TextMetrics) -> None:
        self._metrics = metrics

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def solve(self, block: ContentBlock, options: LayoutOptions) -> List[float]:
        """Return the width of every column of *block*.

        The widths sum to ``options.table_width`` unless every resizable
        column is pinned by a restriction, in which case the table may be
        narrower (never wider).

        Raises
        ------
        LayoutOverflowError
            If the columns cannot be shrunk to fit the table width.
        """
        if options.table_width is None:
            raise ValueError("Options carry no table_width; resolve them first.")

        constraints = options.column_width_restrictions
        sizes = self.natural_widths(block, options)
        self.apply_minimums(sizes, constraints)

        table_width = options.table_width
        total = sum(sizes.widths)
        if total > table_width + _EPSILON:
            return self.shrink_widths(sizes, table_width, constraints)
        if 0 < total < table_width - _EPSILON:
            return self.expand_widths(sizes.widths, table_width, constraints)
        return list(sizes.widths)

    def natural_widths(self, block: ContentBlock, options: LayoutOptions) -> ColumnSizes:
        """Measure content widths and unbreakable widths for each column."""
        sizes = ColumnSizes(widths=[], min_widths=[])
        pad = options.padding * 2
        rows = [(RowType.HEADING, block.headings)]
        rows.extend((RowType.ROW, row) for row in block.rows)

        for row_type, row in rows:
            for idx, cell in enumerate(row):
                font = self._font(cell, row_type, options)
                text = cell.content if cell is not None else ""
                _grow(sizes.widths, idx, self._metrics.measure_width(text, font) + pad)

                token = longest_token(text, options.break_for_min_width_on)
                token_width = self._metrics.measure_width(token, font) if token else 0.0
                _grow(sizes.min_widths, idx, token_width + pad)

        return sizes

    @staticmethod
    def apply_minimums(sizes: ColumnSizes, constraints: WidthConstraints) -> None:
        """Raise columns to their explicit minimum when content allows it."""
        for idx, minimum in constraints.minimum.items():
            if idx >= len(sizes.widths):
                continue
            if sizes.widths[idx] < minimum and sizes.min_widths[idx] < minimum:
                sizes.widths[idx] = minimum

    @staticmethod
    def shrink_widths(
        sizes: ColumnSizes, table_width: float, constraints: WidthConstraints
    ) -> List[float]:
        """Shrink columns proportionally until they fit *table_width*.

        Every pass re-partitions the remaining excess over the columns
        still above their hard minimum, so the result does not depend on
        column order.
        """
        widths = list(sizes.widths)
        floors = [
            constraints.hard_minimum(idx, sizes.min_widths[idx])
            for idx in range(len(widths))
        ]
        excess = sum(widths) - table_width

        while excess > _EPSILON:
            modable = [
                idx for idx, w in enumerate(widths)
                if idx not in constraints.fitted and w > floors[idx] + _EPSILON
            ]
            total = sum(widths[idx] for idx in modable)
            changed = False
            for idx in modable:
                w = widths[idx]
                reduced = max(w - excess * (w / total), floors[idx])
                if reduced < w:
                    widths[idx] = reduced
                    changed = True

            excess = sum(widths) - table_width
            logger.debug("Shrink pass over %d column(s); %.3f pt left.", len(modable), excess)
            if not changed and excess > _EPSILON:
                raise LayoutOverflowError(excess)

        return widths

    @staticmethod
    def expand_widths(
        widths: Sequence[float], table_width: float, constraints: WidthConstraints
    ) -> List[float]:
        """Spread the missing width evenly over columns below their maximum."""
        widths = list(widths)
        deficit = table_width - sum(widths)

        while deficit > _EPSILON:
            modable = [
                idx for idx, w in enumerate(widths)
                if idx not in constraints.fitted
                and (idx not in constraints.maximum or w < constraints.maximum[idx] - _EPSILON)
            ]
            if not modable:
                logger.debug("Cannot expand columns further; table is %.3f pt narrow.", deficit)
                break

            extra = deficit / len(modable)
            for idx in modable:
                expanded = widths[idx] + extra
                cap: Optional[float] = constraints.maximum.get(idx)
                widths[idx] = min(expanded, cap) if cap is not None else expanded

            deficit = table_width - sum(widths)

        return widths

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _font(cell: Optional[Cell], row_type: RowType, options: LayoutOptions):
        if cell is not None and cell.font is not None:
            return cell.font
        return options.font_for(row_type)
