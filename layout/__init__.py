"""Layout package - table normalization, column sizing and page flow."""
from .errors import (
    ColumnMismatchError,
    InvalidConstraintError,
    LayoutOverflowError,
    TableLayoutError,
)
from .flow import FlowController, layout_tables
from .models import Bounds, Cell, CellStyle, ContentBlock, Cursor, FontSpec, RowType, TableSpec
from .normalizer import normalize_contents, normalize_table
from .options import LayoutOptions, resolve_options
from .widths import ColumnWidthSolver

__all__ = [
    "Bounds",
    "Cell",
    "CellStyle",
    "ColumnMismatchError",
    "ColumnWidthSolver",
    "ContentBlock",
    "Cursor",
    "FlowController",
    "FontSpec",
    "InvalidConstraintError",
    "LayoutOptions",
    "LayoutOverflowError",
    "RowType",
    "TableLayoutError",
    "TableSpec",
    "layout_tables",
    "normalize_contents",
    "normalize_table",
    "resolve_options",
]
