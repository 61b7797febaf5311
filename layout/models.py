"""Data model shared by the table layout modules.

Cells, blocks and tables describe *what* to print; ``Cursor`` and
``Bounds`` describe *where*.  All geometry is in PDF points with the
y-axis decreasing downward from the page height.
"""

import enum
from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

Color = Tuple[float, ...]


class RowType(enum.Enum):
    """Kind of row being measured or drawn."""

    HEADING = "headings"
    ROW = "row"


@dataclass(frozen=True)
class FontSpec:
    """A font code understood by PyMuPDF plus a point size."""

    name: str = "helv"
    size: float = 6.0

    @classmethod
    def coerce(cls, value: Any) -> Optional["FontSpec"]:
        """Build a ``FontSpec`` from a mapping, a ``[name, size]`` pair or a name."""
        if value is None or isinstance(value, FontSpec):
            return value
        if isinstance(value, dict):
            return cls(
                name=str(value.get("name", cls.name)),
                size=float(value.get("size", cls.size)),
            )
        if isinstance(value, (list, tuple)):
            if not value:
                return None
            size = float(value[1]) if len(value) > 1 else cls.size
            return cls(name=str(value[0]), size=size)
        return cls(name=str(value))


def coerce_color(value: Any) -> Optional[Color]:
    """Turn a JSON color (list of floats) into a tuple; ``None`` stays ``None``."""
    if value is None:
        return None
    return tuple(float(c) for c in value)


@dataclass(frozen=True)
class Cell:
    """One table cell.  Unset style fields fall back to block/table defaults."""

    content: str = ""
    text_color: Optional[Color] = None
    background_color: Optional[Color] = None
    font: Optional[FontSpec] = None
    align: Optional[str] = None


@dataclass
class ContentBlock:
    """A headings row plus its data rows.

    ``None`` entries in ``headings`` or ``rows`` mark absent cells.
    ``options`` holds overrides applied to this block only.
    """

    headings: List[Optional[Cell]] = field(default_factory=list)
    rows: List[List[Optional[Cell]]] = field(default_factory=lambda: [[]])
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def first_row(self) -> List[Optional[Cell]]:
        return self.rows[0] if self.rows else []


@dataclass
class TableSpec:
    title: Optional[str] = None
    contents: List[ContentBlock] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WidthConstraints:
    """Per-column width restrictions, keyed by zero-based column index."""

    fitted: FrozenSet[int] = frozenset()
    minimum: Dict[int, float] = field(default_factory=dict)
    maximum: Dict[int, float] = field(default_factory=dict)

    def hard_minimum(self, idx: int, min_width: float) -> float:
        """The true floor for column *idx*: explicit minimum or unbreakable width."""
        return max(float(self.minimum.get(idx, 0.0)), min_width)


@dataclass
class RowStyle:
    """Styling defaults for one ``RowType``."""

    font: Optional[FontSpec] = None
    text_color_default: Optional[Color] = (0.0, 0.0, 0.0)
    text_colors: List[Optional[Color]] = field(default_factory=list)
    background_color_default: Optional[Color] = None
    background_colors: List[Optional[Color]] = field(default_factory=list)
    blackout_color: Optional[Color] = (0.3, 0.3, 0.3)
    text_alignment: str = "center"

    def text_color(self, idx: int) -> Optional[Color]:
        if idx < len(self.text_colors) and self.text_colors[idx] is not None:
            return self.text_colors[idx]
        return self.text_color_default

    def background_color(self, idx: int) -> Optional[Color]:
        if idx < len(self.background_colors) and self.background_colors[idx] is not None:
            return self.background_colors[idx]
        return self.background_color_default

    def copy(self) -> "RowStyle":
        return replace(
            self,
            text_colors=list(self.text_colors),
            background_colors=list(self.background_colors),
        )


@dataclass(frozen=True)
class CellStyle:
    """Fully resolved style handed to ``RenderAdapter.draw_cell``."""

    font: FontSpec
    text_color: Optional[Color]
    align: str
    padding: float


@dataclass(frozen=True)
class Bounds:
    """Rectangle anchored at its top-left corner; ``y`` is the top edge."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class Cursor:
    x: float
    y: float

    def moved_down(self, amount: float) -> "Cursor":
        return Cursor(self.x, self.y - amount)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)
