"""Collaborator interfaces consumed by the layout engine.

``builders.pdf_builder`` provides PyMuPDF-backed implementations; tests
use in-memory fakes.
"""

from typing import Optional, Protocol

from .models import Bounds, Cell, CellStyle, Color, FontSpec


class TextMetrics(Protocol):
    """Measures text.  Results must be deterministic for identical input."""

    def measure_width(self, text: str, font: FontSpec) -> float:
        """Unwrapped width of *text* in points."""
        ...

    def measure_wrap_height(self, text: str, max_width: float, font: FontSpec) -> float:
        """Height needed to wrap *text* inside *max_width* points."""
        ...


class RenderAdapter(Protocol):
    """Draws laid-out elements and owns the page lifecycle."""

    def start_new_page(self) -> None: ...

    def finalize_page(self) -> None: ...

    def draw_cell(self, bounds: Bounds, cell: Cell, style: CellStyle) -> None: ...

    def draw_filled_rect(self, bounds: Bounds, color: Optional[Color]) -> None: ...

    def draw_border(self, bounds: Bounds, color: Optional[Color], width: float) -> None: ...
