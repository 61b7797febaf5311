"""Deterministic test doubles for the layout collaborators."""

import math
from typing import Dict, List, Optional
from unittest.mock import MagicMock

RENDER_METHODS = [
    "start_new_page",
    "finalize_page",
    "draw_cell",
    "draw_filled_rect",
    "draw_border",
]


class FakeMetrics:
    """Every character is ``font.size / 6`` points wide; lines are 10 points tall.

    ``fixed_heights`` pins the wrap height of specific strings.
    """

    LINE_HEIGHT = 10.0

    def __init__(self, fixed_heights: Optional[Dict[str, float]] = None) -> None:
        self.fixed_heights = fixed_heights or {}

    def measure_width(self, text, font):
        return len(text) * font.size / 6.0

    def measure_wrap_height(self, text, max_width, font):
        if text in self.fixed_heights:
            return self.fixed_heights[text]
        if not text:
            return 0.0
        lines = 0
        for paragraph in text.split("\n"):
            width = self.measure_width(paragraph, font)
            if max_width <= 0:
                lines += max(len(paragraph), 1)
            else:
                lines += max(math.ceil(width / max_width), 1)
        return lines * self.LINE_HEIGHT


def make_renderer() -> MagicMock:
    return MagicMock(spec=RENDER_METHODS)


def call_names(renderer: MagicMock) -> List[str]:
    return [c[0] for c in renderer.mock_calls]


def drawn_contents(renderer: MagicMock) -> List[str]:
    return [c.args[1].content for c in renderer.draw_cell.call_args_list]
