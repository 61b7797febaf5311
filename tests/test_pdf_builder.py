"""Tests for the PyMuPDF text metrics and renderer."""

import os
import shutil
import sys
import tempfile
import unittest
from unittest.mock import MagicMock

import fitz  # PyMuPDF

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from builders.pdf_builder import FitzTextMetrics, PdfRenderer, page_number_footer
from layout import layout_tables
from layout.models import Bounds, Cell, CellStyle, FontSpec


def _same_color(actual, expected):
    return all(abs(a - e) < 1e-3 for a, e in zip(actual, expected))


class TestFitzTextMetrics(unittest.TestCase):
    """Test cases for FitzTextMetrics."""

    def setUp(self):
        """Set up test fixtures."""
        self.metrics = FitzTextMetrics()
        self.font = FontSpec("helv", 10.0)

    def test_width_matches_fitz(self):
        """Widths come straight from fitz.get_text_length."""
        expected = fitz.get_text_length("Inventory", fontname="helv", fontsize=10)
        self.assertAlmostEqual(self.metrics.measure_width("Inventory", self.font), expected)

    def test_width_of_empty_text(self):
        self.assertEqual(self.metrics.measure_width("", self.font), 0.0)

    def test_width_of_multiline_text_is_widest_line(self):
        """Explicit newlines measure as their widest line."""
        wide = self.metrics.measure_width("a much longer line", self.font)
        self.assertAlmostEqual(self.metrics.measure_width("short\na much longer line", self.font), wide)

    def test_width_scales_with_font_size(self):
        small = self.metrics.measure_width("Bolt", FontSpec("helv", 10.0))
        large = self.metrics.measure_width("Bolt", FontSpec("helv", 20.0))
        self.assertAlmostEqual(large, small * 2)

    def test_measured_height_holds_the_text(self):
        """A text box of the measured height is exactly big enough."""
        for text, width in (("Inventory", 100.0), ("Part number 7, boxed/loose", 60.0),
                            ("two\nlines", 100.0)):
            height = self.metrics.measure_wrap_height(text, width, self.font)
            with fitz.open() as doc:
                page = doc.new_page()
                fits = page.insert_textbox(fitz.Rect(0, 0, width, height + 0.01), text,
                                           fontname="helv", fontsize=10)
                short = page.insert_textbox(fitz.Rect(0, 0, width, height - 1), text,
                                            fontname="helv", fontsize=10)
            self.assertGreaterEqual(fits, 0, text)
            self.assertLess(short, 0, text)

    def test_wrapping_adds_height(self):
        """Narrow boxes wrap onto more lines."""
        text = "aaa bbb ccc"
        narrow = self.metrics.measure_width(text, self.font) * 0.75
        self.assertGreater(
            self.metrics.measure_wrap_height(text, narrow, self.font),
            self.metrics.measure_wrap_height(text, 200, self.font),
        )

    def test_paragraphs_add_height(self):
        self.assertGreater(
            self.metrics.measure_wrap_height("a\nb", 200, self.font),
            self.metrics.measure_wrap_height("a", 200, self.font),
        )

    def test_wrap_height_of_empty_text(self):
        self.assertEqual(self.metrics.measure_wrap_height("", 100, self.font), 0.0)


class TestPdfRenderer(unittest.TestCase):
    """Test cases for PdfRenderer."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.renderer = PdfRenderer(page_width=612, page_height=792)
        self.style = CellStyle(font=FontSpec("helv", 10.0), text_color=(0, 0, 0),
                               align="left", padding=2.0)

    def tearDown(self):
        """Clean up test fixtures."""
        self.renderer.close()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_starts_with_one_page(self):
        self.assertEqual(self.renderer.page_count, 1)

    def test_start_new_page(self):
        self.renderer.start_new_page()
        self.assertEqual(self.renderer.page_count, 2)

    def test_bounds_are_flipped(self):
        """Layout y counts up from the bottom edge; PDF rects count down."""
        rect = self.renderer._to_rect(Bounds(10, 700, 100, 20))
        self.assertEqual(rect, fitz.Rect(10, 92, 110, 112))

    def test_finalize_hook_runs_once_per_page(self):
        """Finalizing the same page twice runs the hook once."""
        hook = MagicMock()
        renderer = PdfRenderer(page_width=200, page_height=200, on_finalize=hook)
        try:
            renderer.finalize_page()
            renderer.finalize_page()
            renderer.start_new_page()
            renderer.finalize_page()
        finally:
            renderer.close()
        self.assertEqual([c.args[1] for c in hook.call_args_list], [1, 2])

    def test_draw_cell_writes_text(self):
        """A box of the measured height plus padding holds its text."""
        text_height = self.renderer.metrics.measure_wrap_height("Inventory", 196, self.style.font)
        bounds = Bounds(36, 756, 200, text_height + 4 + 2)
        self.renderer.draw_cell(bounds, Cell("Inventory"), self.style)
        self.assertEqual(self.renderer.overflow_count, 0)
        path = self.renderer.save(os.path.join(self.temp_dir, "cell.pdf"))
        with fitz.open(path) as doc:
            self.assertIn("Inventory", doc[0].get_text())

    def test_centred_text_stays_inside_cell(self):
        """Vertical centring never pushes text out of a roomy cell."""
        bounds = Bounds(36, 756, 200, 60)
        self.renderer.draw_cell(bounds, Cell("Inventory"), self.style)
        self.assertEqual(self.renderer.overflow_count, 0)
        words = self.renderer._page.get_text("words")
        self.assertEqual([w[4] for w in words], ["Inventory"])
        outer = self.renderer._to_rect(bounds)
        self.assertGreater(words[0][1], outer.y0 + 10)
        self.assertLess(words[0][3], outer.y1 - 10)

    def test_empty_cell_draws_nothing(self):
        self.renderer.draw_cell(Bounds(36, 756, 200, 20), Cell(""), self.style)
        self.assertEqual(self.renderer._page.get_text().strip(), "")

    def test_overflowing_cell_is_logged(self):
        """Text that cannot fit its box is reported, not raised."""
        with self.assertLogs("builders.pdf_builder", level="WARNING"):
            self.renderer.draw_cell(
                Bounds(0, 792, 12, 6), Cell("far too much text for this box"), self.style
            )

    def test_skipped_drawing(self):
        """No fill colour or no border width means nothing is drawn."""
        bounds = Bounds(36, 756, 100, 20)
        self.renderer.draw_filled_rect(bounds, None)
        self.renderer.draw_border(bounds, (0, 0, 0), 0)
        self.renderer.draw_border(bounds, None, 1)
        self.assertEqual(self.renderer._page.get_drawings(), [])

    def test_rects_are_drawn(self):
        """Both the fill and the border colour reach the page."""
        bounds = Bounds(36, 756, 100, 20)
        self.renderer.draw_filled_rect(bounds, (0.9, 0.9, 0.9))
        self.renderer.draw_border(bounds, (0, 0, 0), 1)
        drawings = self.renderer._page.get_drawings()
        fills = [d["fill"] for d in drawings if d.get("fill") is not None]
        strokes = [d["color"] for d in drawings if d.get("color") is not None]
        self.assertTrue(any(_same_color(c, (0.9, 0.9, 0.9)) for c in fills), fills)
        self.assertTrue(any(_same_color(c, (0.0, 0.0, 0.0)) for c in strokes), strokes)

    def test_save_creates_directories(self):
        path = self.renderer.save(os.path.join(self.temp_dir, "nested", "out.pdf"))
        self.assertTrue(os.path.isfile(path))


class TestEndToEnd(unittest.TestCase):
    """Lay out a long table with the real metrics and renderer."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_every_cell_reaches_the_page(self):
        """Titles, headings and rows are all written, none overflow."""
        table = {
            "title": "Parts",
            "contents": {
                "headings": ["Part", "Qty"],
                "rows": [["Bolt", "12"], ["Wing nut, stainless", "40"]],
            },
            "options": {"title_padding": 3},
        }
        renderer = PdfRenderer(page_width=612, page_height=792)
        try:
            layout_tables(
                table,
                {"table_margin": 36, "padding": 2, "default_font": ["helv", 10],
                 "title_font": ["hebo", 16]},
                metrics=renderer.metrics, renderer=renderer,
            )
            text = renderer._page.get_text()
            overflows = renderer.overflow_count
        finally:
            renderer.close()

        self.assertEqual(overflows, 0)
        for expected in ("Parts", "Part", "Qty", "Bolt", "12", "Wing nut, stainless", "40"):
            self.assertIn(expected, text)

    def test_long_table_spans_pages(self):
        """Headings repeat and every page gets a footer."""
        table = {
            "title": "Parts",
            "contents": {
                "headings": ["Part", "Description", "Qty"],
                "rows": [[f"P-{n}", f"Part number {n}, boxed/loose", str(n)]
                         for n in range(120)],
            },
        }
        renderer = PdfRenderer(page_width=612, page_height=792,
                               on_finalize=page_number_footer)
        try:
            cursor = layout_tables(
                table, {"table_margin": 36, "padding": 2, "page_width": 612,
                        "page_height": 792},
                metrics=renderer.metrics, renderer=renderer,
            )
            page_count = renderer.page_count
            path = renderer.save(os.path.join(self.temp_dir, "parts.pdf"))
        finally:
            renderer.close()

        self.assertGreater(page_count, 1)
        self.assertGreaterEqual(cursor.y, 0)
        with fitz.open(path) as doc:
            self.assertEqual(doc.page_count, page_count)
            last = doc[page_count - 1].get_text()
            self.assertIn("Description", last)
            self.assertIn("Parts", last)
            self.assertIn(f"Page {page_count}", last)
            self.assertIn("P-119", last)


if __name__ == "__main__":
    unittest.main()
