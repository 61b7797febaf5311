"""Tests for the tables2pdf command-line orchestrator."""

import json
import os
import shutil
import sys
import tempfile
import unittest

import fitz  # PyMuPDF

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import tables2pdf

SAMPLE_TABLE = {
    "title": "Inventory",
    "contents": {
        "headings": ["Part", "Qty"],
        "rows": [["Bolt", 12], ["Nut", 40], ["Washer", None]],
    },
}


class CliTestCase(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.mkdtemp()
        self.config = tables2pdf._load_config(os.path.join(self.temp_dir, "missing.json"))

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write_json(self, name, data):
        path = os.path.join(self.temp_dir, name)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(data, fh)
        return path


class TestHelpers(CliTestCase):
    """Test cases for configuration and input helpers."""

    def test_defaults_without_config_file(self):
        self.assertEqual(self.config["page_size"], "letter")
        self.assertFalse(self.config["page_numbers"])
        self.assertEqual(self.config["layout"]["table_margin"], 36)

    def test_config_file_overrides_defaults(self):
        path = self.write_json("settings.json", {"page_size": "a4", "page_numbers": True})
        config = tables2pdf._load_config(path)
        self.assertEqual(config["page_size"], "a4")
        self.assertTrue(config["page_numbers"])
        self.assertFalse(config["validate"])

    def test_broken_config_falls_back(self):
        """An unreadable config file is logged and ignored."""
        path = os.path.join(self.temp_dir, "broken.json")
        with open(path, "w", encoding="utf-8") as fh:
            fh.write("{not json")
        with self.assertLogs("tables2pdf", level="WARNING"):
            config = tables2pdf._load_config(path)
        self.assertEqual(config["page_size"], "letter")

    def test_page_dimensions(self):
        self.assertEqual(tables2pdf._page_dimensions("A4"), (595.0, 842.0))
        self.assertEqual(tables2pdf._page_dimensions([300, 400]), (300.0, 400.0))

    def test_unknown_page_size_falls_back_to_letter(self):
        with self.assertLogs("tables2pdf", level="WARNING"):
            self.assertEqual(tables2pdf._page_dimensions("tabloid"), (612.0, 792.0))

    def test_document_shapes(self):
        """Documents may be a table, a list of tables or a wrapper object."""
        single = self.write_json("single.json", SAMPLE_TABLE)
        listed = self.write_json("list.json", [SAMPLE_TABLE, SAMPLE_TABLE])
        wrapped = self.write_json(
            "wrapped.json", {"tables": [SAMPLE_TABLE], "options": {"padding": 4}}
        )
        self.assertEqual(tables2pdf._load_document(single), ([SAMPLE_TABLE], {}))
        self.assertEqual(len(tables2pdf._load_document(listed)[0]), 2)
        self.assertEqual(tables2pdf._load_document(wrapped), ([SAMPLE_TABLE], {"padding": 4}))


class TestRenderTables(CliTestCase):
    """Test cases for render_tables and render_batch."""

    def test_renders_pdf(self):
        input_path = self.write_json("inventory.json", SAMPLE_TABLE)
        output_path = os.path.join(self.temp_dir, "inventory.pdf")
        saved = tables2pdf.render_tables(input_path, output_path, self.config, validate=True)
        self.assertEqual(saved, os.path.abspath(output_path))
        with fitz.open(saved) as doc:
            text = doc[0].get_text()
        self.assertIn("Inventory", text)
        self.assertIn("Washer", text)

    def test_page_numbers(self):
        input_path = self.write_json("inventory.json", SAMPLE_TABLE)
        self.config["page_numbers"] = True
        saved = tables2pdf.render_tables(
            input_path, os.path.join(self.temp_dir, "numbered.pdf"), self.config
        )
        with fitz.open(saved) as doc:
            self.assertIn("Page 1", doc[0].get_text())

    def test_missing_input_exits(self):
        with self.assertRaises(SystemExit):
            tables2pdf.render_tables(
                os.path.join(self.temp_dir, "nope.json"),
                os.path.join(self.temp_dir, "nope.pdf"),
                self.config,
            )

    def test_batch_skips_failures(self):
        """One bad document does not stop the batch."""
        batch_dir = os.path.join(self.temp_dir, "batch")
        os.makedirs(batch_dir)
        with open(os.path.join(batch_dir, "good.json"), "w", encoding="utf-8") as fh:
            json.dump(SAMPLE_TABLE, fh)
        with open(os.path.join(batch_dir, "bad.json"), "w", encoding="utf-8") as fh:
            fh.write("{not json")

        out_dir = os.path.join(self.temp_dir, "out")
        rendered = tables2pdf.render_batch(batch_dir, out_dir, self.config)
        self.assertEqual(rendered, 1)
        self.assertTrue(os.path.isfile(os.path.join(out_dir, "good.pdf")))
        self.assertFalse(os.path.exists(os.path.join(out_dir, "bad.pdf")))


class TestMain(CliTestCase):
    """Test cases for the argument parser entry point."""

    def test_main_writes_output(self):
        input_path = self.write_json("inventory.json", SAMPLE_TABLE)
        config_path = self.write_json("settings.json", {"page_size": "a4"})
        output_path = os.path.join(self.temp_dir, "inventory.pdf")
        tables2pdf.main([input_path, output_path, "--config", config_path, "--force"])
        with fitz.open(output_path) as doc:
            self.assertAlmostEqual(doc[0].rect.width, 595.0)

    def test_layout_error_exits_with_status_one(self):
        """Tables that cannot fit the page abort the run."""
        input_path = self.write_json(
            "wide.json", {"contents": {"rows": [["x" * 400, "y" * 400]]}}
        )
        config_path = self.write_json("settings.json", {})
        output_path = os.path.join(self.temp_dir, "wide.pdf")
        with self.assertRaises(SystemExit) as ctx:
            tables2pdf.main([input_path, output_path, "--config", config_path, "--force"])
        self.assertEqual(ctx.exception.code, 1)
        self.assertFalse(os.path.exists(output_path))


if __name__ == "__main__":
    unittest.main()
