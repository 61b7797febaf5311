#!/usr/bin/env python3
"""Tables to PDF Rendering Tool — Main Orchestrator.

Renders table descriptions stored as JSON onto the pages of a PDF,
sizing columns to the page width and breaking pages between rows.

Input documents are either a list of tables or an object of the form
``{"tables": [...], "options": {...}}``; see ``layout.normalizer`` for the
table shape and ``layout.options`` for the available options.

Usage
-----
    python tables2pdf.py report.json report.pdf
    python tables2pdf.py --page-size a4 --page-numbers report.json
    python tables2pdf.py --verbose --validate report.json report.pdf
    python tables2pdf.py --batch ./reports/ --output-dir ./pdf/
"""

import argparse
import glob
import json
import logging
import os
import sys
from typing import Any

from builders.pdf_builder import PAGE_SIZES, PdfRenderer, page_number_footer
from layout import TableLayoutError, layout_tables
from utils.progress import ProgressTracker
from utils.validator import OutputValidator

logger = logging.getLogger("tables2pdf")

# Path to the default config file shipped alongside this script.
_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config", "settings.json")


# ------------------------------------------------------------------ #
#  Helpers                                                            #
# ------------------------------------------------------------------ #

def _load_config(config_path: str | None = None) -> dict[str, Any]:
    """Load configuration from a JSON file, falling back to defaults."""
    path = config_path or _CONFIG_PATH
    defaults: dict[str, Any] = {
        "page_size": "letter",
        "page_numbers": False,
        "validate": False,
        "layout": {
            "table_margin": 36,
            "padding": 2,
            "spacing": 12,
        },
    }
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as fh:
                user = json.load(fh)
            defaults.update(user)
        except Exception:
            logger.warning("Could not load config from '%s'; using defaults.", path)
    return defaults


def _page_dimensions(page_size: Any) -> tuple[float, float]:
    """Resolve a page size name or ``[width, height]`` pair to points."""
    if isinstance(page_size, (list, tuple)) and len(page_size) == 2:
        return float(page_size[0]), float(page_size[1])
    size = PAGE_SIZES.get(str(page_size).lower())
    if size is None:
        logger.warning("Unknown page size '%s'; falling back to letter.", page_size)
        size = PAGE_SIZES["letter"]
    return size


def _load_document(input_path: str) -> tuple[list[Any], dict[str, Any]]:
    """Read a JSON document and split it into tables and call-level options."""
    with open(input_path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, dict) and "tables" in data:
        return list(data["tables"]), dict(data.get("options") or {})
    if isinstance(data, dict):
        return [data], {}
    return list(data), {}


# ------------------------------------------------------------------ #
#  Core pipeline                                                      #
# ------------------------------------------------------------------ #

def render_tables(
    input_path: str,
    output_path: str,
    config: dict[str, Any],
    validate: bool = False,
) -> str:
    """Render one JSON table document to a PDF.

    Parameters
    ----------
    input_path : str
        Path to the JSON table document.
    output_path : str
        Destination path for the ``.pdf`` file.
    config : dict
        Application configuration.
    validate : bool
        If ``True``, run validation on the output file.

    Returns
    -------
    str
        The absolute path of the generated ``.pdf``.

    Raises
    ------
    TableLayoutError
        When a table cannot be laid out; nothing is written.
    """
    input_path = os.path.abspath(input_path)
    output_path = os.path.abspath(output_path)
    logger.info("Rendering '%s' → '%s'", input_path, output_path)

    if not os.path.isfile(input_path):
        logger.error("Input file not found: '%s'", input_path)
        sys.exit(1)

    try:
        tables, doc_options = _load_document(input_path)
    except (OSError, ValueError) as exc:
        logger.error("Cannot read table document '%s': %s", input_path, exc)
        sys.exit(1)

    page_width, page_height = _page_dimensions(config.get("page_size", "letter"))
    options: dict[str, Any] = {"page_width": page_width, "page_height": page_height}
    options.update(config.get("layout") or {})
    options.update(doc_options)

    renderer = PdfRenderer(
        page_width=page_width,
        page_height=page_height,
        on_finalize=page_number_footer if config.get("page_numbers") else None,
    )
    try:
        cursor = layout_tables(
            tables, options, metrics=renderer.metrics, renderer=renderer
        )
        logger.debug("Final cursor: (%.2f, %.2f)", cursor.x, cursor.y)
        page_count = renderer.page_count
        saved_path = renderer.save(output_path)
    finally:
        renderer.close()

    if validate or config.get("validate"):
        report = OutputValidator().validate(saved_path, expected_pages=page_count)
        for warning in report["warnings"]:
            logger.warning("Validation: %s", warning)
        if report["valid"]:
            logger.info(report["summary"])
        else:
            logger.error(report["summary"])

    print(f"[OK] {len(tables)} table(s), {page_count} page(s): {saved_path}", flush=True)
    return saved_path


# ------------------------------------------------------------------ #
#  Batch rendering                                                    #
# ------------------------------------------------------------------ #

def render_batch(
    input_dir: str,
    output_dir: str,
    config: dict[str, Any],
    validate: bool = False,
) -> int:
    """Render every ``.json`` document in *input_dir*; return the success count."""
    json_files = sorted(glob.glob(os.path.join(input_dir, "*.json")))
    if not json_files:
        logger.error("No JSON files found in '%s'.", input_dir)
        sys.exit(1)

    os.makedirs(output_dir, exist_ok=True)
    rendered = 0
    with ProgressTracker(total=len(json_files), description="Rendering tables") as progress:
        for json_path in json_files:
            base = os.path.splitext(os.path.basename(json_path))[0]
            out_path = os.path.join(output_dir, f"{base}.pdf")
            try:
                render_tables(json_path, out_path, config, validate=validate)
                rendered += 1
            except SystemExit:
                logger.warning("Skipping '%s' due to error.", json_path)
            except TableLayoutError as exc:
                logger.error("Skipping '%s': %s", json_path, exc)
            except Exception:
                logger.exception("Unexpected error rendering '%s'.", json_path)
            progress.update()

    print(f"\nBatch complete — {rendered}/{len(json_files)} file(s) rendered → {output_dir}")
    return rendered


# ------------------------------------------------------------------ #
#  CLI entry point                                                    #
# ------------------------------------------------------------------ #

def main(argv: list[str] | None = None) -> None:
    """Parse arguments and run the rendering."""
    parser = argparse.ArgumentParser(
        prog="tables2pdf",
        description="Render JSON table descriptions to paginated PDF tables.",
    )

    parser.add_argument("input", nargs="?", help="Input JSON file path.")
    parser.add_argument("output", nargs="?", help="Output .pdf file path.")

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a custom configuration JSON file.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging.",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Run validation checks on the output document.",
    )
    parser.add_argument(
        "--page-size",
        type=str,
        default=None,
        help="Page size: letter, legal or a4.",
    )
    parser.add_argument(
        "--page-numbers",
        action="store_true",
        help="Write a page number footer on every page.",
    )
    parser.add_argument(
        "--batch",
        type=str,
        default=None,
        help="Directory containing JSON files for batch rendering.",
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output directory for batch rendering results.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing output files without prompting.",
    )

    args = parser.parse_args(argv)

    # ── Logging ──────────────────────────────────────────────────────
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    # ── Config ───────────────────────────────────────────────────────
    config = _load_config(args.config)
    if args.page_size:
        config["page_size"] = args.page_size
    if args.page_numbers:
        config["page_numbers"] = True
    if args.validate:
        config["validate"] = True

    # ── Batch mode ───────────────────────────────────────────────────
    if args.batch:
        out_dir = args.output_dir or os.path.join(args.batch, "pdf_output")
        render_batch(args.batch, out_dir, config)
        return

    # ── Single-file mode ─────────────────────────────────────────────
    if not args.input:
        parser.error("Please provide an input JSON file (or use --batch for batch mode).")

    output_path = args.output or os.path.splitext(args.input)[0] + ".pdf"

    if os.path.exists(output_path) and not args.force:
        resp = input(f"Output file '{output_path}' exists. Overwrite? [y/N] ").strip().lower()
        if resp not in ("y", "yes"):
            print("Aborted.")
            sys.exit(0)

    try:
        render_tables(args.input, output_path, config)
    except TableLayoutError as exc:
        logger.error("Table layout failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
