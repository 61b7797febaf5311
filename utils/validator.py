"""Output validation module.

Validates generated PDF files for structural integrity and, optionally,
against the number of pages the layout run produced.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"


class OutputValidator:
    """Validates PDF output files."""

    def validate(
        self,
        pdf_path: str,
        expected_pages: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Validate a PDF file and return a detailed report.

        Args:
            pdf_path: Path to the PDF file to validate.
            expected_pages: Page count the renderer reported, if known.

        Returns:
            A validation-report dict with the following keys:
                - ``valid`` (bool): Overall validation result.
                - ``file_exists`` (bool): Whether the file exists.
                - ``file_size_kb`` (float): File size in kilobytes.
                - ``is_valid_pdf`` (bool): Opens cleanly with PyMuPDF.
                - ``page_count`` (int): Number of pages found.
                - ``issues`` (list[str]): Hard-failure descriptions.
                - ``warnings`` (list[str]): Non-fatal observations.
                - ``summary`` (str): Human-readable one-line summary.
        """
        issues: List[str] = []
        warnings: List[str] = []

        report: Dict[str, Any] = {
            "valid": False,
            "file_exists": False,
            "file_size_kb": 0.0,
            "is_valid_pdf": False,
            "page_count": 0,
            "issues": issues,
            "warnings": warnings,
            "summary": "",
        }

        # 1. File existence and size ----------------------------------------
        if not os.path.isfile(pdf_path):
            issues.append(f"File does not exist: {pdf_path}")
            report["summary"] = "Validation failed: file not found."
            return report

        report["file_exists"] = True
        file_size = os.path.getsize(pdf_path)
        report["file_size_kb"] = round(file_size / 1024, 2)

        if file_size == 0:
            issues.append("File is empty (0 bytes).")
            report["summary"] = "Validation failed: file is empty."
            return report

        # 2. Header ---------------------------------------------------------
        with open(pdf_path, "rb") as fh:
            header = fh.read(len(PDF_MAGIC))
        if header != PDF_MAGIC:
            issues.append("File does not start with a PDF header.")
            report["summary"] = "Validation failed: not a PDF."
            return report

        # 3. PyMuPDF opening test -------------------------------------------
        try:
            with fitz.open(pdf_path) as doc:
                page_count = doc.page_count
        except Exception as exc:
            issues.append(f"PyMuPDF could not open file: {exc}")
            report["summary"] = "Validation failed: unreadable PDF."
            return report

        report["is_valid_pdf"] = True
        report["page_count"] = page_count
        logger.debug("PDF opened successfully: %d page(s).", page_count)

        if page_count == 0:
            issues.append("Document has no pages.")

        # 4. Cross-reference with the layout run ----------------------------
        if expected_pages is not None and expected_pages != page_count:
            warnings.append(
                f"Page count mismatch: expected {expected_pages}, found {page_count}."
            )

        report["valid"] = not issues
        if report["valid"]:
            report["summary"] = (
                f"Valid PDF: {page_count} page(s), {report['file_size_kb']} KB"
                + (f", {len(warnings)} warning(s)." if warnings else ".")
            )
        else:
            report["summary"] = f"Validation failed: {'; '.join(issues)}"
        return report
