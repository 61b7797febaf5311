"""Builders package - PDF output for laid-out tables."""
from .pdf_builder import FitzTextMetrics, PdfRenderer, page_number_footer

__all__ = ["FitzTextMetrics", "PdfRenderer", "page_number_footer"]
