"""
PDF Reader
==========
Reads page text from PDF files using PyMuPDF (fitz).
Each page becomes an ordered list of positioned TextFragments that the
text normalizer turns back into lines.
"""

from __future__ import annotations

import logging
from typing import Optional

import fitz  # PyMuPDF

from .errors import UnreadableSourceError
from .models import TextFragment

logger = logging.getLogger(__name__)


class PDFReader:
    """
    Extracts positioned text spans from every page of a PDF.

    Spans are returned in content-stream order with their baseline
    coordinate; images and drawings are ignored.
    """

    def read(self, pdf_path: str) -> list[list[TextFragment]]:
        """Read fragments page by page from a PDF on disk."""
        try:
            doc = fitz.open(pdf_path)
        except Exception as e:
            raise UnreadableSourceError(f"Failed to parse PDF: {e}") from e
        return self._read_document(doc, pdf_path)

    def read_bytes(
        self, data: bytes, name: Optional[str] = None
    ) -> list[list[TextFragment]]:
        """Read fragments page by page from an in-memory PDF."""
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise UnreadableSourceError(f"Failed to parse PDF: {e}") from e
        return self._read_document(doc, name or "<memory>")

    def get_page_count(self, pdf_path: str) -> int:
        try:
            with fitz.open(pdf_path) as doc:
                return doc.page_count
        except Exception as e:
            raise UnreadableSourceError(f"Failed to parse PDF: {e}") from e

    def _read_document(self, doc, label: str) -> list[list[TextFragment]]:
        pages: list[list[TextFragment]] = []
        with doc:
            logger.info(f"PDF {label} has {doc.page_count} pages")
            try:
                for page in doc:
                    pages.append(self._read_page(page))
            except Exception as e:
                raise UnreadableSourceError(f"Failed to parse PDF: {e}") from e

        logger.info("Text extraction complete")
        return pages

    def _read_page(self, page: fitz.Page) -> list[TextFragment]:
        fragments: list[TextFragment] = []
        page_dict = page.get_text("dict", flags=fitz.TEXT_PRESERVE_WHITESPACE)

        for block in page_dict.get("blocks", []):
            if block.get("type") != 0:  # Text only
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    text = span.get("text", "")
                    if not text:
                        continue
                    origin = span.get("origin") or (0.0, span["bbox"][3])
                    fragments.append(TextFragment(text=text, y=origin[1]))

        return fragments
