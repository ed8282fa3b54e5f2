"""PDF text extraction service using PyMuPDF."""

import logging
import re
from dataclasses import dataclass

import pymupdf  # PyMuPDF

logger = logging.getLogger(__name__)

# Control characters that Postgres TEXT/VARCHAR cannot store (NUL, etc.)
_ILLEGAL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


@dataclass(frozen=True)
class ExtractionResult:
    text: str
    page_count: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class PDFProcessor:
    """Turns uploaded PDF bytes into plain text for material ingestion."""

    @staticmethod
    async def validate_pdf(pdf_bytes: bytes) -> bool:
        """True when the bytes open as a PDF with at least one page."""
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:
                return len(doc) > 0
        except Exception:
            return False

    @staticmethod
    async def extract_text(pdf_bytes: bytes) -> ExtractionResult:
        """
        Extract text from all pages, separated by blank lines.

        Extraction errors are reported on the result rather than raised.

        Example:
            >>> result = await pdf_processor.extract_text(pdf_data)
            >>> if result.ok:
            ...     print(f"Extracted {len(result.text)} chars from {result.page_count} pages")
        """
        try:
            with pymupdf.open(stream=pdf_bytes, filetype="pdf") as doc:
                pages = [page.get_text() for page in doc]
        except Exception as e:
            logger.warning("PDF text extraction failed: %s", e)
            return ExtractionResult(text="", page_count=0, error=str(e))

        # Strip NUL bytes and other control chars that Postgres rejects
        text = _ILLEGAL_CHARS.sub("", "\n\n".join(pages))
        return ExtractionResult(text=text, page_count=len(pages))


# Singleton instance
pdf_processor = PDFProcessor()
