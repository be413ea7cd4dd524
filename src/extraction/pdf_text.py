# src/extraction/pdf_text.py

import io
import logging

from pypdf import PdfReader

from src.extraction.errors import TextExtractionError

logger = logging.getLogger(__name__)


def extract_pdf_text(pdf_bytes: bytes) -> str:
    """
    Returns the embedded text of a PDF, one page after another.

    Scanned PDFs without a text layer yield an empty string; there is no
    OCR fallback.
    """
    logger.info("Extracting text from PDF...")
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as e:
        # Besides PyPdfError, pypdf raises NotImplementedError for an unknown
        # /Filter and struct.error or TypeError on malformed files.
        logger.error("PDF text extraction failed (%s): %s", type(e).__name__, e)
        raise TextExtractionError(f"Unable to read PDF: {e}") from e

    text = "\n".join(pages)
    logger.info("Extracted text: %s ...", text[:500])
    return text
