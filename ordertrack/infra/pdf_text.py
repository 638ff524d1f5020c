"""PDF text extraction with PyMuPDF.

Turns an uploaded proof-of-receipt PDF into the raw text consumed by
the order text parser.
"""

from dataclasses import dataclass

import fitz  # PyMuPDF

from ordertrack.infra.logging import get_logger

logger = get_logger(__name__)

PDF_SIGNATURE = b"%PDF"


class PdfReadError(Exception):
    """Raised when an upload is not a readable PDF document."""


@dataclass(frozen=True)
class ExtractedPdf:
    """Text of a PDF document plus its page count."""

    text: str
    page_count: int


def has_pdf_signature(data: bytes) -> bool:
    """Check the magic bytes of an upload."""
    return data[:4] == PDF_SIGNATURE


def extract_pdf_text(data: bytes) -> ExtractedPdf:
    """Extract the text of every page, pages separated by a newline.

    Args:
        data: Raw PDF bytes

    Returns:
        ExtractedPdf with the concatenated text and the page count

    Raises:
        PdfReadError: If the bytes are not a PDF or cannot be opened
    """
    if not has_pdf_signature(data):
        raise PdfReadError("Fichier invalide (signature PDF absente)")

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise PdfReadError(f"Lecture PDF impossible: {e}") from e

    try:
        page_count = int(doc.page_count or 0)
        pages = [doc.load_page(i).get_text("text") for i in range(page_count)]
    finally:
        doc.close()

    text = "\n".join(pages)
    logger.debug("PDF text extracted", page_count=page_count, text_length=len(text))
    return ExtractedPdf(text=text, page_count=page_count)
