"""Infrastructure - Database, logging, PDF extraction."""

from ordertrack.infra.database import (
    DatabaseSession,
    close_db_engine,
    get_db_session,
    init_models,
)
from ordertrack.infra.logging import get_logger, setup_logging
from ordertrack.infra.pdf_text import ExtractedPdf, PdfReadError, extract_pdf_text

__all__ = [
    "get_db_session",
    "DatabaseSession",
    "close_db_engine",
    "init_models",
    "setup_logging",
    "get_logger",
    "ExtractedPdf",
    "PdfReadError",
    "extract_pdf_text",
]
