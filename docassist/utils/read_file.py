from typing import Callable, Dict

from docassist.utils.file_processing.docx import extract_docx_text
from docassist.utils.file_processing.pdf import extract_pdf_text
from docassist.utils.logger import get_logger

logger = get_logger(__name__)

MIME_TEXT = "text/plain"
MIME_CSV = "text/csv"
MIME_PDF = "application/pdf"
MIME_DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

ALLOWED_MIME_TYPES = frozenset({MIME_TEXT, MIME_CSV, MIME_PDF, MIME_DOCX})

NO_TEXT_SENTINEL = "No text content could be extracted from this document."


def _decode_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


_EXTRACTORS: Dict[str, Callable[[bytes], str]] = {
    MIME_TEXT: _decode_text,
    MIME_CSV: _decode_text,
    MIME_PDF: extract_pdf_text,
    MIME_DOCX: extract_docx_text,
}


def extract_text(data: bytes, mime_type: str) -> str:
    """
    Best-effort text extraction by declared MIME type.

    Never raises: unsupported types and extractor failures degrade to the
    no-text sentinel so ingestion can always reach a processed state.
    """
    extractor = _EXTRACTORS.get(mime_type)
    text = ""
    if extractor is None:
        logger.warning(f"No extractor for MIME type '{mime_type}'")
    else:
        try:
            text = extractor(data)
        except Exception as e:
            logger.warning(f"Text extraction failed for {mime_type}: {e}")
            text = ""

    if not text.strip():
        return NO_TEXT_SENTINEL
    return text
