import io
import logging
import re

from PyPDF2 import PdfReader

from .errors import DocumentParseError

log = logging.getLogger(__name__)

_BULLETS = re.compile("[•◦▪●○·\ufe0e]")
_CURLY_QUOTES = re.compile("[‘’“”]")
_DASHES = re.compile("[—–]")
_NON_ASCII = re.compile("[^\x00-\x7f]")
_WHITESPACE = re.compile(r"\s+")


def read_pdf(file_bytes: bytes, max_pages: int = 15) -> str:
    """
    Extract plain text from the first `max_pages` pages of a PDF buffer.

    Page texts are joined with a single space. A page whose text cannot be
    extracted counts as empty; a buffer that is not a PDF at all raises
    DocumentParseError.
    """
    try:
        reader = PdfReader(io.BytesIO(file_bytes))
        page_count = min(len(reader.pages), max_pages)
    except Exception as e:
        raise DocumentParseError(f"Could not parse PDF: {e}") from e

    text = []
    for number in range(1, page_count + 1):
        try:
            text.append(reader.pages[number - 1].extract_text() or "")
        except Exception as e:
            log.warning("Text extraction failed on page %d: %s", number, e)
            text.append("")
    log.debug("Extracted text from %d page(s)", len(text))
    return " ".join(text)


def sanitize_text(text: str) -> str:
    """Normalize extracted text to plain single-spaced ASCII."""
    t = _BULLETS.sub("", text or "")
    t = _CURLY_QUOTES.sub('"', t)
    t = _DASHES.sub("-", t)
    t = _NON_ASCII.sub("", t)
    t = _WHITESPACE.sub(" ", t)
    return t.strip()
