import io
import textwrap

import pytest
from PyPDF2 import PdfReader
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas


def build_pdf(*pages: str) -> bytes:
    """Build a PDF with one page per argument, text wrapped at 80 chars."""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=letter)
    for text in pages:
        c.setFont("Helvetica", 10)
        y = 740
        for line in textwrap.wrap(text, 80):
            c.drawString(50, y, line)
            y -= 14
        c.showPage()
    c.save()
    return buffer.getvalue()


def pdf_pages(data: bytes):
    """Return the extracted text of each page of a PDF buffer."""
    return [page.extract_text() or "" for page in PdfReader(io.BytesIO(data)).pages]


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def read_pages():
    return pdf_pages


@pytest.fixture
def output_dir(tmp_path, monkeypatch):
    """Redirect the app's notes output into a temp directory."""
    from tiernotes import main

    out = tmp_path / "processed_notes"
    monkeypatch.setattr(main.pipeline, "output_dir", str(out))
    return out
