import io
import logging
from typing import List

from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from .errors import RenderError

log = logging.getLogger(__name__)

PAGE_SIZE = (612, 792)
MARGIN = 50
BULLET_INDENT = 20
FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
FONT_SIZE = 10
TITLE_SIZE = 14
LINE_HEIGHT = 14
POINT_SPACING = LINE_HEIGHT * 1.5
BANNER_HEIGHT = 60
BANNER_COLOR = (0.15, 0.25, 0.45)
BULLET = "•"

# a new page starts once the cursor drops below this
BOTTOM_THRESHOLD = MARGIN + 20


def wrap_words(text: str, max_width: float, font: str = FONT, size: int = FONT_SIZE) -> List[str]:
    """
    Greedily wrap `text` into lines no wider than `max_width`.

    A single word wider than the limit is placed on a line of its own.
    """
    lines = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and stringWidth(candidate, font, size) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def split_points(content: str) -> List[str]:
    return [p.strip() for p in (content or "").split("\n\n") if p.strip()]


class NotesRenderer:
    """Lays out bulleted notes under a colored title banner."""

    def __init__(self, title: str):
        self.title = title
        self.width, self.height = PAGE_SIZE
        self.text_width = self.width - MARGIN * 2 - BULLET_INDENT
        self.buffer = io.BytesIO()
        self.c = canvas.Canvas(self.buffer, pagesize=PAGE_SIZE)
        self.y = 0.0
        self.pages = 1

    def render(self, content: str) -> bytes:
        try:
            return self._render(content)
        except Exception as e:
            raise RenderError(f"Could not render {self.title!r}: {e}") from e

    def _render(self, content: str) -> bytes:
        self._draw_banner()
        self.y = self.height - 90

        for point in split_points(content):
            for i, line in enumerate(wrap_words(point, self.text_width)):
                self._ensure_room()
                if i == 0:
                    self.c.setFont(FONT_BOLD, FONT_SIZE)
                    self.c.drawString(MARGIN, self.y, BULLET)
                self.c.setFont(FONT, FONT_SIZE)
                self.c.drawString(MARGIN + BULLET_INDENT, self.y, line)
                self.y -= LINE_HEIGHT
            self.y -= POINT_SPACING - LINE_HEIGHT

        self.c.save()
        log.debug("Rendered %r on %d page(s)", self.title, self.pages)
        return self.buffer.getvalue()

    def _draw_banner(self):
        self.c.setFillColorRGB(*BANNER_COLOR)
        self.c.rect(0, self.height - BANNER_HEIGHT, self.width, BANNER_HEIGHT, stroke=0, fill=1)
        self.c.setFillColorRGB(1, 1, 1)
        self.c.setFont(FONT_BOLD, TITLE_SIZE)
        self.c.drawString(MARGIN, self.height - 38, self.title)
        self.c.setFillColorRGB(0, 0, 0)

    def _ensure_room(self):
        if self.y < BOTTOM_THRESHOLD:
            self.c.showPage()
            self.pages += 1
            self.y = self.height - MARGIN


def render_error_pdf(message: str) -> bytes:
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=PAGE_SIZE)
    c.setFont(FONT, FONT_SIZE)
    c.drawString(MARGIN, PAGE_SIZE[1] - MARGIN, message[:100])
    c.save()
    return buffer.getvalue()


def render_notes_pdf(title: str, content: str) -> bytes:
    """
    Render `content` as a paginated PDF. Never raises: a layout failure
    yields a one-page document describing the error.
    """
    try:
        return NotesRenderer(title).render(content)
    except RenderError as e:
        log.exception("Rendering failed, returning error page")
        return render_error_pdf(f"Unable to render notes: {e}")
    except Exception as e:
        log.exception("Could not set up renderer, returning error page")
        return render_error_pdf(f"Unable to render notes: {e}")
