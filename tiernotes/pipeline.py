import base64
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from .classifier import TIERS, TextClassifier, TieredText
from .renderer import render_notes_pdf
from .utils import read_pdf, sanitize_text

log = logging.getLogger(__name__)

TITLES = {
    "easy": "CORE CONCEPTS",
    "medium": "DETAILED PROCESSES",
    "hard": "FULL THEORETICAL ANALYSIS",
}


@dataclass(frozen=True)
class NotesResult:
    """Base64-encoded PDFs for each tier plus where copies were written."""

    easy: str
    medium: str
    hard: str
    output_dir: str


def build_cumulative(tiers: TieredText) -> TieredText:
    """Make each tier include every easier tier before it."""
    return TieredText(
        easy=tiers.easy,
        medium=f"{tiers.easy}\n\n{tiers.medium}",
        hard=f"{tiers.easy}\n\n{tiers.medium}\n\n{tiers.hard}",
    )


class NotesPipeline:
    """
    Turns an uploaded lecture PDF into easy/medium/hard note PDFs.

    One instance is built at startup and shared; all per-request state
    lives inside `process`. The output directory is shared between
    requests, so concurrent uploads overwrite each other's files.
    """

    def __init__(self, classifier: TextClassifier, output_dir: str = "processed_notes", max_pages: int = 15):
        self.classifier = classifier
        self.output_dir = output_dir
        self.max_pages = max_pages

    def process(self, file_bytes: bytes) -> NotesResult:
        raw_text = read_pdf(file_bytes, max_pages=self.max_pages)
        clean_text = sanitize_text(raw_text)
        log.info("Extracted %d characters of clean text", len(clean_text))

        cumulative = build_cumulative(self.classifier.classify(clean_text)).as_dict()

        with ThreadPoolExecutor(max_workers=len(TIERS)) as executor:
            futures = {
                tier: executor.submit(render_notes_pdf, TITLES[tier], cumulative[tier])
                for tier in TIERS
            }
            pdfs = {tier: future.result() for tier, future in futures.items()}

        output_dir = self.save(pdfs)
        return NotesResult(
            output_dir=output_dir,
            **{tier: base64.b64encode(pdf).decode("ascii") for tier, pdf in pdfs.items()},
        )

    def save(self, pdfs: dict) -> str:
        output_dir = os.path.abspath(self.output_dir)
        os.makedirs(output_dir, exist_ok=True)
        for tier, pdf in pdfs.items():
            with open(os.path.join(output_dir, f"{tier}.pdf"), "wb") as f:
                f.write(pdf)
        log.info("Wrote %d notes PDF(s) to %s", len(pdfs), output_dir)
        return output_dir
