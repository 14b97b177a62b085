"""
Exam Export
===========
Writes extracted questions back out as JSON or as a printable PDF
(rendered with PyMuPDF).
"""

from __future__ import annotations

import json
import logging
import textwrap
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

import fitz  # PyMuPDF

from .models import OPTION_LABELS, QuestionRecord

logger = logging.getLogger(__name__)

# A4 portrait, points
PAGE_WIDTH = 595
PAGE_HEIGHT = 842
MARGIN = 56
LINE_HEIGHT = 16
WRAP_WIDTH = 90


def derive_exam_title(filename: str) -> str:
    """Human title from a file name: "aws-saa.vce" -> "aws-saa - Exam Questions"."""
    stem = Path(filename).stem if filename else ""
    return f"{stem} - Exam Questions" if stem else "Exam Questions"


def export_json(
    records: Sequence[QuestionRecord],
    title: str,
    filepath: Optional[str] = None,
) -> str:
    """
    Serialize records as ``{"title": ..., "questions": [...]}`` using the
    camelCase field names, so the file can be loaded again.
    """
    data = {
        "title": title,
        "questions": [
            r.model_dump(by_alias=True, exclude={"correct_letter"}) for r in records
        ],
    }
    output = json.dumps(data, indent=2, ensure_ascii=False)

    if filepath:
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(output)
        logger.info(f"Saved JSON export: {filepath}")

    return output


class _PageWriter:
    """Flows wrapped lines down the page, starting new pages as needed."""

    def __init__(self, doc: fitz.Document):
        self.doc = doc
        self.page = None
        self.y = 0.0
        self.new_page()

    def new_page(self):
        self.page = self.doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        self.y = MARGIN

    def ensure_space(self, needed: float):
        if self.y + needed > PAGE_HEIGHT - MARGIN:
            self.new_page()

    def write(
        self,
        text: str,
        fontsize: float = 11,
        fontname: str = "helv",
        indent: float = 0,
        color: tuple[float, float, float] = (0, 0, 0),
        gap: float = 0,
    ):
        for line in textwrap.wrap(text, WRAP_WIDTH) or [""]:
            self.ensure_space(LINE_HEIGHT)
            self.page.insert_text(
                (MARGIN + indent, self.y),
                line,
                fontsize=fontsize,
                fontname=fontname,
                color=color,
            )
            self.y += LINE_HEIGHT
        self.y += gap


def render_pdf(records: Sequence[QuestionRecord], title: str = "Exam Questions") -> bytes:
    """
    Render questions, answers and explanations to PDF bytes.

    Raises:
        ValueError: no records were given.
    """
    if not records:
        raise ValueError("No valid questions provided for PDF generation")

    doc = fitz.open()
    doc.set_metadata({
        "title": title,
        "subject": "Exam Questions",
        "creator": "examparser",
        "author": "examparser",
    })

    writer = _PageWriter(doc)
    writer.write(title, fontsize=18, fontname="hebo")
    writer.write(f"Generated on: {date.today().isoformat()}", fontsize=10, gap=LINE_HEIGHT)

    for index, record in enumerate(records):
        writer.ensure_space(LINE_HEIGHT * 4)
        writer.write(f"Question {index + 1}:", fontname="hebo")
        writer.write(record.text or "Question text not available", gap=4)

        for opt_index, option in enumerate(record.options):
            label = OPTION_LABELS[opt_index] if opt_index < len(OPTION_LABELS) else str(opt_index + 1)
            writer.write(f"{label}. {option or 'Option not available'}", indent=12)

        writer.write(f"Answer: {record.correct_letter}", fontname="hebo")

        if record.user_answer is not None and 0 <= record.user_answer < len(OPTION_LABELS):
            writer.write(f"Your answer: {OPTION_LABELS[record.user_answer]}")
            if record.is_correct:
                writer.write("Correct", color=(0, 0.5, 0))
            else:
                writer.write("Incorrect", color=(1, 0, 0))

        if record.explanation:
            writer.write("Explanation:", fontname="heit")
            writer.write(record.explanation)

        writer.y += LINE_HEIGHT

    data = doc.tobytes()
    doc.close()
    logger.info(f"Rendered {len(records)} questions to PDF ({len(data)} bytes)")
    return data


def save_pdf(records: Sequence[QuestionRecord], title: str, filepath: str) -> str:
    """Render and write a PDF; returns the path written."""
    data = render_pdf(records, title)
    path = Path(filepath)
    if path.suffix.lower() != ".pdf":
        path = path.with_suffix(".pdf")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info(f"Saved PDF export: {path}")
    return str(path)
