"""
Extraction Engine
=================
Main orchestrator that turns a document into an ExtractionResult.

Usage:
    engine = ExtractionEngine(config)
    result = engine.load_file("path/to/exam.pdf")
    # result.questions is never empty

Architecture:
    Document → format dispatch ─┬─ %PDF bytes → page reader → strategy cascade
                                ├─ binary signature → placeholder
                                ├─ JSON → structured adapter
                                └─ text → strategy cascade → placeholder on failure
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from .errors import StructureNotRecognizedError, UnreadableSourceError
from .export import derive_exam_title
from .models import DocumentSource, ExtractionResult, InputKind, QuestionRecord, TextFragment
from .pdf_reader import PDFReader
from .strategies import (
    extract_alternate,
    extract_block_split,
    extract_line_scan,
    extract_sentence_scan,
    extract_strict,
)
from .structured import parse_json_text, parse_structured
from .text_normalizer import join_pages, pages_to_texts

logger = logging.getLogger(__name__)

# OLE2 compound file, ZIP container
DEFAULT_BINARY_SIGNATURES = (b"\xd0\xcf\x11\xe0", b"PK\x03\x04")
PDF_SIGNATURE = b"%PDF"

SELF_DESCRIBING_SUFFIXES = {".json", ".vce"}
PLAIN_TEXT_SUFFIXES = {".txt", ".text", ".md"}

PLACEHOLDER_STRATEGY = "placeholder"
BINARY_PLACEHOLDER_STRATEGY = "binary-placeholder"
STRUCTURED_STRATEGY = "structured"


def parse_failure_placeholder() -> QuestionRecord:
    """Diagnostic record returned when no strategy finds a question."""
    return QuestionRecord(
        text="Could not parse questions from this document. Please check the format.",
        options=[
            "The document might have a non-standard format",
            "Text extraction might be incomplete",
            "Try a different document or format",
            "Contact support for assistance",
        ],
        correct_answer_index=0,
        explanation="Question parsing failed. Please check the log for more details.",
    )


def binary_format_placeholder() -> QuestionRecord:
    """Record returned for binary exam formats that cannot be read."""
    return QuestionRecord(
        text="This file uses a binary exam format that is not supported.",
        options=[
            "Export the exam as JSON or text",
            "Convert the exam to PDF",
            "Try a different file",
            "Contact support for assistance",
        ],
        correct_answer_index=0,
        explanation="Binary exam files are detected by their signature but cannot be parsed.",
    )


@dataclass
class ExtractionConfig:
    """Configuration for the extraction engine."""

    # Layout reconstruction
    line_break_threshold: float = 5.0

    # Strategy windows (characters)
    answer_window: int = 500
    sentence_window: int = 600

    # Fallback policy: fall through while result count <= threshold
    fallback_threshold: int = 0
    lenient_threshold: int = 1
    per_page_retry: bool = True

    # Lenient strategy gates
    lenient_min_options: int = 3
    lenient_min_stem_length: int = 10
    lenient_min_block_length: int = 20
    pad_options: bool = True
    line_scan_min_options: int = 2

    # Format dispatch
    binary_signatures: tuple[bytes, ...] = field(
        default_factory=lambda: DEFAULT_BINARY_SIGNATURES
    )
    encoding: str = "utf-8-sig"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


class ExtractionEngine:
    """
    Runs the strategy cascade and the format dispatch.

    Extraction itself is deterministic and keeps no state between calls;
    the engine only holds its configuration.
    """

    def __init__(self, config: Optional[ExtractionConfig] = None):
        self.config = config or ExtractionConfig()
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        package_logger = logging.getLogger("examparser")
        package_logger.setLevel(log_level)

        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Console handler
        if not package_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(formatter)
            package_logger.addHandler(console)

        # File handler
        if self.config.log_file:
            log_dir = Path(self.config.log_file).parent
            log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self.config.log_file, encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

    # ─── Strategy Cascade ─────────────────────────────────────────────────

    def lenient_cascade(self, text: str) -> tuple[str, list[QuestionRecord]]:
        """Block split, then sentence scan, then line scan; first hit wins."""
        cfg = self.config
        attempts = (
            ("block_split", lambda: extract_block_split(
                text,
                min_options=cfg.lenient_min_options,
                min_stem_length=cfg.lenient_min_stem_length,
                min_block_length=cfg.lenient_min_block_length,
                pad=cfg.pad_options,
            )),
            ("sentence_scan", lambda: extract_sentence_scan(
                text, window=cfg.sentence_window,
                min_stem_length=cfg.lenient_min_stem_length,
            )),
            ("line_scan", lambda: extract_line_scan(
                text, min_options=cfg.line_scan_min_options,
            )),
        )

        for name, run in attempts:
            records = run()
            logger.debug(f"Lenient strategy {name} found {len(records)} questions")
            if records:
                return name, records
        return "lenient", []

    def run_cascade(
        self,
        text: str,
        page_texts: Optional[Sequence[str]] = None,
    ) -> tuple[str, list[QuestionRecord]]:
        """
        Run the strategies in priority order and keep the best result.

        A later strategy replaces the current result only when it finds
        strictly more records.
        """
        cfg = self.config

        strategy = "strict"
        records = extract_strict(text, answer_window=cfg.answer_window)
        logger.info(f"Strategy strict found {len(records)} questions")

        if len(records) <= cfg.fallback_threshold:
            logger.info("Standard parsing failed, trying alternate pattern")
            alternate = extract_alternate(text, answer_window=cfg.answer_window)
            if len(alternate) > len(records):
                strategy, records = "alternate", alternate

        if len(records) <= cfg.fallback_threshold and page_texts and cfg.per_page_retry:
            logger.info("Trying page-by-page parsing")
            per_page: list[QuestionRecord] = []
            for page_text in page_texts:
                per_page.extend(extract_strict(page_text, answer_window=cfg.answer_window))
            if len(per_page) > len(records):
                strategy, records = "strict_per_page", per_page

        if len(records) <= cfg.lenient_threshold:
            logger.info("Trying lenient parsing")
            name, lenient = self.lenient_cascade(text)
            if len(lenient) > len(records):
                strategy, records = name, lenient

        return strategy, records

    def extract_text(
        self,
        text: str,
        page_texts: Optional[Sequence[str]] = None,
        filename: str = "",
    ) -> ExtractionResult:
        """Extract questions from text; falls back to a placeholder record."""
        start_time = time.time()
        strategy, records = self.run_cascade(text, page_texts)

        if not records:
            logger.warning("All parsing strategies failed, returning placeholder question")
            logger.debug(f"Sample of extracted text: {text[:500]!r}")
            return self._result([parse_failure_placeholder()], PLACEHOLDER_STRATEGY, filename)

        elapsed = time.time() - start_time
        logger.info(
            f"Found {len(records)} questions with strategy {strategy} "
            f"in {elapsed:.2f}s"
        )
        return self._result(records, strategy, filename)

    def extract_pages(
        self,
        pages: Sequence[Sequence[TextFragment]],
        filename: str = "",
    ) -> ExtractionResult:
        """Normalize positioned page fragments and extract questions."""
        page_texts = pages_to_texts(pages, self.config.line_break_threshold)
        return self.extract_text(join_pages(page_texts), page_texts, filename)

    # ─── Format Dispatch ──────────────────────────────────────────────────

    def is_binary(self, data: bytes) -> bool:
        return any(data.startswith(sig) for sig in self.config.binary_signatures)

    def decode(self, data: bytes) -> str:
        try:
            return data.decode(self.config.encoding)
        except UnicodeDecodeError as e:
            raise UnreadableSourceError(f"Failed to read file: {e}") from e

    def load(self, source: DocumentSource) -> ExtractionResult:
        """
        Dispatch a document to the PDF reader, the structured adapter or
        the text cascade.

        Raises:
            UnreadableSourceError: bytes could not be decoded, or a PDF
                could not be opened.
            StructureNotRecognizedError: already-decoded structured data
                holds no questions (there is no raw text to fall back to).
        """
        data = source.data

        if isinstance(data, (dict, list)):
            records = parse_structured(data)
            return self._result(records, STRUCTURED_STRATEGY, source.filename)

        if isinstance(data, bytes):
            if data.startswith(PDF_SIGNATURE):
                pages = PDFReader().read_bytes(data, source.filename or None)
                return self.extract_pages(pages, source.filename)
            if self.is_binary(data):
                logger.warning(f"Binary exam format detected: {source.filename or '<memory>'}")
                return self._result(
                    [binary_format_placeholder()], BINARY_PLACEHOLDER_STRATEGY, source.filename
                )
            data = self.decode(data)

        if source.kind != InputKind.PLAIN_TEXT:
            try:
                records = parse_json_text(data)
                return self._result(records, STRUCTURED_STRATEGY, source.filename)
            except json.JSONDecodeError:
                logger.info("Not JSON, parsing as text")
            except StructureNotRecognizedError as e:
                logger.info(f"{e}, parsing as text")

        return self.extract_text(data, filename=source.filename)

    def load_file(self, path: str) -> ExtractionResult:
        """
        Read a document from disk and extract its questions.

        PDFs go through the page reader; everything else is read as bytes
        and dispatched by declared kind (derived from the file suffix).
        """
        path = os.path.abspath(path)
        filename = os.path.basename(path)
        suffix = Path(path).suffix.lower()
        logger.info(f"Starting to parse file: {filename}")

        if suffix == ".pdf":
            pages = PDFReader().read(path)
            return self.extract_pages(pages, filename)

        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise UnreadableSourceError(f"Failed to read file: {e}") from e

        if suffix in SELF_DESCRIBING_SUFFIXES:
            kind = InputKind.SELF_DESCRIBING
        elif suffix in PLAIN_TEXT_SUFFIXES:
            kind = InputKind.PLAIN_TEXT
        else:
            kind = InputKind.UNKNOWN_BINARY

        return self.load(DocumentSource(data=data, kind=kind, filename=filename))

    def _result(
        self, records: list[QuestionRecord], strategy: str, filename: str
    ) -> ExtractionResult:
        return ExtractionResult(
            questions=records,
            strategy=strategy,
            is_placeholder=strategy in (PLACEHOLDER_STRATEGY, BINARY_PLACEHOLDER_STRATEGY),
            title=derive_exam_title(filename) if filename else "",
        )


def extract_questions(text: str, config: Optional[ExtractionConfig] = None) -> list[QuestionRecord]:
    """Convenience wrapper: run the cascade over text and return the records."""
    return ExtractionEngine(config).extract_text(text).questions
