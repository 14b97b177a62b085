"""
Extraction Strategies
=====================
Heuristic passes that turn free-form exam text into QuestionRecords.

Every strategy is a pure function of its input text: it returns the
records it could find (possibly none) and never raises for "not found".
The engine decides which strategy's output to keep.

Strategies, strictest first:
    - strict:         "1. stem  A. ..  B. ..  C. ..  D. .." with a windowed answer lookup
    - alternate:      "Question 1 / Q1" labels, options spanning several lines
    - block_split:    split on question delimiters, count option lines per block
    - sentence_scan:  "...?" sentences followed by A-D option lines
    - line_scan:      line-oriented state machine for generic dumps
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Optional

from .models import NO_OPTION_PROVIDED, OPTION_LABELS, QuestionRecord

logger = logging.getLogger(__name__)

DEFAULT_ANSWER_WINDOW = 500
DEFAULT_SENTENCE_WINDOW = 600

# ─── Shared Fragments ─────────────────────────────────────────────────────────

# Start of a numbered question, on a new line or inline (" 12. ").
_QUESTION_START = r"\s\d{1,4}[.)][ \t]"

# Start of an option label (" B." / "\nc)" / " (D)").
_OPTION_LABEL = r"\s\(?[A-Da-d][.):]"

_QUESTION_LABEL = r"\b(?i:question|q)[ \t]*[.:#]?[ \t]*\d{1,4}"

# Stems stop at the next question; option texts also stop at the next
# label, so every capture has a single place to end.
_STEM_CHAR = r"(?:(?!" + _QUESTION_START + r").)"
_OPTION_CHAR = r"(?:(?!" + _QUESTION_START + "|" + _OPTION_LABEL + r").)"
_LAST_OPTION_CHAR = r"(?:(?!" + _QUESTION_START + "|" + _OPTION_LABEL + r")[^\n])"

_NOT_QUESTION_LABEL = r"(?:(?!" + _QUESTION_LABEL + r").)"
_LABELED_OPTION_CHAR = r"(?:(?!" + _QUESTION_LABEL + "|" + _OPTION_LABEL + r").)"

# Option letter of an answer token: capitals anywhere, lower case only
# when nothing else follows on the line ("Answer: c").
_ANSWER_LETTER = (
    r"\(?(?P<letter>[A-D](?![A-Za-z])|[a-d](?=[ \t.,;)]*(?:\n|$)))"
)

# ─── Question Patterns ────────────────────────────────────────────────────────

# "12. Stem A. one B. two C. three D. four", inline or one part per line.
# Option A is the last "A." before "B.", so a stem may mention "vitamin A."
STRICT_QUESTION_PATTERN = re.compile(
    r"(?:^|(?<=\s))(?P<num>\d{1,4})[.)][ \t]+"
    r"(?P<stem>\S" + _STEM_CHAR + r"*?)\s+"
    r"[Aa][.)]\s*(?P<a>" + _OPTION_CHAR + r"+?)\s+"
    r"[Bb][.)]\s*(?P<b>" + _OPTION_CHAR + r"+?)\s+"
    r"[Cc][.)]\s*(?P<c>" + _OPTION_CHAR + r"+?)\s+"
    r"[Dd][.)]\s*(?P<d>" + _LAST_OPTION_CHAR + r"+?)"
    r"(?=[ \t]*(?:\n|$|(?i:answer|correct|explanation)\b)"
    r"|" + _QUESTION_START + "|" + _OPTION_LABEL + ")",
    re.DOTALL,
)

# "Question 12: Stem (A) one ... (D) four" with multi-line options
ALTERNATE_QUESTION_PATTERN = re.compile(
    r"\b(?i:question|q)[ \t]*[.:#]?[ \t]*(?P<num>\d{1,4})[ \t]*[.:)]?\s+"
    r"(?P<stem>\S" + _NOT_QUESTION_LABEL + r"*?)"
    r"\s+\(?[Aa][.):]\s*(?P<a>" + _LABELED_OPTION_CHAR + r"+?)"
    r"\s+\(?[Bb][.):]\s*(?P<b>" + _LABELED_OPTION_CHAR + r"+?)"
    r"\s+\(?[Cc][.):]\s*(?P<c>" + _LABELED_OPTION_CHAR + r"+?)"
    r"\s+\(?[Dd][.):]\s*(?P<d>" + _LABELED_OPTION_CHAR + r"+?)"
    r"\s*(?=" + _QUESTION_LABEL + r"|\b(?i:answer|correct|explanation)\b|\Z)",
    re.DOTALL,
)

# Block delimiters: "12." / "12)" / "(12)" / "Question 12:" at line start
BLOCK_SPLIT_PATTERN = re.compile(
    r"(?:^|\n)[ \t]*(?:\d{1,4}[.)](?=\s)|\(\d{1,4}\)|(?i:question)[ \t]+\d{1,4}[ \t]*[:.])"
)

# "A. text", "A) text", "(A) text", "A: text" on its own line
OPTION_LINE_PATTERN = re.compile(
    r"^[ \t]*(?:\((?P<paren>[A-D])\)|(?P<letter>[A-D])[.):])[ \t]+(?P<text>\S.*)$",
    re.MULTILINE,
)

# "Answer: B", "Correct answer is D", "The correct option is C"
BLOCK_ANSWER_PATTERN = re.compile(
    r"\b(?i:answer|correct)[^\n]{0,30}?[:\s]\(?(?P<letter>[A-D])\b"
)

BLOCK_EXPLANATION_PATTERN = re.compile(
    r"\b(?i:explanation)[^:\n]*:\s*(?P<text>\S.*)", re.DOTALL
)

# Starts only after a sentence boundary so each run of text is scanned once
QUESTION_SENTENCE_PATTERN = re.compile(r"(?:^|(?<=[\n.!?]))[^\n.!?\w]*\w[^\n.!?]*\?")

# "12." / "Q3:" / "Question 3 -" prefixes left on a stem
STEM_PREFIX_PATTERN = re.compile(
    r"^\s*(?:(?i:question|q)[ \t]*\d{1,4}[ \t]*[.:)\-]?|\d{1,4}[.)])\s*"
)


# ─── Helpers ──────────────────────────────────────────────────────────────────


def letter_to_index(letter: str) -> int:
    """Map an option letter to its 0-based index (A=0 .. D=3)."""
    return OPTION_LABELS.index(letter.upper())


def clean_text(text: str) -> str:
    """Collapse whitespace runs and trim."""
    return " ".join(text.split())


def strip_stem_prefix(text: str) -> str:
    return STEM_PREFIX_PATTERN.sub("", text, count=1)


def pad_options(options: list[str], count: int = 4) -> list[str]:
    """Pad to ``count`` options with an explicit placeholder, never dropping any."""
    return options + [NO_OPTION_PROVIDED] * max(0, count - len(options))


def answer_pattern(
    num: Optional[str] = None,
    labels: str = "answer",
    require_number: bool = False,
) -> re.Pattern:
    """
    Build the "Answer [for] [question] [<num>] <letter>" token pattern.

    The question number is optional unless ``require_number`` is set,
    which is how a lookup over the whole document stays scoped.
    """
    number = ""
    if num:
        number = rf"{re.escape(num)}(?!\d)[ \t]*"
        if not require_number:
            number = f"(?:{number})?"
    return re.compile(
        rf"\b(?i:{labels})(?:[ \t]*(?i:for))?(?:[ \t]*(?i:question))?[ \t]*"
        rf"{number}[.:)\-]*[ \t]*(?:(?i:is)[ \t]+)?" + _ANSWER_LETTER
    )


def explanation_pattern(num: Optional[str] = None) -> re.Pattern:
    number = rf"(?:{re.escape(num)}(?!\d)[ \t]*)?" if num else ""
    return re.compile(
        rf"\b(?i:explanation)(?:[ \t]*(?i:for))?(?:[ \t]*(?i:question))?[ \t]*"
        rf"{number}[.:\-]*[ \t]*(?P<text>[^\n]+)"
    )


def find_answer(text: str, num: Optional[str] = None) -> Optional[int]:
    """Answer index from the first answer token in ``text``, if any."""
    match = answer_pattern(num).search(text)
    if match:
        return letter_to_index(match.group("letter"))
    return None


def find_explanation(text: str, num: Optional[str] = None) -> str:
    match = explanation_pattern(num).search(text)
    return clean_text(match.group("text")) if match else ""


def _trailing_windows(matches: list[re.Match], text: str, window: int) -> list[str]:
    """Text after each match, bounded by ``window`` and the next match."""
    windows = []
    for i, match in enumerate(matches):
        limit = match.end() + window
        if i + 1 < len(matches):
            limit = min(limit, matches[i + 1].start())
        windows.append(text[match.end():max(limit, match.end())])
    return windows


def _record(
    stem: str,
    options: list[str],
    answer: Optional[int],
    explanation: str = "",
) -> QuestionRecord:
    return QuestionRecord(
        text=clean_text(stem),
        options=[clean_text(o) for o in options],
        correct_answer_index=answer if answer is not None else 0,
        explanation=explanation,
        answer_detected=answer is not None,
    )


# ─── Strategy 1: Strict ───────────────────────────────────────────────────────


def extract_strict(
    text: str, answer_window: int = DEFAULT_ANSWER_WINDOW
) -> list[QuestionRecord]:
    """
    Numbered questions with exactly labeled options A-D.

    The answer and explanation are looked up only in the text that
    follows a question, up to ``answer_window`` characters and never past
    the start of the next question.
    """
    matches = list(STRICT_QUESTION_PATTERN.finditer(text))
    records = []

    for match, tail in zip(matches, _trailing_windows(matches, text, answer_window)):
        num = match.group("num")
        records.append(_record(
            match.group("stem"),
            [match.group(k) for k in "abcd"],
            find_answer(tail, num),
            find_explanation(tail, num),
        ))

    return records


# ─── Strategy 2: Alternate ────────────────────────────────────────────────────


def extract_alternate(
    text: str, answer_window: int = DEFAULT_ANSWER_WINDOW
) -> list[QuestionRecord]:
    """
    "Question N" / "QN" labeled questions whose parts may span lines.

    Answers are looked up after the question first; failing that, the
    whole document is searched for an answer carrying the question number.
    """
    matches = list(ALTERNATE_QUESTION_PATTERN.finditer(text))
    records = []

    for match, tail in zip(matches, _trailing_windows(matches, text, answer_window)):
        num = match.group("num")
        answer = find_answer(tail, num)
        if answer is None:
            scoped = answer_pattern(num, labels="answer|correct", require_number=True)
            found = scoped.search(text)
            if found:
                answer = letter_to_index(found.group("letter"))

        records.append(_record(
            match.group("stem"),
            [match.group(k) for k in "abcd"],
            answer,
            find_explanation(tail, num),
        ))

    return records


# ─── Strategy 3: Block Split ──────────────────────────────────────────────────


def extract_block_split(
    text: str,
    min_options: int = 3,
    min_stem_length: int = 10,
    min_block_length: int = 20,
    pad: bool = True,
) -> list[QuestionRecord]:
    """
    Split on question delimiters and keep blocks with enough option lines.

    The stem is everything before the first option line. At most four
    options are kept; with ``pad`` missing ones are filled with a
    placeholder so every record has four.
    """
    records = []

    for block in BLOCK_SPLIT_PATTERN.split(text):
        if len(block.strip()) < min_block_length:
            continue

        option_matches = list(OPTION_LINE_PATTERN.finditer(block))
        if len(option_matches) < min_options:
            continue

        stem = clean_text(block[:option_matches[0].start()])
        if len(stem) <= min_stem_length:
            logger.debug(f"Skipping block with short stem: {stem!r}")
            continue

        options = [m.group("text") for m in option_matches[:4]]
        if pad:
            options = pad_options(options)

        answer = None
        answer_match = BLOCK_ANSWER_PATTERN.search(block, option_matches[0].start())
        if answer_match:
            answer = letter_to_index(answer_match.group("letter"))

        explanation_match = BLOCK_EXPLANATION_PATTERN.search(block)
        explanation = clean_text(explanation_match.group("text")) if explanation_match else ""

        records.append(_record(stem, options, answer, explanation))

    return records


# ─── Strategy 4: Sentence Scan ────────────────────────────────────────────────


def _option_in(window: str, letter: str) -> Optional[str]:
    match = re.search(
        rf"^[ \t]*\(?{letter}[.):][ \t]*(\S[^\n]*)$", window, re.MULTILINE
    )
    return match.group(1) if match else None


def _is_option_line_at(text: str, pos: int) -> bool:
    line_start = text.rfind("\n", 0, pos) + 1
    return bool(re.match(r"[ \t]*\(?[A-D][.):]", text[line_start:]))


def extract_sentence_scan(
    text: str,
    window: int = DEFAULT_SENTENCE_WINDOW,
    min_stem_length: int = 10,
) -> list[QuestionRecord]:
    """
    Questions found by their "?" sentence, with options A-D on the lines
    that follow it. All four options must be present.
    """
    sentences = [
        m for m in QUESTION_SENTENCE_PATTERN.finditer(text)
        if not _is_option_line_at(text, m.start())
    ]
    records = []

    for match, tail in zip(sentences, _trailing_windows(sentences, text, window)):
        stem = clean_text(strip_stem_prefix(match.group(0)))
        if len(stem) < min_stem_length:
            continue

        options = [_option_in(tail, letter) for letter in OPTION_LABELS]
        if any(option is None for option in options):
            continue

        answer = None
        answer_match = BLOCK_ANSWER_PATTERN.search(tail)
        if answer_match:
            answer = letter_to_index(answer_match.group("letter"))

        records.append(_record(stem, options, answer, find_explanation(tail)))

    return records


# ─── Strategy 5: Line Scan ────────────────────────────────────────────────────


LINE_OPTION_PATTERN = re.compile(r"^\(?([A-D])[.)]\s+(.+)$")
LINE_ANSWER_PATTERN = re.compile(
    r"^(?i:answer|correct)\b[^\n]*?\b(?P<letter>[A-D])\b"
)


class LineScanState(Enum):
    """Line scanner states."""
    SEEKING_QUESTION = "SEEKING_QUESTION"
    QUESTION_BODY = "QUESTION_BODY"
    OPTION = "OPTION"


class LineScanParser:
    """
    Line-oriented state machine for generic question dumps.

    A line ending in "?" or longer than ``long_line`` characters opens a
    candidate question; lettered lines become its options. The candidate
    is closed once it has ``min_options`` options and a non-option line
    arrives, or when the input ends.
    """

    def __init__(self, min_options: int = 2, long_line: int = 50):
        self.min_options = min_options
        self.long_line = long_line
        self.reset()

    def reset(self):
        self.state = LineScanState.SEEKING_QUESTION
        self.stem_lines: list[str] = []
        self.options: dict[int, str] = {}
        self.last_option: Optional[int] = None
        self.answer: Optional[int] = None
        self.records: list[QuestionRecord] = []

    def parse(self, text: str) -> list[QuestionRecord]:
        self.reset()
        for line in text.splitlines():
            self._process_line(line.strip())
        self.finalize()
        return self.records

    def finalize(self):
        if self.state == LineScanState.OPTION and len(self.options) >= self.min_options:
            self._close_candidate()

    def _is_question_line(self, line: str) -> bool:
        return line.endswith("?") or len(line) > self.long_line

    def _process_line(self, line: str):
        if not line:
            return

        option_match = LINE_OPTION_PATTERN.match(line)

        if option_match and self.state != LineScanState.SEEKING_QUESTION:
            index = letter_to_index(option_match.group(1))
            self.options[index] = option_match.group(2)
            self.last_option = index
            self.state = LineScanState.OPTION
            return

        if self.state == LineScanState.OPTION and len(self.options) >= self.min_options:
            answer_match = LINE_ANSWER_PATTERN.match(line)
            if answer_match:
                self.answer = letter_to_index(answer_match.group("letter"))
            self._close_candidate()
            if answer_match:
                return

        if self.state == LineScanState.QUESTION_BODY:
            # A question after a finished sentence replaces the intro text;
            # otherwise the line continues a wrapped stem.
            if line.endswith("?") and self.stem_lines[-1].endswith((".", "!", "?", ":")):
                self._start_candidate(line)
            else:
                self.stem_lines.append(line)
            return

        if self._is_question_line(line):
            self._start_candidate(line)
            return

        if self.state == LineScanState.OPTION and self.last_option is not None:
            # Continuation of a wrapped option
            self.options[self.last_option] += " " + line

    def _start_candidate(self, line: str):
        if self.state == LineScanState.OPTION:
            logger.debug(f"Dropping candidate with {len(self.options)} option(s)")
        self.state = LineScanState.QUESTION_BODY
        self.stem_lines = [strip_stem_prefix(line)]
        self.options = {}
        self.last_option = None
        self.answer = None

    def _close_candidate(self):
        size = max(self.options) + 1
        options = [self.options.get(i, NO_OPTION_PROVIDED) for i in range(size)]
        self.records.append(_record(" ".join(self.stem_lines), options, self.answer))
        self.state = LineScanState.SEEKING_QUESTION
        self.stem_lines = []
        self.options = {}
        self.last_option = None
        self.answer = None


def extract_line_scan(
    text: str, min_options: int = 2, long_line: int = 50
) -> list[QuestionRecord]:
    return LineScanParser(min_options=min_options, long_line=long_line).parse(text)
