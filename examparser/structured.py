"""
Structured Document Adapter
===========================
Locates question records inside self-describing (JSON-like) exam data.

Lookup order:
    1. root["questions"]
    2. root["exam"]["questions"]
    3. recursive search for any node that looks like a question

Only this adapter may report "no questions found": an empty result here
means the input is not question data at all.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from functools import singledispatch
from typing import Any, Iterable, Optional

from .errors import StructureNotRecognizedError
from .models import OPTION_LABELS, QuestionRecord

logger = logging.getLogger(__name__)

# ─── Field Aliases (precedence order) ─────────────────────────────────────────

DIRECT_TEXT_KEYS = ("text", "question")
DIRECT_OPTION_KEYS = ("options", "answers")
DIRECT_ANSWER_KEYS = ("correctAnswer", "correct")

SEARCH_TEXT_KEYS = ("text", "question", "stem")
SEARCH_OPTION_KEYS = ("options", "answers", "choices")
SEARCH_ANSWER_KEYS = ("correctAnswer", "correct", "answer")

EXPLANATION_KEYS = ("explanation", "rationale")
OPTION_TEXT_KEYS = ("text", "value", "label")


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def first_present(node: Mapping, keys: Iterable[str], default: Any = None) -> Any:
    """Value of the first alias holding a non-empty value."""
    for key in keys:
        value = node.get(key)
        if not _is_empty(value):
            return value
    return default


def looks_like_question(node: Mapping) -> bool:
    """
    A node is question-shaped when it has question text, options, and
    an answer key (the key only needs to exist, its value may be empty).
    """
    has_text = first_present(node, SEARCH_TEXT_KEYS) is not None
    has_options = first_present(node, SEARCH_OPTION_KEYS) is not None
    has_answer = any(key in node for key in SEARCH_ANSWER_KEYS)
    return has_text and has_options and has_answer


# ─── Normalization ────────────────────────────────────────────────────────────


def _option_text(option: Any) -> str:
    if isinstance(option, Mapping):
        return str(first_present(option, OPTION_TEXT_KEYS, "")).strip()
    return str(option).strip()


def normalize_answer(value: Any, options: list[str]) -> Optional[int]:
    """
    Turn a stored answer into an option index.

    Accepts an integer index, a digit string, an option letter, or the
    text of one of the options. Returns None when nothing fits.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str):
        candidate = value.strip()
        if candidate.isdigit():
            return int(candidate)
        if len(candidate) == 1 and candidate.upper() in OPTION_LABELS:
            return OPTION_LABELS.index(candidate.upper())
        if candidate in options:
            return options.index(candidate)
    return None


def to_record(
    node: Mapping,
    text_keys: tuple[str, ...],
    option_keys: tuple[str, ...],
    answer_keys: tuple[str, ...],
) -> QuestionRecord:
    raw_options = first_present(node, option_keys, [])
    if isinstance(raw_options, Mapping):
        raw_options = list(raw_options.values())
    elif isinstance(raw_options, str) or not isinstance(raw_options, Sequence):
        raw_options = [raw_options]
    options = [_option_text(option) for option in raw_options]

    raw_answer = None
    for key in answer_keys:
        if node.get(key) is not None:
            raw_answer = node[key]
            break
    answer = normalize_answer(raw_answer, options)

    return QuestionRecord(
        text=str(first_present(node, text_keys, "")).strip(),
        options=options,
        correct_answer_index=answer if answer is not None else 0,
        explanation=str(first_present(node, EXPLANATION_KEYS, "")).strip(),
        answer_detected=answer is not None,
    )


def _map_direct(items: Any) -> list[QuestionRecord]:
    if isinstance(items, str) or not isinstance(items, Sequence):
        return []

    records = []
    for position, item in enumerate(items):
        if not isinstance(item, Mapping):
            logger.warning(f"Skipping non-object question entry at position {position}")
            continue
        records.append(to_record(item, DIRECT_TEXT_KEYS, DIRECT_OPTION_KEYS, DIRECT_ANSWER_KEYS))
    return records


# ─── Recursive Search ─────────────────────────────────────────────────────────


@singledispatch
def find_questions(node: Any) -> list[QuestionRecord]:
    """Scalars hold no questions."""
    return []


@find_questions.register(Mapping)
def _find_in_mapping(node: Mapping) -> list[QuestionRecord]:
    if looks_like_question(node):
        return [to_record(node, SEARCH_TEXT_KEYS, SEARCH_OPTION_KEYS, SEARCH_ANSWER_KEYS)]

    records = []
    for value in node.values():
        records.extend(find_questions(value))
    return records


@find_questions.register(list)
@find_questions.register(tuple)
def _find_in_sequence(node: Sequence) -> list[QuestionRecord]:
    records = []
    for item in node:
        records.extend(find_questions(item))
    return records


# ─── Entry Points ─────────────────────────────────────────────────────────────


def parse_structured(data: Any) -> list[QuestionRecord]:
    """
    Extract question records from already-decoded structured data.

    Raises:
        StructureNotRecognizedError: nothing question-shaped was found.
    """
    if isinstance(data, Mapping):
        records = _map_direct(data.get("questions"))
        if records:
            logger.info(f"Found {len(records)} questions under 'questions'")
            return records

        exam = data.get("exam")
        if isinstance(exam, Mapping):
            records = _map_direct(exam.get("questions"))
            if records:
                logger.info(f"Found {len(records)} questions under 'exam.questions'")
                return records

    records = find_questions(data)
    if records:
        logger.info(f"Found {len(records)} questions by recursive search")
        return records

    raise StructureNotRecognizedError()


def parse_json_text(text: str) -> list[QuestionRecord]:
    """
    Decode JSON text and extract its questions.

    Raises:
        json.JSONDecodeError: the text is not JSON.
        StructureNotRecognizedError: the JSON holds no questions.
    """
    return parse_structured(json.loads(text))
