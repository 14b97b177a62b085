"""
Test Suite for the Structured Document Adapter
==============================================
Question lookup in JSON-like exam data.
"""

from __future__ import annotations

import json

import pytest

from examparser.errors import StructureNotRecognizedError
from examparser.structured import (
    find_questions,
    first_present,
    looks_like_question,
    normalize_answer,
    parse_json_text,
    parse_structured,
)


# ═══════════════════════════════════════════════════════════════════════════════
# HELPER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestHelpers:
    """Test alias lookup and answer normalization."""

    def test_first_present_skips_empty_values(self):
        node = {"text": "", "question": "Real text?"}
        assert first_present(node, ("text", "question")) == "Real text?"
        assert first_present({}, ("text",), "fallback") == "fallback"

    def test_looks_like_question(self):
        assert looks_like_question({"stem": "S?", "choices": ["a"], "answer": None})
        assert not looks_like_question({"stem": "S?", "choices": ["a"]})
        assert not looks_like_question({"stem": "S?", "choices": [], "answer": 0})
        assert not looks_like_question({"choices": ["a"], "answer": 0})

    @pytest.mark.parametrize(
        "value,expected",
        [
            (2, 2),
            (0, 0),
            (-1, None),
            ("3", 3),
            ("b", 1),
            ("D", 3),
            ("Paris", 2),
            (True, None),
            (None, None),
            ("unknown", None),
        ],
    )
    def test_normalize_answer(self, value, expected):
        assert normalize_answer(value, ["London", "Berlin", "Paris"]) == expected


# ═══════════════════════════════════════════════════════════════════════════════
# LOOKUP ORDER TESTS
# ═══════════════════════════════════════════════════════════════════════════════


class TestParseStructured:
    """Test the direct paths and the recursive search."""

    def test_root_questions(self):
        data = {
            "questions": [
                {"text": "What is 2+2?", "options": ["3", "4", "5", "6"], "correctAnswer": 1},
                {"text": "What is 3+3?", "options": ["6", "7"], "correctAnswer": 0,
                 "explanation": "Addition."},
            ]
        }
        records = parse_structured(data)

        assert len(records) == 2
        assert records[0].text == "What is 2+2?"
        assert records[0].options == ["3", "4", "5", "6"]
        assert records[0].correct_answer_index == 1
        assert records[0].answer_detected
        assert records[1].explanation == "Addition."

    def test_exam_questions_with_aliases(self):
        data = {
            "exam": {
                "questions": [
                    {"question": "  Which one?  ", "answers": ["a", "b"], "correct": 1,
                     "rationale": "Because b."},
                ]
            }
        }
        (record,) = parse_structured(data)

        assert record.text == "Which one?"
        assert record.options == ["a", "b"]
        assert record.correct_answer_index == 1
        assert record.explanation == "Because b."

    def test_first_non_null_answer_wins(self):
        data = {"questions": [
            {"text": "Q?", "options": ["a", "b", "c"], "correctAnswer": None, "correct": 2},
        ]}
        assert parse_structured(data)[0].correct_answer_index == 2

    def test_missing_answer_defaults_to_first_option(self):
        data = {"questions": [{"text": "Q?", "options": ["a", "b"]}]}
        (record,) = parse_structured(data)

        assert record.correct_answer_index == 0
        assert not record.answer_detected

    def test_option_objects(self):
        data = {"questions": [
            {"text": "Q?", "options": [{"text": "x"}, {"label": "y"}, {"value": "z"}]},
        ]}
        assert parse_structured(data)[0].options == ["x", "y", "z"]

    def test_non_object_entries_are_skipped(self):
        data = {"questions": ["not a question", {"text": "Q?", "options": ["a"]}]}
        records = parse_structured(data)
        assert [r.text for r in records] == ["Q?"]

    def test_recursive_search(self):
        data = {
            "data": {
                "sections": [
                    {"meta": {"x": 1}},
                    {"items": {"deep": {
                        "stem": "Deep question?",
                        "choices": ["x", "y", "z"],
                        "answer": "C",
                    }}},
                ]
            }
        }
        (record,) = parse_structured(data)

        assert record.text == "Deep question?"
        assert record.options == ["x", "y", "z"]
        assert record.correct_answer_index == 2

    def test_recursive_search_on_root_list(self):
        data = [
            {"question": "First?", "answers": ["a", "b"], "correct": "b"},
            [{"text": "Second?", "options": ["a", "b"], "correctAnswer": 0}],
        ]
        records = parse_structured(data)
        assert [r.text for r in records] == ["First?", "Second?"]
        assert records[0].correct_answer_index == 1

    def test_find_questions_on_scalars(self):
        assert find_questions(42) == []
        assert find_questions("text") == []

    def test_not_recognized(self):
        with pytest.raises(StructureNotRecognizedError) as exc_info:
            parse_structured({"foo": {"bar": [1, 2, 3]}})
        assert "Could not identify questions" in str(exc_info.value)

    def test_empty_questions_list_falls_through(self):
        data = {"questions": [], "bank": [{"stem": "S?", "choices": ["a"], "answer": 0}]}
        assert parse_structured(data)[0].text == "S?"


class TestParseJsonText:
    """Test JSON text entry point."""

    def test_valid_json(self):
        text = json.dumps({"questions": [{"text": "Q?", "options": ["a", "b"], "correctAnswer": 1}]})
        assert parse_json_text(text)[0].correct_answer_index == 1

    def test_invalid_json(self):
        with pytest.raises(json.JSONDecodeError):
            parse_json_text("1. Not JSON at all")
