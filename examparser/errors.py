"""
Exceptions raised by the extraction engine and the quiz session.

Parse-quality shortfalls are never raised: the engine substitutes a
placeholder record instead.
"""

from __future__ import annotations


class ExamParserError(Exception):
    """Base class for all examparser errors."""


class UnreadableSourceError(ExamParserError):
    """The document could not be read or decoded."""


class StructureNotRecognizedError(ExamParserError):
    """Self-describing input contains nothing that looks like a question."""

    def __init__(self, message: str = "Could not identify questions in JSON structure"):
        super().__init__(message)


class SessionError(ExamParserError):
    """The quiz session was used in a way its state does not allow."""


class QuestionIndexError(SessionError, IndexError):
    """Navigation to a question index outside the loaded set."""

    def __init__(self, index: int, total: int):
        super().__init__(f"Invalid question index: {index} (have {total} questions)")
        self.index = index
        self.total = total


class InvalidAnswerError(SessionError, ValueError):
    """The chosen option index does not exist for the current question."""


class AnswerAlreadyRecordedError(SessionError):
    """The current question was already answered in this session."""
