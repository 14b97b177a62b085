"""
Data Models
===========
Pydantic models for extracted questions, documents and quiz sessions.
All models serialize to the camelCase JSON shape used by exported exam files.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


NO_OPTION_PROVIDED = "(No option provided)"
NO_EXPLANATION = "No explanation available."
OPTION_LABELS = "ABCD"


# ─── Enums ────────────────────────────────────────────────────────────────────


class InputKind(str, Enum):
    """Declared kind of an incoming document."""
    SELF_DESCRIBING = "self-describing"
    PLAIN_TEXT = "plain-text"
    UNKNOWN_BINARY = "unknown-binary"


class SessionMode(str, Enum):
    """Quiz session mode."""
    STUDY = "study"
    EXAM = "exam"


# ─── Extraction Models ────────────────────────────────────────────────────────


class TextFragment(BaseModel):
    """A run of page text with its vertical position."""
    text: str
    y: float = Field(description="Vertical coordinate of the fragment baseline")


class QuestionRecord(BaseModel):
    """
    A normalized multiple-choice question.

    Everything except ``user_answer`` is fixed at construction; the answer
    is recorded by the quiz session.
    """
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(frozen=True)
    options: list[str] = Field(default_factory=list, frozen=True)
    correct_answer_index: int = Field(
        default=0,
        ge=0,
        alias="correctAnswer",
        frozen=True,
        description="0-based index into options; 0 when no answer was found",
    )
    explanation: str = Field(default="", frozen=True)
    answer_detected: bool = Field(
        default=False,
        alias="answerDetected",
        frozen=True,
        description="False when correct_answer_index is only the default",
    )
    user_answer: Optional[int] = Field(default=None, alias="userAnswer")

    @computed_field
    @property
    def correct_letter(self) -> str:
        if self.correct_answer_index < len(OPTION_LABELS):
            return OPTION_LABELS[self.correct_answer_index]
        return str(self.correct_answer_index + 1)

    @property
    def is_answered(self) -> bool:
        return self.user_answer is not None

    @property
    def is_correct(self) -> bool:
        return self.user_answer == self.correct_answer_index


class ExtractionResult(BaseModel):
    """
    Output of one extraction run. ``questions`` is never empty: when no
    strategy finds anything, a diagnostic placeholder record is returned.
    """
    questions: list[QuestionRecord] = Field(min_length=1)
    strategy: str = Field(description="Name of the strategy that produced the records")
    is_placeholder: bool = False
    title: str = ""

    @computed_field
    @property
    def question_count(self) -> int:
        return len(self.questions)


class DocumentSource(BaseModel):
    """Raw document content handed to the extraction engine."""
    data: Union[bytes, str, dict[str, Any], list[Any]]
    kind: InputKind = InputKind.UNKNOWN_BINARY
    filename: str = ""


# ─── Session Models ───────────────────────────────────────────────────────────


class SessionState(BaseModel):
    """Navigation and scoring state of the active quiz."""
    records: list[QuestionRecord] = Field(default_factory=list)
    current_index: int = Field(default=0, ge=0)
    mode: SessionMode = SessionMode.STUDY
    score: int = 0
    duration_minutes: int = 60
    remaining_seconds: int = 0
    in_progress: bool = False
    completed: bool = False
    reviewing: bool = False


class QuestionView(BaseModel):
    """The question currently shown to the user."""
    question_index: int
    total_questions: int
    question: QuestionRecord
    user_answer: Optional[int] = None


class AnswerFeedback(BaseModel):
    """
    Response to a recorded answer. In exam mode only ``recorded`` is set;
    study and review mode carry the correctness details.
    """
    recorded: bool = True
    is_correct: Optional[bool] = None
    correct_answer_index: Optional[int] = None
    explanation: Optional[str] = None


class QuestionReview(BaseModel):
    """One row of the post-session review."""
    text: str
    user_answer: Optional[int] = None
    correct_answer_index: int
    is_correct: bool
    explanation: str


class SessionResults(BaseModel):
    """Final score of a quiz session."""
    score: int = 0
    total_questions: int = 0
    answered_questions: int = 0
    questions: list[QuestionReview] = Field(default_factory=list)

    @computed_field
    @property
    def percentage(self) -> int:
        if self.total_questions == 0:
            return 0
        # Half-up rounding, not banker's rounding.
        return int(self.score * 100 / self.total_questions + 0.5)


# ─── Report Model ─────────────────────────────────────────────────────────────


class ExtractionReport(BaseModel):
    """Post-extraction quality report."""
    total_questions: int = 0
    strategy: str = ""
    is_placeholder: bool = False
    questions_without_answer: list[int] = Field(
        default_factory=list,
        description="1-based numbers of questions whose answer index is only the default",
    )
    questions_without_explanation: list[int] = Field(default_factory=list)
    questions_with_padded_options: list[int] = Field(default_factory=list)
    questions_with_few_options: list[int] = Field(default_factory=list)
    answers_out_of_range: list[int] = Field(default_factory=list)
    duplicate_questions: list[int] = Field(default_factory=list)

    @computed_field
    @property
    def answer_rate(self) -> float:
        if self.total_questions == 0 or self.is_placeholder:
            return 0.0
        answered = self.total_questions - len(self.questions_without_answer)
        return round(answered / self.total_questions * 100, 2)
