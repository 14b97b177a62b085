"""
Quiz Session
============
Linear navigation and scoring over an extracted question set.

Study mode answers immediately with correctness and explanation; exam
mode only records the answer and runs a countdown that ends the session
when it reaches zero. The countdown is always cancelled on end and reset.
"""

from __future__ import annotations

import functools
import logging
import threading
from typing import Callable, Optional, Sequence

from .errors import (
    AnswerAlreadyRecordedError,
    InvalidAnswerError,
    QuestionIndexError,
    SessionError,
)
from .models import (
    NO_EXPLANATION,
    AnswerFeedback,
    QuestionRecord,
    QuestionReview,
    QuestionView,
    SessionMode,
    SessionResults,
    SessionState,
)

logger = logging.getLogger(__name__)

TICK_SECONDS = 1.0


class Countdown:
    """
    Calls ``on_tick`` once per interval until cancelled.

    Each tick re-arms a daemon ``threading.Timer``; ``cancel`` stops the
    pending one and no further ticks are scheduled.
    """

    def __init__(self, on_tick: Callable[[], None], interval: float = TICK_SECONDS):
        self.on_tick = on_tick
        self.interval = interval
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self):
        with self._lock:
            self._running = True
            self._schedule()

    def cancel(self):
        with self._lock:
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _schedule(self):
        self._timer = threading.Timer(self.interval, self._fire)
        self._timer.daemon = True
        self._timer.start()

    def _fire(self):
        if not self._running:
            return
        self.on_tick()
        with self._lock:
            if self._running:
                self._schedule()


CountdownFactory = Callable[[Callable[[], None]], Countdown]


class ExamSession:
    """
    Holds the loaded questions and the state of the active quiz.

    Only this class mutates ``QuestionRecord.user_answer``. All state
    changes run under one re-entrant lock, so a countdown tick never
    interleaves with a user action.
    """

    def __init__(
        self,
        records: Optional[Sequence[QuestionRecord]] = None,
        countdown_factory: CountdownFactory = Countdown,
        on_finished: Optional[Callable[[SessionResults], None]] = None,
    ):
        self.state = SessionState()
        self.countdown_factory = countdown_factory
        self.on_finished = on_finished
        self._countdown: Optional[Countdown] = None
        # Bumped whenever a countdown is cancelled; stale ticks carry an old value.
        self._generation = 0
        self._lock = threading.RLock()
        if records:
            self.load(records)

    # ─── Loading ──────────────────────────────────────────────────────────

    def load(self, records: Sequence[QuestionRecord]):
        """Replace the question set wholesale and clear session state."""
        with self._lock:
            self._cancel_countdown()
            self.state = SessionState(
                records=[r.model_copy(deep=True) for r in records]
            )
            logger.info(f"Loaded {len(self.state.records)} questions")

    @property
    def records(self) -> list[QuestionRecord]:
        return self.state.records

    @property
    def total(self) -> int:
        return len(self.state.records)

    # ─── Lifecycle ────────────────────────────────────────────────────────

    def start(self, mode: SessionMode = SessionMode.STUDY, duration_minutes: int = 60) -> QuestionView:
        """Reset answers and position; exam mode arms the countdown."""
        mode = SessionMode(mode)
        with self._lock:
            if not self.state.records:
                raise SessionError("No questions loaded")

            self._cancel_countdown()
            state = self.state
            state.mode = mode
            state.duration_minutes = duration_minutes
            state.current_index = 0
            state.score = 0
            state.in_progress = True
            state.completed = False
            state.reviewing = False
            state.remaining_seconds = 0

            for record in state.records:
                record.user_answer = None

            if mode == SessionMode.EXAM:
                state.remaining_seconds = duration_minutes * 60
                self._countdown = self.countdown_factory(
                    functools.partial(self.tick, self._generation)
                )
                self._countdown.start()

            logger.info(f"Started {mode.value} session with {self.total} questions")
            return self.current_question()

    def tick(self, generation: Optional[int] = None):
        """
        One countdown step; ends the session when time runs out.

        Ticks armed for an earlier session (an older ``generation``) are
        ignored.
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                logger.debug(f"Ignoring tick from countdown generation {generation}")
                return
            if not self.state.in_progress:
                return
            self.state.remaining_seconds -= 1
            if self.state.remaining_seconds <= 0:
                self.state.remaining_seconds = 0
                logger.info("Time is up, ending session")
                self.end()

    def end(self) -> SessionResults:
        """Stop the countdown and compute the score."""
        with self._lock:
            self._cancel_countdown()
            was_running = self.state.in_progress
            self.state.in_progress = False
            self.state.completed = True
            self.state.score = sum(
                1 for r in self.state.records if r.user_answer == r.correct_answer_index
            )

            results = self._summary()
            logger.info(
                f"Session ended: {results.score}/{results.total_questions} "
                f"({results.percentage}%)"
            )

        if was_running and self.on_finished:
            self.on_finished(results)
        return results

    def reset(self):
        """Drop all questions and state."""
        with self._lock:
            self._cancel_countdown()
            self.state = SessionState()

    def switch_to_review(self) -> QuestionView:
        """Study-mode navigation over the answered set, answers kept."""
        with self._lock:
            if not self.state.records:
                raise SessionError("No questions loaded")
            if not self.state.completed:
                raise SessionError("Review is only available after the session has ended")
            self.state.mode = SessionMode.STUDY
            self.state.reviewing = True
            self.state.current_index = 0
            return self.current_question()

    # ─── Answering ────────────────────────────────────────────────────────

    def answer(self, option_index: int) -> AnswerFeedback:
        """
        Record an answer for the current question.

        Raises:
            SessionError: no session is active.
            InvalidAnswerError: the option does not exist.
            AnswerAlreadyRecordedError: the question was already answered
                in this session (re-answering is allowed only in review).
        """
        with self._lock:
            state = self.state
            if not (state.in_progress or state.reviewing):
                raise SessionError("Session is not active")

            question = state.records[state.current_index]
            if not 0 <= option_index < len(question.options):
                raise InvalidAnswerError(
                    f"Option {option_index} does not exist "
                    f"(question has {len(question.options)} options)"
                )
            if question.user_answer is not None and not state.reviewing:
                raise AnswerAlreadyRecordedError(
                    f"Question {state.current_index + 1} is already answered"
                )

            question.user_answer = option_index

            if state.mode == SessionMode.STUDY:
                return AnswerFeedback(
                    is_correct=question.is_correct,
                    correct_answer_index=question.correct_answer_index,
                    explanation=question.explanation or NO_EXPLANATION,
                )
            return AnswerFeedback(recorded=True)

    # ─── Navigation ───────────────────────────────────────────────────────

    def current_question(self) -> QuestionView:
        if not self.state.records:
            raise SessionError("No questions loaded")
        question = self.state.records[self.state.current_index]
        return QuestionView(
            question_index=self.state.current_index,
            total_questions=self.total,
            question=question,
            user_answer=question.user_answer,
        )

    def next_question(self) -> Optional[QuestionView]:
        """Move forward one question; None at the last question."""
        with self._lock:
            if self.state.current_index < self.total - 1:
                self.state.current_index += 1
                return self.current_question()
            return None

    def previous_question(self) -> Optional[QuestionView]:
        """Move back one question; None at the first question."""
        with self._lock:
            if self.state.current_index > 0:
                self.state.current_index -= 1
                return self.current_question()
            return None

    def jump_to(self, index: int) -> QuestionView:
        with self._lock:
            if not 0 <= index < self.total:
                raise QuestionIndexError(index, self.total)
            self.state.current_index = index
            return self.current_question()

    # ─── Results ──────────────────────────────────────────────────────────

    def results(self) -> SessionResults:
        """Score plus a per-question review."""
        with self._lock:
            results = self._summary()
            results.questions = [
                QuestionReview(
                    text=r.text,
                    user_answer=r.user_answer,
                    correct_answer_index=r.correct_answer_index,
                    is_correct=r.is_correct,
                    explanation=r.explanation or NO_EXPLANATION,
                )
                for r in self.state.records
            ]
            return results

    def formatted_time(self) -> str:
        minutes, seconds = divmod(max(self.state.remaining_seconds, 0), 60)
        return f"{minutes:02d}:{seconds:02d}"

    def _summary(self) -> SessionResults:
        return SessionResults(
            score=self.state.score,
            total_questions=self.total,
            answered_questions=sum(1 for r in self.state.records if r.is_answered),
        )

    def _cancel_countdown(self):
        self._generation += 1
        if self._countdown is not None:
            self._countdown.cancel()
            self._countdown = None
