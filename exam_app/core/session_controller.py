"""Session controller: owns one exam attempt from preparation to scoring.

All state changes go through :class:`ExamSession` and are serialized by its
lock. The clock driver, the integrity signal and the test-taker's own actions
may call in from different threads; whichever trigger first moves the session
from ACTIVE to SUBMITTING wins, and every later trigger is a no-op.
"""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass
from enum import Enum
import logging
from threading import Lock
from typing import Callable
from uuid import uuid4

from exam_app.core.answer_evaluator import is_correct, is_unanswered
from exam_app.core.collaborators import QuestionSource, ScoreSink
from exam_app.core.errors import SessionLoadError, SubmissionError
from exam_app.core.models import (
    AnswerValue,
    IntegrityAction,
    IntegrityNotice,
    Question,
    QuizSetConfig,
    ScoreRecord,
    SessionPhase,
    SessionSnapshot,
    SessionState,
    SubmissionTrigger,
    UserIdentity,
)
from exam_app.core.services.integrity_monitor import FocusLossSignal, IntegrityMonitor
from exam_app.core.services.scoring_pipeline import ScoringPipeline
from exam_app.core.services.sequence_randomizer import SequenceRandomizer
from exam_app.core.services.session_clock import SessionClock

logger = logging.getLogger(__name__)


class SubmissionStatus(Enum):
    SUBMITTED = "submitted"
    NEEDS_CONFIRMATION = "needs_confirmation"
    DECLINED = "declined"
    IGNORED = "ignored"


@dataclass(frozen=True, slots=True)
class SubmissionOutcome:
    """Result of a submission request."""

    status: SubmissionStatus
    trigger: SubmissionTrigger
    record: ScoreRecord | None = None
    record_id: str | None = None
    unanswered_count: int = 0


@dataclass(frozen=True, slots=True)
class AnswerFeedback:
    """What happened to a ``set_answer`` call.

    ``is_correct`` is only filled in for instant-feedback exams once the
    question has been answered and locked.
    """

    question_id: str
    accepted: bool
    locked: bool
    is_correct: bool | None = None


def normalize_answer(value: object) -> AnswerValue:
    """Store selections as sorted tuples; leave everything else as given."""
    if isinstance(value, Collection) and not isinstance(value, (str, bytes, dict)):
        return tuple(sorted(value, key=str))
    return value  # type: ignore[return-value]


class ExamSession:
    """One test-taker's timed attempt at one quiz set."""

    def __init__(
        self,
        quiz_set_id: str,
        user: UserIdentity,
        question_source: QuestionSource,
        score_sink: ScoreSink,
        *,
        session_id: str | None = None,
        randomizer: SequenceRandomizer | None = None,
        focus_signal: FocusLossSignal | None = None,
    ) -> None:
        self._lock = Lock()
        self.session_id = session_id or uuid4().hex
        self.quiz_set_id = quiz_set_id
        self.user = user
        self._source = question_source
        self._pipeline = ScoringPipeline(score_sink.persist_score_record)
        self._randomizer = randomizer or SequenceRandomizer()
        self.focus_signal = focus_signal or FocusLossSignal()

        self._state = SessionState()
        self._quiz_set: QuizSetConfig | None = None
        self._clock: SessionClock | None = None
        self._monitor = IntegrityMonitor(enabled=False)
        self._questions_by_id: dict[str, Question] = {}
        self._start_requested = False
        self._abandoned = False
        self._record: ScoreRecord | None = None
        self._record_id: str | None = None

    # --- Lifecycle ---

    def start(self) -> SessionSnapshot:
        """Load, randomize and activate the session.

        Raises:
            SessionLoadError: the quiz set or its questions could not be
                loaded; the session stays in PREPARING and cannot be used.
                Also raised when the session was abandoned while loading.
        """
        with self._lock:
            if self._start_requested:
                raise RuntimeError("Session has already been started.")
            self._start_requested = True

        try:
            config = self._source.get_quiz_set_config(self.quiz_set_id)
            questions = tuple(self._source.load_questions(self.quiz_set_id))
        except Exception as exc:
            logger.error("Loading quiz set %s failed: %s", self.quiz_set_id, exc)
            raise SessionLoadError(f"Quiz set '{self.quiz_set_id}' could not be loaded.") from exc
        if not config.is_active:
            raise SessionLoadError(f"Quiz set '{config.name}' is not open.")
        if not questions:
            raise SessionLoadError(f"Quiz set '{config.name}' has no questions.")

        prepared = self._randomizer.prepare_questions(questions)

        with self._lock:
            if self._abandoned or self._state.phase is not SessionPhase.PREPARING:
                logger.info("Session %s ended while loading; not activating", self.session_id)
                raise SessionLoadError(f"Session '{self.session_id}' ended before it could start.")
            self._quiz_set = config
            self._state.questions = prepared
            self._questions_by_id = {question.id: question for question in prepared}
            if not config.is_survey:
                self._clock = SessionClock.for_quiz_set(config.time_limit_minutes, len(prepared))
                self._monitor = IntegrityMonitor(enabled=True)
                self._state.remaining_seconds = self._clock.remaining_seconds
                self._clock.start()
            self._state.phase = SessionPhase.ACTIVE

        if self._monitor.enabled:
            self.focus_signal.connect(self.report_focus_lost)
        logger.info(
            "Session %s started: user=%s quiz_set=%s questions=%d survey=%s",
            self.session_id,
            self.user.id,
            config.id,
            len(prepared),
            config.is_survey,
        )
        return self.snapshot()

    def abandon(self) -> bool:
        """Drop the session without emitting a score record."""
        with self._lock:
            if self._state.phase not in (SessionPhase.PREPARING, SessionPhase.ACTIVE):
                return False
            if self._clock is not None:
                self._clock.stop()
            self._state.phase = SessionPhase.TERMINAL
            self._abandoned = True
        self.focus_signal.disconnect(self.report_focus_lost)
        logger.info("Session %s abandoned by user %s", self.session_id, self.user.id)
        return True

    # --- Event sources ---

    def set_answer(self, question_id: str, value: object) -> AnswerFeedback:
        """Record an answer. Only allowed while ACTIVE.

        Raises:
            KeyError: ``question_id`` is not part of this session.
        """
        with self._lock:
            question = self._questions_by_id.get(question_id)
            if question is None:
                raise KeyError(f"Unknown question id '{question_id}'.")
            if question_id in self._state.locked_question_ids:
                return AnswerFeedback(question_id, False, True, self._instant_result(question))
            if self._state.phase is not SessionPhase.ACTIVE:
                return AnswerFeedback(question_id, False, False)

            answer = normalize_answer(value)
            self._state.answers[question_id] = answer
            if self._quiz_set is not None and self._quiz_set.instant_feedback and not is_unanswered(answer):
                self._state.locked_question_ids.add(question_id)
                return AnswerFeedback(question_id, True, True, self._instant_result(question))
            return AnswerFeedback(question_id, True, False)

    def tick(self) -> None:
        """Advance the clock by one second; submits when time runs out."""
        with self._lock:
            if self._state.phase is not SessionPhase.ACTIVE or self._clock is None:
                return
            expired = self._clock.tick()
            self._state.remaining_seconds = self._clock.remaining_seconds
        if expired:
            logger.info("Session %s: time is up", self.session_id)
            self._finish_automatically(SubmissionTrigger.CLOCK_EXPIRED)

    def report_focus_lost(self) -> IntegrityNotice | None:
        """Handle one loss of attention reported by the client."""
        with self._lock:
            if self._state.phase is not SessionPhase.ACTIVE:
                return None
            notice = self._monitor.record_focus_loss()
            self._state.tamper_count = self._monitor.tamper_count
            self._state.penalty_points = penalty_points = self._monitor.penalty_points
            if notice is not None:
                self._state.notices.append(notice)
        if notice is not None:
            logger.warning(
                "Session %s: user %s lost focus (%d times, penalty %d)",
                self.session_id,
                self.user.id,
                notice.tamper_count,
                penalty_points,
            )
            if notice.action is IntegrityAction.FORCE_SUBMIT:
                self._finish_automatically(SubmissionTrigger.INTEGRITY)
        return notice

    def request_submit(
        self,
        confirm_partial: bool = False,
        confirm: Callable[[int], bool] | None = None,
    ) -> SubmissionOutcome:
        """Submit on the test-taker's request.

        With unanswered questions left, the submission only proceeds when
        ``confirm_partial`` is set or ``confirm(unanswered_count)`` agrees.

        Raises:
            SubmissionError: persisting the record failed; the session is
                ACTIVE again and the request can be repeated.
        """
        with self._lock:
            if self._state.phase is not SessionPhase.ACTIVE:
                return SubmissionOutcome(SubmissionStatus.IGNORED, SubmissionTrigger.MANUAL)
            unanswered = self._unanswered_count()

        if unanswered and not confirm_partial:
            if confirm is None:
                return SubmissionOutcome(
                    SubmissionStatus.NEEDS_CONFIRMATION,
                    SubmissionTrigger.MANUAL,
                    unanswered_count=unanswered,
                )
            if not confirm(unanswered):
                return SubmissionOutcome(
                    SubmissionStatus.DECLINED,
                    SubmissionTrigger.MANUAL,
                    unanswered_count=unanswered,
                )
        return self._finish(SubmissionTrigger.MANUAL)

    # --- Read access ---

    @property
    def phase(self) -> SessionPhase:
        with self._lock:
            return self._state.phase

    @property
    def quiz_set(self) -> QuizSetConfig | None:
        return self._quiz_set

    @property
    def record(self) -> ScoreRecord | None:
        return self._record

    @property
    def record_id(self) -> str | None:
        return self._record_id

    @property
    def is_abandoned(self) -> bool:
        return self._abandoned

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            state = self._state
            feedback: dict[str, bool] = {}
            if self._quiz_set is not None and self._quiz_set.instant_feedback and not self._quiz_set.is_survey:
                feedback = {
                    question_id: is_correct(self._questions_by_id[question_id], state.answers.get(question_id))
                    for question_id in state.locked_question_ids
                }
            return SessionSnapshot(
                session_id=self.session_id,
                user=self.user,
                quiz_set=self._quiz_set,
                phase=state.phase,
                questions=state.questions,
                answers=dict(state.answers),
                remaining_seconds=state.remaining_seconds if self._clock is not None else None,
                tamper_count=state.tamper_count,
                penalty_points=state.penalty_points,
                locked_question_ids=frozenset(state.locked_question_ids),
                notices=tuple(state.notices),
                feedback=feedback,
                unanswered_count=self._unanswered_count(),
                last_error=state.last_error,
                record_id=self._record_id,
                is_abandoned=self._abandoned,
                remaining_display=self._clock.format_remaining() if self._clock is not None else None,
                is_low_on_time=self._clock is not None and self._clock.is_low_on_time,
            )

    # --- Submission ---

    def _finish(self, trigger: SubmissionTrigger) -> SubmissionOutcome:
        with self._lock:
            if self._state.phase is not SessionPhase.ACTIVE or self._quiz_set is None:
                return SubmissionOutcome(SubmissionStatus.IGNORED, trigger)
            self._state.phase = SessionPhase.SUBMITTING
            self._state.last_error = None
            if self._clock is not None:
                self._clock.stop()
            record = self._pipeline.build_record(
                self.user,
                self._quiz_set,
                self._state.questions,
                self._state.answers,
                self._state.tamper_count,
                self._state.penalty_points,
            )

        try:
            record_id = self._pipeline.emit(record)
        except SubmissionError as exc:
            with self._lock:
                self._state.phase = SessionPhase.ACTIVE
                self._state.last_error = str(exc)
                if self._clock is not None:
                    self._clock.start()
            raise

        with self._lock:
            self._record = record
            self._record_id = record_id
            self._state.phase = SessionPhase.TERMINAL
        self.focus_signal.disconnect(self.report_focus_lost)
        logger.info("Session %s submitted (%s) as record %s", self.session_id, trigger.value, record_id)
        return SubmissionOutcome(SubmissionStatus.SUBMITTED, trigger, record, record_id)

    def _finish_automatically(self, trigger: SubmissionTrigger) -> SubmissionOutcome | None:
        try:
            return self._finish(trigger)
        except SubmissionError:
            logger.warning("Session %s: automatic submission (%s) failed; session is active again",
                           self.session_id, trigger.value)
            return None

    def _unanswered_count(self) -> int:
        return sum(1 for question in self._state.questions if is_unanswered(self._state.answers.get(question.id)))

    def _instant_result(self, question: Question) -> bool | None:
        if self._quiz_set is None or not self._quiz_set.instant_feedback or self._quiz_set.is_survey:
            return None
        return is_correct(question, self._state.answers.get(question.id))
