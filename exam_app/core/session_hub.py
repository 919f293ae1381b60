"""Facade shared by the exam server and the proctor console."""

from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Callable

from exam_app.constants.exam_constants import FINISHED_SESSION_RETENTION_SECONDS
from exam_app.core.models import QuizSetConfig, ScoreRecord, SessionPhase, UserIdentity
from exam_app.core.review import ReviewItem, build_review
from exam_app.core.services.question_bank import QuestionBank
from exam_app.core.services.score_store import ScoreStore
from exam_app.core.services.sequence_randomizer import SequenceRandomizer
from exam_app.core.session_controller import ExamSession

logger = logging.getLogger(__name__)


class SessionHub:
    """Facade for the question bank, score store and live exam sessions."""

    def __init__(
        self,
        question_bank: QuestionBank | None = None,
        score_store: ScoreStore | None = None,
        shuffle_seed: int | None = None,
        retention_seconds: float = FINISHED_SESSION_RETENTION_SECONDS,
        now: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = Lock()
        self._question_bank = question_bank or QuestionBank()
        self._score_store = score_store or ScoreStore()
        self._shuffle_seed = shuffle_seed
        self._sessions: dict[str, ExamSession] = {}
        self._retention_seconds = retention_seconds
        self._now = now
        # session id -> time the hub first saw it terminal
        self._finished_at: dict[str, float] = {}

    @property
    def question_bank(self) -> QuestionBank:
        return self._question_bank

    @property
    def score_store(self) -> ScoreStore:
        return self._score_store

    # --- Quiz sets ---

    def list_quiz_sets(self, include_inactive: bool = False) -> list[QuizSetConfig]:
        with self._lock:
            configs = self._question_bank.list_quiz_sets()
        if include_inactive:
            return configs
        return [config for config in configs if config.is_active]

    def get_question_count(self, quiz_set_id: str) -> int:
        with self._lock:
            return self._question_bank.get_question_count(quiz_set_id)

    # --- Sessions ---

    def start_session(self, quiz_set_id: str, user: UserIdentity) -> ExamSession:
        """Create, prepare and register a session.

        Raises:
            SessionLoadError: the quiz set could not be started.
        """
        randomizer = SequenceRandomizer(self._shuffle_seed)
        session = ExamSession(quiz_set_id, user, self._question_bank, self._score_store, randomizer=randomizer)
        session.start()
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def get_session(self, session_id: str) -> ExamSession:
        with self._lock:
            try:
                return self._sessions[session_id]
            except KeyError:
                raise KeyError(f"Unknown session id '{session_id}'.") from None

    def list_sessions(self) -> list[ExamSession]:
        with self._lock:
            return list(self._sessions.values())

    def active_sessions(self) -> list[ExamSession]:
        return [session for session in self.list_sessions() if session.phase is SessionPhase.ACTIVE]

    def tick_all(self) -> None:
        """Advance every active session clock by one second, then drop expired finished sessions."""
        for session in self.active_sessions():
            session.tick()
        self.prune_finished_sessions()

    def prune_finished_sessions(self) -> int:
        """Forget sessions that have been terminal for longer than the retention period."""
        now = self._now()
        with self._lock:
            expired = []
            for session_id, session in self._sessions.items():
                if session.phase is not SessionPhase.TERMINAL:
                    continue
                finished_at = self._finished_at.setdefault(session_id, now)
                if now - finished_at >= self._retention_seconds:
                    expired.append(session_id)
            for session_id in expired:
                del self._sessions[session_id]
                del self._finished_at[session_id]
        if expired:
            logger.info("Pruned %d finished session(s)", len(expired))
        return len(expired)

    def abandon_session(self, session_id: str) -> bool:
        return self.get_session(session_id).abandon()

    # --- Scores ---

    def get_score_record(self, record_id: str) -> ScoreRecord:
        try:
            return self._score_store.get_record(record_id)
        except KeyError:
            raise KeyError(f"Unknown score record '{record_id}'.") from None

    def review_score(self, record_id: str) -> list[ReviewItem]:
        record = self.get_score_record(record_id)
        with self._lock:
            try:
                questions = self._question_bank.load_questions(record.quiz_set_id)
            except KeyError:
                logger.warning("Quiz set %s of record %s no longer exists", record.quiz_set_id, record_id)
                questions = ()
        return build_review(record, questions)

    def scores_for_user(self, user_id: str) -> list[tuple[str, ScoreRecord]]:
        return self._score_store.records_for_user(user_id)

    def scores_for_quiz_set(self, quiz_set_id: str) -> list[tuple[str, ScoreRecord]]:
        """Records of one quiz set, oldest first.

        Raises:
            KeyError: the quiz set is unknown.
        """
        with self._lock:
            self._question_bank.get_quiz_set_config(quiz_set_id)
        return self._score_store.records_for_quiz_set(quiz_set_id)

