"""Interfaces the session engine expects from its surroundings."""

from __future__ import annotations

from typing import Protocol, Sequence

from exam_app.core.models import Question, QuizSetConfig, ScoreRecord


class QuestionSource(Protocol):
    """Supplies quiz-set configuration and a stable question snapshot."""

    def load_questions(self, quiz_set_id: str) -> Sequence[Question]: ...

    def get_quiz_set_config(self, quiz_set_id: str) -> QuizSetConfig: ...


class ScoreSink(Protocol):
    """Persists finished score records and returns their ids."""

    def persist_score_record(self, record: ScoreRecord) -> str: ...
