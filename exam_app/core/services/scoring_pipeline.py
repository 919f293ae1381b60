"""Score computation and hand-off of score records to persistence."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Callable, Mapping, Sequence

from exam_app.core.answer_evaluator import is_correct
from exam_app.core.errors import SubmissionError
from exam_app.core.models import (
    AnswerValue,
    Question,
    QuizSetConfig,
    ScoreRecord,
    UserIdentity,
)

logger = logging.getLogger(__name__)

PersistScoreRecord = Callable[[ScoreRecord], str]


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    raw_score: int
    total_possible_points: int
    final_score: int
    percentage: float


def question_points(question: Question, is_survey: bool) -> int:
    return 0 if is_survey else question.points


def compute_score(
    questions: Sequence[Question],
    answers: Mapping[str, AnswerValue],
    penalty_points: int,
    is_survey: bool,
) -> ScoreBreakdown:
    """Apply the scoring rules.

    Survey sets always score 0 out of 0. For exams the penalty is subtracted
    from the raw score and the result is floored at zero.
    """
    if is_survey:
        raw_score = 0
    else:
        raw_score = sum(
            question_points(question, is_survey)
            for question in questions
            if is_correct(question, answers.get(question.id))
        )
    total = sum(question_points(question, is_survey) for question in questions)
    final_score = max(0, raw_score - penalty_points)
    percentage = final_score / total * 100 if total > 0 else 0.0
    return ScoreBreakdown(
        raw_score=raw_score,
        total_possible_points=total,
        final_score=final_score,
        percentage=percentage,
    )


class ScoringPipeline:
    """Builds a score record and emits it to the persistence collaborator."""

    def __init__(self, persist_score_record: PersistScoreRecord) -> None:
        self._persist = persist_score_record

    def build_record(
        self,
        user: UserIdentity,
        quiz_set: QuizSetConfig,
        questions: Sequence[Question],
        answers: Mapping[str, AnswerValue],
        tamper_count: int,
        penalty_points: int,
    ) -> ScoreRecord:
        breakdown = compute_score(questions, answers, penalty_points, quiz_set.is_survey)
        return ScoreRecord(
            user_id=user.id,
            user_name=user.display_name,
            department=user.department,
            quiz_set_id=quiz_set.id,
            quiz_set_name=quiz_set.name,
            raw_score=breakdown.raw_score,
            final_score=breakdown.final_score,
            total_possible_points=breakdown.total_possible_points,
            percentage=breakdown.percentage,
            answers=dict(answers),
            question_order=tuple(question.id for question in questions),
            tamper_count=tamper_count,
            penalty_points=penalty_points,
            is_survey=quiz_set.is_survey,
            created_at=datetime.now(timezone.utc),
        )

    def emit(self, record: ScoreRecord) -> str:
        """Persist ``record`` and return its id.

        Any collaborator failure is re-raised as :class:`SubmissionError`.
        """
        try:
            record_id = self._persist(record)
        except Exception as exc:
            logger.error(
                "Persisting score for user %s on %s failed: %s",
                record.user_id,
                record.quiz_set_id,
                exc,
            )
            raise SubmissionError("Could not save your answers. Please try submitting again.") from exc
        logger.info(
            "Stored score %s for user %s on %s: %d/%d (%.1f%%)",
            record_id,
            record.user_id,
            record.quiz_set_id,
            record.final_score,
            record.total_possible_points,
            record.percentage,
        )
        return record_id
