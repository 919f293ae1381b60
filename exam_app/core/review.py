"""Replays a finished attempt for review, in the order the test-taker saw it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from exam_app.constants.ui_constants import NOT_ANSWERED_LABEL
from exam_app.core.answer_evaluator import is_correct, is_unanswered
from exam_app.core.models import AnswerValue, Question, ScoreRecord


@dataclass(frozen=True, slots=True)
class ReviewItem:
    question: Question
    user_answer: AnswerValue
    user_answer_text: str
    correct_answer_text: str
    is_correct: bool


def format_answer(answer: object) -> str:
    if is_unanswered(answer):
        return NOT_ANSWERED_LABEL
    if isinstance(answer, (str, bytes)):
        return str(answer)
    if isinstance(answer, Iterable):
        return ", ".join(sorted(str(value) for value in answer))
    return str(answer)


def build_review(record: ScoreRecord, questions: Iterable[Question]) -> list[ReviewItem]:
    """Pair each recorded answer with its question.

    Questions follow ``record.question_order``; ids no longer in ``questions``
    are skipped. Records without an order fall back to the given order.
    """
    by_id = {question.id: question for question in questions}
    if record.question_order:
        ordered = [by_id[question_id] for question_id in record.question_order if question_id in by_id]
    else:
        ordered = list(by_id.values())

    items: list[ReviewItem] = []
    for question in ordered:
        answer = record.answers.get(question.id)
        items.append(
            ReviewItem(
                question=question,
                user_answer=answer,
                user_answer_text=format_answer(answer),
                correct_answer_text=format_answer(question.correct_answer),
                is_correct=False if record.is_survey else is_correct(question, answer),
            )
        )
    return items
