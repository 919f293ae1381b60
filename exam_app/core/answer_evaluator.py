"""Answer correctness checks shared by scoring, instant feedback and review.

Every function here is pure and total: malformed or missing answers resolve to
``False`` (incorrect) or ``True`` (unanswered), never to an exception.
"""

from __future__ import annotations

from collections.abc import Collection

from exam_app.core.models import Question, QuestionType


def is_correct(question: Question, candidate: object) -> bool:
    """Return True when ``candidate`` matches the question's canonical answer."""
    if candidate is None:
        return False

    if question.type in (QuestionType.SINGLE_CHOICE, QuestionType.TRUE_FALSE):
        return isinstance(candidate, str) and candidate == question.correct_answer

    if question.type is QuestionType.FILL_IN_BLANK:
        # Trimmed, case-sensitive match.
        return isinstance(candidate, str) and candidate.strip() == question.correct_answer

    if question.type is QuestionType.MULTI_CHOICE:
        selected = _as_value_set(candidate)
        expected = _as_value_set(question.correct_answer)
        return selected is not None and expected is not None and selected == expected

    return False


def is_unanswered(candidate: object) -> bool:
    """Return True for missing answers, blank strings and empty selections."""
    if candidate is None:
        return True
    if isinstance(candidate, str):
        return not candidate.strip()
    if isinstance(candidate, Collection):
        return len(candidate) == 0
    return False


def _as_value_set(value: object) -> frozenset[str] | None:
    if isinstance(value, (str, bytes)) or not isinstance(value, Collection):
        return None
    if isinstance(value, dict):
        return None
    if not all(isinstance(item, str) for item in value):
        return None
    return frozenset(value)
