"""In-memory store of quiz sets and their questions."""

from __future__ import annotations

from exam_app.constants.exam_constants import (
    DEFAULT_QUESTION_POINTS,
    MIN_CHOICE_OPTIONS,
    SURVEY_PLACEHOLDER_ANSWER,
    TRUE_FALSE_OPTIONS,
)
from exam_app.core.models import Question, QuestionType, QuizSetConfig


class QuestionBank:
    """Validates questions on insert and hands out immutable snapshots."""

    def __init__(self) -> None:
        self._quiz_sets: dict[str, QuizSetConfig] = {}
        self._questions: dict[str, list[Question]] = {}
        self._question_counter: int = 0

    def add_quiz_set(self, config: QuizSetConfig) -> None:
        if not config.id.strip():
            raise ValueError("Quiz set id must not be empty.")
        if not config.name.strip():
            raise ValueError("Quiz set name must not be empty.")
        self._quiz_sets[config.id] = config
        self._questions.setdefault(config.id, [])

    def add_question(self, quiz_set_id: str, question: Question) -> Question:
        """Normalize ``question`` and append it to the quiz set."""
        config = self.get_quiz_set_config(quiz_set_id)
        prepared = self._prepare_question(question, config.is_survey)
        if any(existing.id == prepared.id for existing in self._questions[quiz_set_id]):
            raise ValueError(f"Duplicate question id '{prepared.id}' in quiz set '{quiz_set_id}'.")
        self._questions[quiz_set_id].append(prepared)
        return prepared

    def load_questions(self, quiz_set_id: str) -> tuple[Question, ...]:
        if quiz_set_id not in self._questions:
            raise KeyError(quiz_set_id)
        return tuple(self._questions[quiz_set_id])

    def get_quiz_set_config(self, quiz_set_id: str) -> QuizSetConfig:
        try:
            return self._quiz_sets[quiz_set_id]
        except KeyError:
            raise KeyError(quiz_set_id) from None

    def list_quiz_sets(self) -> list[QuizSetConfig]:
        return sorted(self._quiz_sets.values(), key=lambda config: config.name)

    def get_question_count(self, quiz_set_id: str) -> int:
        return len(self._questions.get(quiz_set_id, ()))

    def _prepare_question(self, question: Question, is_survey: bool) -> Question:
        """Validate and normalize a question before storage."""
        cleaned_text = question.text.strip()
        if not cleaned_text:
            raise ValueError("Question text must not be empty.")

        options = self._normalize_options(question)
        if is_survey:
            correct_answer: str | frozenset[str] = SURVEY_PLACEHOLDER_ANSWER
            points = 0
        else:
            correct_answer = self._normalize_correct_answer(question, options)
            points = max(DEFAULT_QUESTION_POINTS, question.points)

        image_url = (question.image_url or "").strip() or None
        return Question(
            id=question.id.strip() or self._next_question_id(),
            type=question.type,
            text=cleaned_text,
            options=options,
            correct_answer=correct_answer,
            image_url=image_url,
            points=points,
        )

    def _next_question_id(self) -> str:
        self._question_counter += 1
        return f"q{self._question_counter}"

    @staticmethod
    def _normalize_options(question: Question) -> tuple[str, ...]:
        if not question.type.has_options:
            return ()
        cleaned = tuple(option.strip() for option in question.options if option.strip())
        if question.type is QuestionType.TRUE_FALSE and not cleaned:
            return TRUE_FALSE_OPTIONS
        if len(cleaned) < MIN_CHOICE_OPTIONS:
            raise ValueError(f"Choice questions need at least {MIN_CHOICE_OPTIONS} options.")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("Option text must be unique within a question.")
        return cleaned

    @staticmethod
    def _normalize_correct_answer(question: Question, options: tuple[str, ...]) -> str | frozenset[str]:
        answer = question.correct_answer
        if question.type is QuestionType.MULTI_CHOICE:
            if isinstance(answer, str):
                values = frozenset(part.strip() for part in answer.split(",") if part.strip())
            else:
                values = frozenset(value.strip() for value in answer if value.strip())
            if not values:
                raise ValueError("Multi-choice questions need at least one correct option.")
            if not values <= set(options):
                raise ValueError("Every correct answer must be one of the options.")
            return values

        if not isinstance(answer, str) or not answer.strip():
            raise ValueError("Correct answer must be a non-empty string.")
        cleaned = answer.strip()
        if question.type.has_options and cleaned not in options:
            raise ValueError("Correct answer must be one of the options.")
        return cleaned
