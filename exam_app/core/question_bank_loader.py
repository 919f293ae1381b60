"""Loading a question bank from a JSON file.

File layout::

    {
      "quiz_sets": [
        {
          "id": "safety-101",
          "name": "Workplace Safety",
          "time_limit_minutes": 10,
          "is_survey": false,
          "instant_feedback": false,
          "questions": [
            {
              "type": "multiple_choice_single",
              "text": "Which way does the sun rise?",
              "options": ["East", "West", "North", "South"],
              "correct_answer": "East",
              "points": 1
            }
          ]
        }
      ]
    }

``correct_answer`` is a list (or a comma-separated string) for
``multiple_choice_multiple`` questions. Survey questions may omit it.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from exam_app.constants.exam_constants import DEFAULT_QUESTION_POINTS
from exam_app.core.errors import QuestionBankLoadError
from exam_app.core.models import Question, QuestionType, QuizSetConfig
from exam_app.core.services.question_bank import QuestionBank


class QuestionDocument(BaseModel):
    id: str = ""
    type: QuestionType
    text: str
    options: list[str] = Field(default_factory=list)
    correct_answer: str | list[str] = ""
    image_url: str | None = None
    points: int = DEFAULT_QUESTION_POINTS


class QuizSetDocument(BaseModel):
    id: str
    name: str
    description: str = ""
    time_limit_minutes: int | None = None
    is_survey: bool = False
    instant_feedback: bool = False
    is_active: bool = True
    questions: list[QuestionDocument] = Field(default_factory=list)


class QuestionBankDocument(BaseModel):
    quiz_sets: list[QuizSetDocument]


def load_question_bank(file_path: Path) -> QuestionBank:
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise QuestionBankLoadError(f"Cannot read question bank '{file_path}'.") from exc
    return parse_question_bank(text)


def parse_question_bank(text: str) -> QuestionBank:
    try:
        document = QuestionBankDocument.model_validate_json(text)
    except ValidationError as exc:
        raise QuestionBankLoadError(f"Invalid question bank: {exc.error_count()} error(s).") from exc

    bank = QuestionBank()
    for quiz_set in document.quiz_sets:
        try:
            bank.add_quiz_set(
                QuizSetConfig(
                    id=quiz_set.id,
                    name=quiz_set.name,
                    time_limit_minutes=quiz_set.time_limit_minutes,
                    is_survey=quiz_set.is_survey,
                    instant_feedback=quiz_set.instant_feedback,
                    description=quiz_set.description,
                    is_active=quiz_set.is_active,
                )
            )
            for index, question in enumerate(quiz_set.questions, start=1):
                try:
                    bank.add_question(quiz_set.id, _to_question(question))
                except ValueError as exc:
                    raise QuestionBankLoadError(
                        f"Quiz set '{quiz_set.id}', question {index}: {exc}"
                    ) from exc
        except ValueError as exc:
            raise QuestionBankLoadError(f"Quiz set '{quiz_set.id}': {exc}") from exc
    return bank


def _to_question(document: QuestionDocument) -> Question:
    correct_answer: str | frozenset[str]
    if isinstance(document.correct_answer, list):
        correct_answer = frozenset(document.correct_answer)
    else:
        correct_answer = document.correct_answer
    return Question(
        id=document.id,
        type=document.type,
        text=document.text,
        options=tuple(document.options),
        correct_answer=correct_answer,
        image_url=document.image_url,
        points=document.points,
    )
