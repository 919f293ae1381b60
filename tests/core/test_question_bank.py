"""
Unit Tests for the Question Bank

Validation and normalization applied when questions are stored.
"""

import pytest

from exam_app.core.models import Question, QuestionType, QuizSetConfig
from exam_app.core.services.question_bank import QuestionBank


@pytest.fixture
def empty_bank():
    bank = QuestionBank()
    bank.add_quiz_set(QuizSetConfig(id="exam", name="Exam"))
    bank.add_quiz_set(QuizSetConfig(id="survey", name="Survey", is_survey=True))
    return bank


class TestAddQuizSet:
    def test_add_when_name_blank_then_raises_error(self):
        with pytest.raises(ValueError, match="name must not be empty"):
            QuestionBank().add_quiz_set(QuizSetConfig(id="x", name="  "))

    def test_list_when_several_sets_then_sorted_by_name(self, bank):
        names = [config.name for config in bank.list_quiz_sets()]
        assert names == sorted(names)


class TestAddQuestion:
    """Tests for QuestionBank.add_question()."""

    def test_add_when_true_false_without_options_then_defaults_applied(self, empty_bank):
        stored = empty_bank.add_question(
            "exam", Question(id="tf", type=QuestionType.TRUE_FALSE, text="Sky is blue", correct_answer="True")
        )

        assert stored.options == ("True", "False")

    def test_add_when_survey_then_placeholder_answer_and_zero_points(self, empty_bank):
        stored = empty_bank.add_question(
            "survey",
            Question(id="s", type=QuestionType.SINGLE_CHOICE, text="Rate us", options=("Good", "Bad"), points=4),
        )

        assert stored.correct_answer == "N/A"
        assert stored.points == 0

    def test_add_when_single_option_then_raises_error(self, empty_bank):
        with pytest.raises(ValueError, match="at least 2 options"):
            empty_bank.add_question(
                "exam",
                Question(id="q", type=QuestionType.SINGLE_CHOICE, text="?", options=("Only",), correct_answer="Only"),
            )

    def test_add_when_answer_not_an_option_then_raises_error(self, empty_bank):
        with pytest.raises(ValueError, match="one of the options"):
            empty_bank.add_question(
                "exam",
                Question(id="q", type=QuestionType.SINGLE_CHOICE, text="?", options=("A", "B"), correct_answer="C"),
            )

    def test_add_when_multi_answer_is_comma_string_then_converted_to_set(self, empty_bank):
        stored = empty_bank.add_question(
            "exam",
            Question(
                id="m",
                type=QuestionType.MULTI_CHOICE,
                text="Pick",
                options=("A", "B", "C"),
                correct_answer="A, C",
            ),
        )

        assert stored.correct_answer == frozenset({"A", "C"})

    def test_add_when_points_below_one_then_raised_to_one(self, empty_bank):
        stored = empty_bank.add_question(
            "exam", Question(id="f", type=QuestionType.FILL_IN_BLANK, text="?", correct_answer=" yes ", points=0)
        )

        assert stored.points == 1
        assert stored.correct_answer == "yes"

    def test_add_when_id_missing_then_assigned(self, empty_bank):
        stored = empty_bank.add_question(
            "exam", Question(id="", type=QuestionType.FILL_IN_BLANK, text="?", correct_answer="yes")
        )

        assert stored.id == "q1"

    def test_add_when_duplicate_id_then_raises_error(self, empty_bank):
        question = Question(id="dup", type=QuestionType.FILL_IN_BLANK, text="?", correct_answer="yes")
        empty_bank.add_question("exam", question)

        with pytest.raises(ValueError, match="Duplicate question id"):
            empty_bank.add_question("exam", question)

    def test_add_when_quiz_set_unknown_then_raises_key_error(self, empty_bank):
        with pytest.raises(KeyError):
            empty_bank.add_question(
                "missing", Question(id="x", type=QuestionType.FILL_IN_BLANK, text="?", correct_answer="y")
            )


class TestLoadQuestions:
    def test_load_when_known_set_then_returns_tuple(self, bank):
        questions = bank.load_questions("exam")

        assert isinstance(questions, tuple)
        assert [question.id for question in questions] == ["q-capital", "q-primes", "q-blank"]

    def test_load_when_unknown_set_then_raises_key_error(self, bank):
        with pytest.raises(KeyError):
            bank.load_questions("nope")
