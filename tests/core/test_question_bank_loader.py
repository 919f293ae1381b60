"""
Unit Tests for the JSON Question Bank Loader
"""

import json

import pytest

from exam_app.constants.exam_constants import DEFAULT_QUESTION_BANK_PATH
from exam_app.core.errors import QuestionBankLoadError
from exam_app.core.models import QuestionType
from exam_app.core.question_bank_loader import load_question_bank, parse_question_bank


def _bank_text(questions, **quiz_set):
    payload = {"quiz_sets": [{"id": "set-1", "name": "Set One", "questions": questions, **quiz_set}]}
    return json.dumps(payload)


class TestParseQuestionBank:
    """Tests for parse_question_bank()."""

    def test_parse_when_valid_then_bank_populated(self):
        text = _bank_text(
            [
                {
                    "id": "m1",
                    "type": "multiple_choice_multiple",
                    "text": "Pick",
                    "options": ["A", "B", "C"],
                    "correct_answer": ["A", "C"],
                },
                {"type": "true_false", "text": "True?", "correct_answer": "True"},
            ],
            time_limit_minutes=5,
        )

        bank = parse_question_bank(text)

        config = bank.get_quiz_set_config("set-1")
        assert config.time_limit_minutes == 5
        questions = bank.load_questions("set-1")
        assert questions[0].type is QuestionType.MULTI_CHOICE
        assert questions[0].correct_answer == frozenset({"A", "C"})
        assert questions[1].options == ("True", "False")

    def test_parse_when_not_json_then_raises_load_error(self):
        with pytest.raises(QuestionBankLoadError, match="Invalid question bank"):
            parse_question_bank("{not json")

    def test_parse_when_unknown_type_then_raises_load_error(self):
        with pytest.raises(QuestionBankLoadError):
            parse_question_bank(_bank_text([{"type": "essay", "text": "Write"}]))

    def test_parse_when_question_invalid_then_error_names_question(self):
        text = _bank_text(
            [{"type": "multiple_choice_single", "text": "?", "options": ["A"], "correct_answer": "A"}]
        )

        with pytest.raises(QuestionBankLoadError, match="question 1"):
            parse_question_bank(text)


class TestLoadQuestionBank:
    def test_load_when_file_missing_then_raises_load_error(self, tmp_path):
        with pytest.raises(QuestionBankLoadError, match="Cannot read"):
            load_question_bank(tmp_path / "missing.json")

    def test_load_when_file_written_then_parsed(self, tmp_path):
        path = tmp_path / "bank.json"
        path.write_text(_bank_text([{"type": "fill_in_blank", "text": "?", "correct_answer": "x"}]), encoding="utf-8")

        bank = load_question_bank(path)

        assert bank.get_question_count("set-1") == 1

    def test_load_when_bundled_sample_then_all_sets_available(self):
        bank = load_question_bank(DEFAULT_QUESTION_BANK_PATH)

        configs = {config.id: config for config in bank.list_quiz_sets()}
        assert set(configs) == {"safety-101", "it-practice", "canteen-survey"}
        assert configs["canteen-survey"].is_survey
        assert configs["it-practice"].instant_feedback
        assert all(question.points == 0 for question in bank.load_questions("canteen-survey"))
