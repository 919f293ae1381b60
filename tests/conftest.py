import os

import pytest

from exam_app.core.models import Question, QuestionType, QuizSetConfig, ScoreRecord, UserIdentity
from exam_app.core.services.question_bank import QuestionBank
from exam_app.core.services.score_store import ScoreStore
from exam_app.core.session_hub import SessionHub

# Headless test runs: Qt aborts without a display unless a platform is chosen.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


class FlakySink:
    """Score sink that fails a given number of times before accepting records."""

    def __init__(self, failures: int = 0):
        self.failures = failures
        self.calls = 0
        self.records: list[ScoreRecord] = []

    def persist_score_record(self, record: ScoreRecord) -> str:
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("database unavailable")
        self.records.append(record)
        return f"rec-{len(self.records)}"


def build_bank() -> QuestionBank:
    bank = QuestionBank()
    bank.add_quiz_set(QuizSetConfig(id="exam", name="Chemistry Basics", time_limit_minutes=1))
    bank.add_quiz_set(QuizSetConfig(id="instant", name="Practice Round", instant_feedback=True))
    bank.add_quiz_set(QuizSetConfig(id="survey", name="Course Survey", is_survey=True))
    bank.add_quiz_set(QuizSetConfig(id="closed", name="Closed Exam", is_active=False))
    bank.add_quiz_set(QuizSetConfig(id="empty", name="Empty Exam"))

    exam_questions = (
        Question(
            id="q-capital",
            type=QuestionType.SINGLE_CHOICE,
            text="What is the capital of France?",
            options=("Paris", "London", "Rome"),
            correct_answer="Paris",
        ),
        Question(
            id="q-primes",
            type=QuestionType.MULTI_CHOICE,
            text="Select the prime numbers.",
            options=("2", "3", "4", "9"),
            correct_answer=frozenset({"2", "3"}),
        ),
        Question(
            id="q-blank",
            type=QuestionType.FILL_IN_BLANK,
            text="H2O is the formula of ___.",
            correct_answer="water",
        ),
    )
    for question in exam_questions:
        bank.add_question("exam", question)
        bank.add_question("instant", question)

    bank.add_question(
        "closed",
        Question(id="q-closed", type=QuestionType.TRUE_FALSE, text="Is this set open?", correct_answer="False"),
    )
    bank.add_question(
        "survey",
        Question(
            id="s-rating",
            type=QuestionType.SINGLE_CHOICE,
            text="How was the course?",
            options=("Good", "Okay", "Poor"),
        ),
    )
    bank.add_question(
        "survey",
        Question(id="s-comment", type=QuestionType.FILL_IN_BLANK, text="Any comments?"),
    )
    return bank


@pytest.fixture
def bank():
    """Question bank with an exam, an instant-feedback set, a survey and two unusable sets."""
    return build_bank()


@pytest.fixture
def store():
    return ScoreStore()


@pytest.fixture
def sink():
    """Score sink that always succeeds."""
    return FlakySink()


@pytest.fixture
def flaky_sink():
    """Score sink whose first persist call fails."""
    return FlakySink(failures=1)


@pytest.fixture
def user():
    return UserIdentity(id="u-1", display_name="Ada Lovelace", department="Engineering")


@pytest.fixture
def hub(bank, store):
    return SessionHub(question_bank=bank, score_store=store, shuffle_seed=7)
