"""Domain models for the exam session engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from types import MappingProxyType
from typing import Mapping, Union

# A recorded answer: free text / single option, or the selected options of a
# multi-choice question. ``None`` means the question was never answered.
AnswerValue = Union[str, tuple[str, ...], None]


class QuestionType(str, Enum):
    """Question kinds; the values double as the stored type names."""

    SINGLE_CHOICE = "multiple_choice_single"
    MULTI_CHOICE = "multiple_choice_multiple"
    TRUE_FALSE = "true_false"
    FILL_IN_BLANK = "fill_in_blank"

    @property
    def has_options(self) -> bool:
        return self is not QuestionType.FILL_IN_BLANK


class SessionPhase(Enum):
    """Lifecycle of one exam attempt. Phases only move forward, except that a
    failed submission returns from SUBMITTING to ACTIVE."""

    PREPARING = auto()
    ACTIVE = auto()
    SUBMITTING = auto()
    TERMINAL = auto()


class SubmissionTrigger(Enum):
    """What caused the submission pipeline to run."""

    MANUAL = "manual"
    CLOCK_EXPIRED = "clock_expired"
    INTEGRITY = "integrity"


@dataclass(frozen=True, slots=True)
class Question:
    """A single question as handed to a session. Immutable once loaded."""

    id: str
    type: QuestionType
    text: str
    options: tuple[str, ...] = ()
    correct_answer: str | frozenset[str] = ""
    image_url: str | None = None
    points: int = 1


@dataclass(frozen=True, slots=True)
class QuizSetConfig:
    """Configuration of an exam or survey."""

    id: str
    name: str
    time_limit_minutes: int | None = None
    is_survey: bool = False
    instant_feedback: bool = False
    description: str = ""
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class UserIdentity:
    """An already-authorized test-taker."""

    id: str
    display_name: str
    department: str = ""


@dataclass(frozen=True, slots=True)
class ScoreRecord:
    """Immutable result of a completed session."""

    user_id: str
    user_name: str
    department: str
    quiz_set_id: str
    quiz_set_name: str
    raw_score: int
    final_score: int
    total_possible_points: int
    percentage: float
    answers: Mapping[str, AnswerValue]
    question_order: tuple[str, ...]
    tamper_count: int
    penalty_points: int
    is_survey: bool
    created_at: datetime

    def __post_init__(self) -> None:
        # Freeze the answers map so consumers cannot mutate the record.
        if not isinstance(self.answers, MappingProxyType):
            object.__setattr__(self, "answers", MappingProxyType(dict(self.answers)))


class IntegrityAction(Enum):
    """Consequence attached to a tamper threshold."""

    WARNING = "warning"
    PENALTY = "penalty"
    FORCE_SUBMIT = "force_submit"


@dataclass(frozen=True, slots=True)
class IntegrityNotice:
    """Notification produced when the tamper counter reaches a threshold."""

    tamper_count: int
    action: IntegrityAction
    penalty_delta: int
    title: str
    message: str


@dataclass(slots=True)
class SessionState:
    """Mutable state of one session. Only the session controller touches it."""

    questions: tuple[Question, ...] = ()
    answers: dict[str, AnswerValue] = field(default_factory=dict)
    remaining_seconds: int = 0
    tamper_count: int = 0
    penalty_points: int = 0
    phase: SessionPhase = SessionPhase.PREPARING
    locked_question_ids: set[str] = field(default_factory=set)
    notices: list[IntegrityNotice] = field(default_factory=list)
    last_error: str | None = None


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Read-only copy of a session's state for rendering."""

    session_id: str
    user: UserIdentity
    quiz_set: QuizSetConfig | None
    phase: SessionPhase
    questions: tuple[Question, ...]
    answers: Mapping[str, AnswerValue]
    remaining_seconds: int | None
    tamper_count: int
    penalty_points: int
    locked_question_ids: frozenset[str]
    notices: tuple[IntegrityNotice, ...]
    feedback: Mapping[str, bool] = field(default_factory=dict)
    unanswered_count: int = 0
    last_error: str | None = None
    record_id: str | None = None
    is_abandoned: bool = False

    remaining_display: str | None = None
    is_low_on_time: bool = False
