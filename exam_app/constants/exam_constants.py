"""Exam-session constants shared across the engine, server and UI layers."""

from pathlib import Path

DEFAULT_QUESTION_BANK_PATH: Path = Path(__file__).resolve().parents[1] / "data" / "sample_question_bank.json"

SECONDS_PER_MINUTE: int = 60
# Applied when a quiz set has no usable time limit.
FALLBACK_SECONDS_PER_QUESTION: int = 1
CLOCK_TICK_INTERVAL_MS: int = 1000
LOW_TIME_WARNING_SECONDS: int = 300
# Submitted or abandoned sessions stay listed this long before the hub drops them.
FINISHED_SESSION_RETENTION_SECONDS: int = 600

DEFAULT_QUESTION_POINTS: int = 1
SURVEY_PLACEHOLDER_ANSWER: str = "N/A"
TRUE_FALSE_OPTIONS: tuple[str, str] = ("True", "False")
MIN_CHOICE_OPTIONS: int = 2

# tamper count -> penalty points added on reaching that count
TAMPER_PENALTIES: dict[int, int] = {2: 2, 3: 3}
TAMPER_WARNING_COUNT: int = 1
TAMPER_FORCE_SUBMIT_COUNT: int = 4
