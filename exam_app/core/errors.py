"""Exceptions raised by the exam engine."""

from __future__ import annotations


class ExamError(Exception):
    """Base class for exam engine failures."""


class SessionLoadError(ExamError):
    """Raised when questions or the quiz-set config cannot be loaded.

    Fatal to session start: the session never becomes active.
    """


class SubmissionError(ExamError):
    """Raised when a score record could not be persisted.

    Recoverable: the session returns to the active phase with its answers and
    tamper state intact, so submission can be retried.
    """


class QuestionBankLoadError(ExamError):
    """Raised when a question bank file cannot be parsed."""
