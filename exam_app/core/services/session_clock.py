"""Countdown clock for one exam session."""

from __future__ import annotations

from exam_app.constants.exam_constants import (
    FALLBACK_SECONDS_PER_QUESTION,
    LOW_TIME_WARNING_SECONDS,
    SECONDS_PER_MINUTE,
)


def initial_seconds(time_limit_minutes: int | None, question_count: int) -> int:
    """Seconds a session starts with.

    Falls back to a per-question allowance when the limit is missing or not
    positive.
    """
    if time_limit_minutes is not None and time_limit_minutes > 0:
        return time_limit_minutes * SECONDS_PER_MINUTE
    return max(0, question_count) * FALLBACK_SECONDS_PER_QUESTION


def format_seconds(seconds: int) -> str:
    minutes, remainder = divmod(max(0, seconds), SECONDS_PER_MINUTE)
    return f"{minutes:02d}:{remainder:02d}"


class SessionClock:
    """Whole-second countdown that reports expiry exactly once.

    The clock owns no timer. A driver (the proctor console's QTimer, or a test)
    calls :meth:`tick` once per second; ticks arriving while the clock is
    stopped are ignored.
    """

    def __init__(self, total_seconds: int) -> None:
        if total_seconds < 0:
            raise ValueError("Clock duration cannot be negative.")
        self._total_seconds = total_seconds
        self._remaining_seconds = total_seconds
        self._running = False
        self._expired = False

    @classmethod
    def for_quiz_set(cls, time_limit_minutes: int | None, question_count: int) -> "SessionClock":
        return cls(initial_seconds(time_limit_minutes, question_count))

    @property
    def total_seconds(self) -> int:
        return self._total_seconds

    @property
    def remaining_seconds(self) -> int:
        return self._remaining_seconds

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def has_expired(self) -> bool:
        return self._expired

    @property
    def is_low_on_time(self) -> bool:
        return self._remaining_seconds < LOW_TIME_WARNING_SECONDS

    def start(self) -> None:
        if not self._expired:
            self._running = True

    def stop(self) -> None:
        self._running = False

    def tick(self) -> bool:
        """Advance one second. Returns True only on the tick that expires the clock."""
        if not self._running or self._expired:
            return False
        self._remaining_seconds = max(0, self._remaining_seconds - 1)
        if self._remaining_seconds > 0:
            return False
        self._expired = True
        self._running = False
        return True

    def format_remaining(self) -> str:
        """Remaining time as ``MM:SS``."""
        return format_seconds(self._remaining_seconds)
