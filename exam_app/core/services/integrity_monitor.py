"""Tamper escalation for exam sessions.

The monitor knows nothing about windows or browsers. Client adapters (the
student page's ``visibilitychange``/``blur`` handler, for instance) report a
loss of attention through a :class:`FocusLossSignal`, and the monitor turns
the running count into warnings, penalties and finally a forced submission:

    1st loss  -> warning, no score effect
    2nd loss  -> 2 penalty points
    3rd loss  -> 3 more penalty points (5 in total)
    4th loss  -> submission is forced
"""

from __future__ import annotations

import logging
from typing import Callable

from exam_app.constants.exam_constants import (
    TAMPER_FORCE_SUBMIT_COUNT,
    TAMPER_PENALTIES,
    TAMPER_WARNING_COUNT,
)
from exam_app.constants.ui_constants import (
    FORCED_SUBMIT_MESSAGE,
    FORCED_SUBMIT_TITLE,
    PENALTY_MESSAGE_TEMPLATE,
    PENALTY_TITLE_TEMPLATE,
    WARNING_MESSAGE,
    WARNING_TITLE,
)
from exam_app.core.models import IntegrityAction, IntegrityNotice

logger = logging.getLogger(__name__)

FocusLossListener = Callable[[], object]


class FocusLossSignal:
    """Observer hub that client adapters use to report lost attention."""

    def __init__(self) -> None:
        self._listeners: list[FocusLossListener] = []

    def connect(self, listener: FocusLossListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def disconnect(self, listener: FocusLossListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self) -> None:
        for listener in list(self._listeners):
            listener()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class IntegrityMonitor:
    """Counts focus-loss events and maps thresholds to notices.

    Each threshold fires at most once per session, even if the same count is
    seen again.
    """

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled
        self._tamper_count = 0
        self._penalty_points = 0
        self._handled_counts: set[int] = set()
        self._force_submit_requested = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def tamper_count(self) -> int:
        return self._tamper_count

    @property
    def penalty_points(self) -> int:
        return self._penalty_points

    @property
    def force_submit_requested(self) -> bool:
        return self._force_submit_requested

    def record_focus_loss(self) -> IntegrityNotice | None:
        """Register one loss of attention and return the notice it triggers, if any."""
        if not self._enabled:
            return None
        self._tamper_count += 1
        return self._escalate(self._tamper_count)

    def _escalate(self, count: int) -> IntegrityNotice | None:
        if count in self._handled_counts:
            return None
        self._handled_counts.add(count)

        if count == TAMPER_WARNING_COUNT:
            notice = IntegrityNotice(count, IntegrityAction.WARNING, 0, WARNING_TITLE, WARNING_MESSAGE)
        elif count in TAMPER_PENALTIES:
            delta = TAMPER_PENALTIES[count]
            self._penalty_points += delta
            notice = IntegrityNotice(
                count,
                IntegrityAction.PENALTY,
                delta,
                PENALTY_TITLE_TEMPLATE.format(count=count, suffix=_ordinal_suffix(count)),
                PENALTY_MESSAGE_TEMPLATE.format(points=delta, total=self._penalty_points),
            )
        elif count == TAMPER_FORCE_SUBMIT_COUNT:
            self._force_submit_requested = True
            notice = IntegrityNotice(
                count, IntegrityAction.FORCE_SUBMIT, 0, FORCED_SUBMIT_TITLE, FORCED_SUBMIT_MESSAGE
            )
        else:
            return None

        logger.info("Tamper count %d -> %s", count, notice.action.value)
        return notice


def _ordinal_suffix(number: int) -> str:
    if 10 <= number % 100 <= 20:
        return "th"
    return {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
