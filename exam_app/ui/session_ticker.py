"""Qt driver for the session clocks."""

from __future__ import annotations

from PySide6.QtCore import QObject, QTimer, Signal

from exam_app.constants.exam_constants import CLOCK_TICK_INTERVAL_MS
from exam_app.core.session_hub import SessionHub


class SessionTicker(QObject):
    """Calls ``SessionHub.tick_all`` once per second on the Qt event loop."""

    ticked = Signal()

    def __init__(
        self,
        hub: SessionHub,
        interval_ms: int = CLOCK_TICK_INTERVAL_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._hub = hub
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._handle_timeout)

    @property
    def is_running(self) -> bool:
        return self._timer.isActive()

    def start(self) -> None:
        self._timer.start()

    def stop(self) -> None:
        self._timer.stop()

    def _handle_timeout(self) -> None:
        self._hub.tick_all()
        self.ticked.emit()
