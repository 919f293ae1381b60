"""Qt main window for the proctor: live sessions, student URL and controls."""

from __future__ import annotations

from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from exam_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from exam_app.constants.ui_constants import ABANDON_BUTTON, STUDENT_URL_PLACEHOLDER, WINDOW_TITLE
from exam_app.core.session_hub import SessionHub
from exam_app.styling.styles import Styles
from exam_app.ui.components.session_panel import SessionPanel
from exam_app.ui.dialog_helpers import confirm_abandon_session, show_info
from exam_app.ui.session_ticker import SessionTicker


class ProctorMainWindow(QMainWindow):
    """Main Qt window of the proctor console."""

    def __init__(
        self,
        hub: SessionHub,
        student_url: str | None = None,
        ticker: SessionTicker | None = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle(WINDOW_TITLE)

        self.hub = hub
        self.student_url = student_url or STUDENT_URL_PLACEHOLDER
        self.ticker = ticker or SessionTicker(hub, parent=self)

        self._build_ui()
        self.setStyleSheet(Styles.get_main_window_style())
        self.ticker.ticked.connect(self.session_panel.refresh_sessions)
        self.session_panel.refresh_sessions()
        if not self.ticker.is_running:
            self.ticker.start()

    def _build_ui(self) -> None:
        central_widget = QWidget(self)
        self.setCentralWidget(central_widget)

        root_layout = QVBoxLayout()
        central_widget.setLayout(root_layout)

        self.network_label = QLabel(f"Test-takers connect to: {self.student_url}", self)
        self.network_label.setWordWrap(True)
        self.network_label.setStyleSheet(Styles.get_large_label_style())
        root_layout.addWidget(self.network_label)

        self.session_panel = SessionPanel(self.hub, self)
        root_layout.addWidget(self.session_panel, stretch=1)

        button_row = QHBoxLayout()
        self.abandon_button = QPushButton(ABANDON_BUTTON, self)
        self.abandon_button.clicked.connect(self._handle_abandon)
        button_row.addWidget(self.abandon_button)

        button_row.addStretch()

        self.about_button = QPushButton(f"About {APP_NAME}", self)
        self.about_button.clicked.connect(self._handle_about)
        button_row.addWidget(self.about_button)
        root_layout.addLayout(button_row)

    def _handle_abandon(self) -> None:
        session_id = self.session_panel.selected_session_id()
        if session_id is None:
            show_info(self, "No session", "Select a session first.")
            return
        try:
            session = self.hub.get_session(session_id)
        except KeyError:
            self.session_panel.refresh_sessions()
            return
        if not confirm_abandon_session(self, session.user.display_name):
            return
        if not self.hub.abandon_session(session_id):
            show_info(self, "Session finished", "This session has already ended.")
        self.session_panel.refresh_sessions()

    def _handle_about(self) -> None:
        details = (
            f"{APP_NAME} v{APP_VERSION}\n"
            f"License: {APP_LICENSE}\n\n"
            f"{APP_ABOUT_TEXT}"
        )
        show_info(self, f"About {APP_NAME}", details)

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802
        self.ticker.stop()
        super().closeEvent(event)
