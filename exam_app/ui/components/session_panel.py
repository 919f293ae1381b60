"""Component listing every exam session and its live state."""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor
from PySide6.QtWidgets import (
    QAbstractItemView,
    QHeaderView,
    QLabel,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from exam_app.constants.ui_constants import (
    NO_SESSIONS_MESSAGE,
    SESSION_COUNT_TEMPLATE,
    SESSION_TABLE_HEADERS,
    SURVEY_TIME_PLACEHOLDER,
)
from exam_app.core.models import SessionPhase, SessionSnapshot
from exam_app.core.session_hub import SessionHub
from exam_app.styling.styles import Styles


def _phase_label(snapshot: SessionSnapshot) -> str:
    if snapshot.is_abandoned:
        return "Abandoned"
    if snapshot.phase is SessionPhase.TERMINAL:
        return "Submitted"
    if snapshot.last_error:
        return "Active (save failed)"
    return snapshot.phase.name.capitalize()


class SessionPanel(QWidget):
    """UI component showing the session table."""

    def __init__(self, hub: SessionHub, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.hub = hub
        self._row_session_ids: list[str] = []
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        self.count_label = QLabel(SESSION_COUNT_TEMPLATE.format(active=0, total=0), self)
        layout.addWidget(self.count_label)

        self.session_table = QTableWidget(0, len(SESSION_TABLE_HEADERS), self)
        self.session_table.setHorizontalHeaderLabels(list(SESSION_TABLE_HEADERS))
        self.session_table.setSelectionBehavior(QAbstractItemView.SelectRows)
        self.session_table.setSelectionMode(QAbstractItemView.SingleSelection)
        self.session_table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.session_table.setAlternatingRowColors(True)
        self.session_table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        layout.addWidget(self.session_table, stretch=1)

        self.empty_label = QLabel(NO_SESSIONS_MESSAGE, self)
        self.empty_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.empty_label)

    def refresh_sessions(self) -> None:
        snapshots = [session.snapshot() for session in self.hub.list_sessions()]
        selected_id = self.selected_session_id()

        self.session_table.setRowCount(len(snapshots))
        self._row_session_ids = []
        for row, snapshot in enumerate(snapshots):
            self._row_session_ids.append(snapshot.session_id)
            self._fill_row(row, snapshot)

        if selected_id in self._row_session_ids:
            self.session_table.selectRow(self._row_session_ids.index(selected_id))

        active = len(self.hub.active_sessions())
        self.count_label.setText(SESSION_COUNT_TEMPLATE.format(active=active, total=len(snapshots)))
        self.empty_label.setVisible(not snapshots)

    def selected_session_id(self) -> str | None:
        rows = self.session_table.selectionModel().selectedRows()
        if not rows:
            return None
        row = rows[0].row()
        if row >= len(self._row_session_ids):
            return None
        return self._row_session_ids[row]

    def _fill_row(self, row: int, snapshot: SessionSnapshot) -> None:
        values = (
            snapshot.user.display_name,
            snapshot.user.department,
            snapshot.quiz_set.name if snapshot.quiz_set else "",
            _phase_label(snapshot),
            snapshot.remaining_display or SURVEY_TIME_PLACEHOLDER,
            str(snapshot.tamper_count),
            str(snapshot.penalty_points),
        )
        for column, value in enumerate(values):
            item = QTableWidgetItem(value)
            self.session_table.setItem(row, column, item)

        phase_item = self.session_table.item(row, 3)
        phase_item.setForeground(QColor(Styles.get_phase_color(snapshot.phase)))
        if snapshot.phase is SessionPhase.ACTIVE and snapshot.is_low_on_time:
            self.session_table.item(row, 4).setForeground(QColor(Styles.get_low_time_color()))
