"""Helper functions for common dialog patterns in the proctor console."""

from __future__ import annotations

from PySide6.QtWidgets import QMessageBox, QWidget


def confirm_abandon_session(parent: QWidget, user_name: str) -> bool:
    """Show confirmation dialog for abandoning a session.

    Args:
        parent: Parent widget for the dialog
        user_name: Display name of the test-taker

    Returns:
        True if user confirmed, False otherwise
    """
    reply = QMessageBox.question(
        parent,
        "Confirm Abandon",
        f"Abandon the exam of {user_name}? No score will be recorded.",
        QMessageBox.Yes | QMessageBox.No,
        QMessageBox.No
    )
    return reply == QMessageBox.Yes


def show_info(parent: QWidget, title: str, message: str) -> None:
    """Show information dialog."""
    QMessageBox.information(parent, title, message)
