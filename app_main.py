"""Application entry point for ExamQt."""

from __future__ import annotations

from pathlib import Path
import socket
import sys

from PySide6.QtWidgets import QApplication

from exam_app.constants.exam_constants import DEFAULT_QUESTION_BANK_PATH
from exam_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from exam_app.core.errors import QuestionBankLoadError
from exam_app.core.question_bank_loader import load_question_bank
from exam_app.core.session_hub import SessionHub
from exam_app.server.api_server import start_api_server
from exam_app.ui.proctor_main_window import ProctorMainWindow
from exam_app.utils.logging_config import configure_logging


def _determine_student_url(port: int) -> str:
    """Best-effort determination of the local IP for the test-taker URL."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def main() -> None:
    """Load the question bank, start the API server, and launch the proctor console."""
    logger = configure_logging()
    logger.info("Starting ExamQt…")

    bank_path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_QUESTION_BANK_PATH
    try:
        question_bank = load_question_bank(bank_path)
    except QuestionBankLoadError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    logger.info("Loaded %d quiz set(s) from %s", len(question_bank.list_quiz_sets()), bank_path)

    hub = SessionHub(question_bank=question_bank)
    start_api_server(hub, host=DEFAULT_HOST, port=DEFAULT_PORT)
    student_url = _determine_student_url(DEFAULT_PORT)
    logger.info("Exam page available at %s", student_url)

    app = QApplication(sys.argv)
    window = ProctorMainWindow(hub, student_url=student_url)
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
