"""Qt UI and notification text constants."""

WINDOW_TITLE: str = "ExamQt Proctor Console"
STUDENT_URL_PLACEHOLDER: str = "http://<proctor-ip>:8000/"
NO_SESSIONS_MESSAGE: str = "No exam sessions yet."
SESSION_COUNT_TEMPLATE: str = "{active} active / {total} total session(s)"
SESSION_TABLE_HEADERS: tuple[str, ...] = (
    "Test-taker",
    "Department",
    "Quiz set",
    "Phase",
    "Time left",
    "Tamper",
    "Penalty",
)
ABANDON_BUTTON: str = "Abandon Selected Session"
SURVEY_TIME_PLACEHOLDER: str = "—"

WARNING_TITLE: str = "Warning (1st time)"
WARNING_MESSAGE: str = "Leaving the exam window was detected. Doing it again will cost you points."
PENALTY_TITLE_TEMPLATE: str = "Points deducted ({count}{suffix} time)"
PENALTY_MESSAGE_TEMPLATE: str = "{points} point(s) were deducted. Total penalty: {total}."
FORCED_SUBMIT_TITLE: str = "Answers submitted automatically"
FORCED_SUBMIT_MESSAGE: str = "You left the exam window too many times; your answers have been submitted."
UNANSWERED_CONFIRM_TEMPLATE: str = "{count} question(s) are still unanswered. Submit anyway?"
NOT_ANSWERED_LABEL: str = "Not answered"
