"""Static metadata describing ExamQt."""

APP_NAME = "ExamQt"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "ExamQt runs timed, randomized exams and surveys. Test-takers answer in the browser "
    "while the proctor console shows every live session, its remaining time and tamper count."
)
