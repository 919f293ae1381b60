"""Qt UI components for the proctor console."""

from .dialog_helpers import confirm_abandon_session, show_info
from .proctor_main_window import ProctorMainWindow
from .session_ticker import SessionTicker

__all__ = [
    "ProctorMainWindow",
    "SessionTicker",
    "confirm_abandon_session",
    "show_info",
]
