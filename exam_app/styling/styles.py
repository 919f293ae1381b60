"""Centralized styles for the proctor console."""

from exam_app.core.models import SessionPhase

from .color_palette import ColorPalette, Theme


class Styles:
    """Helper class to generate Qt stylesheets based on the current theme."""

    @staticmethod
    def get_main_window_style(theme: Theme = Theme.LIGHT) -> str:
        return f"""
            QMainWindow, QWidget {{
                background-color: {ColorPalette.BACKGROUND_PRIMARY.get(theme)};
                color: {ColorPalette.TEXT_PRIMARY.get(theme)};
                font-family: 'Segoe UI', 'Roboto', sans-serif;
                font-size: 14px;
            }}
            QPushButton {{
                background-color: {ColorPalette.BUTTON_SECONDARY_BG.get(theme)};
                border: 1px solid {ColorPalette.BORDER_PRIMARY.get(theme)};
                border-radius: 4px;
                padding: 6px 12px;
            }}
            QPushButton:hover {{
                background-color: {ColorPalette.BUTTON_HOVER_BG.get(theme)};
            }}
            QTableWidget {{
                border: 1px solid {ColorPalette.BORDER_PRIMARY.get(theme)};
                border-radius: 4px;
            }}
        """

    @staticmethod
    def get_large_label_style() -> str:
        return "font-size: 16pt; font-weight: bold;"

    @staticmethod
    def get_phase_color(phase: SessionPhase, theme: Theme = Theme.LIGHT) -> str:
        if phase is SessionPhase.ACTIVE:
            return ColorPalette.PHASE_ACTIVE.get(theme)
        if phase is SessionPhase.SUBMITTING:
            return ColorPalette.PHASE_SUBMITTING.get(theme)
        return ColorPalette.PHASE_FINISHED.get(theme)

    @staticmethod
    def get_low_time_color(theme: Theme = Theme.LIGHT) -> str:
        return ColorPalette.LOW_TIME.get(theme)
