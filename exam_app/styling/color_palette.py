"""Color palette for the proctor console supporting light and dark themes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class Theme(Enum):
    """Application theme options."""
    LIGHT = auto()
    DARK = auto()


@dataclass(frozen=True)
class ThemeColors:
    """Color definitions for a specific theme."""
    light: str
    dark: str

    def get(self, theme: Theme) -> str:
        return self.light if theme == Theme.LIGHT else self.dark


class ColorPalette:
    """Centralized color definitions for the console."""

    TEXT_PRIMARY = ThemeColors(light="#000000", dark="#F5F5F5")
    BACKGROUND_PRIMARY = ThemeColors(light="#FFFFFF", dark="#1E1E1E")
    BORDER_PRIMARY = ThemeColors(light="#D1D1D1", dark="#555555")
    BUTTON_SECONDARY_BG = ThemeColors(light="#F5F5F5", dark="#3A3A3A")
    BUTTON_HOVER_BG = ThemeColors(light="#E8E8E8", dark="#505050")

    # Session table rows
    PHASE_ACTIVE = ThemeColors(light="#107C10", dark="#6FCF6F")
    PHASE_SUBMITTING = ThemeColors(light="#FFB900", dark="#FFC83D")
    PHASE_FINISHED = ThemeColors(light="#666666", dark="#AAAAAA")
    LOW_TIME = ThemeColors(light="#D13438", dark="#FF6B6B")
