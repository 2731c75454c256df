"""Terminal user interface."""

from .console_screen import ConsoleScreen
from .line_input import read_line

__all__ = ["ConsoleScreen", "read_line"]
