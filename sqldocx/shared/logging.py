"""Rich-based logging helpers shared across the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from rich.console import Console
from rich.theme import Theme
from rich.traceback import install

install(show_locals=False)

_THEME = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "debug": "dim",
    }
)

# Log lines go to stderr so stdout stays free for command output.
# Highlighting is disabled so server names and counts inside messages do not pick up
# extra ANSI styling; tests assert on the plain text.
_stderr_console = Console(stderr=True, theme=_THEME, highlight=False)


@dataclass(slots=True)
class Logger:
    """Lightweight logger facade backed by a Rich stderr console.

    Every line is prefixed with a ``[HH:MM:SS]`` timestamp unless ``timestamps`` is off.
    """

    verbose: bool = False
    timestamps: bool = True

    def info(self, message: str) -> None:
        self._emit(message, "info")

    def success(self, message: str) -> None:
        self._emit(message, "success")

    def warning(self, message: str) -> None:
        self._emit(message, "warning")

    def error(self, message: str) -> None:
        self._emit(message, "error")

    def debug(self, message: str) -> None:
        if self.verbose:
            self._emit(message, "debug")

    def _emit(self, message: str, style: str) -> None:
        _stderr_console.print(self._format(message), style=style, markup=False, emoji=False)

    def _format(self, message: str) -> str:
        if not self.timestamps:
            return message
        return f"[{datetime.now().strftime('%H:%M:%S')}] {message}"


def get_logger(verbose: bool = False, timestamps: bool = True) -> Logger:
    """Return a configured Logger instance."""
    return Logger(verbose=verbose, timestamps=timestamps)
