# trimmer/printer.py
# Centralized CLI output formatter for the audio trimmer.

import os
import sys
from typing import Optional, TextIO


class OutputPrinter:
    """
    Output formatter for the trim CLI.

    - Results and progress go to stdout, errors to stderr.
    - ``quiet`` silences everything except errors.
    - Color is optional; NO_COLOR in the environment turns it off.
    """

    SYMBOLS : dict[str, str] = {
        "success" : "✅",
        "error"   : "❌",
        "warning" : "⚠️ ",
        "info"    : "ℹ️ ",
        "hint"    : "→",
    }

    COLORS : dict[str, str] = {
        "green"  : "32",
        "red"    : "31",
        "yellow" : "33",
        "cyan"   : "36",
        "dim"    : "90",
    }

    COL_WIDTH : int = 10

    def __init__(self, quiet : bool = False, no_color : bool = False) -> None:
        self.quiet    : bool = quiet
        self.no_color : bool = no_color or bool(os.environ.get("NO_COLOR", ""))

    # ── Internal ─────────────────────────────────────────────────

    def _colorize(self, text : str, code : str) -> str:
        """Apply ANSI color code if color output is enabled."""
        if self.no_color:
            return text
        return f"\033[{code}m{text}\033[0m"

    def _emit(
        self,
        kind    : str,
        color   : str,
        message : str,
        hint    : Optional[str],
        stream  : TextIO,
    ) -> None:
        symbol : str = self._colorize(self.SYMBOLS[kind], self.COLORS[color])
        print(f"\n{symbol}  {self._colorize(message, self.COLORS[color])}", file=stream)
        if hint:
            h : str = self._colorize(f"{self.SYMBOLS['hint']} {hint}", self.COLORS["cyan"])
            print(f"    {h}", file=stream)

    # ── Public ───────────────────────────────────────────────────

    def success(self, title : str, details : Optional[dict[str, str]] = None) -> None:
        """Print the finished artifact with an aligned detail block."""
        if self.quiet:
            return
        self._emit("success", "green", title, None, sys.stdout)
        for key, value in (details or {}).items():
            dim_key : str = self._colorize(f"{key:<{self.COL_WIDTH}}", self.COLORS["dim"])
            print(f"    {dim_key}: {value}")

    def error(self, message : str, hint : Optional[str] = None) -> None:
        """Errors always reach stderr, even in quiet mode."""
        self._emit("error", "red", message, hint, sys.stderr)

    def warning(self, message : str, hint : Optional[str] = None) -> None:
        if self.quiet:
            return
        self._emit("warning", "yellow", message, hint, sys.stdout)

    def info(self, message : str) -> None:
        if self.quiet:
            return
        symbol : str = self._colorize(self.SYMBOLS["info"], self.COLORS["cyan"])
        print(f"{symbol} {message}")

