"""
Logging surface for change control.

Components receive a ChangeLogger at construction and report progress
through `log(level, message)`. The default implementation writes styled
lines to stderr via rich, leaving stdout free for dump output.
"""

from __future__ import annotations

from typing import Literal, Protocol

from rich.console import Console
from rich.markup import escape

Level = Literal["debug", "info", "warning", "error"]

_LEVEL_STYLES: dict[str, str] = {
    "debug": "dim",
    "info": "",
    "warning": "yellow",
    "error": "bold red",
}


class ChangeLogger(Protocol):
    """Protocol for progress and diagnostic output."""

    def log(self, level: Level, message: str) -> None:
        ...


class ConsoleLogger:
    """Write log lines to a rich Console (stderr by default)."""

    def __init__(self, console: Console | None = None, *, verbose: bool = False):
        self.console = console or Console(stderr=True)
        self.verbose = verbose

    def log(self, level: Level, message: str) -> None:
        if level == "debug" and not self.verbose:
            return
        style = _LEVEL_STYLES.get(level, "")
        self.console.print(escape(message), style=style or None, highlight=False, soft_wrap=True)


class NullLogger:
    """Discard everything."""

    def log(self, level: Level, message: str) -> None:
        return None


class RecordingLogger:
    """Keep log lines in memory, e.g. for assertions or deferred display."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str]] = []

    def log(self, level: Level, message: str) -> None:
        self.records.append((level, message))

    def messages(self, level: Level | None = None) -> list[str]:
        return [m for lvl, m in self.records if level is None or lvl == level]
