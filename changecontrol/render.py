"""
Renderers for dumped ledger entries.

The changelog hands its entries (ascending sequence) to a Renderer. The
default CsvRenderer prints a header row, one comma-separated line per
entry, then a blank trailer line.
"""

from __future__ import annotations

import json
from typing import Protocol, Sequence, TextIO

import click
from rich.console import Console
from rich.table import Table

from .changelog import LEDGER_FIELDS, LedgerEntry


class Renderer(Protocol):
    """Protocol for dump output."""

    def render(self, entries: Sequence[LedgerEntry]) -> None:
        ...


class CsvRenderer:
    def __init__(self, out: TextIO | None = None):
        self.out = out

    def _echo(self, line: str) -> None:
        click.echo(line, file=self.out)

    def render(self, entries: Sequence[LedgerEntry]) -> None:
        self._echo("")
        self._echo(",".join(LEDGER_FIELDS))
        for entry in entries:
            self._echo(",".join(str(v) for v in entry.to_dict().values()))
        self._echo("")


class TableRenderer:
    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def render(self, entries: Sequence[LedgerEntry]) -> None:
        table = Table(title="Changelog")
        table.add_column("sequence", justify="right")
        table.add_column("id", style="cyan", no_wrap=True)
        table.add_column("checksum", style="dim")
        table.add_column("user")
        table.add_column("timestamp")
        for entry in entries:
            table.add_row(str(entry.sequence), entry.id, entry.checksum[:12] + "…", entry.user, entry.timestamp)
        self.console.print(table)


class JsonRenderer:
    def __init__(self, out: TextIO | None = None):
        self.out = out

    def render(self, entries: Sequence[LedgerEntry]) -> None:
        click.echo(json.dumps([e.to_dict() for e in entries], indent=2), file=self.out)


RENDERERS: dict[str, type] = {
    "csv": CsvRenderer,
    "table": TableRenderer,
    "json": JsonRenderer,
}


def get_renderer(name: str) -> Renderer:
    try:
        return RENDERERS[name]()
    except KeyError:
        raise ValueError(f"Unknown dump format: {name}") from None
