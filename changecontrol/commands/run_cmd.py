"""Command implementations behind the changecontrol CLI."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

from ..change import Mode
from ..config import Settings
from ..console import ChangeLogger, ConsoleLogger
from ..control import ChangeControl
from ..errors import ChangeControlError
from ..loader import load_change_sets
from ..render import get_renderer
from ..store import open_store


def _control(settings: Settings, logger: ChangeLogger) -> ChangeControl:
    return ChangeControl(
        open_store(settings.redis_url),
        prefix=settings.prefix,
        logger=logger,
        user=settings.user,
    )


def _finish(err: Console, error: Exception | None) -> int:
    if error is not None:
        err.print(f"Failed: {escape(str(error))}", style="bold red", highlight=False, soft_wrap=True)
        for note in getattr(error, "__notes__", []):
            err.print(f"  {escape(note)}", style="red", highlight=False, soft_wrap=True)
        return 1
    err.print("Done", style="green")
    return 0


def run_changes(settings: Settings, mode: str, partial_id: str = "*", *, verbose: bool = False) -> int:
    """Load change sets and execute, pretend or sync them."""
    err = Console(stderr=True)
    logger = ConsoleLogger(err, verbose=verbose)
    try:
        control = _control(settings, logger)
        change_sets = load_change_sets(settings.changes_dir, control)
        if not change_sets:
            logger.log("warning", f"No change sets found in {settings.changes_dir}")
        reports = control.run(Mode(mode), change_sets, partial_id)
    except ChangeControlError as e:
        return _finish(err, e)

    for report in reports:
        logger.log("info", report.summary())
    return _finish(err, None)


def run_clear(settings: Settings, partial_id: str = "*", *, verbose: bool = False) -> int:
    err = Console(stderr=True)
    try:
        cleared = _control(settings, ConsoleLogger(err, verbose=verbose)).clear(partial_id)
    except ChangeControlError as e:
        return _finish(err, e)
    err.print(f"Cleared {len(cleared)} entries", style="dim")
    return _finish(err, None)


def run_unlock(settings: Settings, *, verbose: bool = False) -> int:
    err = Console(stderr=True)
    try:
        released = _control(settings, ConsoleLogger(err, verbose=verbose)).unlock(force=True)
    except ChangeControlError as e:
        return _finish(err, e)
    if not released:
        err.print("Changelog was not locked", style="dim")
    return _finish(err, None)


def run_dump(settings: Settings, output_format: str = "csv", *, verbose: bool = False) -> int:
    err = Console(stderr=True)
    try:
        _control(settings, ConsoleLogger(err, verbose=verbose)).dump(get_renderer(output_format))
    except ChangeControlError as e:
        return _finish(err, e)
    return 0
