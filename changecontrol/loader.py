"""
Discovery of change-set definition modules.

A changes directory holds plain Python modules, applied in file-name
order. Each exposes `define(control)` returning a ChangeSet or an iterable
of ChangeSets built with `control.change_set(...)`:

    def define(control):
        changes = control.change_set("release-1.0")
        changes.add("init:flags", lambda: ..., payload={"version": 1})
        return changes

Files starting with "_" are ignored.
"""

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

from .changeset import ChangeSet
from .errors import ChangeSetLoadError

if TYPE_CHECKING:
    from .control import ChangeControl


def discover_modules(directory: Path) -> list[Path]:
    """Definition files in application order."""
    if not directory.is_dir():
        raise ChangeSetLoadError(f"Changes directory not found: {directory}")
    return sorted(p for p in directory.glob("*.py") if p.is_file() and not p.name.startswith("_"))


def _import_file(path: Path) -> ModuleType:
    module_name = f"changecontrol_changes_{path.stem.replace('-', '_').replace('.', '_')}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ChangeSetLoadError(f"Cannot import {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise ChangeSetLoadError(f"Failed to import {path.name}: {e}") from e
    return module


def load_change_sets(directory: Path, control: ChangeControl) -> list[ChangeSet]:
    """
    Import every definition module and collect its changesets.

    Args:
        directory: Directory of definition modules
        control: Passed to each module's define()

    Returns:
        ChangeSets in file-name order, then in the order each define() returned them
    """
    change_sets: list[ChangeSet] = []
    for path in discover_modules(directory):
        module = _import_file(path)
        define = getattr(module, "define", None)
        if not callable(define):
            raise ChangeSetLoadError(f"{path.name} has no define(control) function")

        result = define(control)
        if isinstance(result, ChangeSet):
            change_sets.append(result)
            continue
        try:
            produced = list(result)
        except TypeError:
            raise ChangeSetLoadError(f"{path.name}: define() must return a ChangeSet or an iterable of them") from None
        for item in produced:
            if not isinstance(item, ChangeSet):
                raise ChangeSetLoadError(f"{path.name}: define() returned {type(item).__name__}, not a ChangeSet")
            change_sets.append(item)
    return change_sets
