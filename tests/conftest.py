"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from changecontrol.change import Change, Frequency
from changecontrol.changelog import ChangeLog
from changecontrol.console import RecordingLogger
from changecontrol.store import MemoryStore

PREFIX = "prefix"


class CountingAction:
    """Action that counts its invocations."""

    def __init__(self, error: Exception | None = None):
        self.invocations = 0
        self.error = error

    def __call__(self) -> None:
        self.invocations += 1
        if self.error is not None:
            raise self.error


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def changelog(store: MemoryStore, logger: RecordingLogger) -> ChangeLog:
    return ChangeLog(store, prefix=PREFIX, logger=logger, user="tester", owner_id="host:1")


@pytest.fixture
def make_change(changelog: ChangeLog) -> Callable[..., tuple[Change, CountingAction]]:
    """Build a change with a counting action; payload defaults to the id."""

    def _make(
        change_id: str,
        *,
        payload: Any = None,
        precondition: Callable[[], Any] | None = None,
        frequency: Frequency | str = Frequency.ONCE,
        error: Exception | None = None,
    ) -> tuple[Change, CountingAction]:
        action = CountingAction(error)
        change = Change(
            change_id,
            action,
            changelog,
            payload=payload if payload is not None else {"id": change_id, "version": 1},
            precondition=precondition,
            frequency=frequency,
        )
        return change, action

    return _make
