"""
A single idempotent, audited unit of work.

Each invocation walks the same workflow, with the mode deciding which steps
take part:

    applicable → runnable → run → audit

    validate:  applicable, runnable
    pretend:   applicable, runnable        (dry-run preview)
    execute:   applicable, runnable, run, audit
    sync:      applicable, audit           (record as applied without running)

A change's identity is its id plus the checksum of its payload. Once a
ledger entry exists for an id, any change sharing that id must carry the
same checksum or it is rejected as modified.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from .changelog import ChangeLog
from .console import ChangeLogger
from .errors import ChangeFailed, ChangeModified, PreconditionAborted, PreconditionFailed, StoreError
from .util import compute_checksum, matches_pattern

Action = Callable[[], Any]
# Return False (or raise PreconditionAborted) to skip the change.
Precondition = Callable[[], Any]


class Frequency(str, Enum):
    ONCE = "once"
    ALWAYS = "always"


class Mode(str, Enum):
    VALIDATE = "validate"
    EXECUTE = "execute"
    PRETEND = "pretend"
    SYNC = "sync"


class Outcome(str, Enum):
    """What happened to a change during one invocation."""

    ABORTED = "aborted"  # precondition asked to skip
    SKIPPED = "skipped"  # already applied with the same checksum
    VALIDATED = "validated"
    PRETENDED = "pretended"
    EXECUTED = "executed"
    SYNCED = "synced"
    FAILED = "failed"  # raised; set by the changeset runner
    HALTED = "halted"  # not invoked because an earlier change failed


_COMPLETED: dict[Mode, Outcome] = {
    Mode.VALIDATE: Outcome.VALIDATED,
    Mode.EXECUTE: Outcome.EXECUTED,
    Mode.PRETEND: Outcome.PRETENDED,
    Mode.SYNC: Outcome.SYNCED,
}


def _names_change(error: Exception) -> bool:
    """True for library errors that already carry a change id."""
    return isinstance(error, (ChangeModified, PreconditionFailed, ChangeFailed))


class Change:
    """
    One change, bound to the changelog it is audited in.

    Args:
        change_id: Unique id within the changelog scope
        action: Zero-argument callable performing the work
        changelog: Ledger consulted and written by the workflow
        payload: The action's content as data; its checksum is the
            change's identity, so bump it (e.g. a version field) whenever
            the action's behaviour changes
        precondition: Optional gate run before anything else
        frequency: Frequency.ONCE (default) or Frequency.ALWAYS
        logger: Progress output
    """

    def __init__(
        self,
        change_id: str,
        action: Action,
        changelog: ChangeLog,
        *,
        payload: Any,
        precondition: Precondition | None = None,
        frequency: Frequency | str = Frequency.ONCE,
        logger: ChangeLogger | None = None,
    ):
        if not change_id:
            raise ValueError("change_id is required")
        if payload is None:
            raise ValueError(f"{change_id}: payload is required to compute the change checksum")
        self._id = change_id
        self._action = action
        self._changelog = changelog
        self._checksum = compute_checksum(payload)
        self._precondition = precondition
        self._frequency = Frequency(frequency)
        self.logger = logger or changelog.logger

    @property
    def id(self) -> str:
        return self._id

    @property
    def checksum(self) -> str:
        return self._checksum

    @property
    def frequency(self) -> Frequency:
        return self._frequency

    def __str__(self) -> str:
        return self._id

    def __repr__(self) -> str:
        return f"Change({self._id!r}, checksum={self._checksum[:12]!r}, frequency={self._frequency.value!r})"

    def answers_to(self, partial_id: str | None) -> bool:
        """True if this change's id matches a glob-style partial id."""
        return matches_pattern(self._id, partial_id)

    # --- Entry points ---

    def validate(self) -> Outcome:
        return self._workflow(Mode.VALIDATE)

    def execute(self) -> Outcome:
        self.logger.log("info", f"Executing {self}")
        return self._workflow(Mode.EXECUTE)

    def pretend(self) -> Outcome:
        self.logger.log("info", f"Pretending to execute {self}")
        return self._workflow(Mode.PRETEND)

    def sync(self) -> Outcome:
        self.logger.log("info", f"Synchronising {self}")
        return self._workflow(Mode.SYNC)

    def invoke(self, mode: Mode | str) -> Outcome:
        """Dispatch to the entry point for `mode`."""
        return getattr(self, Mode(mode).value)()

    # --- Workflow steps ---

    def _workflow(self, mode: Mode) -> Outcome:
        if not self._applicable():
            self.logger.log("info", f"Skipping {self} (precondition not met)")
            return Outcome.ABORTED
        try:
            if mode is not Mode.SYNC and not self._runnable(mode):
                return Outcome.SKIPPED
            if mode is Mode.EXECUTE:
                self._run()
            if mode in (Mode.EXECUTE, Mode.SYNC):
                self._changelog.audit(self._id, self._checksum)
        except StoreError as e:
            # Ledger reads and writes; action failures are already ChangeFailed.
            raise StoreError(f"{self._id}: {e}") from e
        return _COMPLETED[mode]

    def _applicable(self) -> bool:
        if self._precondition is None:
            return True
        try:
            result = self._precondition()
        except PreconditionAborted:
            return False
        except Exception as e:
            if _names_change(e):
                raise
            raise PreconditionFailed(self._id, e) from e
        return result is not False

    def _runnable(self, mode: Mode) -> bool:
        entry = self._changelog.get_entry(self._id)
        if entry is None or self._frequency is Frequency.ALWAYS:
            return True
        if entry.checksum != self._checksum:
            raise ChangeModified(self._id)
        if mode in (Mode.EXECUTE, Mode.PRETEND):
            self.logger.log("info", "Skipping (already executed)")
        return False

    def _run(self) -> None:
        try:
            self._action()
        except Exception as e:
            if _names_change(e):
                raise
            raise ChangeFailed(self._id, e) from e
