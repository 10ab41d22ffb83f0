"""
Ordered, named groups of changes applied under one lock acquisition.

A run selects the changes answering to a partial id (registration order is
kept) and drives them through one or two phases:

    execute:  validate* → execute*
    pretend:  validate* → pretend*
    sync:     sync*

Within a phase changes are processed strictly one at a time. The first
error is held in the phase's run context; every later change in the phase
is reported as halted without being invoked, and the phase completes once
with that error. A phase-1 error means phase 2 never starts. The lock is
released whatever happens, and nothing already audited is rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from .change import Action, Change, Frequency, Mode, Outcome, Precondition
from .changelog import ChangeLog
from .console import ChangeLogger
from .errors import ChangeControlError

_PHASES: dict[Mode, tuple[Mode, ...]] = {
    Mode.EXECUTE: (Mode.VALIDATE, Mode.EXECUTE),
    Mode.PRETEND: (Mode.VALIDATE, Mode.PRETEND),
    Mode.SYNC: (Mode.SYNC,),
}

_LABELS: dict[Mode, str] = {
    Mode.EXECUTE: "Executing",
    Mode.PRETEND: "Pretending to execute",
    Mode.SYNC: "Synchronising",
}


@dataclass
class ChangeResult:
    change_id: str
    outcome: Outcome
    error: ChangeControlError | None = None


@dataclass
class RunContext:
    """Per-phase state threaded through the sequential runner."""

    mode: Mode
    first_error: ChangeControlError | None = None

    @property
    def aborted(self) -> bool:
        return self.first_error is not None


@dataclass
class PhaseReport:
    mode: Mode
    results: list[ChangeResult] = field(default_factory=list)
    error: ChangeControlError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)


@dataclass
class RunReport:
    change_set_id: str
    mode: Mode
    partial_id: str
    phases: list[PhaseReport] = field(default_factory=list)

    @property
    def error(self) -> ChangeControlError | None:
        for phase in self.phases:
            if phase.error is not None:
                return phase.error
        return None

    @property
    def success(self) -> bool:
        return self.error is None

    def summary(self) -> str:
        last = self.phases[-1] if self.phases else None
        if last is None:
            return f"{self.change_set_id}: nothing selected"
        counts = ", ".join(
            f"{o.value}={last.count(o)}" for o in Outcome if last.count(o)
        )
        return f"{self.change_set_id} [{self.mode.value}] {counts or 'nothing selected'}"


class ChangeSet:
    """
    A named, ordered collection of changes sharing one changelog.

    Child change ids are the changeset id joined with the suffix given to
    add(), e.g. ChangeSet("release-1.0").add("init:users", ...) registers
    "release-1.0:init:users".

    A failed run raises its first error with the partial report attached
    as `error.report`.
    """

    def __init__(self, change_set_id: str, changelog: ChangeLog, *, logger: ChangeLogger | None = None):
        self.id = change_set_id
        self.changelog = changelog
        self.logger = logger or changelog.logger
        self._changes: list[Change] = []

    def __repr__(self) -> str:
        return f"ChangeSet({self.id!r}, changes={len(self._changes)})"

    @property
    def changes(self) -> tuple[Change, ...]:
        return tuple(self._changes)

    def add(
        self,
        suffix: str,
        action: Action,
        *,
        payload: Any,
        precondition: Precondition | None = None,
        frequency: Frequency | str = Frequency.ONCE,
    ) -> Change:
        """Register a change whose id is `{changeset id}:{suffix}`."""
        change = Change(
            f"{self.id}:{suffix}",
            action,
            self.changelog,
            payload=payload,
            precondition=precondition,
            frequency=frequency,
            logger=self.logger,
        )
        return self.include(change)

    def include(self, change: Change) -> Change:
        """Register an already-built change."""
        if any(c.id == change.id for c in self._changes):
            raise ValueError(f"Duplicate change id in {self.id}: {change.id}")
        self._changes.append(change)
        return change

    def select(self, partial_id: str | None = "*") -> list[Change]:
        """Changes answering to `partial_id`, in registration order."""
        return [c for c in self._changes if c.answers_to(partial_id)]

    # --- Runs ---

    def execute(self, partial_id: str | None = "*") -> RunReport:
        return self._run(Mode.EXECUTE, partial_id)

    def pretend(self, partial_id: str | None = "*") -> RunReport:
        return self._run(Mode.PRETEND, partial_id)

    def sync(self, partial_id: str | None = "*") -> RunReport:
        return self._run(Mode.SYNC, partial_id)

    def run(self, mode: Mode | str, partial_id: str | None = "*") -> RunReport:
        mode = Mode(mode)
        if mode not in _PHASES:
            raise ValueError(f"{mode.value} is not a changeset run mode")
        return self._run(mode, partial_id)

    def _run(self, mode: Mode, partial_id: str | None) -> RunReport:
        partial_id = partial_id or "*"
        self.logger.log("info", f"{_LABELS[mode]} changeset {self.id} [filter={partial_id}]")
        report = RunReport(change_set_id=self.id, mode=mode, partial_id=partial_id)

        with self.changelog.lock():
            subset = self.select(partial_id)
            for phase_mode in _PHASES[mode]:
                phase = self._run_phase(subset, phase_mode)
                report.phases.append(phase)
                if phase.error is not None:
                    phase.error.report = report
                    raise phase.error

        self.logger.log("debug", report.summary())
        return report

    def _run_phase(self, subset: Sequence[Change], mode: Mode) -> PhaseReport:
        context = RunContext(mode=mode)
        phase = PhaseReport(mode=mode)
        for change in subset:
            if context.aborted:
                phase.results.append(ChangeResult(change.id, Outcome.HALTED))
                continue
            try:
                outcome = change.invoke(mode)
            except ChangeControlError as e:
                context.first_error = e
                phase.results.append(ChangeResult(change.id, Outcome.FAILED, e))
                continue
            phase.results.append(ChangeResult(change.id, outcome))
        phase.error = context.first_error
        return phase
