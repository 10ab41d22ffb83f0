"""
Error hierarchy for change control.

Every error a run can surface derives from ChangeControlError so callers
(the CLI in particular) can report failures uniformly. Messages always name
the offending change id or, for lock contention, the current owner.
"""

from __future__ import annotations

from typing import Any


class ChangeControlError(Exception):
    """Base class for all change control failures."""

    # RunReport of the changeset run that raised this error, if any.
    report: Any = None


class StoreError(ChangeControlError):
    """A backing store operation failed. Never retried automatically."""


class LockContention(ChangeControlError):
    """The changelog scope is held by a different owner."""

    def __init__(self, owner: str, timestamp: str | None):
        self.owner = owner
        self.timestamp = timestamp
        super().__init__(f"Changelog was locked by {owner} on {timestamp or 'unknown'}")


class ChangeModified(ChangeControlError):
    """A change was applied before with a different checksum."""

    def __init__(self, change_id: str):
        self.change_id = change_id
        super().__init__(f"{change_id} has been modified")


class PreconditionFailed(ChangeControlError):
    """A change's precondition raised. The cause is chained."""

    def __init__(self, change_id: str, cause: BaseException | None = None):
        self.change_id = change_id
        detail = f": {str(cause) or type(cause).__name__}" if cause is not None else ""
        super().__init__(f"Precondition for {change_id} failed{detail}")


class PreconditionAborted(ChangeControlError):
    """
    Raised by a precondition to skip its change.

    This is a control signal, not a failure: the change's workflow stops
    and the run carries on with the next change.
    """


class ChangeFailed(ChangeControlError):
    """A change's action raised. The cause is chained."""

    def __init__(self, change_id: str, cause: BaseException | None = None):
        self.change_id = change_id
        detail = f": {str(cause) or type(cause).__name__}" if cause is not None else ""
        super().__init__(f"{change_id} failed{detail}")


class ChangeSetLoadError(ChangeControlError):
    """A change-set definition module could not be loaded."""
