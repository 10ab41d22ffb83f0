"""
Cross-process mutual exclusion for a changelog scope.

The lock is a single hash record at `{prefix}:changelog:lock` holding the
owner identity and the time it was taken. Acquisition is optimistic:

    watch(lock key) → read owner → [contention?] → queue write → exec

If the watched key moves between the read and the exec, the transaction
commits nothing and the acquisition fails with LockContention. There is
no retry loop and no timeout.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from .console import ChangeLogger, NullLogger
from .errors import LockContention, StoreError
from .store import Store
from .util import default_owner_id, utc_now


@dataclass(frozen=True)
class LockRecord:
    owner: str
    timestamp: str

    @classmethod
    def from_hash(cls, data: dict[str, str]) -> LockRecord | None:
        owner = data.get("owner")
        if not owner:
            return None
        return cls(owner=owner, timestamp=data.get("timestamp", ""))

    def to_hash(self) -> dict[str, str]:
        return {"owner": self.owner, "timestamp": self.timestamp}


class ChangeLogLock:
    """
    Optimistic lock guarding one changelog scope.

    Re-entrant for the same owner: re-acquiring overwrites the record with a
    fresh timestamp instead of contending with itself.
    """

    def __init__(
        self,
        store: Store,
        prefix: str,
        *,
        owner_id: str | None = None,
        logger: ChangeLogger | None = None,
    ):
        self.store = store
        self.prefix = prefix
        self.owner_id = owner_id or default_owner_id()
        self.logger = logger or NullLogger()
        self.key = ":".join([prefix, "changelog", "lock"])

    def holder(self) -> LockRecord | None:
        """Current lock record, or None when the scope is free."""
        return LockRecord.from_hash(self.store.hgetall(self.key))

    def acquire(self) -> LockRecord:
        """
        Take the lock for this owner.

        Raises:
            LockContention: held by another owner, or the optimistic
                transaction lost a race
        """
        self.logger.log("info", "Locking changelog")
        with self.store.watch(self.key) as tx:
            current = LockRecord.from_hash(tx.hgetall(self.key))
            if current is not None and current.owner != self.owner_id:
                raise LockContention(current.owner, current.timestamp)

            record = LockRecord(owner=self.owner_id, timestamp=utc_now())
            tx.hset(self.key, record.to_hash())
            committed = tx.execute()

        if not committed:
            winner = self.holder()
            if winner is None:
                raise LockContention("unknown", None)
            raise LockContention(winner.owner, winner.timestamp)
        return record

    def release(self, force: bool = False) -> bool:
        """
        Release the lock.

        Args:
            force: Delete the record whoever owns it

        Returns:
            True if the lock record was removed
        """
        self.logger.log("info", "Unlocking changelog")
        if force:
            return self.store.delete(self.key) > 0

        with self.store.watch(self.key) as tx:
            current = LockRecord.from_hash(tx.hgetall(self.key))
            if current is None:
                return False
            if current.owner != self.owner_id:
                self.logger.log("warning", f"Changelog is locked by {current.owner}, not releasing")
                return False
            tx.delete(self.key)
            released = tx.execute()

        if not released:
            self.logger.log("warning", "Lock record changed while releasing; left in place")
        return released

    @contextmanager
    def held(self) -> Iterator[LockRecord]:
        """
        Hold the lock for the duration of the block.

        The lock is released on every exit path. A StoreError raised by the
        release never replaces an error already propagating from the block:
        it is logged and attached to that error as a note.
        """
        record = self.acquire()
        try:
            yield record
        except BaseException as exc:
            try:
                self.release()
            except StoreError as release_error:
                self.logger.log("error", str(release_error))
                exc.add_note(f"Releasing the changelog lock also failed: {release_error}")
            raise
        else:
            self.release()
