"""
Audit ledger of applied changes.

One hash record per change id records the checksum that was applied, who
applied it, when, and the sequence number it was given. The sequence comes
from a single atomic counter, so ledger order is application order.

Key space (all under a caller-supplied prefix):
- {prefix}:changelog:change:{id}   one record per change id
- {prefix}:changelog:sequence      counter
- {prefix}:changelog:lock          lock record (see lock.py)
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

from .console import ChangeLogger, NullLogger
from .errors import StoreError
from .lock import ChangeLogLock, LockRecord
from .store import Store
from .util import current_user, utc_now

if TYPE_CHECKING:
    from .render import Renderer

LEDGER_FIELDS = ("sequence", "id", "checksum", "user", "timestamp")


@dataclass(frozen=True)
class LedgerEntry:
    """A single applied change."""

    id: str
    checksum: str
    user: str
    timestamp: str
    sequence: int

    def to_hash(self) -> dict[str, str]:
        return {
            "id": self.id,
            "checksum": self.checksum,
            "user": self.user,
            "timestamp": self.timestamp,
            "sequence": str(self.sequence),
        }

    @classmethod
    def from_hash(cls, change_id: str, data: dict[str, str], key: str | None = None) -> LedgerEntry:
        """
        Build from a stored record; tolerates records missing optional fields.

        Raises:
            StoreError: the sequence field is present but not an integer
        """
        raw_sequence = data.get("sequence") or "0"
        try:
            sequence = int(raw_sequence)
        except ValueError:
            raise StoreError(f"Corrupt ledger record {key or change_id}: sequence {raw_sequence!r}") from None
        return cls(
            id=data.get("id") or change_id,
            checksum=data.get("checksum", ""),
            user=data.get("user", ""),
            timestamp=data.get("timestamp", ""),
            sequence=sequence,
        )

    def to_dict(self) -> dict[str, str | int]:
        """Serialize to JSON-compatible dict."""
        return {
            "sequence": self.sequence,
            "id": self.id,
            "checksum": self.checksum,
            "user": self.user,
            "timestamp": self.timestamp,
        }


class ChangeLog:
    """Persisted ledger of which changes have been applied to a scope."""

    def __init__(
        self,
        store: Store,
        *,
        prefix: str = "changecontrol",
        logger: ChangeLogger | None = None,
        renderer: Renderer | None = None,
        user: str | None = None,
        owner_id: str | None = None,
    ):
        self.store = store
        self.prefix = prefix
        self.logger = logger or NullLogger()
        self.renderer = renderer
        self.user = user
        self.sequence_key = ":".join([prefix, "changelog", "sequence"])
        self.changelog_lock = ChangeLogLock(store, prefix, owner_id=owner_id, logger=self.logger)

    def change_key(self, change_id: str) -> str:
        return ":".join([self.prefix, "changelog", "change", change_id])

    def _change_id_from_key(self, key: str) -> str:
        return key[len(self.change_key("")) :]

    # --- Entry access ---

    def get_entry(self, change_id: str) -> LedgerEntry | None:
        """Get the ledger entry for a change id, or None if never applied."""
        data = self.store.hgetall(self.change_key(change_id))
        if not data.get("checksum"):
            return None
        return LedgerEntry.from_hash(change_id, data, self.change_key(change_id))

    def audit(self, change_id: str, checksum: str) -> LedgerEntry:
        """
        Record a change as applied.

        Allocates the next sequence number atomically, then writes the whole
        record in one hash write.
        """
        sequence = self.store.incr(self.sequence_key)
        entry = LedgerEntry(
            id=change_id,
            checksum=checksum,
            user=self.user or current_user(),
            timestamp=utc_now(),
            sequence=sequence,
        )
        self.store.hset(self.change_key(change_id), entry.to_hash())
        self.logger.log("debug", f"Audited {change_id} (sequence {sequence})")
        return entry

    def entries(self) -> list[LedgerEntry]:
        """All ledger entries in ascending sequence order."""
        entries = []
        for key in self.store.keys(self.change_key("*")):
            data = self.store.hgetall(key)
            if data.get("checksum"):
                entries.append(LedgerEntry.from_hash(self._change_id_from_key(key), data, key))
        entries.sort(key=lambda e: (e.sequence, e.id))
        return entries

    def dump(self, renderer: Renderer | None = None) -> list[LedgerEntry]:
        """Render all entries (ascending sequence) and return them."""
        from .render import CsvRenderer

        entries = self.entries()
        (renderer or self.renderer or CsvRenderer()).render(entries)
        return entries

    def clear(self, partial_id: str = "*") -> list[str]:
        """
        Delete every ledger entry whose id matches a glob pattern.

        Runs under the changelog lock.

        Returns:
            Ids of the cleared entries
        """
        partial_id = partial_id or "*"
        self.logger.log("info", f"Clearing changelog [filter={partial_id}]")
        cleared: list[str] = []
        with self.lock():
            for key in self.store.keys(self.change_key(partial_id)):
                change_id = self._change_id_from_key(key)
                self.logger.log("info", f"Clearing {change_id}")
                self.store.delete(key)
                cleared.append(change_id)
        return cleared

    # --- Lock pass-throughs ---

    @contextmanager
    def lock(self) -> Iterator[LockRecord]:
        with self.changelog_lock.held() as record:
            yield record

    def unlock(self, force: bool = False) -> bool:
        return self.changelog_lock.release(force)
