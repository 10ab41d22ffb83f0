"""
Process-local store with Redis-like optimistic transactions.

Every mutation bumps a per-key version. A transaction records the version
of its watched key when the watch begins and refuses to commit if it has
moved, which is exactly the WATCH/MULTI/EXEC contract the lock relies on.
"""

from __future__ import annotations

import fnmatch
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Mapping, Sequence

from ..errors import StoreError


class MemoryTransaction:
    def __init__(self, store: MemoryStore, key: str):
        self._store = store
        self._key = key
        self._version = store._version_of(key)
        self._queued: list[Callable[[], None]] = []
        self._done = False

    def hgetall(self, key: str) -> dict[str, str]:
        return self._store.hgetall(key)

    def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        values = {str(k): str(v) for k, v in mapping.items()}
        self._queued.append(lambda: self._store._hset_locked(key, values))

    def delete(self, key: str) -> None:
        self._queued.append(lambda: self._store._delete_locked(key))

    def execute(self) -> bool:
        if self._done:
            raise StoreError("Transaction already executed")
        self._done = True
        with self._store._lock:
            if self._store._version_of(self._key) != self._version:
                return False
            for op in self._queued:
                op()
        return True


class MemoryStore:
    """
    Thread-safe in-memory implementation of the Store contract.

    Hashes and counters live in separate namespaces keyed by name; a key
    holds either a hash or a counter, never both.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._hashes: dict[str, dict[str, str]] = {}
        self._counters: dict[str, int] = {}
        self._versions: dict[str, int] = {}

    # --- internal helpers (caller holds self._lock) ---

    def _version_of(self, key: str) -> int:
        return self._versions.get(key, 0)

    def _touch(self, key: str) -> None:
        self._versions[key] = self._versions.get(key, 0) + 1

    def _hset_locked(self, key: str, mapping: Mapping[str, str]) -> None:
        if key in self._counters:
            raise StoreError(f"WRONGTYPE {key} holds a counter")
        self._hashes.setdefault(key, {}).update(mapping)
        self._touch(key)

    def _delete_locked(self, key: str) -> int:
        removed = int(self._hashes.pop(key, None) is not None)
        removed += int(self._counters.pop(key, None) is not None)
        if removed:
            self._touch(key)
        return removed

    # --- Store contract ---

    @contextmanager
    def watch(self, key: str) -> Iterator[MemoryTransaction]:
        with self._lock:
            tx = MemoryTransaction(self, key)
        yield tx

    def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        with self._lock:
            self._hset_locked(key, {str(k): str(v) for k, v in mapping.items()})

    def hmget(self, key: str, fields: Sequence[str]) -> list[str | None]:
        with self._lock:
            record = self._hashes.get(key, {})
            return [record.get(f) for f in fields]

    def hgetall(self, key: str) -> dict[str, str]:
        with self._lock:
            return dict(self._hashes.get(key, {}))

    def delete(self, *keys: str) -> int:
        with self._lock:
            return sum(self._delete_locked(k) for k in keys)

    def keys(self, pattern: str) -> list[str]:
        with self._lock:
            names = list(self._hashes) + list(self._counters)
        return sorted(k for k in names if fnmatch.fnmatchcase(k, pattern))

    def incr(self, key: str) -> int:
        with self._lock:
            if key in self._hashes:
                raise StoreError(f"WRONGTYPE {key} holds a hash")
            value = self._counters.get(key, 0) + 1
            self._counters[key] = value
            self._touch(key)
            return value

    def exists(self, key: str) -> bool:
        with self._lock:
            return key in self._hashes or key in self._counters
