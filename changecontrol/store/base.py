"""
Store capability contract.

The change control core only needs a handful of primitives from its
backing key-value store:

- Optimistic transactions: watch a key, read a snapshot, queue writes,
  commit only if the watched key was not mutated in the meantime
- Hash records: set fields, get fields, get all fields, delete keys
- Glob-style key enumeration
- Atomic counter increment

Implementations raise StoreError for any backend failure.
"""

from __future__ import annotations

from typing import ContextManager, Mapping, Protocol, Sequence


class Transaction(Protocol):
    """An optimistic transaction started by Store.watch()."""

    def hgetall(self, key: str) -> dict[str, str]:
        """Read a hash immediately (snapshot read while watching)."""
        ...

    def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        """Queue a hash write."""
        ...

    def delete(self, key: str) -> None:
        """Queue a key deletion."""
        ...

    def execute(self) -> bool:
        """
        Commit queued writes atomically.

        Returns:
            False (and commits nothing) if the watched key changed since
            the watch began, True otherwise.
        """
        ...


class Store(Protocol):
    """Protocol for the key-value store backing the changelog."""

    def watch(self, key: str) -> ContextManager[Transaction]:
        """Begin watching `key`. Leaving the context ends the watch."""
        ...

    def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        ...

    def hmget(self, key: str, fields: Sequence[str]) -> list[str | None]:
        ...

    def hgetall(self, key: str) -> dict[str, str]:
        ...

    def delete(self, *keys: str) -> int:
        ...

    def keys(self, pattern: str) -> list[str]:
        ...

    def incr(self, key: str) -> int:
        ...
