"""
Backing stores for the changelog.

- base: the Store / Transaction capability contract
- memory: process-local MemoryStore (tests, dry runs)
- redis_store: RedisStore over redis-py
"""

from __future__ import annotations

from urllib.parse import urlparse

from .base import Store, Transaction
from .memory import MemoryStore
from .redis_store import RedisStore

_REDIS_SCHEMES = frozenset({"redis", "rediss", "unix"})


def open_store(url: str) -> Store:
    """
    Open a store from a URL.

    Args:
        url: "memory://" for a fresh MemoryStore, or a redis URL
            (redis://, rediss://, unix://)

    Returns:
        A Store implementation
    """
    scheme = urlparse(url).scheme.lower()
    if scheme == "memory":
        return MemoryStore()
    if scheme in _REDIS_SCHEMES:
        return RedisStore.from_url(url)
    raise ValueError(f"Unsupported store URL: {url}")


__all__ = [
    "MemoryStore",
    "RedisStore",
    "Store",
    "Transaction",
    "open_store",
]
