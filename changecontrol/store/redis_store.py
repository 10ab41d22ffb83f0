"""
Redis implementation of the Store contract.

Optimistic transactions map directly onto WATCH / MULTI / EXEC: the
pipeline stays in immediate mode for snapshot reads, switches to MULTI on
the first queued write, and a WatchError at EXEC means the watched key
moved underneath us.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Mapping, Sequence

import redis
from redis.client import Pipeline
from redis.exceptions import RedisError, WatchError

from ..errors import StoreError


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except WatchError:
        raise
    except RedisError as e:
        raise StoreError(f"Redis {operation} failed: {e}") from e


class RedisTransaction:
    def __init__(self, pipe: Pipeline):
        self._pipe = pipe
        self._queuing = False

    def _begin_multi(self) -> None:
        if not self._queuing:
            self._pipe.multi()
            self._queuing = True

    def hgetall(self, key: str) -> dict[str, str]:
        if self._queuing:
            raise StoreError("Cannot read inside a transaction after writes were queued")
        with _translate_errors("HGETALL"):
            return dict(self._pipe.hgetall(key) or {})

    def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        self._begin_multi()
        self._pipe.hset(key, mapping={str(k): str(v) for k, v in mapping.items()})

    def delete(self, key: str) -> None:
        self._begin_multi()
        self._pipe.delete(key)

    def execute(self) -> bool:
        self._begin_multi()
        try:
            with _translate_errors("EXEC"):
                self._pipe.execute()
        except WatchError:
            return False
        return True


class RedisStore:
    """Store backed by a redis-py client."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> RedisStore:
        return cls(redis.Redis.from_url(url, decode_responses=True))

    @contextmanager
    def watch(self, key: str) -> Iterator[RedisTransaction]:
        # Leaving the pipeline context resets it, which issues UNWATCH.
        with self.client.pipeline() as pipe:
            with _translate_errors("WATCH"):
                pipe.watch(key)
            yield RedisTransaction(pipe)

    def hset(self, key: str, mapping: Mapping[str, str]) -> None:
        with _translate_errors("HSET"):
            self.client.hset(key, mapping={str(k): str(v) for k, v in mapping.items()})

    def hmget(self, key: str, fields: Sequence[str]) -> list[str | None]:
        with _translate_errors("HMGET"):
            return list(self.client.hmget(key, list(fields)))

    def hgetall(self, key: str) -> dict[str, str]:
        with _translate_errors("HGETALL"):
            return dict(self.client.hgetall(key) or {})

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with _translate_errors("DEL"):
            return int(self.client.delete(*keys))

    def keys(self, pattern: str) -> list[str]:
        # SCAN, not KEYS.
        with _translate_errors("SCAN"):
            return sorted(self.client.scan_iter(match=pattern))

    def incr(self, key: str) -> int:
        with _translate_errors("INCR"):
            return int(self.client.incr(key))
