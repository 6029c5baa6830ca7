"""A small key-value store facade over a Redis connection."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

import redis

logger = logging.getLogger(__name__)


def _text(value: Any) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else str(value)


class RedisStore:
    """Strings, lists and hashes kept in Redis, with values returned as ``str``.

    Pass an existing client, or connection keyword arguments for a new one.
    Connection and command failures raise :class:`redis.RedisError`.
    """

    def __init__(self, client: Optional[Any] = None, **connection: Any) -> None:
        if client is None:
            client = redis.Redis(decode_responses=True, **connection)
        self.client = client

    def get(self, key: str) -> Optional[str]:
        """The string stored under ``key``, or None if there is none."""
        value = self.client.get(key)
        return None if value is None else _text(value)

    def delete(self, key: str) -> None:
        self.client.delete(key)

    def lrange(self, key: str) -> list[str]:
        """The whole list stored under ``key``."""
        return [_text(item) for item in self.client.lrange(key, 0, -1)]

    def last_index(self, key: str) -> int:
        """One past the integer kept as the last item of the list; 1 for an empty list."""
        tail = self.client.lrange(key, -1, -1)
        if not tail:
            logger.info("Empty table: %s", key)
            return 1
        return int(_text(tail[-1])) + 1

    def set(self, key: str, value: str) -> None:
        self.client.set(key, value)

    def append(self, key: str, values: Iterable[Any]) -> None:
        """Push ``values`` onto the end of the list under ``key``."""
        items = list(values)
        if items:
            self.client.rpush(key, *items)

    def hmset(self, key: str, mapping: Mapping[str, Any]) -> None:
        """Set several fields of the hash under ``key``."""
        if mapping:
            self.client.hset(key, mapping=dict(mapping))

    def hgetall(self, key: str) -> dict[str, str]:
        """All fields of the hash under ``key``."""
        return {_text(field): _text(value) for field, value in self.client.hgetall(key).items()}