"""Redis implementation of ContactCache. Values are stored as JSON strings with a TTL."""

import json
from datetime import timedelta
from typing import Any

import redis

from agenda.application.errors import CacheUnavailable

DEFAULT_PREFIX = "agenda:contacts:"


def create_redis_client(url: str, *, socket_timeout: float = 2.0) -> redis.Redis:
    return redis.Redis.from_url(
        url,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
        decode_responses=True,
    )


class RedisContactCache:
    """Keys are namespaced with `prefix`. Every Redis error surfaces as CacheUnavailable."""

    def __init__(self, client: redis.Redis, prefix: str = DEFAULT_PREFIX) -> None:
        self._client = client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Any | None:
        try:
            raw = self._client.get(self._key(key))
        except redis.RedisError as e:
            raise CacheUnavailable(f"Redis get failed: {e}") from e
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return json.loads(raw)
        except ValueError as e:
            raise CacheUnavailable(f"Corrupt cache entry for {key}") from e

    def set(self, key: str, value: Any, ttl: timedelta) -> None:
        seconds = int(ttl.total_seconds())
        if seconds <= 0:
            return
        try:
            self._client.set(self._key(key), json.dumps(value), ex=seconds)
        except redis.RedisError as e:
            raise CacheUnavailable(f"Redis set failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except redis.RedisError as e:
            raise CacheUnavailable(f"Redis delete failed: {e}") from e
