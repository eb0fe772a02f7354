from __future__ import annotations

import logging
from typing import Protocol

import redis

from emily_booking.core.config import get_settings
from emily_booking.session.redis_client import get_redis_client

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Session storage could not be read or written."""


class SessionStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class InMemorySessionStorage:
    """Process-local storage, one instance per browsing session."""

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()


class RedisSessionStorage:
    """Session storage scoped to one session id, with a TTL per key."""

    key_prefix = "emily:sess:"

    def __init__(self, client: redis.Redis, session_id: str, *, ttl_seconds: int) -> None:
        self._redis = client
        self._session_id = session_id
        self._ttl_seconds = ttl_seconds

    def get_item(self, key: str) -> str | None:
        try:
            data = self._redis.get(self._build_key(key))
        except redis.RedisError as exc:
            raise StorageError(f"read failed for {key}: {exc}") from exc
        if data is None:
            return None
        return data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else str(data)

    def set_item(self, key: str, value: str) -> None:
        try:
            self._redis.setex(self._build_key(key), self._ttl_seconds, value.encode("utf-8"))
        except redis.RedisError as exc:
            raise StorageError(f"write failed for {key}: {exc}") from exc

    def remove_item(self, key: str) -> None:
        try:
            self._redis.delete(self._build_key(key))
        except redis.RedisError as exc:
            raise StorageError(f"delete failed for {key}: {exc}") from exc

    def ping(self) -> bool:
        try:
            return bool(self._redis.ping())
        except redis.RedisError:
            return False

    def _build_key(self, key: str) -> str:
        return f"{self.key_prefix}{self._session_id}:{key}"


def create_session_storage(session_id: str) -> SessionStorage:
    settings = get_settings()
    if settings.use_redis_session_storage:
        logger.info("Using Redis session storage for session %s", session_id)
        return RedisSessionStorage(
            get_redis_client(), session_id, ttl_seconds=settings.session_ttl_seconds
        )
    return _memory_storage(session_id)


# one process-local storage per session id, kept for the process lifetime
_MEMORY_STORAGES: dict[str, InMemorySessionStorage] = {}


def _memory_storage(session_id: str) -> InMemorySessionStorage:
    storage = _MEMORY_STORAGES.get(session_id)
    if storage is None:
        storage = _MEMORY_STORAGES[session_id] = InMemorySessionStorage()
    return storage


__all__ = [
    "StorageError",
    "SessionStorage",
    "InMemorySessionStorage",
    "RedisSessionStorage",
    "create_session_storage",
]
