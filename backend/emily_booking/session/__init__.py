"""Session-scoped storage for booking drafts."""

from .storage import (
    InMemorySessionStorage,
    RedisSessionStorage,
    SessionStorage,
    StorageError,
    create_session_storage,
)

__all__ = [
    "InMemorySessionStorage",
    "RedisSessionStorage",
    "SessionStorage",
    "StorageError",
    "create_session_storage",
]
