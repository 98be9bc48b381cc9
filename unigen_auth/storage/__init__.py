"""
Session Storage
===============
Storage scopes and the per-mode persistence policy.
"""

from .backends import StorageBackend, MemoryStorage, FileStorage, RedisStorage
from .policy import SessionStorePolicy, TOKEN_KEY, USER_KEY, ACTIVE_MODE_KEY

__all__ = [
    # Backends
    "StorageBackend",
    "MemoryStorage",
    "FileStorage",
    "RedisStorage",
    # Policy
    "SessionStorePolicy",
    "TOKEN_KEY",
    "USER_KEY",
    "ACTIVE_MODE_KEY",
]
