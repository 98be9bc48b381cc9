"""
Storage Backends
================
Key-value scopes a session can live in.

MemoryStorage   tab-scoped; gone when the browsing context closes
FileStorage     durable JSON file, visible to every process on the machine
RedisStorage    durable and shared, for multi-host deployments
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

import redis
import structlog

logger = structlog.get_logger(__name__)


class StorageBackend(ABC):
    """Minimal string key-value store."""

    durable: bool = False

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def set_many(self, values: Mapping[str, str]) -> None:
        """Write several keys as one unit."""
        for key, value in values.items():
            self.set(key, value)

    def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.delete(key)


class MemoryStorage(StorageBackend):
    """
    In-process store scoped to one browsing context.

    Nothing survives ``clear()`` or the end of the process.
    """

    durable = False

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class FileStorage(StorageBackend):
    """
    Durable store backed by a JSON file.

    The file is re-read on every access so writes from other processes
    (other tabs) are visible immediately; writes replace the file atomically.
    """

    durable = True

    def __init__(self, path: str):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("durable_store_unreadable", path=str(self.path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".session-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def set_many(self, values: Mapping[str, str]) -> None:
        data = self._read()
        data.update(values)
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def delete_many(self, keys: Iterable[str]) -> None:
        data = self._read()
        removed = [key for key in keys if data.pop(key, None) is not None]
        if removed:
            self._write(data)

    def clear(self) -> None:
        if self.path.exists():
            self._write({})


class RedisStorage(StorageBackend):
    """
    Durable store in Redis.

    Keys are namespaced so several clients can share one database.
    """

    durable = True

    def __init__(self, redis_client, namespace: str = "unigen:session"):
        """
        Args:
            redis_client: Sync Redis client (``decode_responses`` optional)
            namespace: Key prefix
        """
        self.redis = redis_client
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = "unigen:session") -> "RedisStorage":
        return cls(redis.Redis.from_url(url, decode_responses=True), namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Optional[str]:
        value = self.redis.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        self.redis.set(self._key(key), value)

    def set_many(self, values: Mapping[str, str]) -> None:
        pipe = self.redis.pipeline()
        for key, value in values.items():
            pipe.set(self._key(key), value)
        pipe.execute()

    def delete(self, key: str) -> None:
        self.redis.delete(self._key(key))

    def delete_many(self, keys: Iterable[str]) -> None:
        names = [self._key(key) for key in keys]
        if names:
            self.redis.delete(*names)

    def clear(self) -> None:
        keys = list(self.redis.scan_iter(match=f"{self.namespace}:*"))
        if keys:
            self.redis.delete(*keys)
