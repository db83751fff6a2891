"""
Key-value store holding the authoritative premium entitlement records.

Redis in deployed environments (KV_URL), a process-local dict otherwise.
Values are JSON documents; set_json(nx=True) is first-writer-wins.
"""

import json
import os
import threading
from typing import Any, Optional, Protocol

from redis import Redis

from dailydoodle.core.config import settings


class KVStore(Protocol):
    def get_json(self, key: str) -> Optional[Any]:
        ...

    def set_json(self, key: str, value: Any, *, nx: bool = False) -> bool:
        ...

    def delete(self, key: str) -> None:
        ...


class RedisKVStore:
    def __init__(self, url: str):
        self.client = Redis.from_url(url)

    def get_json(self, key: str) -> Optional[Any]:
        raw = self.client.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set_json(self, key: str, value: Any, *, nx: bool = False) -> bool:
        # SET NX returns None when the key already exists
        result = self.client.set(key, json.dumps(value, default=str), nx=nx)
        return bool(result)

    def delete(self, key: str) -> None:
        self.client.delete(key)


class InMemoryKVStore:
    def __init__(self):
        self._data: dict = {}
        self._lock = threading.Lock()

    def get_json(self, key: str) -> Optional[Any]:
        with self._lock:
            raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set_json(self, key: str, value: Any, *, nx: bool = False) -> bool:
        encoded = json.dumps(value, default=str)
        with self._lock:
            if nx and key in self._data:
                return False
            self._data[key] = encoded
            return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


_kv: Optional[KVStore] = None


def get_kv() -> KVStore:
    """Return the configured store (created on first use)."""
    global _kv
    if _kv is None:
        url = os.getenv("KV_URL") or settings.KV_URL
        _kv = RedisKVStore(url) if url else InMemoryKVStore()
    return _kv


def set_kv(store: Optional[KVStore]) -> None:
    """Replace the store (tests inject fakes here)."""
    global _kv
    _kv = store


def reset_kv() -> None:
    """Clear the in-memory store, or drop the singleton for any other backend."""
    global _kv
    if isinstance(_kv, InMemoryKVStore):
        _kv.clear()
    else:
        _kv = None
