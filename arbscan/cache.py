from __future__ import annotations

import asyncio
import json
import os
import sqlite3
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from .errors import ConfigurationError
from .utils import ensure_dir, get_logger

logger = get_logger("cache")

Clock = Callable[[], float]


class BaseCache(ABC):
    """Key/value cache with per-entry time-to-live.

    Backends implement ``get``/``put``/``forget``/``has``; ``remember`` is
    shared and guarantees at most one in-flight computation per key within
    the process. Concurrent misses wait for the first computation and then
    read its result.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or time.time
        self._locks: Dict[str, asyncio.Lock] = {}

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    @abstractmethod
    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        raise NotImplementedError

    @abstractmethod
    def forget(self, key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def has(self, key: str) -> bool:
        raise NotImplementedError

    def _expires_at(self, ttl_seconds: Optional[int]) -> Optional[float]:
        if ttl_seconds is None:
            return None
        return self._clock() + ttl_seconds

    def _expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    async def remember(self, key: str, ttl_seconds: int, compute: Callable[[], Awaitable[Any]]) -> Any:
        sentinel = object()
        value = self.get(key, sentinel)
        if value is not sentinel:
            logger.debug("cache hit: %s", key)
            return value

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            # another coroutine may have filled the key while we waited
            value = self.get(key, sentinel)
            if value is not sentinel:
                logger.debug("cache hit after wait: %s", key)
                return value
            logger.debug("cache miss: %s", key)
            value = await compute()
            self.put(key, value, ttl_seconds)
            return value


class MemoryCache(BaseCache):
    def __init__(self, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        value, expires_at = entry
        if self._expired(expires_at):
            self._entries.pop(key, None)
            return default
        return value

    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        # single assignment: readers see either the old entry or the new one
        self._entries[key] = (value, self._expires_at(ttl_seconds))
        return True

    def forget(self, key: str) -> bool:
        self._entries.pop(key, None)
        return True

    def has(self, key: str) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel


class SqliteCache(BaseCache):
    """JSON values in a single sqlite table; survives between CLI runs."""

    def __init__(self, db_path: str, clock: Optional[Clock] = None) -> None:
        super().__init__(clock)
        self.db_path = db_path
        parent = os.path.dirname(db_path)
        if parent:
            ensure_dir(parent)
        self._init_db()

    def _init_db(self) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_store (
                    k TEXT PRIMARY KEY,
                    v TEXT NOT NULL,
                    expires_at REAL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        payload = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute(
                "INSERT OR REPLACE INTO kv_store(k, v, expires_at) VALUES(?, ?, ?)",
                (key, payload, self._expires_at(ttl_seconds)),
            )
            conn.commit()
        finally:
            conn.close()
        return True

    def get(self, key: str, default: Any = None) -> Any:
        conn = sqlite3.connect(self.db_path)
        try:
            cur = conn.execute(
                "SELECT v, expires_at FROM kv_store WHERE k = ? LIMIT 1", (key,)
            )
            row = cur.fetchone()
        finally:
            conn.close()
        if row is None:
            return default
        v, expires_at = row
        if self._expired(expires_at):
            self.forget(key)
            return default
        return json.loads(v)

    def forget(self, key: str) -> bool:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("DELETE FROM kv_store WHERE k = ?", (key,))
            conn.commit()
        finally:
            conn.close()
        return True

    def has(self, key: str) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel


def create_cache(backend: str, db_path: str) -> BaseCache:
    backend = backend.lower()
    if backend == "memory":
        return MemoryCache()
    if backend == "sqlite":
        return SqliteCache(db_path)
    raise ConfigurationError(f"Unsupported cache backend: {backend}")
