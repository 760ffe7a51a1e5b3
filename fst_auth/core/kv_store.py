from __future__ import annotations

# keyed store with TTL used for pending wallet challenges
import logging
import time
from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, Optional, Tuple

from redis import Connection, ConnectionPool, Redis, SSLConnection

from fst_auth.core.config import settings

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Minimal keyed store contract: get / set with TTL / delete.

    `compare_and_delete` removes a key only while it still holds the expected
    value, which is what makes a challenge single-use across processes.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        ...

    @abstractmethod
    def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    def compare_and_delete(self, key: str, expected: bytes) -> bool:
        ...


class MemoryKeyValueStore(KeyValueStore):
    """In-process store for local development and tests.

    Entries live in this process only, so running several workers behind a
    load balancer breaks single-use guarantees. Use RedisKeyValueStore there.

    Expired entries are swept on write at most every sweep_interval seconds,
    and the store never holds more than max_entries keys.
    """

    def __init__(self, max_entries: Optional[int] = None, sweep_interval: float = 60.0) -> None:
        self._data: Dict[str, Tuple[bytes, Optional[float]]] = {}
        self._lock = Lock()
        self.max_entries = max_entries or settings.MEMORY_STORE_MAX_ENTRIES
        self.sweep_interval = sweep_interval
        self._last_sweep = time.time()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def _live(self, key: str, now: float) -> Optional[bytes]:
        # caller holds the lock
        cached = self._data.get(key)
        if cached is None:
            return None
        value, expires_at = cached
        if expires_at is not None and expires_at <= now:
            self._data.pop(key, None)
            return None
        return value

    def _sweep(self, now: float) -> None:
        # caller holds the lock
        expired_keys = [
            k for k, (_, exp) in self._data.items()
            if exp is not None and exp <= now
        ]
        for k in expired_keys:
            self._data.pop(k, None)
        self._last_sweep = now

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._live(key, time.time())

    def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        now = time.time()
        expires_at = None if ttl_seconds is None else now + ttl_seconds
        with self._lock:
            self._data.pop(key, None)
            if now - self._last_sweep >= self.sweep_interval or len(self._data) >= self.max_entries:
                self._sweep(now)
            # still full, evict whatever expires soonest
            while len(self._data) >= self.max_entries:
                oldest_key = min(
                    self._data.keys(),
                    key=lambda k: self._data[k][1] or float('inf')
                )
                self._data.pop(oldest_key)
                logger.warning("Memory store full, evicted %s", oldest_key)
            self._data[key] = (value, expires_at)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def compare_and_delete(self, key: str, expected: bytes) -> bool:
        with self._lock:
            if self._live(key, time.time()) != expected:
                return False
            del self._data[key]
            return True

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


# KEYS[1] = key, ARGV[1] = expected value
_COMPARE_AND_DELETE_SCRIPT = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class RedisKeyValueStore(KeyValueStore):
    """Redis backed store shared by every API process.

    Errors are not swallowed: a challenge written to nowhere is worse than a
    failed request, so redis.RedisError propagates to the endpoint.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self.pool = pool
        self._client = Redis(connection_pool=pool)
        self._compare_and_delete = self._client.register_script(_COMPARE_AND_DELETE_SCRIPT)

    @classmethod
    def from_settings(cls) -> "RedisKeyValueStore":
        pool = ConnectionPool(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            socket_connect_timeout=1,
            socket_timeout=5,
            retry_on_timeout=False,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            connection_class=SSLConnection if settings.REDIS_SSL else Connection,
        )
        logger.info("Using Redis challenge store at %s:%s", settings.REDIS_HOST, settings.REDIS_PORT)
        return cls(pool)

    def get(self, key: str) -> Optional[bytes]:
        result = self._client.get(key)
        if result is None or result == b"":
            return None
        return result

    def set(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        if ttl_seconds is not None and ttl_seconds > 0:
            self._client.set(key, value, ex=ttl_seconds)
        else:
            self._client.set(key, value)

    def delete(self, key: str) -> bool:
        return bool(self._client.delete(key))

    def compare_and_delete(self, key: str, expected: bytes) -> bool:
        return bool(self._compare_and_delete(keys=[key], args=[expected]))


def create_store() -> KeyValueStore:
    """Pick the backend from configuration: Redis when REDIS_HOST is set."""
    if settings.REDIS_HOST is None or settings.REDIS_HOST.strip() == "":
        logger.warning("REDIS_HOST not configured, challenges are kept in process memory")
        return MemoryKeyValueStore()
    return RedisKeyValueStore.from_settings()
