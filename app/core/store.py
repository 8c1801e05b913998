from __future__ import annotations

import json
import logging
import math
import time
from threading import Lock
from typing import Any, Callable, Protocol

import redis

from app.core.metrics import metrics
from app.core.settings import Settings

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class Store(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: float | None = None) -> None: ...

    def delete(self, key: str) -> None: ...

    def items(self) -> list[tuple[str, Any]]: ...

    def sweep_expired(self) -> int: ...

    def __len__(self) -> int: ...


class MemoryStore:
    def __init__(self, clock: Clock = time.time) -> None:
        self._entries: dict[str, tuple[float | None, Any]] = {}
        self._lock = Lock()
        self._clock = clock

    def _expired(self, expires_at: float | None, now: float) -> bool:
        return expires_at is not None and expires_at < now

    def get(self, key: str) -> Any | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._expired(expires_at, now):
                self._entries.pop(key, None)
                return None
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        expires_at = None
        if ttl is not None:
            expires_at = self._clock() + ttl
        with self._lock:
            self._entries[key] = (expires_at, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def items(self) -> list[tuple[str, Any]]:
        now = self._clock()
        with self._lock:
            return [
                (key, value)
                for key, (expires_at, value) in self._entries.items()
                if not self._expired(expires_at, now)
            ]

    def sweep_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [key for key, (expires_at, _) in self._entries.items() if self._expired(expires_at, now)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisStore:
    """Redis-backed store that degrades to a process-local store on failures."""

    def __init__(self, client: redis.Redis, namespace: str, clock: Clock = time.time) -> None:
        self._redis = client
        self._namespace = namespace
        self._local = MemoryStore(clock)

    @classmethod
    def from_url(cls, url: str, namespace: str, clock: Clock = time.time) -> "RedisStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), namespace, clock)

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def _degraded(self, op: str, exc: Exception) -> None:
        logger.warning("store redis %s failed namespace=%s: %s", op, self._namespace, exc)
        metrics.inc("chat_store_errors_total", {"op": op})

    def get(self, key: str) -> Any | None:
        try:
            raw = self._redis.get(self._key(key))
        except redis.RedisError as exc:
            self._degraded("get", exc)
            return self._local.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("store %s holds undecodable value for %s", self._namespace, key)
            return None

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        payload = json.dumps(_encode(value), ensure_ascii=False)
        try:
            if ttl is not None:
                self._redis.setex(self._key(key), max(1, math.ceil(ttl)), payload)
            else:
                self._redis.set(self._key(key), payload)
            return
        except redis.RedisError as exc:
            self._degraded("set", exc)
        self._local.set(key, json.loads(payload), ttl)

    def delete(self, key: str) -> None:
        self._local.delete(key)
        try:
            self._redis.delete(self._key(key))
        except redis.RedisError as exc:
            self._degraded("delete", exc)

    def items(self) -> list[tuple[str, Any]]:
        prefix = f"{self._namespace}:"
        try:
            keys = list(self._redis.scan_iter(match=f"{prefix}*"))
        except redis.RedisError as exc:
            self._degraded("scan", exc)
            return self._local.items()
        entries: list[tuple[str, Any]] = []
        for full_key in keys:
            key = full_key[len(prefix):]
            value = self.get(key)
            if value is not None:
                entries.append((key, value))
        return entries

    def sweep_expired(self) -> int:
        # Redis expires its keys natively; only the fallback entries need sweeping.
        return self._local.sweep_expired()

    def __len__(self) -> int:
        try:
            return sum(1 for _ in self._redis.scan_iter(match=f"{self._namespace}:*"))
        except redis.RedisError as exc:
            self._degraded("scan", exc)
            return len(self._local)


def _encode(value: Any) -> Any:
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return value


def build_store(settings: Settings, namespace: str, clock: Clock = time.time) -> Store:
    if settings.redis_url:
        logger.info("using redis store for %s", namespace)
        return RedisStore.from_url(settings.redis_url, f"tantsaha:{namespace}", clock)
    return MemoryStore(clock)
