from __future__ import annotations

import math
import time
from dataclasses import asdict, dataclass
from typing import Any

from app.core.store import Clock, Store


@dataclass
class RateLimitRecord:
    count: int
    reset_time: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def coerce(cls, value: Any) -> "RateLimitRecord":
        if isinstance(value, cls):
            return value
        return cls(count=int(value["count"]), reset_time=float(value["reset_time"]))


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_time: float
    limit: int

    def retry_after(self, now: float) -> int:
        return max(1, math.ceil(self.reset_time - now))

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(math.ceil(self.reset_time)),
        }


class RateLimiter:
    """Fixed-window request counter keyed by client IP."""

    def __init__(self, store: Store, max_requests: int = 10, window_sec: float = 60.0, clock: Clock = time.time) -> None:
        self.max_requests = max(1, max_requests)
        self.window_sec = window_sec
        self._store = store
        self._clock = clock

    def _load(self, ip: str) -> RateLimitRecord | None:
        value = self._store.get(ip)
        return RateLimitRecord.coerce(value) if value is not None else None

    def check(self, ip: str) -> RateLimitDecision:
        now = self._clock()
        record = self._load(ip)
        if record is None or now > record.reset_time:
            record = RateLimitRecord(count=1, reset_time=now + self.window_sec)
            self._store.set(ip, record, ttl=self.window_sec)
            return RateLimitDecision(True, self.max_requests - 1, record.reset_time, self.max_requests)
        if record.count >= self.max_requests:
            return RateLimitDecision(False, 0, record.reset_time, self.max_requests)
        record.count += 1
        self._store.set(ip, record, ttl=max(0.0, record.reset_time - now))
        return RateLimitDecision(True, self.max_requests - record.count, record.reset_time, self.max_requests)

    def peek(self, ip: str) -> RateLimitDecision:
        now = self._clock()
        record = self._load(ip)
        if record is None or now > record.reset_time:
            return RateLimitDecision(True, self.max_requests, now + self.window_sec, self.max_requests)
        remaining = max(0, self.max_requests - record.count)
        return RateLimitDecision(remaining > 0, remaining, record.reset_time, self.max_requests)

    def sweep(self) -> int:
        now = self._clock()
        removed = 0
        for ip, value in self._store.items():
            if now > RateLimitRecord.coerce(value).reset_time:
                self._store.delete(ip)
                removed += 1
        return removed + self._store.sweep_expired()

    def __len__(self) -> int:
        return len(self._store)
