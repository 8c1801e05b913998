from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any

from app.core.canned import canned
from app.core.store import Clock, Store

logger = logging.getLogger(__name__)

CONTACT_KEYWORDS = ("contact", "appel", "téléphone")
PRODUCT_LISTING_KEYWORDS = (
    "produit",
    "vokatra",
    "product",
    "disponible",
    "manana",
    "available",
    "liste",
    "catalogue",
    "tout",
)


@dataclass
class FaqEntry:
    response: str
    timestamp: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def coerce(cls, value: Any) -> "FaqEntry":
        if isinstance(value, cls):
            return value
        return cls(response=str(value["response"]), timestamp=float(value["timestamp"]))


def cache_key(question: str, language: str) -> str:
    return f"{language}_{question[:50].lower()}"


def _canned_kind(question: str) -> str | None:
    lowered = question.lower()
    if any(keyword in lowered for keyword in CONTACT_KEYWORDS):
        return "contact"
    if any(keyword in lowered for keyword in PRODUCT_LISTING_KEYWORDS):
        return "products"
    return None


class FaqCache:
    """Answers frequent questions from canned texts, remembering them for a TTL."""

    def __init__(self, store: Store, ttl_sec: float = 300.0, clock: Clock = time.time) -> None:
        self.ttl_sec = ttl_sec
        self._store = store
        self._clock = clock

    def lookup(self, question: str, language: str) -> str | None:
        key = cache_key(question, language)
        now = self._clock()
        value = self._store.get(key)
        if value is not None:
            entry = FaqEntry.coerce(value)
            if now - entry.timestamp < self.ttl_sec:
                return entry.response

        kind = _canned_kind(question)
        if kind is None:
            return None
        response = canned(kind, language)
        self._store.set(key, FaqEntry(response=response, timestamp=now), ttl=self.ttl_sec)
        logger.debug("faq cache stored kind=%s key=%s", kind, key)
        return response

    def sweep(self) -> int:
        now = self._clock()
        removed = 0
        for key, value in self._store.items():
            if now - FaqEntry.coerce(value).timestamp >= self.ttl_sec:
                self._store.delete(key)
                removed += 1
        return removed + self._store.sweep_expired()

    def __len__(self) -> int:
        return len(self._store)
