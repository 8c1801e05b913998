from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import asdict, dataclass, field
from typing import Any

from app.core.store import Clock, Store

logger = logging.getLogger(__name__)

PREFERENCE_KEYS = ("region", "budget", "frequency", "productType")
_BASE36 = string.digits + string.ascii_lowercase


@dataclass
class Session:
    id: str
    client_id: str
    created_at: float
    last_activity: float
    language: str
    interests: list[str] = field(default_factory=list)
    mentioned_products: list[str] = field(default_factory=list)
    preferences: dict[str, str] = field(default_factory=dict)
    last_intent: str | None = None
    contact_requested: bool = False

    def add_interest(self, name: str) -> None:
        if name not in self.interests:
            self.interests.append(name)

    def add_mentioned_product(self, name: str) -> None:
        if name not in self.mentioned_products:
            self.mentioned_products.append(name)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def coerce(cls, value: Any) -> "Session":
        if isinstance(value, cls):
            return value
        return cls(
            id=str(value["id"]),
            client_id=str(value.get("client_id") or "anonymous"),
            created_at=float(value["created_at"]),
            last_activity=float(value["last_activity"]),
            language=str(value.get("language") or "fr"),
            interests=list(value.get("interests") or []),
            mentioned_products=list(value.get("mentioned_products") or []),
            preferences={k: str(v) for k, v in (value.get("preferences") or {}).items() if k in PREFERENCE_KEYS},
            last_intent=value.get("last_intent"),
            contact_requested=bool(value.get("contact_requested")),
        )


def new_session_id(clock: Clock = time.time) -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"sess_{int(clock() * 1000)}_{suffix}"


class SessionStore:
    def __init__(self, store: Store, ttl_sec: float = 1800.0, clock: Clock = time.time, sweep_on_access: bool = True) -> None:
        self.ttl_sec = ttl_sec
        self.sweep_on_access = sweep_on_access
        self._store = store
        self._clock = clock

    def _expired(self, session: Session, now: float) -> bool:
        return now - session.last_activity > self.ttl_sec

    def get(self, session_id: str) -> Session | None:
        value = self._store.get(session_id)
        if value is None:
            return None
        session = Session.coerce(value)
        if self._expired(session, self._clock()):
            return None
        return session

    def get_or_create(self, session_id: str, client_id: str, language: str) -> Session:
        now = self._clock()
        value = self._store.get(session_id)
        session = Session.coerce(value) if value is not None else None
        if session is None or self._expired(session, now):
            session = Session(
                id=session_id,
                client_id=client_id,
                created_at=now,
                last_activity=now,
                language=language,
            )
        else:
            session.last_activity = now
            session.language = language
        self.save(session)
        if self.sweep_on_access:
            self.sweep()
        return session

    def save(self, session: Session) -> None:
        self._store.set(session.id, session, ttl=self.ttl_sec)

    def sweep(self) -> int:
        now = self._clock()
        removed = 0
        for key, value in self._store.items():
            if self._expired(Session.coerce(value), now):
                self._store.delete(key)
                removed += 1
        removed += self._store.sweep_expired()
        if removed:
            logger.debug("session sweep removed=%s", removed)
        return removed

    def __len__(self) -> int:
        return len(self._store)
