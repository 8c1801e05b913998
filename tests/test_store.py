import fnmatch
import json
import logging

import redis

from app.core.limiter import RateLimiter
from app.core.metrics import metrics
from app.core.sessions import SessionStore
from app.core.store import MemoryStore, RedisStore


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value

    def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl

    def delete(self, key):
        self.data.pop(key, None)

    def scan_iter(self, match="*"):
        return [key for key in list(self.data) if fnmatch.fnmatch(key, match)]


class DownRedis:
    def _fail(self, *args, **kwargs):
        raise redis.ConnectionError("Error 111 connecting to localhost:1. Connection refused.")

    get = set = setex = delete = scan_iter = _fail


def test_memory_store_expires_strictly_after_deadline(clock):
    store = MemoryStore(clock)
    store.set("k", "v", ttl=10)
    clock.advance(10)
    assert store.get("k") == "v"
    clock.advance(0.001)
    assert store.get("k") is None


def test_redis_store_round_trips_json_under_namespace():
    client = FakeRedis()
    store = RedisStore(client, "tantsaha:sessions")

    store.set("s1", {"id": "s1", "interests": ["riz"]}, ttl=1799.2)
    store.set("s2", {"id": "s2"})

    assert json.loads(client.data["tantsaha:sessions:s1"]) == {"id": "s1", "interests": ["riz"]}
    assert client.ttls["tantsaha:sessions:s1"] == 1800
    assert store.get("s1")["interests"] == ["riz"]
    assert sorted(key for key, _ in store.items()) == ["s1", "s2"]
    assert len(store) == 2

    store.delete("s1")
    assert store.get("s1") is None
    assert len(store) == 1


def test_redis_store_ignores_undecodable_values():
    client = FakeRedis()
    client.data["ns:bad"] = "{not json"
    store = RedisStore(client, "ns")
    assert store.get("bad") is None
    assert store.items() == []


def test_redis_store_falls_back_to_local_entries_when_unreachable(clock, caplog):
    metrics.reset()
    store = RedisStore(DownRedis(), "tantsaha:faq", clock)

    with caplog.at_level(logging.WARNING, logger="app.core.store"):
        store.set("fr_contact", {"response": "ok", "timestamp": 1.0}, ttl=300)
        assert store.get("fr_contact") == {"response": "ok", "timestamp": 1.0}
        assert store.items() == [("fr_contact", {"response": "ok", "timestamp": 1.0})]
        assert len(store) == 1

    assert any("store redis set failed" in record.getMessage() for record in caplog.records)
    assert metrics.count("chat_store_errors_total", {"op": "set"}) == 1

    clock.advance(301)
    assert store.sweep_expired() == 1
    assert len(store) == 0


def test_limiter_and_sessions_keep_working_without_redis(clock):
    limiter = RateLimiter(RedisStore(DownRedis(), "tantsaha:ratelimit", clock), max_requests=2, window_sec=60, clock=clock)
    assert limiter.check("10.0.0.1").remaining == 1
    assert limiter.check("10.0.0.1").remaining == 0
    assert limiter.check("10.0.0.1").allowed is False

    sessions = SessionStore(RedisStore(DownRedis(), "tantsaha:sessions", clock), ttl_sec=1800, clock=clock)
    session = sessions.get_or_create("sess-down", "anonymous", "fr")
    session.add_interest("riz")
    sessions.save(session)
    assert sessions.get("sess-down").interests == ["riz"]
