import math

from app.core.limiter import RateLimiter
from app.core.store import MemoryStore


def _limiter(clock, max_requests=10, window_sec=60):
    return RateLimiter(MemoryStore(clock), max_requests=max_requests, window_sec=window_sec, clock=clock)


def test_first_request_opens_window(clock):
    limiter = _limiter(clock)
    decision = limiter.check("1.2.3.4")
    assert decision.allowed is True
    assert decision.remaining == 9
    assert decision.reset_time == clock.now + 60


def test_eleventh_request_in_window_is_denied(clock):
    limiter = _limiter(clock)
    decisions = [limiter.check("1.2.3.4") for _ in range(10)]
    assert all(d.allowed for d in decisions)
    assert [d.remaining for d in decisions] == list(range(9, -1, -1))

    denied = limiter.check("1.2.3.4")
    assert denied.allowed is False
    assert denied.remaining == 0
    assert denied.retry_after(clock.now) == 60


def test_window_resets_only_after_reset_time(clock):
    limiter = _limiter(clock, max_requests=1)
    first = limiter.check("ip")
    assert limiter.check("ip").allowed is False

    clock.now = first.reset_time
    assert limiter.check("ip").allowed is False

    clock.advance(0.001)
    fresh = limiter.check("ip")
    assert fresh.allowed is True
    assert fresh.remaining == 0


def test_ips_are_counted_independently(clock):
    limiter = _limiter(clock, max_requests=1)
    assert limiter.check("a").allowed is True
    assert limiter.check("b").allowed is True
    assert limiter.check("a").allowed is False


def test_peek_does_not_consume(clock):
    limiter = _limiter(clock, max_requests=2)
    assert limiter.peek("ip").remaining == 2
    limiter.check("ip")
    peeked = limiter.peek("ip")
    assert peeked.remaining == 1
    assert limiter.peek("ip").remaining == 1


def test_headers_and_retry_after(clock):
    limiter = _limiter(clock, max_requests=1, window_sec=60)
    limiter.check("ip")
    clock.advance(59.5)
    denied = limiter.check("ip")
    assert denied.retry_after(clock.now) == 1
    headers = denied.headers()
    assert headers["X-RateLimit-Limit"] == "1"
    assert headers["X-RateLimit-Remaining"] == "0"
    assert headers["X-RateLimit-Reset"] == str(math.ceil(denied.reset_time))


def test_sweep_drops_elapsed_windows(clock):
    limiter = _limiter(clock)
    limiter.check("old")
    clock.advance(61)
    limiter.check("new")
    assert limiter.sweep() == 1
    assert len(limiter) == 1
