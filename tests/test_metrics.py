from app.core.metrics import MetricRegistry


def test_counters_are_keyed_by_sorted_labels():
    registry = MetricRegistry()
    registry.inc("chat_requests_total", {"outcome": "faq"})
    registry.inc("chat_requests_total", {"outcome": "faq"})
    registry.inc("chat_store_errors_total", {"op": "get", "a": "1"})

    assert registry.count("chat_requests_total", {"outcome": "faq"}) == 2
    assert registry.count("chat_requests_total") == 0
    snapshot = registry.snapshot()
    assert snapshot["chat_requests_total{outcome=faq}"] == 2
    assert snapshot["chat_store_errors_total{a=1,op=get}"] == 1


def test_latency_summary_and_gauges_in_snapshot():
    registry = MetricRegistry()
    registry.observe("chat_latency_ms", 40, {"outcome": "ok"})
    registry.observe("chat_latency_ms", 120, {"outcome": "ok"})
    registry.gauge("chat_store_entries", 3, {"store": "sessions"})

    snapshot = registry.snapshot()
    assert snapshot["chat_latency_ms_count{outcome=ok}"] == 2
    assert snapshot["chat_latency_ms_sum{outcome=ok}"] == 160
    assert snapshot["chat_latency_ms_max{outcome=ok}"] == 120
    assert snapshot["chat_store_entries{store=sessions}"] == 3.0

    registry.reset()
    assert registry.snapshot() == {}
