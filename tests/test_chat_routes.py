import copy
import json
import unittest
from unittest.mock import patch

import httpx
from fastapi.testclient import TestClient

from app.api import routes
from app.core import settings as settings_module
from app.core.canned import canned
from app.core.faq import FaqCache
from app.core.limiter import RateLimiter
from app.core.metrics import metrics
from app.core.retry import RetryPolicy
from app.core.sessions import SessionStore
from app.core.store import MemoryStore
from app.core.upstream import UpstreamClient
from app.main import app

VALID_KEY = "lpak_" + "k" * 30
SSE_BODY = (
    b'data: {"choices":[{"delta":{"content":"Oui, "}}]}\n\n'
    b'data: {"choices":[{"delta":{"content":"nous avons des tomates."}}]}\n\n'
    b"data: [DONE]\n\n"
)


class ChatEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(app)
        self._settings_snapshot = copy.deepcopy(settings_module.SETTINGS)
        self._singletons = {
            name: getattr(routes, name)
            for name in ("rate_limiter", "session_store", "faq_cache", "upstream_client", "retry_policy")
        }

        settings_module.SETTINGS.api_key = VALID_KEY
        settings_module.SETTINGS.base_url = "https://llm.test/v1"
        settings_module.SETTINGS.env = "production"
        settings_module.SETTINGS.chat_log_path = ""

        self.upstream_calls = []
        self.upstream_handler = self._stream_handler
        routes.rate_limiter = RateLimiter(MemoryStore(), max_requests=10, window_sec=60)
        routes.session_store = SessionStore(MemoryStore(), ttl_sec=1800)
        routes.faq_cache = FaqCache(MemoryStore(), ttl_sec=300)
        routes.upstream_client = UpstreamClient(settings_module.SETTINGS, transport=httpx.MockTransport(self._dispatch))
        routes.retry_policy = RetryPolicy(max_retries=2, backoff_ms=0)
        metrics.reset()

    def tearDown(self) -> None:
        for name, value in self._singletons.items():
            setattr(routes, name, value)
        settings_module.SETTINGS.__dict__.update(self._settings_snapshot.__dict__)

    def _dispatch(self, request: httpx.Request) -> httpx.Response:
        self.upstream_calls.append(json.loads(request.content))
        return self.upstream_handler(request)

    def _stream_handler(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=SSE_BODY, headers={"content-type": "text/event-stream"})

    def _post(self, content: str, headers: dict | None = None, **body):
        payload = {"messages": [{"role": "user", "content": content}], **body}
        return self.client.post("/", json=payload, headers={"x-forwarded-for": "10.0.0.1", **(headers or {})})

    def test_streaming_product_question_relays_upstream_and_tracks_session(self):
        response = self._post("Bonjour, avez-vous des tomates ?", headers={"x-session-id": "sess-e2e"})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/event-stream"))
        self.assertTrue(response.content.startswith(SSE_BODY))
        self.assertIn("event: suggestions", response.text)
        self.assertEqual(response.headers["x-session-id"], "sess-e2e")
        self.assertEqual(response.headers["x-ratelimit-remaining"], "9")
        self.assertEqual(response.headers["x-session-interests"], "tomate")
        self.assertEqual(response.headers["x-lead-qualified"], "false")

        self.assertEqual(len(self.upstream_calls), 1)
        sent = self.upstream_calls[0]
        self.assertIs(sent["stream"], True)
        self.assertEqual(sent["messages"][0]["role"], "system")
        self.assertIn("product_inquiry", sent["messages"][0]["content"])
        self.assertNotIn("sess-e2e", sent["messages"][0]["content"])

        session = routes.session_store.get("sess-e2e")
        self.assertEqual(session.interests, ["tomate"])
        self.assertEqual(session.mentioned_products, ["tomate"])
        self.assertEqual(session.last_intent, "product_inquiry")
        self.assertEqual(session.language, "fr")

    def test_stream_broken_mid_relay_ends_with_error_frame_and_error_log(self):
        class StallingStream(httpx.AsyncByteStream):
            def __init__(self, request):
                self.request = request

            async def __aiter__(self):
                yield b'data: {"choices":[{"delta":{"content":"Oui, "}}]}\n\n'
                raise httpx.ReadTimeout("stalled", request=self.request)

        self.upstream_handler = lambda request: httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            stream=StallingStream(request),
        )
        entries = []
        with patch.object(routes, "log_chat", side_effect=lambda entry, path: entries.append(entry.to_dict())):
            response = self._post("Bonjour, avez-vous des tomates ?", headers={"x-session-id": "sess-stall"})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.content.startswith(b'data: {"choices"'))
        self.assertNotIn("event: suggestions", response.text)
        frames = response.text.strip().split("\n\n")
        self.assertTrue(frames[-1].startswith("event: error\n"))
        error = json.loads(frames[-1].split("data: ", 1)[1])
        self.assertEqual(error["error"], canned("fallback", "fr"))
        self.assertEqual(error["sessionId"], "sess-stall")
        self.assertTrue(error["fallback"])

        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]["level"], "ERROR")
        self.assertEqual(entries[0]["errorType"], "network")
        self.assertEqual(metrics.count("chat_errors_total", {"error_type": "network"}), 1)

    def test_chat_is_served_under_a_mounted_path(self):
        response = self.client.post(
            "/functions/v1/ai-chat",
            json={"messages": [{"role": "user", "content": "Bonjour, qui vous a créé ?"}]},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["choices"][0]["message"]["content"], canned("ownership", "fr"))

    def test_buffered_completion_is_annotated_with_session_info(self):
        def handler(request):
            completion = {"choices": [{"message": {"role": "assistant", "content": "Créez un compte pour commander."}}]}
            return httpx.Response(200, json=completion)

        self.upstream_handler = handler
        response = self._post("Je veux commander du riz à Tamatave", headers={"x-session-id": "sess-buf"}, stream=False)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        info = body["sessionInfo"]
        self.assertEqual(info["sessionId"], "sess-buf")
        self.assertEqual(info["interests"], ["riz"])
        self.assertEqual(info["preferences"]["region"], "Toamasina")
        self.assertTrue(info["leadQualified"])
        self.assertTrue(info["suggestedAccount"])
        self.assertEqual(info["suggestions"]["suggestedProducts"][0]["name"], "riz")
        self.assertIs(self.upstream_calls[0]["stream"], False)

    def test_ownership_question_never_calls_upstream(self):
        response = self._post("Bonjour, qui vous a créé ?")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["choices"][0]["message"]["content"], canned("ownership", "fr"))
        self.assertTrue(body["cacheHit"])
        self.assertEqual(self.upstream_calls, [])
        self.assertEqual(metrics.count("chat_cache_hit_total", {"kind": "ownership"}), 1)

    def test_language_header_overrides_detection(self):
        response = self._post("Bonjour, qui vous a créé ?", headers={"x-language": "en"})
        self.assertEqual(response.json()["choices"][0]["message"]["content"], canned("ownership", "en"))

    def test_contact_question_is_served_from_faq_cache(self):
        first = self._post("Bonjour, comment vous contacter ?")
        second = self._post("Bonjour, comment vous contacter ?")
        self.assertEqual(first.json()["choices"][0]["message"]["content"], canned("contact", "fr"))
        self.assertEqual(second.json()["choices"][0]["message"]["content"], canned("contact", "fr"))
        self.assertEqual(self.upstream_calls, [])
        self.assertEqual(len(routes.faq_cache), 1)

    def test_upstream_5xx_is_retried_then_falls_back(self):
        self.upstream_handler = lambda request: httpx.Response(503, text="busy")
        response = self._post("Bonjour, avez-vous des tomates ?")

        self.assertEqual(response.status_code, 500)
        body = response.json()
        self.assertTrue(body["fallback"])
        self.assertEqual(body["error"], canned("fallback", "fr"))
        self.assertNotIn("details", body)
        self.assertEqual(response.headers["x-error-type"], "server")
        self.assertIn("x-ratelimit-limit", response.headers)
        self.assertEqual(len(self.upstream_calls), 3)
        self.assertEqual(metrics.count("chat_upstream_retry_total"), 2)

    def test_upstream_4xx_is_not_retried(self):
        self.upstream_handler = lambda request: httpx.Response(400, text="bad request")
        response = self._post("Bonjour, avez-vous des tomates ?")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(len(self.upstream_calls), 1)

    def test_upstream_timeout_returns_408_after_retries(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        self.upstream_handler = handler
        response = self._post("Bonjour, avez-vous des tomates ?")

        self.assertEqual(response.status_code, 408)
        self.assertEqual(response.json()["error"], canned("timeout", "fr"))
        self.assertEqual(response.headers["x-error-type"], "network")
        self.assertEqual(len(self.upstream_calls), 3)

    def test_rate_limit_returns_429_with_retry_after(self):
        routes.rate_limiter = RateLimiter(MemoryStore(), max_requests=1, window_sec=60)
        first = self._post("Bonjour, qui vous a créé ?")
        second = self._post("Bonjour, qui vous a créé ?")

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 429)
        self.assertGreaterEqual(int(second.headers["retry-after"]), 1)
        self.assertEqual(second.headers["x-ratelimit-remaining"], "0")
        body = second.json()
        self.assertEqual(body["error"], canned("rate_limited", "fr"))
        self.assertGreaterEqual(body["retryAfter"], 1)
        self.assertEqual(metrics.count("chat_rate_limited_total"), 1)

    def test_invalid_json_is_rejected_without_consuming_quota(self):
        response = self.client.post(
            "/",
            content="{invalid",
            headers={"content-type": "application/json", "x-forwarded-for": "10.0.0.1"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid request body (JSON expected)")
        self.assertEqual(response.headers["x-ratelimit-remaining"], "10")
        self.assertEqual(response.headers["x-error-type"], "client")

    def test_missing_api_key_is_a_configuration_error(self):
        settings_module.SETTINGS.api_key = ""
        response = self._post("Bonjour, avez-vous des tomates ?")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], canned("configuration", "fr"))
        self.assertEqual(self.upstream_calls, [])

    def test_development_mode_exposes_details(self):
        settings_module.SETTINGS.env = "development"
        settings_module.SETTINGS.api_key = ""
        response = self._post("Bonjour")
        self.assertEqual(response.json()["details"], "LLM_API_KEY is not configured")

    def test_long_history_is_summarized_before_upstream(self):
        messages = []
        for index in range(12):
            role = "user" if index % 2 == 0 else "assistant"
            messages.append({"role": role, "content": f"question {index}"})
        response = self.client.post("/", json={"messages": messages, "stream": False}, headers={"accept": "text/event-stream"})

        self.assertEqual(response.status_code, 200)
        sent = self.upstream_calls[0]["messages"]
        self.assertEqual(len(sent), 6)
        self.assertEqual(sent[1]["role"], "assistant")
        self.assertEqual([m["content"] for m in sent[2:]], ["question 8", "question 9", "question 10", "question 11"])

    def test_every_request_is_logged_once(self):
        entries = []
        with patch.object(routes, "log_chat", side_effect=lambda entry, path: entries.append(entry.to_dict())):
            self._post("Bonjour, avez-vous des tomates ?")
            settings_module.SETTINGS.api_key = ""
            self._post("Bonjour")

        self.assertEqual(len(entries), 2)
        self.assertEqual(entries[0]["service"], "tantsaha-chatbot")
        self.assertEqual(entries[0]["intent"], "product_inquiry")
        self.assertEqual(entries[0]["responseLength"], 0)
        self.assertEqual(entries[0]["conversionEvent"]["productInterest"], "tomate")
        self.assertEqual(entries[1]["level"], "ERROR")
        self.assertEqual(entries[1]["errorType"], "server")


class SurfaceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = TestClient(app)

    def test_health_reports_map_sizes(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "healthy")
        for key in ("timestamp", "uptime", "sessions", "rateLimitEntries", "cacheEntries"):
            self.assertIn(key, body)

    def test_preflight_returns_cors_headers(self):
        response = self.client.options("/")
        self.assertEqual(response.status_code, 204)
        self.assertIn("access-control-allow-origin", response.headers)

    def test_unknown_get_is_404(self):
        response = self.client.get("/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Not found"})

    def test_unsupported_methods_are_405(self):
        for method in ("PUT", "PATCH", "DELETE"):
            response = self.client.request(method, "/")
            self.assertEqual(response.status_code, 405)
            self.assertEqual(response.headers["x-error-type"], "client")

    def test_metrics_snapshot(self):
        metrics.inc("chat_requests_total", {"outcome": "faq"})
        response = self.client.get("/metrics")
        self.assertEqual(response.status_code, 200)
        self.assertGreaterEqual(response.json()["chat_requests_total{outcome=faq}"], 1)
