from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from app.api.schemas import CannedReply, ChatMessage, Choice, ErrorBody, HealthResponse, dump
from app.api.sinks import ChatContext, select_sink
from app.core.canned import canned
from app.core.catalog import build_structured_response, extract_mentioned_products, product_suggestions
from app.core.chat_log import ChatLogEntry, log_chat
from app.core.errors import ERROR_SERVER, ChatError, MethodNotAllowedError, RateLimitExceeded
from app.core.faq import FaqCache
from app.core.intent import (
    CONTACT_REQUEST,
    ConversionEvent,
    conversion_event,
    detect_intent,
    extract_preferences,
    is_lead_qualified,
    is_ownership_question,
)
from app.core.language import DEFAULT_LANGUAGE, detect_language, normalize_language
from app.core.limiter import RateLimitDecision, RateLimiter
from app.core.metrics import metrics
from app.core.prompt import build_system_prompt, summarize_history
from app.core.retry import RetryPolicy, call_with_retry
from app.core.sessions import SessionStore, new_session_id
from app.core.settings import SETTINGS, validate_api_key
from app.core.store import build_store
from app.core.upstream import UpstreamClient
from app.core.validation import parse_body, validate_request

router = APIRouter()
logger = logging.getLogger(__name__)

STARTED_AT = time.time()

rate_limiter = RateLimiter(
    build_store(SETTINGS, "ratelimit"),
    max_requests=SETTINGS.rate_limit_max,
    window_sec=SETTINGS.rate_limit_window_sec,
)
session_store = SessionStore(
    build_store(SETTINGS, "sessions"),
    ttl_sec=SETTINGS.session_ttl_sec,
    sweep_on_access=SETTINGS.sweep_interval_sec <= 0,
)
faq_cache = FaqCache(build_store(SETTINGS, "faq"), ttl_sec=SETTINGS.faq_cache_ttl_sec)
upstream_client = UpstreamClient(SETTINGS)
retry_policy = RetryPolicy(max_retries=SETTINGS.max_retries, backoff_ms=SETTINGS.retry_backoff_ms)

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type, x-client-id, x-session-id, x-language"


def _cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": SETTINGS.cors_allow_origin,
        "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
        "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    }


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _latency_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _current_month() -> int:
    return datetime.now().month


def _rate_headers(ip: str, decision: RateLimitDecision | None) -> dict[str, str]:
    if decision is None:
        try:
            decision = rate_limiter.peek(ip)
        except Exception as exc:
            logger.warning("rate limit peek failed ip=%s: %s", ip, exc)
            return {}
    return decision.headers()


def _last_user_message(messages: list[dict[str, Any]]) -> str:
    for message in reversed(messages):
        if message.get("role") == "user":
            return message["content"]
    return ""


def _canned_reply(content: str, session_id: str, headers: dict[str, str]) -> JSONResponse:
    body = CannedReply(
        choices=[Choice(message=ChatMessage(role="assistant", content=content))],
        session_id=session_id,
        cache_hit=True,
    )
    return JSONResponse(dump(body), headers={**headers, "X-Session-Id": session_id})


def _error_response(
    exc: Exception,
    *,
    session_id: str,
    language: str,
    ip: str,
    decision: RateLimitDecision | None,
) -> JSONResponse:
    if isinstance(exc, ChatError):
        status_code = exc.status_code
        error_type = exc.error_type
        key = exc.user_message_key
        message = exc.message if key is None else canned(key, language)
    else:
        status_code = 500
        error_type = ERROR_SERVER
        message = canned("fallback", language)

    body = ErrorBody(
        error=message,
        details=str(exc) if SETTINGS.is_development else None,
        session_id=session_id,
        retry_after=exc.retry_after if isinstance(exc, RateLimitExceeded) else None,
    )
    headers = {
        **_cors_headers(),
        **_rate_headers(ip, decision),
        "X-Session-Id": session_id,
        "X-Error-Type": error_type,
    }
    if isinstance(exc, RateLimitExceeded):
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(dump(body), status_code=status_code, headers=headers)


@router.options("/{path:path}")
def preflight(path: str) -> Response:
    return Response(status_code=204, headers=_cors_headers())


@router.get("/health")
def health() -> JSONResponse:
    body = HealthResponse(
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime=round(time.time() - STARTED_AT, 3),
        sessions=len(session_store),
        rate_limit_entries=len(rate_limiter),
        cache_entries=len(faq_cache),
    )
    return JSONResponse(dump(body), headers=_cors_headers())


@router.get("/metrics")
def metrics_snapshot() -> JSONResponse:
    return JSONResponse(metrics.snapshot(), headers=_cors_headers())


@router.get("/{path:path}")
def not_found(path: str) -> JSONResponse:
    return JSONResponse({"error": "Not found"}, status_code=404, headers=_cors_headers())


@router.api_route("/{path:path}", methods=["PUT", "PATCH", "DELETE"])
def method_not_allowed(path: str, request: Request) -> JSONResponse:
    started = time.perf_counter()
    ip = _client_ip(request)
    session_id = request.headers.get("x-session-id") or new_session_id()
    language = normalize_language(request.headers.get("x-language")) or DEFAULT_LANGUAGE
    exc = MethodNotAllowedError(f"Method not allowed: {request.method}")
    log_chat(
        ChatLogEntry(
            session_id=session_id,
            client_id=request.headers.get("x-client-id") or "anonymous",
            ip=ip,
            intent="method_not_allowed",
            latency=_latency_ms(started),
            error=exc.message,
            error_type=exc.error_type,
        ),
        SETTINGS.chat_log_path,
    )
    metrics.inc("chat_errors_total", {"error_type": exc.error_type})
    return _error_response(exc, session_id=session_id, language=language, ip=ip, decision=None)


@router.post("/{path:path}")
async def chat(path: str, request: Request) -> Response:
    started = time.perf_counter()
    ip = _client_ip(request)
    client_id = request.headers.get("x-client-id") or "anonymous"
    session_id = request.headers.get("x-session-id") or new_session_id()
    preferred_language = normalize_language(request.headers.get("x-language"))
    language = preferred_language or DEFAULT_LANGUAGE
    intent = "unknown"
    message_count = 0
    decision: RateLimitDecision | None = None
    conversion: ConversionEvent | None = None

    def _log(response_length: int = 0, error: Exception | None = None) -> None:
        entry = ChatLogEntry(
            session_id=session_id,
            client_id=client_id,
            ip=ip,
            intent=intent,
            message_count=message_count,
            response_length=response_length,
            latency=_latency_ms(started),
            conversion_event=conversion.to_dict() if conversion else None,
        )
        metrics.observe("chat_latency_ms", entry.latency, {"outcome": "error" if error is not None else "ok"})
        if error is not None:
            entry.error = str(error)
            entry.error_type = error.error_type if isinstance(error, ChatError) else ERROR_SERVER
        log_chat(entry, SETTINGS.chat_log_path)

    # streamed responses are logged when the relay ends
    def _finish_stream(error: ChatError | None) -> None:
        if error is not None:
            metrics.inc("chat_errors_total", {"error_type": error.error_type})
        _log(error=error)

    try:
        body = parse_body(await request.body())
        messages = validate_request(body, SETTINGS)
        message_count = len(messages)

        decision = rate_limiter.check(ip)
        if not decision.allowed:
            intent = "rate_limit"
            metrics.inc("chat_rate_limited_total")
            raise RateLimitExceeded("Rate limit exceeded", decision.retry_after(time.time()))
        validate_api_key(SETTINGS)

        last_user = _last_user_message(messages)
        if preferred_language is None and last_user:
            language = detect_language(last_user)
        session = session_store.get_or_create(session_id, client_id, language)
        intent = detect_intent(last_user, session)
        session.last_intent = intent
        if intent == CONTACT_REQUEST:
            session.contact_requested = True
        base_headers = {**_cors_headers(), **decision.headers()}

        if last_user and is_ownership_question(last_user):
            session_store.save(session)
            content = canned("ownership", language)
            metrics.inc("chat_cache_hit_total", {"kind": "ownership"})
            metrics.inc("chat_requests_total", {"outcome": "ownership"})
            _log(response_length=len(content))
            return _canned_reply(content, session.id, base_headers)

        cached = faq_cache.lookup(last_user, language) if last_user else None
        if cached is not None:
            session_store.save(session)
            metrics.inc("chat_cache_hit_total", {"kind": "faq"})
            metrics.inc("chat_requests_total", {"outcome": "faq"})
            _log(response_length=len(cached))
            return _canned_reply(cached, session.id, base_headers)

        mentioned = extract_mentioned_products(last_user, session)
        for name in mentioned:
            session.add_interest(name)
        extract_preferences(last_user, session)
        lead_qualified = is_lead_qualified(session)
        conversion = conversion_event(session, intent)
        session_store.save(session)

        history = messages
        if len(messages) > SETTINGS.summary_threshold:
            history = summarize_history(messages, session, SETTINGS.keep_recent_messages)
        month = _current_month()
        system_prompt = build_system_prompt(session, intent, language, month)
        structured = build_structured_response(
            intent,
            product_suggestions(intent, mentioned, language, month),
            language,
            session,
        )

        sink = select_sink(request.headers.get("accept"), body.get("stream"))
        payload = upstream_client.build_payload(system_prompt, history, stream=sink.streaming)
        upstream = await call_with_retry(lambda: upstream_client.open(payload), retry_policy)

        context = ChatContext(
            session=session,
            intent=intent,
            language=language,
            lead_qualified=lead_qualified,
            structured=structured,
            headers=base_headers,
            session_ttl_sec=int(session_store.ttl_sec),
            conversion=conversion,
            on_finish=_finish_stream,
        )
        result = await sink.emit(upstream, context)
        metrics.inc("chat_requests_total", {"outcome": "stream" if sink.streaming else "buffered"})
        if not sink.streaming:
            _log(response_length=result.response_length)
        return result.response
    except ChatError as exc:
        metrics.inc("chat_errors_total", {"error_type": exc.error_type})
        metrics.inc("chat_requests_total", {"outcome": "error"})
        _log(error=exc)
        return _error_response(exc, session_id=session_id, language=language, ip=ip, decision=decision)
    except Exception as exc:
        logger.exception("unexpected chat failure session=%s", session_id)
        metrics.inc("chat_errors_total", {"error_type": ERROR_SERVER})
        metrics.inc("chat_requests_total", {"outcome": "error"})
        _log(error=exc)
        return _error_response(exc, session_id=session_id, language=language, ip=ip, decision=decision)
