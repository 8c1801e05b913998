from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable
from urllib.parse import quote

from fastapi.responses import JSONResponse, Response, StreamingResponse

from app.api.schemas import ErrorBody, SessionInfo, dump
from app.core.canned import canned
from app.core.errors import ChatError
from app.core.intent import ConversionEvent, suggests_account
from app.core.sessions import Session
from app.core.upstream import UpstreamStream, extract_content

logger = logging.getLogger(__name__)


@dataclass
class ChatContext:
    session: Session
    intent: str
    language: str
    lead_qualified: bool
    structured: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    session_ttl_sec: int = 1800
    conversion: ConversionEvent | None = None
    # called once the relay ends, with the failure if it broke off
    on_finish: Callable[[ChatError | None], None] | None = None


@dataclass
class SinkResult:
    response: Response
    response_length: int = 0


def _sse_event(name: str, data: dict | str) -> bytes:
    if isinstance(data, str):
        payload = data
    else:
        payload = json.dumps(data, ensure_ascii=False)
    return f"event: {name}\ndata: {payload}\n\n".encode("utf-8")


class ResponseSink:
    streaming = False

    async def emit(self, upstream: UpstreamStream, context: ChatContext) -> SinkResult:
        raise NotImplementedError


class StreamingSink(ResponseSink):
    """Relays upstream SSE bytes verbatim, then appends a suggestions or error frame."""

    streaming = True

    def _headers(self, context: ChatContext) -> dict[str, str]:
        session = context.session
        return {
            **context.headers,
            "Cache-Control": "no-cache",
            "X-Session-Id": session.id,
            "X-Client-Id": session.client_id,
            "X-Session-TTL": str(context.session_ttl_sec),
            "X-Session-Interests": quote(",".join(session.interests), safe=","),
            "X-Lead-Qualified": "true" if context.lead_qualified else "false",
        }

    async def _relay(self, upstream: UpstreamStream, context: ChatContext) -> AsyncIterator[bytes]:
        failure: ChatError | None = None
        try:
            async for chunk in upstream.aiter_bytes():
                yield chunk
        except ChatError as exc:
            logger.warning("stream relay failed session=%s: %s", context.session.id, exc)
            failure = exc
        if context.on_finish is not None:
            context.on_finish(failure)
        if failure is None:
            yield _sse_event("suggestions", context.structured)
            return
        body = ErrorBody(error=canned("fallback", context.language), session_id=context.session.id)
        yield _sse_event("error", dump(body))

    async def emit(self, upstream: UpstreamStream, context: ChatContext) -> SinkResult:
        if context.conversion is not None:
            context.conversion.account_suggested = suggests_account(upstream.content_type)
        response = StreamingResponse(
            self._relay(upstream, context),
            media_type="text/event-stream",
            headers=self._headers(context),
        )
        return SinkResult(response=response, response_length=0)


class BufferedSink(ResponseSink):
    """Reads the whole completion and annotates it with session details."""

    async def emit(self, upstream: UpstreamStream, context: ChatContext) -> SinkResult:
        data = await upstream.read_json()
        content = extract_content(data)
        account = suggests_account(content)
        if context.conversion is not None:
            context.conversion.account_suggested = account
        session = context.session
        data["sessionInfo"] = dump(
            SessionInfo(
                session_id=session.id,
                interests=list(session.interests),
                mentioned_products=list(session.mentioned_products),
                preferences=dict(session.preferences),
                lead_qualified=context.lead_qualified,
                suggested_account=account,
                suggestions=context.structured,
            )
        )
        headers = {
            **context.headers,
            "X-Session-Id": session.id,
            "X-Lead-Qualified": "true" if context.lead_qualified else "false",
        }
        return SinkResult(response=JSONResponse(data, headers=headers), response_length=len(content))


def select_sink(accept: str | None, body_stream: Any) -> ResponseSink:
    if "text/event-stream" in (accept or "").lower() or body_stream is not False:
        return StreamingSink()
    return BufferedSink()
