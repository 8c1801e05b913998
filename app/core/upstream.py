from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

import httpx

from app.core.errors import (
    UpstreamNetworkError,
    UpstreamProtocolError,
    UpstreamStatusError,
    UpstreamTimeoutError,
)
from app.core.settings import Settings

logger = logging.getLogger(__name__)

_ERROR_BODY_LIMIT = 500


class UpstreamStream:
    """An open upstream response; owns the client that produced it."""

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response

    @property
    def content_type(self) -> str:
        return self._response.headers.get("content-type", "")

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.aiter_bytes():
                if chunk:
                    yield chunk
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError("Upstream stream stalled") from exc
        except httpx.HTTPError as exc:
            raise UpstreamNetworkError(f"Upstream stream interrupted: {exc}") from exc
        finally:
            await self.aclose()

    async def read_json(self) -> dict[str, Any]:
        try:
            raw = await self._response.aread()
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError("Upstream response body timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamNetworkError(f"Upstream body read failed: {exc}") from exc
        finally:
            await self.aclose()
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise UpstreamProtocolError("Upstream returned a non-JSON completion") from exc
        if not isinstance(data, dict):
            raise UpstreamProtocolError("Upstream completion is not a JSON object")
        return data

    async def aclose(self) -> None:
        await self._response.aclose()
        await self._client.aclose()


class UpstreamClient:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self._settings.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "authorization": f"Bearer {self._settings.api_key}",
        }

    def build_payload(self, system_prompt: str, messages: list[dict[str, Any]], stream: bool) -> dict[str, Any]:
        body_messages = [{"role": "system", "content": system_prompt}]
        for message in messages:
            body_messages.append({"role": message["role"], "content": message["content"]})
        return {
            "model": self._settings.model,
            "messages": body_messages,
            "stream": stream,
            "max_tokens": self._settings.max_tokens,
            "temperature": self._settings.temperature,
            "top_p": self._settings.top_p,
        }

    async def open(self, payload: dict[str, Any]) -> UpstreamStream:
        """Send one attempt and return once response headers arrive."""
        timeout = self._settings.timeout_ms / 1000.0
        client = httpx.AsyncClient(timeout=timeout, transport=self._transport)
        request = client.build_request("POST", self.url, json=payload, headers=self._headers())
        try:
            response = await asyncio.wait_for(client.send(request, stream=True), timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            await client.aclose()
            raise UpstreamTimeoutError(f"Upstream request timeout after {self._settings.timeout_ms}ms") from exc
        except httpx.HTTPError as exc:
            await client.aclose()
            raise UpstreamNetworkError(f"Upstream request failed: {exc}") from exc

        if response.status_code >= 400:
            try:
                raw = await response.aread()
            except httpx.HTTPError:
                raw = b""
            finally:
                await response.aclose()
                await client.aclose()
            body = raw.decode("utf-8", errors="replace")[:_ERROR_BODY_LIMIT]
            logger.warning("upstream status=%s body=%s", response.status_code, body)
            raise UpstreamStatusError(response.status_code, body)
        return UpstreamStream(client, response)


def extract_content(data: dict[str, Any]) -> str:
    choices = data.get("choices")
    if isinstance(choices, list) and choices:
        choice = choices[0]
        if isinstance(choice, dict):
            message = choice.get("message")
            if isinstance(message, dict) and message.get("content") is not None:
                return str(message["content"])
            if choice.get("text") is not None:
                return str(choice["text"])
    return ""
