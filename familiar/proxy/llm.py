"""Async client for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from .config import get_config

logger = logging.getLogger("familiar.llm")


class TransportError(Exception):
    """The model endpoint could not be reached or answered with an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class ChatRequest:
    model: str
    messages: list[dict[str, str]] = field(default_factory=list)
    temperature: float | None = None
    max_tokens: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"model": self.model, "messages": self.messages}
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        return payload


class ChatTransport(Protocol):
    async def send(self, request: ChatRequest) -> dict[str, Any]: ...


def reply_content(response: dict[str, Any]) -> str | None:
    """Return ``choices[0].message.content`` or None when any part is missing."""
    try:
        content = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


class LLMClient:
    """Wrapper around httpx.AsyncClient speaking the chat completions protocol."""

    _TRANSIENT_MARKERS = (
        "connection reset", "connection refused", "eof", "broken pipe",
        "timeout", "timed out", "network", "connection error",
    )
    _TRANSIENT_ERRORS = (httpx.ConnectError, httpx.ReadError, httpx.TimeoutException)

    def __init__(
        self,
        endpoint: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        cfg = get_config()
        self.endpoint = endpoint or cfg.llm_endpoint
        self.api_key = cfg.api_key if api_key is None else api_key
        self.max_retries = max_retries
        timeout = timeout or cfg.llm_timeout

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        logger.info(f"Initializing LLM client for endpoint: {self.endpoint}, timeout: {timeout}s")
        self._client = httpx.AsyncClient(headers=headers, timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def send(self, request: ChatRequest) -> dict[str, Any]:
        """POST one chat request and return the decoded JSON body.

        Retries up to ``max_retries`` times on transient connection errors.
        Raises TransportError for everything else.
        """
        payload = request.to_payload()
        logger.debug(
            f"LLM request: model={request.model} messages={len(request.messages)} "
            f"temperature={request.temperature} max_tokens={request.max_tokens}"
        )

        last_err: Exception | None = None
        for attempt in range(self.max_retries + 1):
            try:
                response = await self._client.post(self.endpoint, json=payload)
            except httpx.HTTPError as e:
                err_str = str(e).lower() or type(e).__name__.lower()
                is_transient = isinstance(e, self._TRANSIENT_ERRORS) or any(
                    k in err_str for k in self._TRANSIENT_MARKERS
                )
                if is_transient and attempt < self.max_retries:
                    wait = 1.5 * (attempt + 1)
                    logger.warning(
                        f"Transient LLM error (attempt {attempt + 1}/{self.max_retries + 1}), "
                        f"retrying in {wait:.1f}s: {e!r}"
                    )
                    last_err = e
                    await asyncio.sleep(wait)
                    continue
                raise TransportError(f"LLM request failed: {e!r}") from e

            logger.debug(f"LLM response status: {response.status_code}")
            if response.is_error:
                body = response.text
                logger.error(f"LLM API error: {response.status_code} {body[:500]}")
                raise TransportError(
                    f"LLM API returned {response.status_code}: {body}",
                    status_code=response.status_code,
                )
            try:
                data = response.json()
            except ValueError as e:
                raise TransportError(f"LLM API returned invalid JSON: {e}") from e

            if not isinstance(data, dict):
                raise TransportError("LLM API returned a non-object JSON body")
            logger.debug(f"LLM response received, choices: {len(data.get('choices') or [])}")
            return data

        raise TransportError(
            f"LLM connection failed after {self.max_retries + 1} attempts: {last_err!r}"
        )

    async def test_connection(self, model: str | None = None) -> tuple[bool, str]:
        """Send a tiny probe request and report whether the endpoint answers sanely."""
        probe = ChatRequest(
            model=model or get_config().model,
            messages=[{"role": "user", "content": "test"}],
            temperature=0.1,
            max_tokens=5,
        )
        try:
            data = await self.send(probe)
        except TransportError as e:
            logger.warning(f"LLM connection test failed: {e}")
            return False, f"Connection failed: {e}"
        if data.get("choices"):
            return True, "Connection successful! The Familiar is ready to assist."
        return False, "Connection successful but response format unexpected"
