"""Async client for the local Ollama API.

Wraps the Ollama HTTP API (``/api/chat``, ``/api/tags``) with timeout
handling and typed errors. ``stream_chat`` is the
upstream producer for a stream session: it yields response text chunks in
generation order as they arrive.

Typical usage::

    client = OllamaClient()
    session = StreamSession(snapshot=files)
    result = await session.consume(client.stream_chat(messages))
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

import httpx
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class OllamaError(Exception):
    """Raised when a streaming request to Ollama fails."""


class OllamaConnectionError(OllamaError):
    """The Ollama server could not be reached."""


class OllamaTimeoutError(OllamaError):
    """The request exceeded the configured timeout."""


class QuotaExceededError(OllamaError):
    """The server rejected the request with HTTP 429."""


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class ChatMessage(BaseModel):
    """One message of a chat request."""

    role: str = Field(..., description="'system', 'user' or 'assistant'")
    content: str = Field(default="")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class OllamaClient:
    """Async client for the Ollama REST API.

    Uses ``httpx.AsyncClient`` for non-blocking HTTP. A custom ``transport``
    can be supplied (for example ``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        timeout: int = 120,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self.transport,
        )

    @staticmethod
    def _extract_chunk(data: dict) -> str:
        """Pull the text increment out of one streamed ``/api/chat`` line."""
        message = data.get("message") or {}
        return message.get("content", "")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def stream_chat(
        self,
        messages: list[ChatMessage],
        model: str = "qwen2.5-coder:14b",
        temperature: float = 0.5,
    ) -> AsyncIterator[str]:
        """Stream a chat completion, yielding text chunks in order.

        Raises:
            QuotaExceededError: The server answered HTTP 429.
            OllamaConnectionError: The server could not be reached.
            OllamaTimeoutError: The request timed out.
            OllamaError: Any other HTTP or protocol failure.
        """
        payload = {
            "model": model,
            "messages": [m.model_dump() for m in messages],
            "stream": True,
            "options": {"temperature": temperature},
        }

        try:
            async with self._client() as client:
                async with client.stream("POST", "/api/chat", json=payload) as response:
                    if response.status_code == 429:
                        await response.aread()
                        raise QuotaExceededError(
                            f"Ollama quota exceeded (HTTP 429): {response.text[:500]}"
                        )
                    if response.status_code >= 400:
                        await response.aread()
                        raise OllamaError(
                            f"Ollama returned HTTP {response.status_code}: {response.text[:500]}"
                        )

                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        try:
                            data = json.loads(line)
                        except json.JSONDecodeError as exc:
                            raise OllamaError(f"Malformed stream line from Ollama: {line[:200]}") from exc
                        if data.get("error"):
                            raise OllamaError(f"Ollama stream error: {data['error']}")
                        chunk = self._extract_chunk(data)
                        if chunk:
                            yield chunk
                        if data.get("done"):
                            return
        except httpx.ConnectError as exc:
            raise OllamaConnectionError(
                f"Cannot connect to Ollama at {self.base_url}. Is the server running?"
            ) from exc
        except httpx.TimeoutException as exc:
            raise OllamaTimeoutError(f"Request to Ollama timed out after {self.timeout}s.") from exc
        except httpx.HTTPError as exc:
            raise OllamaError(f"Transport error while streaming from Ollama: {exc}") from exc

    async def is_available(self) -> bool:
        """Return ``True`` if the Ollama server responds to ``/api/tags``."""
        try:
            async with self._client() as client:
                response = await client.get("/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False
