"""Asynchronous HTTP client for the Ollama API."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from .errors import OllamaApiError, OllamaRequestError, OllamaSerializationError
from .messages import (
    ChatRequest,
    ChatResponse,
    EmbeddingsRequest,
    EmbeddingsResponse,
    GenerateRequest,
    GenerateResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"

_R = TypeVar("_R")


class OllamaClient:
    """Client for the Ollama chat, generate and embeddings endpoints."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL) -> None:
        self.base_url = base_url
        self._http = httpx.AsyncClient(timeout=None)

    def __repr__(self) -> str:
        return f"OllamaClient(base_url={self.base_url!r})"

    async def __aenter__(self) -> OllamaClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _post(
        self, endpoint: str, body: dict[str, Any], parse: Callable[[Any], _R]
    ) -> _R:
        url = f"{self.base_url}{endpoint}"
        try:
            response = await self._http.post(url, json=body)
        except httpx.HTTPError as exc:
            raise OllamaApiError(str(exc)) from exc

        if response.is_success:
            text = response.text
            try:
                return parse(json.loads(text))
            except ValueError as exc:
                message = f"Error decoding response body: {exc}. Raw JSON was: '{text}'"
                logger.error("Deserialization failed: %s", message)
                raise OllamaSerializationError(message) from exc

        status = f"{response.status_code} {response.reason_phrase}".strip()
        try:
            error_text = response.text
        except (UnicodeDecodeError, httpx.HTTPError):
            error_text = "Failed to read error body"
        logger.error("Request failed with status: %s", status)
        logger.error("Error body: %s", error_text)
        raise OllamaApiError(f"Request failed: {status} - {error_text}")

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        """Send a generation request."""
        return await self._post("/api/generate", request.to_dict(), GenerateResponse.from_dict)

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send a chat request."""
        return await self._post("/api/chat", request.to_dict(), ChatResponse.from_dict)

    async def embeddings(self, request: EmbeddingsRequest) -> EmbeddingsResponse:
        """Request embeddings for the given input."""
        return await self._post(
            "/api/embeddings", request.to_dict(), EmbeddingsResponse.from_dict
        )

    async def heartbeat(self) -> bool:
        """Return whether the server answers its base URL successfully."""
        logger.debug("Sending GET request to: %s", self.base_url)
        try:
            response = await self._http.get(self.base_url)
        except httpx.HTTPError as exc:
            raise OllamaRequestError(str(exc)) from exc
        return response.is_success

    async def aclose(self) -> None:
        """Close the underlying HTTP connections."""
        await self._http.aclose()