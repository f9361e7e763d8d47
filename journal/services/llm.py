"""
LLM Service

Ollama integration for the two model calls the journal needs:
embedding note text and completing a grounded prompt.

Design:
    - Async HTTP calls via httpx (non-blocking).
    - Stateless: one short-lived client per call, nothing cached.
    - No retries. Failures are raised as distinct ``BackendError``
      subclasses so each caller picks its own degradation policy.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from journal.core.config import Settings
from journal.core.errors import (
    BackendTimeoutError,
    BackendUnavailableError,
    ConfigurationError,
    MalformedResponseError,
)

logger = logging.getLogger(__name__)

DIMENSION_PROBE_TEXT = "dimension probe"


class ModelBackend(Protocol):
    """What the sync scheduler and the retrieval orchestrator call."""

    async def embed(self, text: str) -> list[float]: ...

    async def complete(self, prompt: str) -> str: ...


class OllamaClient:
    """
    Async client for an Ollama server.

    Usage::

        client = OllamaClient.from_settings(settings)
        vector = await client.embed("Quarterly planning notes")
        answer = await client.complete("Summarize: ...")

    Raises (from ``embed`` / ``complete``):
        BackendUnavailableError: Connection failure or error status.
        BackendTimeoutError: No answer within ``timeout`` seconds.
        MalformedResponseError: Unexpected payload shape.
    """

    def __init__(
        self,
        base_url: str,
        embedding_model: str,
        chat_model: str,
        dimension: int,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Ollama API base URL.
            embedding_model: Model used by ``embed``.
            chat_model: Model used by ``complete``.
            dimension: Vector length every embedding must have.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (tests inject a MockTransport).
        """
        self._base_url = base_url.rstrip("/")
        self._embedding_model = embedding_model
        self._chat_model = chat_model
        self._dimension = dimension
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> OllamaClient:
        """Build a client from application settings."""
        return cls(
            base_url=settings.OLLAMA_BASE_URL,
            embedding_model=settings.EMBEDDING_MODEL,
            chat_model=settings.CHAT_MODEL,
            dimension=settings.VECTOR_DIMENSIONS,
            timeout=settings.OLLAMA_TIMEOUT,
        )

    @property
    def dimension(self) -> int:
        """Length of every vector returned by ``embed``."""
        return self._dimension

    async def embed(self, text: str) -> list[float]:
        """
        Embed ``text`` with the configured embedding model.

        Blank input is answered locally with a zero vector: there is
        nothing to embed, and the backend would otherwise pick its own
        default.

        Returns:
            Vector of exactly ``dimension`` floats.
        """
        if not text.strip():
            return [0.0] * self._dimension

        data = await self._post(
            "/api/embeddings",
            {"model": self._embedding_model, "prompt": text},
        )
        vector = data.get("embedding")
        if not isinstance(vector, list) or not all(
            isinstance(x, int | float) and not isinstance(x, bool) for x in vector
        ):
            raise MalformedResponseError("Ollama embedding response has no numeric 'embedding'")
        if len(vector) != self._dimension:
            raise MalformedResponseError(
                f"Ollama returned {len(vector)} dimensions, expected {self._dimension}"
            )
        return [float(x) for x in vector]

    async def complete(self, prompt: str) -> str:
        """
        Single-turn, non-streaming completion.

        Returns:
            The model's full response text.
        """
        data = await self._post(
            "/api/generate",
            {"model": self._chat_model, "prompt": prompt, "stream": False},
        )
        content = data.get("response")
        if not isinstance(content, str):
            raise MalformedResponseError("Ollama generate response has no 'response' text")

        logger.info(
            "Ollama response generated (model=%s, length=%d)",
            self._chat_model,
            len(content),
        )
        return content

    async def health_check(self) -> bool:
        """
        Check if Ollama is reachable.

        Returns:
            True if Ollama API responds, False otherwise.
        """
        try:
            async with httpx.AsyncClient(timeout=5.0, transport=self._transport) as client:
                response = await client.get(f"{self._base_url}/api/tags")
                return response.status_code == 200
        except httpx.TransportError:
            return False

    async def verify_dimension(self) -> None:
        """
        Startup check that the embedding model matches the deployment.

        Raises:
            ConfigurationError: If the backend's vectors have another length.
            BackendError: If the probe itself fails.
        """
        data = await self._post(
            "/api/embeddings",
            {"model": self._embedding_model, "prompt": DIMENSION_PROBE_TEXT},
        )
        vector = data.get("embedding")
        if not isinstance(vector, list):
            raise MalformedResponseError("Ollama embedding response has no 'embedding'")
        if len(vector) != self._dimension:
            raise ConfigurationError(
                f"Embedding model '{self._embedding_model}' returns {len(vector)} "
                f"dimensions but VECTOR_DIMENSIONS is {self._dimension}"
            )
        logger.info(
            "Embedding model '%s' verified (dim=%d)",
            self._embedding_model,
            self._dimension,
        )

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """
        POST ``payload`` to ``path`` and return the decoded JSON object.

        Maps httpx failures onto the backend error taxonomy.
        """
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(url, json=payload)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise BackendTimeoutError(
                f"Ollama timed out after {self._timeout}s on {path}"
            ) from e
        except httpx.HTTPStatusError as e:
            raise BackendUnavailableError(
                f"Ollama returned HTTP {e.response.status_code} on {path}"
            ) from e
        except httpx.TransportError as e:
            raise BackendUnavailableError(
                f"Ollama unreachable at {self._base_url} ({type(e).__name__})"
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Ollama returned invalid JSON on {path}") from e
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Ollama returned a non-object payload on {path}")
        return data
